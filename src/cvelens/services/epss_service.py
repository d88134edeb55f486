"""EPSS (Exploit Prediction Scoring System) service.

Looks up EPSS scores for specific CVEs through the FIRST.org EPSS API.
EPSS provides probability scores for CVE exploitation within 30 days.

Data source: https://www.first.org/epss/api
"""

from collections.abc import Iterable
from typing import Any

import httpx
from loguru import logger

from cvelens.config import Settings
from cvelens.models.epss import EPSSScore
from cvelens.utils.cache import TTLCache
from cvelens.utils.http_client import (
    FETCH_ERRORS,
    NonRetryableHTTPError,
    create_http_client,
    create_retry_policy,
    handle_response,
)


class EPSSService:
    """Service for batch EPSS score lookups.

    CVE IDs are sent comma-joined in batches of ``settings.epss.batch_size``
    to stay within the API's page size and URL length limits. IDs without
    a score are simply absent from the result.
    """

    def __init__(
        self,
        settings: Settings,
        cache: TTLCache,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize EPSS service.

        Args:
            settings: Application settings.
            cache: Shared response cache.
            transport: Optional httpx transport (used by tests).
        """
        self.settings = settings
        self.url = settings.epss.url
        self.cache = cache
        self._transport = transport
        self._get = create_retry_policy(settings)(self._request)

    async def fetch_scores(self, cve_ids: Iterable[str]) -> dict[str, EPSSScore]:
        """Fetch EPSS scores for a list of CVE IDs.

        A batch that fails is logged and skipped; the other batches are
        still returned.

        Args:
            cve_ids: CVE identifiers, in any case, duplicates allowed.

        Returns:
            Mapping of uppercase CVE ID to EPSSScore.
        """
        ids = list(dict.fromkeys(c.strip().upper() for c in cve_ids if c and c.strip()))
        if not ids:
            return {}

        batch_size = self.settings.epss.batch_size
        scores: dict[str, EPSSScore] = {}
        async with create_http_client(
            timeout=self.settings.epss.timeout, transport=self._transport
        ) as client:
            for offset in range(0, len(ids), batch_size):
                batch = ids[offset : offset + batch_size]
                scores.update(await self._fetch_batch(client, batch))

        return scores

    async def fetch_score(self, cve_id: str) -> EPSSScore | None:
        """Fetch the EPSS score for one CVE."""
        scores = await self.fetch_scores([cve_id])
        return scores.get(cve_id.strip().upper())

    async def _fetch_batch(
        self,
        client: httpx.AsyncClient,
        batch: list[str],
    ) -> dict[str, EPSSScore]:
        cache_key = f"epss_{','.join(batch)}"
        if (cached := self.cache.get(cache_key)) is not None:
            logger.debug(f"EPSS cache hit for {len(batch)} CVEs")
            return dict(cached)

        try:
            data = await self._get(client, {"cve": ",".join(batch)})
            rows = data.get("data")
            if not isinstance(rows, list):
                raise NonRetryableHTTPError("EPSS response has no 'data' array")
        except FETCH_ERRORS as e:
            logger.error(f"Error fetching EPSS scores for {len(batch)} CVEs ({batch[0]}...): {e}")
            return {}

        scores: dict[str, EPSSScore] = {}
        for row in rows:
            try:
                score = EPSSScore.from_api(row)
            except (TypeError, ValueError, AttributeError) as e:
                logger.debug(f"Failed to parse EPSS row {row}: {e}")
                continue
            scores[score.cve_id] = score

        logger.debug(f"Loaded {len(scores)} EPSS scores for {len(batch)} CVEs")
        self.cache.set(cache_key, scores)
        return dict(scores)

    async def _request(
        self,
        client: httpx.AsyncClient,
        params: dict[str, Any],
    ) -> dict[str, Any]:
        response = await client.get(
            self.url,
            params=params,
            headers={"User-Agent": self.settings.http.user_agent},
        )
        data = handle_response(response)
        if not isinstance(data, dict):
            raise NonRetryableHTTPError("Unexpected EPSS response body", response.status_code)
        return data
