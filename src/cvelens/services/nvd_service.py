"""NVD 2.0 API service for fetching CVE data.

Every request goes through the cache first and then through a single
rate limiter shared by all NVD calls. Failures are logged and reported as
``None``; they are never raised to the caller.

API Documentation: https://nvd.nist.gov/developers/vulnerabilities
"""

from datetime import UTC, date, datetime
from typing import Any

import httpx
from loguru import logger

from cvelens.config import Settings
from cvelens.models.cve import CVE
from cvelens.models.nvd import NVDResponse
from cvelens.utils.cache import TTLCache
from cvelens.utils.dates import split_date_range
from cvelens.utils.http_client import (
    FETCH_ERRORS,
    NonRetryableHTTPError,
    RateLimiter,
    create_http_client,
    create_retry_policy,
    handle_response,
)


class NVDService:
    """Service for interacting with the NVD 2.0 API.

    Handles CVE data fetching with:
    - Response caching (successful responses only)
    - Minimum spacing between requests via an injected rate limiter
    - Retry logic with exponential backoff for 429/5xx/timeouts
    - Splitting of wide publication-date windows into 119-day chunks
    """

    def __init__(
        self,
        settings: Settings,
        cache: TTLCache,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize NVD service.

        Args:
            settings: Application settings.
            cache: Shared response cache.
            rate_limiter: Limiter guarding every NVD request.
            transport: Optional httpx transport (used by tests).
        """
        self.settings = settings
        self.base_url = settings.nvd.base_url
        self.cache = cache
        self.rate_limiter = rate_limiter or RateLimiter(settings.nvd.min_interval)
        self._transport = transport

        # Build headers
        self.headers: dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": settings.http.user_agent,
        }
        if settings.nvd.api_key:
            self.headers["apiKey"] = settings.nvd.api_key.get_secret_value()

        self._fetch_page = create_retry_policy(settings)(self._request_page)

    async def fetch_cve(self, cve_id: str) -> NVDResponse | None:
        """Fetch the NVD response for a single CVE ID.

        Args:
            cve_id: CVE identifier (e.g., CVE-2024-12345).

        Returns:
            The response (empty ``vulnerabilities`` when the ID is unknown),
            or None when NVD could not be reached or answered garbage.
        """
        cve_id = cve_id.strip().upper()
        cache_key = f"nvd_{cve_id}"
        if (cached := self.cache.get(cache_key)) is not None:
            logger.debug(f"NVD cache hit for {cve_id}")
            return cached

        try:
            async with self._client(self.settings.nvd.lookup_timeout) as client:
                data = await self._fetch_page(client, {"cveId": cve_id})
            response = self._parse_response(data)
        except FETCH_ERRORS as e:
            logger.error(f"Error fetching CVE {cve_id} from NVD: {e}")
            return None

        if response.is_empty:
            logger.info(f"CVE {cve_id} not found in NVD")
            return response

        self.cache.set(cache_key, response)
        return response

    async def lookup(self, cve_id: str) -> CVE | None:
        """Fetch a single CVE by ID.

        Returns:
            CVE instance if found, None otherwise.
        """
        response = await self.fetch_cve(cve_id)
        if response is None or response.is_empty:
            return None
        return response.vulnerabilities[0]

    async def search(self, keyword: str, results_per_page: int = 20) -> NVDResponse | None:
        """Search CVE descriptions by keyword (first page only).

        Args:
            keyword: Keyword search string.
            results_per_page: Page size sent to NVD.

        Returns:
            NVDResponse, or None on failure.
        """
        cache_key = f"nvd_search_{keyword}_{results_per_page}"
        if (cached := self.cache.get(cache_key)) is not None:
            logger.debug(f"NVD cache hit for search {keyword!r}")
            return cached

        params = {"keywordSearch": keyword, "resultsPerPage": results_per_page}
        try:
            async with self._client(self.settings.nvd.search_timeout) as client:
                data = await self._fetch_page(client, params)
            response = self._parse_response(data)
        except FETCH_ERRORS as e:
            logger.error(f'Error searching CVEs for keyword "{keyword}": {e}')
            return None

        self.cache.set(cache_key, response)
        return response

    async def search_by_date_range(
        self,
        keyword: str,
        start: date | datetime,
        end: date | datetime,
        results_per_page: int = 100,
    ) -> NVDResponse | None:
        """Search by keyword within a publication-date window.

        Windows wider than ``settings.nvd.max_range_days`` are split into
        chunks that are fetched one after another through the rate limiter
        and concatenated. For a concatenated result ``total_results`` is the
        number of records collected; for a single request it is NVD's own
        ``totalResults``.

        Args:
            keyword: Keyword search string (empty for no keyword filter).
            start: First publication day.
            end: Last publication day (inclusive).
            results_per_page: Page size sent with each request.

        Returns:
            NVDResponse, or None if any request failed.

        Raises:
            ValueError: If start is after end.
        """
        chunks = split_date_range(start, end, self.settings.nvd.max_range_days)
        cache_key = (
            f"nvd_date_{keyword}_{chunks[0].start.isoformat()}_"
            f"{chunks[-1].end.isoformat()}_{results_per_page}"
        )
        if (cached := self.cache.get(cache_key)) is not None:
            logger.debug(f"NVD cache hit for date-range search {keyword!r}")
            return cached

        base_params: dict[str, Any] = {"resultsPerPage": results_per_page}
        if keyword:
            base_params["keywordSearch"] = keyword

        try:
            async with self._client(self.settings.nvd.date_range_timeout) as client:
                if len(chunks) == 1:
                    data = await self._fetch_page(client, {**base_params, **chunks[0].nvd_params()})
                    response = self._parse_response(data)
                else:
                    span = (chunks[-1].end - chunks[0].start).days
                    logger.info(
                        f"Date range exceeds {self.settings.nvd.max_range_days} days "
                        f"({span} days). Splitting into {len(chunks)} chunks"
                    )
                    vulnerabilities: list[CVE] = []
                    for i, chunk in enumerate(chunks, start=1):
                        logger.info(
                            f"Fetching chunk {i}/{len(chunks)}: {chunk.start} to {chunk.end}"
                        )
                        data = await self._fetch_page(client, {**base_params, **chunk.nvd_params()})
                        vulnerabilities.extend(self._parse_response(data).vulnerabilities)

                    response = NVDResponse(
                        results_per_page=results_per_page,
                        start_index=0,
                        total_results=len(vulnerabilities),
                        timestamp=datetime.now(UTC),
                        vulnerabilities=vulnerabilities,
                    )
        except FETCH_ERRORS as e:
            logger.error(f"Error searching CVEs by date range for {keyword!r}: {e}")
            return None

        self.cache.set(cache_key, response)
        return response

    def _client(self, timeout: float) -> Any:
        return create_http_client(timeout=timeout, transport=self._transport)

    async def _request_page(
        self,
        client: httpx.AsyncClient,
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """Fetch a single page of results from NVD API.

        Args:
            client: HTTP client instance.
            params: Query parameters.

        Returns:
            Parsed JSON response.
        """
        await self.rate_limiter.acquire()

        logger.debug(f"Fetching NVD page with params: {params}")
        response = await client.get(
            self.base_url,
            params=params,
            headers=self.headers,
        )

        data = handle_response(response)
        if not isinstance(data, dict):
            raise NonRetryableHTTPError("Unexpected NVD response body", response.status_code)
        return data

    @staticmethod
    def _parse_response(data: dict[str, Any]) -> NVDResponse:
        """Build an NVDResponse, skipping records that fail to parse.

        Raises:
            NonRetryableHTTPError: If ``vulnerabilities`` is not a list.
        """
        items = data.get("vulnerabilities") or []
        if not isinstance(items, list):
            raise NonRetryableHTTPError("NVD vulnerabilities field is not a list")

        vulnerabilities: list[CVE] = []
        for vuln in items:
            cve_data = vuln.get("cve", vuln) if isinstance(vuln, dict) else None
            if not isinstance(cve_data, dict):
                logger.error(f"Skipping NVD record without a cve object: {vuln!r:.80}")
                continue
            try:
                vulnerabilities.append(CVE.from_nvd_api(vuln))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.error(f"Failed to parse CVE {cve_data.get('id', 'unknown')}: {e}")

        return NVDResponse(
            results_per_page=data.get("resultsPerPage", len(vulnerabilities)),
            start_index=data.get("startIndex", 0),
            total_results=data.get("totalResults", len(vulnerabilities)),
            format=data.get("format", "NVD_CVE"),
            version=data.get("version", "2.0"),
            timestamp=data.get("timestamp"),
            vulnerabilities=vulnerabilities,
        )
