"""CISA Known Exploited Vulnerabilities (KEV) service.

Fetches the KEV catalog which contains vulnerabilities that are
actively being exploited in the wild. The catalog is a single document
that is cached and replaced as a whole.

Data source: https://www.cisa.gov/known-exploited-vulnerabilities-catalog
"""

import httpx
from loguru import logger

from cvelens.config import Settings
from cvelens.models.kev import KEVCatalog, KEVEntry
from cvelens.utils.cache import TTLCache
from cvelens.utils.http_client import (
    FETCH_ERRORS,
    NonRetryableHTTPError,
    create_http_client,
    create_retry_policy,
    handle_response,
)

KEV_CACHE_KEY = "kev_catalog"


class KEVService:
    """Service for fetching the CISA KEV catalog.

    Membership checks answer against the most recently fetched catalog,
    i.e. they are a point-in-time test.
    """

    def __init__(
        self,
        settings: Settings,
        cache: TTLCache,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize KEV service.

        Args:
            settings: Application settings.
            cache: Shared response cache.
            transport: Optional httpx transport (used by tests).
        """
        self.settings = settings
        self.url = settings.kev.url
        self.cache = cache
        self._transport = transport
        self._catalog: KEVCatalog | None = None
        self._download = create_retry_policy(settings)(self._request)

    @property
    def catalog(self) -> KEVCatalog | None:
        """Most recently fetched KEV catalog."""
        return self._catalog

    async def fetch(self) -> KEVCatalog | None:
        """Fetch and parse the KEV catalog.

        Returns:
            KEVCatalog, or None if the catalog could not be fetched.
        """
        if (cached := self.cache.get(KEV_CACHE_KEY)) is not None:
            self._catalog = cached
            return cached

        logger.info(f"Fetching CISA KEV catalog from {self.url}")
        try:
            catalog = await self._download()
        except FETCH_ERRORS as e:
            logger.error(f"Error fetching KEV catalog: {e}")
            return None

        self._catalog = catalog
        self.cache.set(KEV_CACHE_KEY, catalog)
        logger.info(f"Loaded {catalog.total_count} KEV entries")
        return catalog

    def get_entry(self, cve_id: str) -> KEVEntry | None:
        """Get KEV entry for a specific CVE.

        Args:
            cve_id: CVE identifier.

        Returns:
            KEVEntry if found and catalog is loaded, None otherwise.
        """
        if self._catalog:
            return self._catalog.get_entry(cve_id)
        return None

    def is_kev(self, cve_id: str) -> bool:
        """Check if a CVE is in the KEV catalog.

        Args:
            cve_id: CVE identifier.

        Returns:
            True if CVE is in KEV catalog and catalog is loaded.
        """
        if self._catalog:
            return self._catalog.is_kev(cve_id)
        return False

    async def _request(self) -> KEVCatalog:
        async with create_http_client(
            timeout=self.settings.kev.timeout, transport=self._transport
        ) as client:
            response = await client.get(
                self.url,
                headers={"User-Agent": self.settings.http.user_agent},
            )

        data = handle_response(response)
        if not isinstance(data, dict) or not isinstance(data.get("vulnerabilities"), list):
            raise NonRetryableHTTPError("KEV catalog has no 'vulnerabilities' list")
        return KEVCatalog.from_api(data)
