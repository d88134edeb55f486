"""Wiring of the cache, the NVD rate limiter and the services."""

import httpx

from cvelens.config import Settings, get_settings
from cvelens.services.analytics_service import AnalyticsService
from cvelens.services.details_service import CVEDetailsService
from cvelens.services.epss_service import EPSSService
from cvelens.services.kev_service import KEVService
from cvelens.services.nvd_service import NVDService
from cvelens.utils.cache import TTLCache
from cvelens.utils.http_client import RateLimiter


class Pipeline:
    """One cache and one NVD limiter shared by every service of a process."""

    def __init__(
        self,
        settings: Settings,
        cache: TTLCache,
        nvd_rate_limiter: RateLimiter,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self.cache = cache
        self.nvd_rate_limiter = nvd_rate_limiter

        self.nvd = NVDService(settings, cache, nvd_rate_limiter, transport=transport)
        self.epss = EPSSService(settings, cache, transport=transport)
        self.kev = KEVService(settings, cache, transport=transport)

        self.details = CVEDetailsService(self.nvd, self.epss, self.kev)
        self.analytics = AnalyticsService(self.nvd, self.epss, self.kev)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "Pipeline":
        """Build a pipeline with a fresh cache and limiter from settings."""
        settings = settings or get_settings()
        cache = TTLCache(
            ttl_seconds=settings.cache.ttl_seconds,
            max_entries=settings.cache.max_entries,
        )
        limiter = RateLimiter(settings.nvd.min_interval)
        return cls(settings, cache, limiter, transport=transport)
