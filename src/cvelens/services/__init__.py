"""Services for CVELens data fetching and aggregation."""

from cvelens.services.analytics_service import AnalyticsService
from cvelens.services.details_service import CVEDetailsService
from cvelens.services.epss_service import EPSSService
from cvelens.services.kev_service import KEVService
from cvelens.services.nvd_service import NVDService

__all__ = [
    "AnalyticsService",
    "CVEDetailsService",
    "EPSSService",
    "KEVService",
    "NVDService",
]
