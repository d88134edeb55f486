"""Data models for CVELens."""

from cvelens.models.analytics import AnalyticsSummary, CWECount, SeverityCount, TimelinePoint
from cvelens.models.bulk import BulkError, BulkItemResult, BulkResult
from cvelens.models.cve import (
    CVE,
    CVSSMetrics,
    CVSSVersion,
    Reference,
    Severity,
    Weakness,
)
from cvelens.models.details import CVEDetails, Suggestion
from cvelens.models.epss import EPSSScore
from cvelens.models.kev import KEVCatalog, KEVEntry
from cvelens.models.nvd import NVDResponse

__all__ = [
    "CVE",
    "AnalyticsSummary",
    "BulkError",
    "BulkItemResult",
    "BulkResult",
    "CVEDetails",
    "CVSSMetrics",
    "CVSSVersion",
    "CWECount",
    "EPSSScore",
    "KEVCatalog",
    "KEVEntry",
    "NVDResponse",
    "Reference",
    "Severity",
    "SeverityCount",
    "Suggestion",
    "TimelinePoint",
    "Weakness",
]
