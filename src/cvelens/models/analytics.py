"""Analytics summary models derived from a batch of joined CVEs."""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from cvelens.models.details import CVEDetails


class SeverityCount(BaseModel):
    """Number of CVEs in one CVSS severity bucket."""

    severity: str
    count: int = Field(..., ge=0)


class CWECount(BaseModel):
    """Number of CVEs sharing a first-listed CWE."""

    name: str
    count: int = Field(..., ge=0)


class TimelinePoint(BaseModel):
    """CVEs published on one day and their mean CVSS score."""

    day: date
    count: int = Field(..., ge=0)
    avg_cvss: float = Field(..., ge=0, le=10)


class AnalyticsSummary(BaseModel):
    """Summary statistics for a keyword and publication window."""

    total_cves: int = 0
    avg_cvss: float = 0.0
    avg_epss: float = 0.0
    kev_count: int = 0
    top_cvss: list[CVEDetails] = Field(default_factory=list)
    top_epss: list[CVEDetails] = Field(default_factory=list)
    cvss_distribution: list[SeverityCount] = Field(default_factory=list)
    cwe_distribution: list[CWECount] = Field(default_factory=list)
    timeline: list[TimelinePoint] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "AnalyticsSummary":
        """Summary returned when nothing matched."""
        return cls()

    def distribution_as_dict(self) -> dict[str, int]:
        """Severity bucket counts keyed by bucket name."""
        return {bucket.severity: bucket.count for bucket in self.cvss_distribution}

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase JSON shape consumed by the dashboard."""
        return {
            "totalCVEs": self.total_cves,
            "avgCVSS": self.avg_cvss,
            "avgEPSS": self.avg_epss,
            "kevCount": self.kev_count,
            "topCVSS": [details.to_dict() for details in self.top_cvss],
            "topEPSS": [details.to_dict() for details in self.top_epss],
            "cvssDistribution": [b.model_dump() for b in self.cvss_distribution],
            "cweDistribution": [c.model_dump() for c in self.cwe_distribution],
            "timeline": [
                {"date": p.day.isoformat(), "count": p.count, "avgCVSS": p.avg_cvss}
                for p in self.timeline
            ],
        }
