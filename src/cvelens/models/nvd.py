"""NVD 2.0 API response envelope."""

from datetime import datetime

from pydantic import BaseModel, Field

from cvelens.models.cve import CVE


class NVDResponse(BaseModel):
    """One page (or a concatenation of pages) of NVD search results.

    An empty ``vulnerabilities`` list is a valid answer meaning nothing
    matched; an unavailable upstream is represented by no response at all.
    """

    results_per_page: int = Field(default=0, ge=0)
    start_index: int = Field(default=0, ge=0)
    total_results: int = Field(default=0, ge=0)
    format: str = Field(default="NVD_CVE")
    version: str = Field(default="2.0")
    timestamp: datetime | None = None
    vulnerabilities: list[CVE] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when the response holds no CVE records."""
        return not self.vulnerabilities
