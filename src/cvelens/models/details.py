"""Joined CVE view combining NVD, EPSS and KEV data."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from cvelens.models.cve import Reference
from cvelens.models.kev import KEVEntry


class CVEDetails(BaseModel):
    """Normalized CVE record as handed to callers.

    Missing EPSS, CWE or KEV data is a normal outcome, not an error.
    ``is_kev`` reflects membership in the most recently fetched KEV catalog.
    """

    cve_id: str = Field(..., description="CVE identifier")
    description: str = Field(default="", description="English description")
    published: datetime
    last_modified: datetime

    cvss_score: float = Field(default=0.0, ge=0, le=10)
    severity: str = Field(default="Unknown", description="v3.1 severity, else v2, else Unknown")
    vector_string: str = Field(default="")

    epss: float | None = Field(default=None, ge=0, le=1)
    epss_percentile: float | None = Field(default=None, ge=0, le=1)

    cwe: str | None = Field(default=None, description="First listed weakness")

    is_kev: bool = False
    kev_details: KEVEntry | None = None

    references: list[Reference] = Field(default_factory=list)
    affected_products: list[str] = Field(
        default_factory=list,
        description="Approximate: vendor names matched in free text",
    )

    @model_validator(mode="after")
    def check_kev_consistency(self) -> "CVEDetails":
        """``is_kev`` and ``kev_details`` must agree."""
        if self.is_kev != (self.kev_details is not None):
            raise ValueError("is_kev must be True exactly when kev_details is set")
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase JSON shape consumed by the UI layer."""
        doc: dict[str, Any] = {
            "id": self.cve_id,
            "description": self.description,
            "published": self.published.isoformat(),
            "lastModified": self.last_modified.isoformat(),
            "cvssScore": self.cvss_score,
            "severity": self.severity,
            "vectorString": self.vector_string,
            "epss": self.epss,
            "epssPercentile": self.epss_percentile,
            "cwe": self.cwe,
            "cweDescription": self.cwe,
            "isKEV": self.is_kev,
            "references": [ref.model_dump() for ref in self.references],
            "affectedProducts": list(self.affected_products),
        }
        if self.kev_details:
            doc["kevDetails"] = self.kev_details.to_dict()
        return doc


class Suggestion(BaseModel):
    """Autocomplete suggestion."""

    cve_id: str
    description: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"id": self.cve_id, "description": self.description}
