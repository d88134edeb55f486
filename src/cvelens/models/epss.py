"""EPSS (Exploit Prediction Scoring System) data models."""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator


class EPSSScore(BaseModel):
    """EPSS score for a single CVE.

    EPSS provides a probability score (0-1) indicating the likelihood
    that a vulnerability will be exploited in the wild within the next 30 days.
    Scores are a point-in-time snapshot for ``score_date``.
    """

    cve_id: str = Field(..., description="CVE identifier")
    score: float = Field(
        ...,
        ge=0,
        le=1,
        description="EPSS probability score (0-1)",
    )
    percentile: float = Field(
        ...,
        ge=0,
        le=1,
        description="EPSS percentile ranking (0-1)",
    )
    score_date: date | None = Field(
        default=None,
        description="Date the score was calculated",
    )

    @field_validator("cve_id", mode="before")
    @classmethod
    def normalize_cve_id(cls, v: str) -> str:
        """Normalize CVE ID to uppercase."""
        return v.upper() if v else v

    @field_validator("score", "percentile", mode="before")
    @classmethod
    def parse_numeric_string(cls, v: str | float) -> float:
        """The API serialises numbers as strings, e.g. ``"0.97565"``."""
        return float(v)

    @classmethod
    def from_api(cls, row: dict[str, Any]) -> "EPSSScore":
        """Create EPSSScore from one entry of the API's ``data`` array.

        Args:
            row: Dictionary with 'cve', 'epss', 'percentile' and 'date' keys.

        Returns:
            EPSSScore instance.
        """
        return cls(
            cve_id=row.get("cve", ""),
            score=row.get("epss", 0),
            percentile=row.get("percentile", 0),
            score_date=row.get("date") or None,
        )
