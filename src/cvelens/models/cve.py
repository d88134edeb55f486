"""CVE data models following the NVD CVE 2.0 API schema."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CVSSVersion(StrEnum):
    """CVSS version enumeration."""

    V2 = "2.0"
    V31 = "3.1"


class Severity(StrEnum):
    """CVSS severity levels."""

    NONE = "NONE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


def _v2_severity_from_score(score: float) -> Severity:
    """CVSS v2 qualitative rating (v2 has no CRITICAL band)."""
    if score >= 7.0:
        return Severity.HIGH
    if score >= 4.0:
        return Severity.MEDIUM
    return Severity.LOW


class CVSSMetrics(BaseModel):
    """CVSS base metrics for a single scoring version."""

    version: CVSSVersion
    vector_string: str = Field(default="", description="CVSS vector string")
    base_score: float = Field(..., ge=0, le=10, description="CVSS base score")
    base_severity: Severity = Field(..., description="CVSS severity rating")
    exploitability_score: float | None = Field(default=None, ge=0, le=10)
    impact_score: float | None = Field(default=None, ge=0, le=10)

    @field_validator("base_score", mode="before")
    @classmethod
    def round_base_score(cls, v: float) -> float:
        """Round base score to one decimal place."""
        return round(float(v), 1)

    @field_validator("base_severity", mode="before")
    @classmethod
    def normalize_severity(cls, v: str | Severity) -> str | Severity:
        """Accept severity labels in any case."""
        return v.upper() if isinstance(v, str) else v

    @classmethod
    def from_nvd_v31(cls, data: dict[str, Any]) -> "CVSSMetrics":
        """Create CVSSMetrics from an NVD ``cvssMetricV31`` entry."""
        cvss_data = data.get("cvssData", data)
        return cls(
            version=CVSSVersion.V31,
            vector_string=cvss_data.get("vectorString", ""),
            base_score=cvss_data.get("baseScore", 0.0),
            base_severity=cvss_data.get("baseSeverity", "NONE"),
            exploitability_score=data.get("exploitabilityScore"),
            impact_score=data.get("impactScore"),
        )

    @classmethod
    def from_nvd_v2(cls, data: dict[str, Any]) -> "CVSSMetrics":
        """Create CVSSMetrics from an NVD ``cvssMetricV2`` entry.

        NVD reports the v2 severity next to ``cvssData`` rather than inside
        it; when neither place has one it is derived from the score.
        """
        cvss_data = data.get("cvssData", {})
        base_score = float(cvss_data.get("baseScore", 0.0))
        severity = data.get("baseSeverity") or cvss_data.get("baseSeverity")
        return cls(
            version=CVSSVersion.V2,
            vector_string=cvss_data.get("vectorString", ""),
            base_score=base_score,
            base_severity=severity or _v2_severity_from_score(base_score),
            exploitability_score=data.get("exploitabilityScore"),
            impact_score=data.get("impactScore"),
        )


class Weakness(BaseModel):
    """CWE weakness information."""

    cwe_id: str = Field(..., description="CWE identifier (e.g., CWE-79)")
    description: str = Field(default="", description="CWE description")

    @field_validator("cwe_id", mode="before")
    @classmethod
    def normalize_cwe_id(cls, v: str) -> str:
        """Normalize CWE ID format.

        NVD placeholders such as ``NVD-CWE-Other`` are kept verbatim.
        """
        if not v:
            return "CWE-UNKNOWN"
        if v.upper().startswith("NVD-"):
            return v
        if not v.upper().startswith("CWE-"):
            return f"CWE-{v}"
        return v.upper()


class Reference(BaseModel):
    """CVE reference link."""

    url: str = Field(..., description="Reference URL")
    source: str = Field(default="", description="Reference source")
    tags: list[str] = Field(default_factory=list, description="Reference tags")


class CVE(BaseModel):
    """CVE record as returned by the NVD 2.0 API."""

    model_config = ConfigDict(frozen=True)

    # Core identifiers
    cve_id: str = Field(..., description="CVE identifier (e.g., CVE-2024-12345)")
    source_identifier: str = Field(default="", description="Source that identified the CVE")

    # Timestamps
    published: datetime = Field(..., description="CVE publication date")
    last_modified: datetime = Field(..., description="Last modification date")

    # Status
    vuln_status: str = Field(default="", description="Vulnerability status")

    # Description
    description: str = Field(default="", description="CVE description in English")

    # CVSS Metrics
    cvss_v31: CVSSMetrics | None = Field(default=None, description="CVSS v3.1 metrics")
    cvss_v2: CVSSMetrics | None = Field(default=None, description="CVSS v2.0 metrics")

    weaknesses: list[Weakness] = Field(default_factory=list, description="Associated CWE IDs")

    # References
    references: list[Reference] = Field(default_factory=list, description="Reference links")

    @field_validator("cve_id", mode="before")
    @classmethod
    def normalize_cve_id(cls, v: str) -> str:
        """Normalize CVE ID to uppercase."""
        return v.upper() if v else v

    @property
    def primary_cvss(self) -> CVSSMetrics | None:
        """CVSS v3.1 metrics, falling back to v2."""
        return self.cvss_v31 or self.cvss_v2

    @property
    def base_score(self) -> float:
        """Get the primary CVSS base score, 0.0 when unscored."""
        if cvss := self.primary_cvss:
            return cvss.base_score
        return 0.0

    @property
    def severity(self) -> str:
        """Get the primary CVSS severity, ``Unknown`` when unscored."""
        if cvss := self.primary_cvss:
            return cvss.base_severity.value
        return "Unknown"

    @property
    def vector_string(self) -> str:
        """Get the primary CVSS vector string."""
        if cvss := self.primary_cvss:
            return cvss.vector_string
        return ""

    @property
    def primary_cwe(self) -> str | None:
        """Get the first listed CWE ID."""
        if self.weaknesses:
            return self.weaknesses[0].cwe_id
        return None

    @staticmethod
    def _extract_description(cve_data: dict[str, Any]) -> str:
        """Extract English description from CVE data."""
        for desc in cve_data.get("descriptions", []):
            if desc.get("lang") == "en":
                return str(desc.get("value", ""))
        descriptions = cve_data.get("descriptions", [])
        return str(descriptions[0].get("value", "")) if descriptions else ""

    @staticmethod
    def _extract_weaknesses(cve_data: dict[str, Any]) -> list[Weakness]:
        """Extract CWE weaknesses from CVE data."""
        weaknesses: list[Weakness] = []
        for weakness in cve_data.get("weaknesses", []):
            for desc in weakness.get("description", []):
                if desc.get("lang") == "en" and desc.get("value"):
                    weaknesses.append(Weakness(cwe_id=desc["value"], description=""))
        return weaknesses

    @staticmethod
    def _extract_references(cve_data: dict[str, Any]) -> list[Reference]:
        """Extract references from CVE data."""
        return [
            Reference(
                url=ref.get("url", ""),
                source=ref.get("source", ""),
                tags=ref.get("tags", []),
            )
            for ref in cve_data.get("references", [])
            if ref.get("url")
        ]

    @staticmethod
    def _parse_timestamp(value: str | None) -> datetime:
        return datetime.fromisoformat((value or "2000-01-01T00:00:00.000").replace("Z", "+00:00"))

    @classmethod
    def from_nvd_api(cls, data: dict[str, Any]) -> "CVE":
        """Create CVE from NVD 2.0 API response data.

        Args:
            data: Single vulnerability item from NVD API response.

        Returns:
            CVE instance populated from API data.
        """
        cve_data = data.get("cve", data)
        metrics = cve_data.get("metrics") or {}

        v31_list = metrics.get("cvssMetricV31") or []
        v2_list = metrics.get("cvssMetricV2") or []

        return cls(
            cve_id=cve_data["id"],
            source_identifier=cve_data.get("sourceIdentifier", ""),
            published=cls._parse_timestamp(cve_data.get("published")),
            last_modified=cls._parse_timestamp(cve_data.get("lastModified")),
            vuln_status=cve_data.get("vulnStatus", ""),
            description=cls._extract_description(cve_data),
            cvss_v31=CVSSMetrics.from_nvd_v31(v31_list[0]) if v31_list else None,
            cvss_v2=CVSSMetrics.from_nvd_v2(v2_list[0]) if v2_list else None,
            weaknesses=cls._extract_weaknesses(cve_data),
            references=cls._extract_references(cve_data),
        )
