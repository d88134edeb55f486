"""CISA Known Exploited Vulnerabilities (KEV) data models.

Field aliases are the catalog's own camelCase names, so entries validate
straight from the feed and serialize back to the same shape.
"""

from datetime import date, datetime
from typing import Any

from loguru import logger
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)


class KEVEntry(BaseModel):
    """Single entry in the CISA KEV catalog.

    The KEV catalog contains vulnerabilities that are known to be
    actively exploited in the wild.
    """

    model_config = ConfigDict(populate_by_name=True)

    cve_id: str = Field(..., alias="cveID")
    vendor_project: str = Field(default="", alias="vendorProject")
    product: str = ""
    vulnerability_name: str = Field(default="", alias="vulnerabilityName")
    date_added: date = Field(..., alias="dateAdded")
    short_description: str = Field(default="", alias="shortDescription")
    required_action: str = Field(default="", alias="requiredAction")
    due_date: date = Field(..., alias="dueDate")
    known_ransomware_campaign_use: bool = Field(
        default=False,
        alias="knownRansomwareCampaignUse",
        description="The feed says 'Known' or 'Unknown'",
    )
    notes: str = ""

    @field_validator("cve_id", mode="before")
    @classmethod
    def normalize_cve_id(cls, v: str) -> str:
        """Normalize CVE ID to uppercase."""
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("known_ransomware_campaign_use", mode="before")
    @classmethod
    def parse_ransomware_use(cls, v: str | bool | None) -> bool:
        if isinstance(v, str):
            return v.strip().lower() == "known"
        return bool(v)

    @field_serializer("known_ransomware_campaign_use")
    def serialize_ransomware_use(self, v: bool) -> str:
        return "Known" if v else "Unknown"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "KEVEntry":
        """Create KEVEntry from one item of the feed's ``vulnerabilities`` list."""
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the catalog's camelCase field names."""
        return self.model_dump(by_alias=True, mode="json")


class KEVCatalog(BaseModel):
    """CISA KEV catalog keyed by uppercase CVE ID."""

    title: str = ""
    catalog_version: str = ""
    date_released: datetime | None = None
    entries: dict[str, KEVEntry] = Field(default_factory=dict)

    @property
    def total_count(self) -> int:
        """Number of entries loaded."""
        return len(self.entries)

    def get_entry(self, cve_id: str) -> KEVEntry | None:
        """Get the KEV entry for a CVE, case-insensitively."""
        return self.entries.get(cve_id.strip().upper())

    def is_kev(self, cve_id: str) -> bool:
        """Check whether a CVE is listed, case-insensitively."""
        return cve_id.strip().upper() in self.entries

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "KEVCatalog":
        """Create KEVCatalog from the full feed document.

        Entries that fail validation are logged and left out.

        Args:
            data: Full KEV catalog JSON response.

        Returns:
            KEVCatalog instance.
        """
        entries: dict[str, KEVEntry] = {}
        for vuln in data.get("vulnerabilities") or []:
            try:
                entry = KEVEntry.from_api(vuln)
            except ValidationError as e:
                logger.warning(f"Skipping malformed KEV entry: {e}")
                continue
            entries[entry.cve_id] = entry

        return cls(
            title=data.get("title", ""),
            catalog_version=data.get("catalogVersion", ""),
            date_released=data.get("dateReleased"),
            entries=entries,
        )
