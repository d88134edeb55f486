"""Per-item outcomes for bulk CVE requests."""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from cvelens.models.details import CVEDetails

INVALID_IDENTIFIER = "invalid identifier"
NOT_FOUND = "not found"
UPSTREAM_UNAVAILABLE = "upstream unavailable"
FETCH_FAILED = "failed to fetch CVE"


class BulkItemResult(BaseModel):
    """Outcome for one identifier: either ``data`` or an ``error`` reason."""

    cve_id: str
    success: bool
    data: CVEDetails | None = None
    error: str | None = None

    @model_validator(mode="after")
    def check_variant(self) -> "BulkItemResult":
        """Successes carry data and no error; failures the reverse."""
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("a successful result needs data and no error")
        if not self.success and (self.data is not None or not self.error):
            raise ValueError("a failed result needs an error and no data")
        return self

    @classmethod
    def ok(cls, cve_id: str, data: CVEDetails) -> "BulkItemResult":
        return cls(cve_id=cve_id, success=True, data=data)

    @classmethod
    def failure(cls, cve_id: str, error: str) -> "BulkItemResult":
        return cls(cve_id=cve_id, success=False, error=error)


class BulkError(BaseModel):
    """Failure entry reported back to the caller."""

    cve_id: str
    error: str


class BulkResult(BaseModel):
    """Aggregate of a bulk request. Never all-or-nothing."""

    total: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    results: list[CVEDetails] = Field(default_factory=list)
    errors: list[BulkError] = Field(default_factory=list)

    @classmethod
    def from_items(cls, items: list[BulkItemResult]) -> "BulkResult":
        """Collect per-item outcomes, keeping input order."""
        results = [item.data for item in items if item.success and item.data is not None]
        errors = [
            BulkError(cve_id=item.cve_id, error=item.error or FETCH_FAILED)
            for item in items
            if not item.success
        ]
        return cls(
            total=len(items),
            successful=len(results),
            failed=len(errors),
            results=results,
            errors=errors,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "results": [details.to_dict() for details in self.results],
            "errors": [{"cveId": e.cve_id, "error": e.error} for e in self.errors],
        }
