"""Request validation errors raised before any upstream call is made."""


class CVELensError(Exception):
    """Base exception for CVELens."""


class InvalidCVEIdError(CVELensError, ValueError):
    """A CVE identifier does not match ``CVE-YYYY-NNNN...``."""

    def __init__(self, cve_id: str):
        super().__init__(f"Invalid CVE identifier: {cve_id!r}")
        self.cve_id = cve_id


class BulkRequestError(CVELensError, ValueError):
    """A bulk request is empty or exceeds the per-request limit."""


class UnsupportedFileFormatError(CVELensError, ValueError):
    """An uploaded file is not in a supported format."""

    def __init__(self, filename: str):
        super().__init__(
            f"Unsupported file format for {filename!r}. Please use TXT or CSV."
        )
        self.filename = filename
