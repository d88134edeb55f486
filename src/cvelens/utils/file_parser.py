"""Parsing of uploaded CVE ID lists (TXT and CSV)."""

import csv
import io
import re
from pathlib import PurePath

from loguru import logger

from cvelens.errors import InvalidCVEIdError, UnsupportedFileFormatError

CVE_PATTERN = re.compile(r"CVE-\d{4}-\d{4,}", re.IGNORECASE)
_CVE_ID_EXACT = re.compile(r"^CVE-\d{4}-\d{4,}$", re.IGNORECASE)

SUPPORTED_EXTENSIONS = (".txt", ".csv")


def is_valid_cve_id(cve_id: str) -> bool:
    """Check whether a string is a well-formed CVE identifier."""
    return bool(_CVE_ID_EXACT.match(cve_id.strip()))


def validate_cve_id(cve_id: str) -> str:
    """Return the normalized (stripped, uppercase) CVE ID.

    Raises:
        InvalidCVEIdError: If the identifier is malformed.
    """
    if not isinstance(cve_id, str) or not is_valid_cve_id(cve_id):
        raise InvalidCVEIdError(str(cve_id))
    return cve_id.strip().upper()


def _unique_upper(matches: list[str]) -> list[str]:
    # dict keeps first-seen order
    return list(dict.fromkeys(m.upper() for m in matches))


def parse_txt(content: str) -> list[str]:
    """Extract CVE IDs from free text."""
    return _unique_upper(CVE_PATTERN.findall(content))


def parse_csv(content: str) -> list[str]:
    """Extract CVE IDs from every cell of a CSV document."""
    matches: list[str] = []
    for row in csv.reader(io.StringIO(content)):
        for cell in row:
            matches.extend(CVE_PATTERN.findall(cell))
    return _unique_upper(matches)


def parse_uploaded_file(filename: str, content: str | bytes) -> list[str]:
    """Extract CVE IDs from an uploaded file based on its extension.

    Args:
        filename: Original file name; its extension selects the parser.
        content: File content, decoded as UTF-8 if given as bytes.

    Returns:
        Uppercased, de-duplicated CVE IDs in first-seen order.

    Raises:
        UnsupportedFileFormatError: For anything other than .txt or .csv.
    """
    suffix = PurePath(filename).suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileFormatError(filename)

    text = content.decode("utf-8", errors="replace") if isinstance(content, bytes) else content
    cve_ids = parse_csv(text) if suffix == ".csv" else parse_txt(text)
    logger.debug(f"Parsed {len(cve_ids)} CVE IDs from {filename}")
    return cve_ids
