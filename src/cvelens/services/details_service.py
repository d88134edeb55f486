"""CVE detail service: joins NVD, EPSS and KEV data per CVE.

Exposes the single-CVE, bulk and autocomplete operations used by the UI
layer. Upstream failures never raise here; they surface as ``None`` or as
failed entries of a bulk result. Malformed input raises before any
upstream call.
"""

import asyncio
from collections.abc import Sequence

from loguru import logger

from cvelens.errors import BulkRequestError, InvalidCVEIdError
from cvelens.models.bulk import (
    FETCH_FAILED,
    INVALID_IDENTIFIER,
    NOT_FOUND,
    UPSTREAM_UNAVAILABLE,
    BulkItemResult,
    BulkResult,
)
from cvelens.models.cve import CVE
from cvelens.models.details import CVEDetails, Suggestion
from cvelens.models.epss import EPSSScore
from cvelens.models.kev import KEVEntry
from cvelens.services.epss_service import EPSSService
from cvelens.services.kev_service import KEVService
from cvelens.services.nvd_service import NVDService
from cvelens.utils.file_parser import validate_cve_id
from cvelens.utils.products import extract_affected_products

MAX_BULK_CVES = 50
MIN_AUTOCOMPLETE_LENGTH = 3
AUTOCOMPLETE_RESULTS = 10
SUGGESTION_DESCRIPTION_LENGTH = 100


def build_details(
    cve: CVE,
    epss: EPSSScore | None,
    kev_entry: KEVEntry | None,
) -> CVEDetails:
    """Join one NVD record with its EPSS score and KEV entry.

    Severity fields fall back from CVSS v3.1 to v2 to unscored (0.0 /
    ``Unknown``). Affected products are a best-effort text match.
    """
    return CVEDetails(
        cve_id=cve.cve_id,
        description=cve.description,
        published=cve.published,
        last_modified=cve.last_modified,
        cvss_score=cve.base_score,
        severity=cve.severity,
        vector_string=cve.vector_string,
        epss=epss.score if epss else None,
        epss_percentile=epss.percentile if epss else None,
        cwe=cve.primary_cwe,
        is_kev=kev_entry is not None,
        kev_details=kev_entry,
        references=list(cve.references),
        affected_products=extract_affected_products(cve.description, kev_entry),
    )


class CVEDetailsService:
    """Service producing joined CVE details."""

    def __init__(
        self,
        nvd_service: NVDService,
        epss_service: EPSSService,
        kev_service: KEVService,
    ):
        """Initialize the detail service.

        Args:
            nvd_service: NVD fetcher (rate limited).
            epss_service: EPSS fetcher.
            kev_service: KEV catalog fetcher.
        """
        self.nvd = nvd_service
        self.epss = epss_service
        self.kev = kev_service

    async def get_details(self, cve_id: str) -> CVEDetails | None:
        """Fetch and join details for one CVE.

        Args:
            cve_id: CVE identifier.

        Returns:
            CVEDetails, or None if NVD has no such CVE or is unavailable.

        Raises:
            InvalidCVEIdError: If the identifier is malformed.
        """
        result = await self.resolve(validate_cve_id(cve_id))
        return result.data

    async def resolve(self, cve_id: str) -> BulkItemResult:
        """Fetch and join details, reporting why a lookup failed.

        Args:
            cve_id: CVE identifier.

        Returns:
            Successful result with data, or a failure with a reason.
        """
        try:
            normalized = validate_cve_id(cve_id)
        except InvalidCVEIdError:
            return BulkItemResult.failure(str(cve_id), INVALID_IDENTIFIER)

        response = await self.nvd.fetch_cve(normalized)
        if response is None:
            return BulkItemResult.failure(normalized, UPSTREAM_UNAVAILABLE)
        if response.is_empty:
            return BulkItemResult.failure(normalized, NOT_FOUND)

        cve = response.vulnerabilities[0]
        scores = await self.epss.fetch_scores([cve.cve_id])
        await self.kev.fetch()
        details = build_details(cve, scores.get(cve.cve_id), self.kev.get_entry(cve.cve_id))
        return BulkItemResult.ok(normalized, details)

    async def get_bulk(self, cve_ids: Sequence[str]) -> BulkResult:
        """Fetch details for up to 50 CVEs concurrently.

        Each lookup still passes through the shared NVD rate limiter. A
        failing lookup is recorded in ``errors`` and never affects the
        others.

        Args:
            cve_ids: CVE identifiers; malformed ones are reported per item.

        Returns:
            BulkResult with total/successful/failed counts.

        Raises:
            BulkRequestError: If the list is empty or longer than 50.
        """
        if not cve_ids:
            raise BulkRequestError("CVE IDs array is required")
        if len(cve_ids) > MAX_BULK_CVES:
            raise BulkRequestError(f"Maximum {MAX_BULK_CVES} CVEs can be processed at once")

        outcomes = await asyncio.gather(
            *(self.resolve(cve_id) for cve_id in cve_ids),
            return_exceptions=True,
        )

        items: list[BulkItemResult] = []
        for cve_id, outcome in zip(cve_ids, outcomes, strict=True):
            if isinstance(outcome, Exception):
                logger.error(f"Unexpected error fetching {cve_id}: {outcome}")
                items.append(BulkItemResult.failure(str(cve_id), FETCH_FAILED))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                items.append(outcome)

        result = BulkResult.from_items(items)
        logger.info(
            f"Bulk lookup: {result.successful}/{result.total} succeeded, {result.failed} failed"
        )
        return result

    async def autocomplete(self, query: str) -> list[Suggestion]:
        """Suggest CVEs whose description matches a partial keyword.

        Queries shorter than three characters return an empty list without
        contacting NVD.
        """
        query = (query or "").strip()
        if len(query) < MIN_AUTOCOMPLETE_LENGTH:
            return []

        response = await self.nvd.search(query, AUTOCOMPLETE_RESULTS)
        if response is None:
            return []

        suggestions = []
        for cve in response.vulnerabilities:
            description = cve.description
            if len(description) > SUGGESTION_DESCRIPTION_LENGTH:
                description = description[:SUGGESTION_DESCRIPTION_LENGTH] + "..."
            suggestions.append(Suggestion(cve_id=cve.cve_id, description=description))
        return suggestions
