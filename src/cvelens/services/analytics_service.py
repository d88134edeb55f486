"""Analytics over CVEs matching a keyword and publication window.

All figures are recomputed from the joined records on every call; nothing
is maintained incrementally.
"""

from collections import Counter, defaultdict
from collections.abc import Sequence
from datetime import UTC, date, datetime

from loguru import logger

from cvelens.models.analytics import AnalyticsSummary, CWECount, SeverityCount, TimelinePoint
from cvelens.models.details import CVEDetails
from cvelens.services.details_service import build_details
from cvelens.services.epss_service import EPSSService
from cvelens.services.kev_service import KEVService
from cvelens.services.nvd_service import NVDService
from cvelens.utils.dates import subtract_months

TOP_N = 10
ANALYTICS_PAGE_SIZE = 100
UNKNOWN_CWE = "Unknown"

SEVERITY_BUCKETS = ("None", "Low", "Medium", "High", "Critical")


def severity_bucket(score: float) -> str:
    """Map a CVSS score to its bucket.

    None: 0, Low: (0, 4), Medium: [4, 7), High: [7, 9), Critical: [9, 10].
    """
    if score <= 0:
        return "None"
    if score < 4:
        return "Low"
    if score < 7:
        return "Medium"
    if score < 9:
        return "High"
    return "Critical"


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _publication_day(published: datetime) -> date:
    # NVD timestamps carry no offset and are UTC
    if published.tzinfo is not None:
        published = published.astimezone(UTC)
    return published.date()


def summarize_details(details: Sequence[CVEDetails]) -> AnalyticsSummary:
    """Reduce joined CVE records into an AnalyticsSummary.

    Args:
        details: Joined records, in upstream order.

    Returns:
        Summary; all-zero when ``details`` is empty.
    """
    if not details:
        return AnalyticsSummary.empty()

    cvss_scores = [d.cvss_score for d in details]
    epss_scores = [d.epss for d in details if d.epss is not None]

    bucket_counts = Counter(severity_bucket(score) for score in cvss_scores)
    cvss_distribution = [
        SeverityCount(severity=bucket, count=bucket_counts[bucket])
        for bucket in SEVERITY_BUCKETS
        if bucket_counts[bucket] > 0
    ]

    # Counter.most_common keeps first-seen order for equal counts
    cwe_counts = Counter(d.cwe or UNKNOWN_CWE for d in details)
    cwe_distribution = [
        CWECount(name=name, count=count) for name, count in cwe_counts.most_common(TOP_N)
    ]

    by_day: dict[date, list[float]] = defaultdict(list)
    for d in details:
        by_day[_publication_day(d.published)].append(d.cvss_score)
    timeline = [
        TimelinePoint(day=day, count=len(scores), avg_cvss=_mean(scores))
        for day, scores in sorted(by_day.items())
    ]

    # sorted() is stable, so ties keep upstream order
    top_cvss = sorted(details, key=lambda d: d.cvss_score, reverse=True)[:TOP_N]
    top_epss = sorted(
        (d for d in details if d.epss is not None),
        key=lambda d: d.epss or 0.0,
        reverse=True,
    )[:TOP_N]

    return AnalyticsSummary(
        total_cves=len(details),
        avg_cvss=round(_mean(cvss_scores), 1),
        avg_epss=round(_mean(epss_scores), 3),
        kev_count=sum(1 for d in details if d.is_kev),
        top_cvss=top_cvss,
        top_epss=top_epss,
        cvss_distribution=cvss_distribution,
        cwe_distribution=cwe_distribution,
        timeline=timeline,
    )


class AnalyticsService:
    """Builds analytics summaries from NVD searches joined with EPSS and KEV."""

    def __init__(
        self,
        nvd_service: NVDService,
        epss_service: EPSSService,
        kev_service: KEVService,
    ):
        self.nvd = nvd_service
        self.epss = epss_service
        self.kev = kev_service

    async def summarize(
        self,
        keyword: str,
        start: date | datetime,
        end: date | datetime,
    ) -> AnalyticsSummary:
        """Summarize CVEs matching ``keyword`` published within ``[start, end]``.

        EPSS scores for all hits are fetched in one batched lookup.

        Raises:
            ValueError: If start is after end.
        """
        response = await self.nvd.search_by_date_range(
            keyword, start, end, results_per_page=ANALYTICS_PAGE_SIZE
        )
        if response is None or response.is_empty:
            logger.info(f"No CVEs found for {keyword!r} between {start} and {end}")
            return AnalyticsSummary.empty()

        cves = response.vulnerabilities
        scores = await self.epss.fetch_scores(cve.cve_id for cve in cves)
        await self.kev.fetch()

        details = [
            build_details(cve, scores.get(cve.cve_id), self.kev.get_entry(cve.cve_id))
            for cve in cves
        ]
        summary = summarize_details(details)
        logger.info(
            f"Analytics for {keyword!r}: {summary.total_cves} CVEs, "
            f"{summary.kev_count} in KEV, avg CVSS {summary.avg_cvss}"
        )
        return summary

    async def summarize_months(
        self,
        keyword: str,
        months: int = 6,
        now: datetime | None = None,
    ) -> AnalyticsSummary:
        """Summarize CVEs published in the last ``months`` months up to now.

        Raises:
            ValueError: If months is negative.
        """
        end = now or datetime.now(UTC)
        start = subtract_months(end, months)
        return await self.summarize(keyword, start, end)
