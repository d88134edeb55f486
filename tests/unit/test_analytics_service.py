"""Tests for analytics summaries."""

from datetime import UTC, date, datetime

import httpx
import pytest

from cvelens.models.details import CVEDetails
from cvelens.services.analytics_service import severity_bucket, summarize_details

NVD_HOST = "services.nvd.nist.gov"
EPSS_HOST = "api.first.org"
KEV_HOST = "www.cisa.gov"


def _details(
    cve_id: str,
    score: float = 0.0,
    epss: float | None = None,
    cwe: str | None = None,
    published: datetime | None = None,
) -> CVEDetails:
    published = published or datetime(2024, 1, 15, tzinfo=UTC)
    return CVEDetails(
        cve_id=cve_id,
        published=published,
        last_modified=published,
        cvss_score=score,
        epss=epss,
        epss_percentile=epss,
        cwe=cwe,
    )


class TestSeverityBucket:
    """Tests for severity_bucket."""

    @pytest.mark.parametrize(
        ("score", "bucket"),
        [
            (0.0, "None"),
            (0.1, "Low"),
            (3.9, "Low"),
            (4.0, "Medium"),
            (6.9, "Medium"),
            (7.0, "High"),
            (8.9, "High"),
            (9.0, "Critical"),
            (10.0, "Critical"),
        ],
    )
    def test_boundaries(self, score, bucket):
        """Test the half-open bucket edges."""
        assert severity_bucket(score) == bucket


class TestSummarizeDetails:
    """Tests for the pure summary reducer."""

    def test_empty(self):
        """Test that no records give an all-zero summary."""
        summary = summarize_details([])

        assert summary.total_cves == 0
        assert summary.avg_cvss == 0.0
        assert summary.avg_epss == 0.0
        assert summary.cvss_distribution == []
        assert summary.timeline == []

    def test_histogram(self):
        """Test bucket counts for scores on every boundary."""
        scores = [0, 3.9, 4.0, 6.9, 7.0, 8.9, 9.0, 10.0]
        summary = summarize_details(
            [_details(f"CVE-2024-{i:04d}", score) for i, score in enumerate(scores)]
        )

        assert summary.distribution_as_dict() == {
            "None": 1,
            "Low": 1,
            "Medium": 2,
            "High": 2,
            "Critical": 2,
        }
        assert sum(b.count for b in summary.cvss_distribution) == summary.total_cves

    def test_empty_buckets_omitted(self):
        """Test that zero-count buckets are left out."""
        summary = summarize_details([_details("CVE-2024-0001", 9.8)])

        assert summary.distribution_as_dict() == {"Critical": 1}

    def test_averages(self):
        """Test CVSS over all records and EPSS over scored records only."""
        summary = summarize_details(
            [
                _details("CVE-2024-0001", 9.8, epss=0.9),
                _details("CVE-2024-0002", 5.0, epss=0.1234),
                _details("CVE-2024-0003", 0.0),
            ]
        )

        assert summary.avg_cvss == 4.9
        assert summary.avg_epss == 0.512

    def test_cwe_distribution(self):
        """Test CWE counts with an Unknown bucket for missing weaknesses."""
        summary = summarize_details(
            [
                _details("CVE-2024-0001", cwe="CWE-79"),
                _details("CVE-2024-0002", cwe="CWE-89"),
                _details("CVE-2024-0003", cwe="CWE-79"),
                _details("CVE-2024-0004"),
            ]
        )

        assert [(c.name, c.count) for c in summary.cwe_distribution] == [
            ("CWE-79", 2),
            ("CWE-89", 1),
            ("Unknown", 1),
        ]

    def test_cwe_distribution_top_ten(self):
        """Test that only ten CWEs are reported."""
        summary = summarize_details(
            [_details(f"CVE-2024-{i:04d}", cwe=f"CWE-{i}") for i in range(15)]
        )

        assert len(summary.cwe_distribution) == 10

    def test_top_lists(self):
        """Test ordering and ties in the top CVSS and EPSS lists."""
        summary = summarize_details(
            [
                _details("CVE-2024-0001", 5.0, epss=0.2),
                _details("CVE-2024-0002", 9.0),
                _details("CVE-2024-0003", 9.0, epss=0.7),
            ]
        )

        assert [d.cve_id for d in summary.top_cvss] == [
            "CVE-2024-0002",
            "CVE-2024-0003",
            "CVE-2024-0001",
        ]
        assert [d.cve_id for d in summary.top_epss] == ["CVE-2024-0003", "CVE-2024-0001"]

    def test_timeline_by_day(self):
        """Test per-day counts and mean CVSS in day order."""
        summary = summarize_details(
            [
                _details("CVE-2024-0001", 8.0, published=datetime(2024, 3, 2, 23, 0, tzinfo=UTC)),
                _details("CVE-2024-0002", 4.0, published=datetime(2024, 3, 1, 1, 0, tzinfo=UTC)),
                _details("CVE-2024-0003", 6.0, published=datetime(2024, 3, 2, 1, 0, tzinfo=UTC)),
            ]
        )

        assert [(p.day, p.count, p.avg_cvss) for p in summary.timeline] == [
            (date(2024, 3, 1), 1, 4.0),
            (date(2024, 3, 2), 2, 7.0),
        ]

    def test_to_dict(self):
        """Test the camelCase summary shape."""
        doc = summarize_details([_details("CVE-2024-0001", 7.5, epss=0.5)]).to_dict()

        assert doc["totalCVEs"] == 1
        assert doc["cvssDistribution"] == [{"severity": "High", "count": 1}]
        assert doc["timeline"] == [{"date": "2024-01-15", "count": 1, "avgCVSS": 7.5}]


class TestAnalyticsService:
    """Tests for AnalyticsService against mocked upstreams."""

    @pytest.fixture
    def upstreams(self, upstream, respond, nvd_page, nvd_item, sample_kev_response):
        items = [
            nvd_item("CVE-2024-12345", v31_score=9.8, cwe="CWE-502"),
            nvd_item("CVE-2024-0002", v2_score=5.0, published="2024-01-16T08:00:00.000"),
            nvd_item("CVE-2024-0003"),
        ]
        upstream.route(NVD_HOST, lambda request: respond(nvd_page(*items)))
        upstream.route(
            EPSS_HOST,
            lambda request: respond(
                {"data": [{"cve": "CVE-2024-12345", "epss": "0.9", "percentile": "0.99"}]}
            ),
        )
        upstream.route(KEV_HOST, lambda request: respond(sample_kev_response))
        return upstream

    @pytest.mark.asyncio
    async def test_summarize(self, pipeline, upstreams):
        """Test a full summary with one EPSS batch and one KEV fetch."""
        summary = await pipeline.analytics.summarize("apache", date(2024, 1, 1), date(2024, 1, 31))

        assert summary.total_cves == 3
        assert summary.kev_count == 1
        assert summary.avg_cvss == 4.9
        assert summary.avg_epss == 0.9
        assert summary.distribution_as_dict() == {"None": 1, "Medium": 1, "Critical": 1}
        assert len(upstreams.calls(EPSS_HOST)) == 1
        assert len(upstreams.calls(KEV_HOST)) == 1
        assert upstreams.calls(NVD_HOST)[0].url.params["resultsPerPage"] == "100"

    @pytest.mark.asyncio
    async def test_summarize_is_idempotent(self, pipeline, upstreams):
        """Test that the same inputs give the same summary."""
        first = await pipeline.analytics.summarize("apache", date(2024, 1, 1), date(2024, 1, 31))
        second = await pipeline.analytics.summarize("apache", date(2024, 1, 1), date(2024, 1, 31))

        assert first == second
        assert first.to_dict() == second.to_dict()

    @pytest.mark.asyncio
    async def test_nvd_failure_gives_empty_summary(self, pipeline, upstream):
        """Test that an unavailable NVD yields an all-zero summary."""
        upstream.route(NVD_HOST, lambda request: httpx.Response(503, text="down"))

        summary = await pipeline.analytics.summarize("apache", date(2024, 1, 1), date(2024, 1, 31))

        assert summary.total_cves == 0
        assert upstream.calls(EPSS_HOST) == []

    @pytest.mark.asyncio
    async def test_summarize_months(self, pipeline, upstreams):
        """Test that the lookback window ends now and starts N months back."""
        now = datetime(2024, 7, 15, 12, 0, tzinfo=UTC)

        await pipeline.analytics.summarize_months("apache", 6, now=now)

        calls = upstreams.calls(NVD_HOST)
        starts = [r.url.params["pubStartDate"] for r in calls]
        assert starts[0] == "2024-01-15T00:00:00.000"
        assert calls[-1].url.params["pubEndDate"] == "2024-07-15T23:59:59.999"
        assert len(calls) == 2
