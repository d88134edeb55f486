"""Pytest configuration and fixtures for CVELens tests."""

import copy
import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from cvelens.config import Settings
from cvelens.models.cve import CVE, CVSSMetrics, CVSSVersion, Severity, Weakness
from cvelens.pipeline import Pipeline
from cvelens.utils.cache import TTLCache
from cvelens.utils.http_client import RateLimiter


def make_nvd_item(
    cve_id: str,
    description: str = "A vulnerability.",
    published: str = "2024-01-15T10:30:00.000",
    v31_score: float | None = None,
    v2_score: float | None = None,
    cwe: str | None = None,
) -> dict[str, Any]:
    """Build one entry of an NVD ``vulnerabilities`` array."""
    metrics: dict[str, Any] = {}
    if v31_score is not None:
        metrics["cvssMetricV31"] = [
            {
                "source": "nvd@nist.gov",
                "type": "Primary",
                "cvssData": {
                    "version": "3.1",
                    "vectorString": "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H",
                    "baseScore": v31_score,
                    "baseSeverity": "HIGH",
                },
            }
        ]
    if v2_score is not None:
        metrics["cvssMetricV2"] = [
            {
                "source": "nvd@nist.gov",
                "type": "Primary",
                "cvssData": {
                    "version": "2.0",
                    "vectorString": "AV:N/AC:L/Au:N/C:P/I:P/A:P",
                    "baseScore": v2_score,
                },
                "baseSeverity": "HIGH",
            }
        ]

    cve: dict[str, Any] = {
        "id": cve_id,
        "published": published,
        "lastModified": published,
        "descriptions": [{"lang": "en", "value": description}],
        "metrics": metrics,
        "references": [],
    }
    if cwe:
        cve["weaknesses"] = [{"description": [{"lang": "en", "value": cwe}]}]
    return {"cve": cve}


def make_nvd_page(*items: dict[str, Any], total: int | None = None) -> dict[str, Any]:
    """Wrap NVD items in a response envelope."""
    return {
        "resultsPerPage": len(items),
        "startIndex": 0,
        "totalResults": len(items) if total is None else total,
        "format": "NVD_CVE",
        "version": "2.0",
        "timestamp": "2024-06-01T00:00:00.000",
        "vulnerabilities": list(items),
    }


class FakeClock:
    """Manually advanced clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class Upstream:
    """Routes mocked requests to per-host handlers and records them."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handlers: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def route(self, host: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handlers[host] = handler

    def calls(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.handlers.get(request.url.host)
        if handler is None:
            return httpx.Response(404, json={"error": "no route"})
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(data).encode())


@pytest.fixture
def sample_nvd_cve_response():
    """Sample NVD 2.0 API CVE response."""
    return {
        "cve": {
            "id": "CVE-2024-12345",
            "sourceIdentifier": "security@example.com",
            "published": "2024-01-15T10:30:00.000",
            "lastModified": "2024-01-16T14:00:00.000",
            "vulnStatus": "Analyzed",
            "descriptions": [
                {
                    "lang": "en",
                    "value": (
                        "A critical vulnerability in Apache Struts 2 allows remote code execution."
                    ),
                }
            ],
            "metrics": {
                "cvssMetricV31": [
                    {
                        "source": "nvd@nist.gov",
                        "type": "Primary",
                        "cvssData": {
                            "version": "3.1",
                            "vectorString": "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H",
                            "attackVector": "NETWORK",
                            "attackComplexity": "LOW",
                            "privilegesRequired": "NONE",
                            "userInteraction": "NONE",
                            "scope": "UNCHANGED",
                            "confidentialityImpact": "HIGH",
                            "integrityImpact": "HIGH",
                            "availabilityImpact": "HIGH",
                            "baseScore": 9.8,
                            "baseSeverity": "CRITICAL",
                        },
                        "exploitabilityScore": 3.9,
                        "impactScore": 5.9,
                    }
                ]
            },
            "weaknesses": [
                {
                    "source": "nvd@nist.gov",
                    "type": "Primary",
                    "description": [{"lang": "en", "value": "CWE-79"}],
                }
            ],
            "references": [
                {
                    "url": "https://example.com/advisory/2024-001",
                    "source": "security@example.com",
                    "tags": ["Vendor Advisory"],
                }
            ],
        }
    }


@pytest.fixture
def sample_v2_only_response(sample_nvd_cve_response):
    """The sample record with only a CVSS v2 metric."""
    data = copy.deepcopy(sample_nvd_cve_response)
    data["cve"]["id"] = "CVE-2012-0001"
    data["cve"]["metrics"] = {
        "cvssMetricV2": [
            {
                "source": "nvd@nist.gov",
                "type": "Primary",
                "cvssData": {
                    "version": "2.0",
                    "vectorString": "AV:N/AC:L/Au:N/C:P/I:P/A:P",
                    "baseScore": 7.5,
                },
                "baseSeverity": "HIGH",
                "exploitabilityScore": 10.0,
                "impactScore": 6.4,
            }
        ]
    }
    return data


@pytest.fixture
def sample_unscored_response(sample_nvd_cve_response):
    """The sample record awaiting analysis: no metrics, no weaknesses."""
    data = copy.deepcopy(sample_nvd_cve_response)
    data["cve"]["id"] = "CVE-2024-99999"
    data["cve"]["vulnStatus"] = "Awaiting Analysis"
    data["cve"]["metrics"] = {}
    data["cve"]["weaknesses"] = []
    return data


@pytest.fixture
def sample_epss_response():
    """Sample FIRST.org EPSS API response."""
    return {
        "status": "OK",
        "status-code": 200,
        "version": "1.0",
        "total": 2,
        "offset": 0,
        "limit": 100,
        "data": [
            {
                "cve": "CVE-2024-12345",
                "epss": "0.954320000",
                "percentile": "0.991230000",
                "date": "2024-01-15",
            },
            {
                "cve": "CVE-2024-12346",
                "epss": "0.001230000",
                "percentile": "0.123450000",
                "date": "2024-01-15",
            },
        ],
    }


@pytest.fixture
def sample_kev_response():
    """Sample CISA KEV catalog response."""
    return {
        "title": "CISA Catalog of Known Exploited Vulnerabilities",
        "catalogVersion": "2024.01.15",
        "dateReleased": "2024-01-15T00:00:00.000Z",
        "count": 2,
        "vulnerabilities": [
            {
                "cveID": "CVE-2024-12345",
                "vendorProject": "Apache",
                "product": "Struts",
                "vulnerabilityName": "Apache Struts Remote Code Execution",
                "dateAdded": "2024-01-10",
                "shortDescription": "Critical RCE vulnerability in Apache Struts",
                "requiredAction": "Apply vendor patch or disable affected service",
                "dueDate": "2024-01-31",
                "knownRansomwareCampaignUse": "Known",
                "notes": "Actively exploited in the wild",
            },
            {
                "cveID": "CVE-2024-12346",
                "vendorProject": "Another Vendor",
                "product": "Another Product",
                "vulnerabilityName": "Another Product Privilege Escalation",
                "dateAdded": "2024-01-12",
                "shortDescription": "Local privilege escalation vulnerability",
                "requiredAction": "Apply vendor patch",
                "dueDate": "2024-02-05",
                "knownRansomwareCampaignUse": "Unknown",
                "notes": "",
            },
        ],
    }


@pytest.fixture
def mock_settings():
    """Settings with no retries and no NVD spacing."""
    return Settings(
        log_level="DEBUG",
        nvd={"min_interval": 0},
        http={"retry_attempts": 1, "retry_min_wait": 0, "retry_max_wait": 0},
    )


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def cache(fake_clock):
    return TTLCache(ttl_seconds=24 * 60 * 60, clock=fake_clock)


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def pipeline(mock_settings, cache, fake_clock, upstream):
    """Pipeline wired to mocked upstreams and a fake clock."""
    limiter = RateLimiter(mock_settings.nvd.min_interval, clock=fake_clock, sleep=fake_clock.sleep)
    return Pipeline(mock_settings, cache, limiter, transport=upstream.transport)


@pytest.fixture
def sample_cve():
    """Create a sample CVE model instance."""
    return CVE(
        cve_id="CVE-2024-12345",
        source_identifier="test@example.com",
        published=datetime(2024, 1, 15, 10, 30, 0, tzinfo=UTC),
        last_modified=datetime(2024, 1, 16, 14, 0, 0, tzinfo=UTC),
        vuln_status="Analyzed",
        description="A test vulnerability for unit testing.",
        cvss_v31=CVSSMetrics(
            version=CVSSVersion.V31,
            vector_string="CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H",
            base_score=9.8,
            base_severity=Severity.CRITICAL,
        ),
        weaknesses=[Weakness(cwe_id="CWE-79", description="XSS")],
    )


@pytest.fixture
def nvd_item():
    """Factory for NVD ``vulnerabilities`` entries."""
    return make_nvd_item


@pytest.fixture
def nvd_page():
    """Factory for NVD response envelopes."""
    return make_nvd_page


@pytest.fixture
def respond():
    """Factory for JSON ``httpx.Response`` objects."""
    return json_response
