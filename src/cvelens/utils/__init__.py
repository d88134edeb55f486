"""Utility functions and helpers for CVELens."""

from cvelens.utils.cache import TTLCache
from cvelens.utils.dates import DateRange, split_date_range
from cvelens.utils.http_client import (
    HTTPClientError,
    NonRetryableHTTPError,
    RateLimiter,
    RetryableHTTPError,
    create_http_client,
    create_retry_decorator,
    handle_response,
)

__all__ = [
    "DateRange",
    "HTTPClientError",
    "NonRetryableHTTPError",
    "RateLimiter",
    "RetryableHTTPError",
    "TTLCache",
    "create_http_client",
    "create_retry_decorator",
    "handle_response",
    "split_date_range",
]
