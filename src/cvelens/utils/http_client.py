"""HTTP client utilities for CVELens services."""

import asyncio
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:
    from cvelens.config import Settings


class RateLimiter:
    """Minimum-spacing rate limiter for a single upstream source.

    Every permitted call is at least ``min_interval`` seconds after the
    previous one. The slot is recorded when it is granted, not when the
    request finishes, so slow overlapping requests cannot open a burst.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize rate limiter.

        Args:
            min_interval: Seconds required between two granted calls.
            clock: Monotonic time source, replaceable in tests.
            sleep: Coroutine used to suspend the caller.
        """
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_grant: float | None = None

    @property
    def last_grant(self) -> float | None:
        """Clock value of the most recently granted slot."""
        return self._last_grant

    async def acquire(self) -> None:
        """Acquire permission to make a request, waiting if necessary."""
        now = self._clock()
        if self._last_grant is None:
            slot = now
        else:
            slot = max(now, self._last_grant + self.min_interval)

        # Reserve before suspending so concurrent callers queue behind this slot
        self._last_grant = slot

        wait_time = slot - now
        if wait_time > 0:
            logger.debug(f"Rate limit reached, waiting {wait_time:.1f}s")
            await self._sleep(wait_time)


class HTTPClientError(Exception):
    """Base exception for HTTP client errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RetryableHTTPError(HTTPClientError):
    """HTTP error that can be retried."""


class NonRetryableHTTPError(HTTPClientError):
    """HTTP error that should not be retried."""


# Anything a failed request or an unexpected body can raise
FETCH_ERRORS = (HTTPClientError, httpx.HTTPError, ValueError, KeyError, TypeError)


@asynccontextmanager
async def create_http_client(
    timeout: float = 30,
    **kwargs: Any,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create an async HTTP client with sensible defaults.

    Args:
        timeout: Request timeout in seconds.
        **kwargs: Additional arguments passed to httpx.AsyncClient.

    Yields:
        Configured httpx.AsyncClient instance.
    """
    # Remove timeout from kwargs if accidentally passed there too
    kwargs.pop("timeout", None)

    async with httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        **kwargs,
    ) as client:
        yield client


def create_retry_decorator(
    max_attempts: int = 3,
    min_wait: int = 4,
    max_wait: int = 60,
) -> Any:
    """Create a tenacity retry decorator for HTTP requests.

    Args:
        max_attempts: Maximum number of retry attempts.
        min_wait: Minimum wait time between retries (seconds).
        max_wait: Maximum wait time between retries (seconds).

    Returns:
        Configured retry decorator.
    """
    return retry(
        retry=retry_if_exception_type(
            (RetryableHTTPError, httpx.TimeoutException, httpx.NetworkError)
        ),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"Retrying request (attempt {retry_state.attempt_number}): "
            f"{retry_state.outcome.exception() if retry_state.outcome else 'unknown error'}"
        ),
    )


def handle_response(response: httpx.Response) -> Any:
    """Handle HTTP response and raise appropriate exceptions.

    Args:
        response: httpx Response object.

    Returns:
        Parsed JSON response data.

    Raises:
        RetryableHTTPError: For 5xx errors and rate limiting.
        NonRetryableHTTPError: For 4xx errors (except 429) and bodies that are not JSON.
    """
    error_msg = f"HTTP {response.status_code}: {response.text[:200]}"

    # Rate limiting - retryable
    if response.status_code == 429:
        logger.warning("Rate limited by server")
        raise RetryableHTTPError(error_msg, response.status_code)

    # Server errors - retryable
    if response.status_code >= 500:
        logger.warning(f"Server error: {error_msg}")
        raise RetryableHTTPError(error_msg, response.status_code)

    # Client errors - not retryable
    if response.status_code >= 400:
        raise NonRetryableHTTPError(error_msg, response.status_code)

    try:
        return response.json()
    except ValueError as e:
        raise NonRetryableHTTPError(
            f"Malformed JSON body: {e}", response.status_code
        ) from e


def create_retry_policy(settings: "Settings") -> Any:
    """Build the retry decorator configured in ``settings.http``."""
    return create_retry_decorator(
        max_attempts=settings.http.retry_attempts,
        min_wait=settings.http.retry_min_wait,
        max_wait=settings.http.retry_max_wait,
    )
