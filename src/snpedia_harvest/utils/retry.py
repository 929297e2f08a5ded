# ABOUTME: Retry and rate limiting for SNPedia API calls using tenacity
# ABOUTME: Converts transport failures into fetch errors and retries only the transient ones

import asyncio
import time
from collections.abc import Callable
from typing import Any, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from snpedia_harvest.utils.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class FetchAPIError(Exception):
    """Base exception for SNPedia API transport errors."""

    pass


class FetchRateLimitError(FetchAPIError):
    """Raised when the API answers with HTTP 429."""

    pass


class FetchTimeoutError(FetchAPIError):
    """Raised when a request times out."""

    pass


class FetchConnectionError(FetchAPIError):
    """Raised when the connection to the API fails."""

    pass


RETRYABLE_ERRORS = (FetchRateLimitError, FetchTimeoutError, FetchConnectionError)


# Global rate limiter state
_rate_limiter_state = {
    "calls_per_second": 1.0,
    "last_call_time": 0.0,
}


async def _apply_rate_limiting() -> None:
    """Apply rate limiting using simple async sleep."""
    state = _rate_limiter_state

    if state["calls_per_second"] <= 0:
        return

    min_interval = 1.0 / state["calls_per_second"]
    time_since_last = time.time() - state["last_call_time"]

    if time_since_last < min_interval:
        sleep_time = min_interval - time_since_last
        logger.debug("Rate limiting", sleep_time=sleep_time)
        await asyncio.sleep(sleep_time)

    state["last_call_time"] = time.time()


def _convert_exception(e: Exception) -> Exception:
    """Map httpx failures onto the fetch error hierarchy.

    HTTP status errors other than 429 are returned unchanged so callers can
    inspect the response.
    """
    if isinstance(e, httpx.HTTPStatusError):
        if e.response.status_code == 429:
            return FetchRateLimitError(f"Rate limit exceeded: {e}")
        return e
    if isinstance(e, httpx.TimeoutException):
        return FetchTimeoutError(f"Request timeout: {e}")
    if isinstance(e, httpx.TransportError):
        return FetchConnectionError(f"Connection failed: {e}")
    return e


def fetch_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
    multiplier: float = 2.0,
    with_rate_limiting: bool = True,
):
    """Retry decorator for async SNPedia API calls."""

    def decorator(func: Callable):
        async def wrapper(*args, **kwargs):
            retrying = AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(multiplier=multiplier, min=min_wait, max=max_wait),
                retry=retry_if_exception_type(RETRYABLE_ERRORS),
                reraise=True,
            )

            async for attempt in retrying:
                with attempt:
                    if with_rate_limiting:
                        await _apply_rate_limiting()
                    try:
                        return await func(*args, **kwargs)
                    except FetchAPIError:
                        raise
                    except httpx.HTTPError as e:
                        converted = _convert_exception(e)
                        if converted is e:
                            raise
                        if attempt.retry_state.attempt_number < max_attempts:
                            logger.warning(
                                "Retrying SNPedia request",
                                attempt=attempt.retry_state.attempt_number,
                                error=str(converted),
                                error_type=type(converted).__name__,
                            )
                        raise converted from e

        return wrapper

    return decorator


def configure_fetch_retry(rate_limit: float = 1.0) -> None:
    """Configure the global request rate (calls per second, 0 disables limiting)."""
    _rate_limiter_state["calls_per_second"] = rate_limit
    logger.debug("Fetch rate limit configured", rate_limit=rate_limit)


def get_fetch_retry_status() -> dict[str, Any]:
    """Get current status of the fetch rate limiter."""
    return {
        "rate_limiter": {
            "calls_per_second": _rate_limiter_state["calls_per_second"],
            "last_call_time": _rate_limiter_state["last_call_time"],
        },
    }
