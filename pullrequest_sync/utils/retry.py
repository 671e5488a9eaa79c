"""Retry decorator for host API rate limits.

Host adapters wrap their remote calls with ``retry_on_rate_limit``. The
reconciliation core itself never retries.
"""

import asyncio
import functools
import time
from typing import Any, Callable, TypeVar

import httpx
import structlog
from githubkit.exception import PrimaryRateLimitExceeded, RequestFailed, SecondaryRateLimitExceeded

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _rate_limited_response(exc: Exception) -> Any | None:
    """Return the HTTP response of a rate limited request, or None if ``exc`` is not a rate limit."""
    if isinstance(exc, RequestFailed):
        response = exc.response
    elif isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
    else:
        return None
    if response.status_code == 429:
        return response
    # A 403 is only a rate limit when the host says so.
    if response.status_code == 403 and ("rate limit" in str(exc).lower() or "retry-after" in response.headers):
        return response
    if response.status_code == 403 and response.headers.get("x-ratelimit-remaining") == "0":
        return response
    return None


def wait_time_from_headers(headers: Any, default: float) -> float:
    """Compute how long to wait from ``retry-after`` or ``x-ratelimit-reset`` headers."""
    retry_after = headers.get("retry-after")
    if retry_after:
        try:
            return float(retry_after)
        except ValueError:
            logger.warning("Invalid retry-after header value", retry_after=retry_after)
            return default

    rate_limit_reset = headers.get("x-ratelimit-reset")
    if rate_limit_reset:
        try:
            reset_timestamp = int(rate_limit_reset)
        except ValueError:
            logger.warning("Invalid x-ratelimit-reset header value", rate_limit_reset=rate_limit_reset)
            return default
        current_timestamp = int(time.time())
        if reset_timestamp > current_timestamp:
            return float(reset_timestamp - current_timestamp + 1)
    return default


def retry_on_rate_limit(
    max_retries: int = 5,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
) -> Callable[[F], F]:
    """Decorator for retrying async host API calls that hit a rate limit.

    Handles githubkit's primary and secondary rate limit exceptions, and 403/429
    responses from either githubkit or httpx. Any other error is raised
    immediately.

    Args:
        max_retries: Maximum number of retry attempts (default: 5)
        initial_delay: Initial delay in seconds between retries (default: 1.0)
        max_delay: Maximum delay in seconds between retries (default: 60.0)
        exponential_base: Base for exponential backoff calculation (default: 2.0)

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: F) -> F:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"Function {func.__name__} decorated with @retry_on_rate_limit must be async.")

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except (PrimaryRateLimitExceeded, SecondaryRateLimitExceeded) as e:
                    if attempt >= max_retries:
                        logger.error(
                            "Max retries reached for rate limit error",
                            function=func.__name__,
                            attempt=attempt + 1,
                            error_type=type(e).__name__,
                        )
                        raise
                    retry_after = getattr(e, "retry_after", None)
                    wait_time = min(retry_after.total_seconds() if retry_after else delay, max_delay)
                except (RequestFailed, httpx.HTTPStatusError) as e:
                    response = _rate_limited_response(e)
                    if response is None:
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Max retries reached for rate limit error",
                            function=func.__name__,
                            attempt=attempt + 1,
                            status_code=response.status_code,
                        )
                        raise
                    wait_time = min(wait_time_from_headers(response.headers, delay), max_delay)

                attempt += 1
                logger.warning(
                    f"Rate limit hit, retrying in {wait_time} seconds",
                    function=func.__name__,
                    attempt=attempt,
                    max_retries=max_retries,
                    wait_time=wait_time,
                )
                await asyncio.sleep(wait_time)
                delay = min(delay * exponential_base, max_delay)

        return async_wrapper  # type: ignore

    return decorator
