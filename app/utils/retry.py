"""Retry logic with exponential backoff for Gemini API calls.

Transient failures (rate limits, server errors, network problems) are
retried with exponential backoff plus jitter; client errors are raised
immediately.
"""

import asyncio
import functools
import inspect
import logging
import random
import time
from typing import Any, Callable, Set, Type, TypeVar, cast

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

RETRYABLE_STATUS_CODES: Set[int] = {
    429,  # Rate limit
    500,  # Server error
    503,  # Service unavailable
}

NON_RETRYABLE_STATUS_CODES: Set[int] = {
    400,  # Bad request
    401,  # Unauthorized
    403,  # Forbidden
    404,  # Not found
    422,  # Unprocessable entity
}

NETWORK_ERROR_MARKERS = (
    "timeout",
    "timed out",
    "connection",
    "network",
)

MAX_RETRIES = 5
BASE_DELAY = 1.0  # seconds
MAX_JITTER = 1.0  # seconds


def retry_with_backoff(
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    max_jitter: float = MAX_JITTER,
    retryable_exceptions: tuple[Type[Exception], ...] = (Exception,),
) -> Callable[[F], F]:
    """Decorator that retries a sync or async function with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Base delay in seconds, doubled on every attempt
        max_jitter: Maximum random jitter in seconds added to each delay
        retryable_exceptions: Exception types retried when no status code
            or network marker decides otherwise

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: F) -> F:
        def _next_delay(attempt: int, error: Exception) -> float | None:
            """Delay before the next attempt, or None to re-raise."""
            if not _should_retry_exception(error, retryable_exceptions):
                return None
            if attempt >= max_retries:
                logger.error("%s failed after %d retries: %s", func.__name__, max_retries, error)
                return None
            delay = (base_delay * (2 ** attempt)) + (random.random() * max_jitter)
            logger.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.2fs...",
                func.__name__, attempt + 1, max_retries, error, delay,
            )
            return delay

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    delay = _next_delay(attempt, e)
                    if delay is None:
                        raise
                    await asyncio.sleep(delay)
                    attempt += 1

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    delay = _next_delay(attempt, e)
                    if delay is None:
                        raise
                    time.sleep(delay)
                    attempt += 1

        if inspect.iscoroutinefunction(func):
            return cast(F, async_wrapper)
        return cast(F, sync_wrapper)

    return decorator


def _should_retry_exception(
    exception: Exception, retryable_exceptions: tuple[Type[Exception], ...]
) -> bool:
    """Decide whether an exception is transient."""
    status_code = _extract_status_code(exception)
    if status_code in NON_RETRYABLE_STATUS_CODES:
        return False
    if status_code in RETRYABLE_STATUS_CODES:
        return True

    message = str(exception).lower()
    if any(marker in message for marker in NETWORK_ERROR_MARKERS):
        return True

    return isinstance(exception, retryable_exceptions)


def _extract_status_code(exception: Exception) -> int | None:
    """Pull an HTTP status code off an exception (google-genai, httpx styles)."""
    for attr in ("status_code", "code"):
        value = getattr(exception, attr, None)
        if isinstance(value, int):
            return value

    response = getattr(exception, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code

    return None
