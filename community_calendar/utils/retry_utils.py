"""
Retry utilities for upstream API calls with error classification.

Provides bounded retry with exponential backoff for transient failures of the
LLM and HTTP clients. Anything not classified as transient is re-raised
immediately.
"""

import asyncio
from collections.abc import Callable
from functools import wraps

import httpx
from openai import (
    APIConnectionError,
    APITimeoutError,
    InternalServerError,
    RateLimitError,
)

from community_calendar.utils.logger import setup_logger

logger = setup_logger("retry_utils")

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def is_retryable_upstream_error(e: Exception) -> bool:
    """
    Classify upstream errors for retry decisions.

    Connection drops, timeouts, rate limiting and 5xx answers are transient;
    authentication and validation errors are not.
    """
    if isinstance(
        e, APIConnectionError | APITimeoutError | RateLimitError | InternalServerError
    ):
        return True

    if isinstance(e, httpx.TransportError):
        return True

    if isinstance(e, httpx.HTTPStatusError):
        return e.response.status_code in RETRYABLE_STATUS_CODES

    return False


def async_retry(
    max_retries: int = 3,
    delay_seconds: float = 1.0,
    backoff_factor: float = 2.0,
    is_retryable: Callable[[Exception], bool] = is_retryable_upstream_error,
):
    """
    Decorator retrying a coroutine on transient errors.

    ``max_retries`` is the total number of attempts. The last transient error
    is re-raised once attempts are exhausted.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            current_delay = delay_seconds
            for attempt in range(1, max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not is_retryable(e):
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            f"'{func.__name__}' ultimately failed after {max_retries} attempts: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise
                    logger.warning(
                        f"'{func.__name__}' failed (Attempt {attempt}/{max_retries}) "
                        f"due to {type(e).__name__}: {e}. Retrying in {current_delay:.2f}s..."
                    )
                    await asyncio.sleep(current_delay)
                    current_delay *= backoff_factor

        return wrapper

    return decorator
