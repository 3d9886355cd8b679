"""
Retry helpers for flaky I/O.

Exponential backoff with jitter for coroutine functions. Errors that will not
get better on a second try (bad credentials, invalid input, missing resources)
are re-raised immediately.
"""

import asyncio
import functools
import logging
import random
from typing import Callable, Optional, Sequence, Type

logger = logging.getLogger(__name__)


NON_RETRYABLE_MARKERS = (
    "api key",
    "unauthorized",
    "validation",
    "invalid",
    "not found",
    "404",
)


def backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 10.0) -> float:
    """
    Delay before retry number ``attempt`` (0-based).

    min(cap, base * 2^attempt) scaled by a random factor in [0.5, 1.0].
    """
    delay = min(max_delay, base_delay * (2 ** attempt))
    return delay * random.uniform(0.5, 1.0)


def should_not_retry(error: Exception) -> bool:
    """Check if an error is permanent."""
    message = str(error).lower()
    return any(marker in message for marker in NON_RETRYABLE_MARKERS)


def async_retry(
    max_retries: int = 2,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    retryable_exceptions: Sequence[Type[Exception]] = (Exception,),
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
):
    """
    Decorator that retries a coroutine function on transient failures.

    Args:
        max_retries: Retry attempts after the first call
        base_delay: Base delay in seconds
        max_delay: Delay cap in seconds
        retryable_exceptions: Exception types that trigger a retry
        on_retry: Optional callback(attempt, error, delay) before each retry
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            retryable = tuple(retryable_exceptions)

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable as e:
                    if should_not_retry(e) or attempt >= max_retries:
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay)
                    logger.warning(
                        f"Retry {attempt + 1}/{max_retries} for {func.__name__} "
                        f"({type(e).__name__}: {e}), waiting {delay:.1f}s"
                    )
                    if on_retry:
                        on_retry(attempt + 1, e, delay)
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
