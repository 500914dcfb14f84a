"""Retry helper for outbound calls to cloud storage."""
import functools
import logging
from typing import Any, Callable, Tuple, Type

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.logging import logger


def retry_async(
    max_attempts: int = 3,
    min_wait: float = 0.5,
    max_wait: float = 10.0,
    backoff_multiplier: float = 1.0,
    retry_exceptions: Tuple[Type[BaseException], ...] = (Exception,)
):
    """
    Decorator retrying an async callable with exponential backoff.

    Only ``retry_exceptions`` are retried; once attempts run out the last
    exception is re-raised unchanged.

    Args:
        max_attempts: Total number of calls, including the first
        min_wait: Lower bound of the wait between calls (seconds)
        max_wait: Upper bound of the wait between calls (seconds)
        backoff_multiplier: Base wait, doubled after each failure
        retry_exceptions: Exception types worth retrying
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            retrying = AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(multiplier=backoff_multiplier, min=min_wait, max=max_wait),
                retry=retry_if_exception_type(retry_exceptions),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            )
            async for attempt in retrying:
                with attempt:
                    return await func(*args, **kwargs)

        return wrapper
    return decorator
