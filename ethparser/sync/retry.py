"""
Retry helper for node requests.

Implements exponential backoff with jitter for errors worth retrying
right away (connection failures, rate limiting). Everything else is
raised immediately and left to the sync loop's own backoff.
"""

import asyncio
import random
from typing import Awaitable, Callable, Tuple, Type, TypeVar

import structlog

from ethparser.sync.config import RetryConfig

logger = structlog.get_logger()

T = TypeVar("T")


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Backoff delay in seconds before retry number ``attempt`` (0-based)."""
    delay = min(
        config.initial_delay * (config.exponential_base**attempt),
        config.max_delay,
    )
    if config.jitter:
        delay = delay * (0.5 + random.random() * 0.5)
    return delay


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    operation_name: str = "operation",
) -> T:
    """
    Execute a coroutine function with exponential backoff retry.

    Args:
        func: Async function to execute
        config: Retry configuration
        retry_on: Exception types that trigger another attempt
        operation_name: Name for logging

    Returns:
        Function result

    Raises:
        Exception: The last error once attempts are exhausted, or the
            first error not listed in retry_on
    """
    attempt = 0
    while True:
        try:
            return await func()
        except retry_on as e:
            attempt += 1
            if attempt >= config.max_attempts:
                logger.warning(
                    "retry.exhausted",
                    operation=operation_name,
                    attempts=attempt,
                    error=str(e),
                )
                raise

            delay = compute_delay(config, attempt - 1)
            logger.info(
                "retry.attempt",
                operation=operation_name,
                attempt=attempt,
                max_attempts=config.max_attempts,
                delay_seconds=round(delay, 3),
                error=str(e),
            )
            await asyncio.sleep(delay)
