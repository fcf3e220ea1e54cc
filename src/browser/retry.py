"""Bounded retry loop for flaky portal interactions."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 1.0


class TransientUIError(Exception):
    """Raised when an expected frame or element is not present (yet)."""

    pass


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    action: str,
    error_cls: type[Exception],
    max_attempts: int = MAX_ATTEMPTS,
    delay: float = RETRY_DELAY_SECONDS,
    **log_context: Any,
) -> T:
    """Run ``operation`` until it succeeds or attempts run out.

    Args:
        operation: Zero-argument coroutine function to call on each attempt.
        action: Short name used in log events, e.g. ``"login"``.
        error_cls: Exception raised once every attempt has failed.
        max_attempts: Total number of attempts.
        delay: Fixed pause in seconds between attempts.
        **log_context: Extra key/value pairs added to every log event.

    Returns:
        The result of the first successful attempt.

    Raises:
        error_cls: If all attempts fail, chained to the last error.
    """
    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        logger.info(
            f"{action}_attempt_started",
            attempt=attempt,
            max_attempts=max_attempts,
            **log_context,
        )
        try:
            return await operation()
        except Exception as e:
            last_error = e
            logger.warning(
                f"{action}_attempt_failed",
                attempt=attempt,
                max_attempts=max_attempts,
                error=str(e),
                **log_context,
            )
            if attempt < max_attempts:
                await asyncio.sleep(delay)

    raise error_cls(
        f"{action} failed after {max_attempts} attempts: {last_error}"
    ) from last_error
