"""Retry helpers for draft storage.

Draft backends talk to disks and object stores that fail transiently. The
``DraftStore`` boundary wraps every backend call in ``retry_async`` so a
brief outage costs a few retries instead of a lost draft.

Implementation: Uses tenacity library internally for battle-tested retry logic.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

import tenacity
from tenacity.wait import wait_base

logger = logging.getLogger(__name__)

__all__ = ["RetryConfig", "retry_async"]


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        backoff_seconds: float = 0.1,
        exponential: bool = True,
        jitter: bool = True,
        retry_exceptions: Optional[Tuple[Type[BaseException], ...]] = None,
    ):
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.exponential = exponential
        self.jitter = jitter
        self.retry_exceptions = retry_exceptions or (Exception,)

    @classmethod
    def none(cls) -> "RetryConfig":
        """No retry - fail immediately."""
        return cls(max_attempts=1)

    @classmethod
    def default(cls) -> "RetryConfig":
        return cls()

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryConfig":
        """Build from ``EngineSettings`` storage fields."""
        return cls(
            max_attempts=settings.storage_retries,
            backoff_seconds=settings.storage_backoff_seconds,
        )

    def wait_strategy(self) -> wait_base:
        wait: wait_base
        if self.exponential:
            wait = tenacity.wait_exponential(
                multiplier=self.backoff_seconds, min=self.backoff_seconds
            )
        else:
            wait = tenacity.wait_fixed(self.backoff_seconds)
        if self.jitter and self.backoff_seconds > 0:
            wait = wait + tenacity.wait_random(0, self.backoff_seconds * 0.5)
        return wait

    def __repr__(self) -> str:
        return (
            f"RetryConfig(max_attempts={self.max_attempts}, "
            f"backoff_seconds={self.backoff_seconds})"
        )


async def retry_async(
    operation: Callable[[], Awaitable[Any]],
    config: RetryConfig,
    operation_name: str = "operation",
) -> Any:
    """Await an operation with retry logic.

    Args:
        operation: Zero-argument coroutine function to execute
        config: Retry configuration
        operation_name: Name for logging

    Returns:
        Result of the operation

    Raises:
        The last exception once all attempts are exhausted

    Example:
        data = await retry_async(
            lambda: backend.read(key),
            RetryConfig.default(),
            f"read draft {key}",
        )
    """

    def before_sleep_handler(retry_state: tenacity.RetryCallState) -> None:
        """Log retry attempts."""
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "%s attempt %d/%d failed: %s. Retrying in %.2fs...",
            operation_name,
            retry_state.attempt_number,
            config.max_attempts,
            exception,
            retry_state.next_action.sleep if retry_state.next_action else 0,
        )

    retryer = tenacity.AsyncRetrying(
        stop=tenacity.stop_after_attempt(config.max_attempts),
        wait=config.wait_strategy(),
        retry=tenacity.retry_if_exception_type(config.retry_exceptions),
        before_sleep=before_sleep_handler,
        reraise=True,
    )

    try:
        async for attempt in retryer:
            with attempt:
                return await operation()
    except Exception:
        logger.error(
            "%s failed after %d attempts",
            operation_name,
            config.max_attempts,
        )
        raise
