"""
Retry with exponential backoff for model calls.

Only errors that declare themselves retryable are retried; everything else
propagates on the first failure.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


class RetryableError(Exception):
    """Base class for errors that may succeed on a later attempt."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.message = message
        self._retryable = retryable

    def retryable(self) -> bool:
        return self._retryable


@dataclass(frozen=True)
class RetryConfig:
    """Backoff settings shared by the engine and the response validator."""
    max_attempts: int = 3
    initial_delay_ms: int = 500
    backoff_multiplier: float = 2.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must not be negative")
        if self.backoff_multiplier < 1.0:
            raise ValueError("backoff_multiplier must be >= 1.0")

    def delay_ms(self, attempt: int) -> int:
        """Delay before the attempt that follows ``attempt`` (0-based)."""
        return int(self.initial_delay_ms * (self.backoff_multiplier ** attempt))


RetryCallback = Callable[[int, Exception], Awaitable[None]]


class RetryHandler:
    """Runs an async operation up to ``max_attempts`` times."""

    def __init__(self, config: Optional[RetryConfig] = None):
        self.config = config or RetryConfig()

    async def execute_with_retry(
        self,
        operation: Callable[[int], Awaitable[T]],
        on_retry: Optional[RetryCallback] = None,
    ) -> T:
        """
        Execute ``operation(attempt)`` with retry.

        Args:
            operation: Async callable receiving the 0-based attempt number
            on_retry: Optional async callback invoked before each retry

        Returns:
            The first successful result

        Raises:
            The operation's exception when it is not retryable or when the
            last attempt fails.
        """
        max_attempts = self.config.max_attempts

        for attempt in range(max_attempts):
            try:
                return await operation(attempt)
            except Exception as error:
                if not self._should_retry(error, attempt):
                    raise

                delay_ms = self.config.delay_ms(attempt)
                logger.warning(
                    f"Attempt {attempt + 1}/{max_attempts} failed: {error}. "
                    f"Retrying in {delay_ms}ms"
                )
                if on_retry is not None:
                    await on_retry(attempt + 1, error)
                await asyncio.sleep(delay_ms / 1000)

        raise AssertionError("retry loop exited without a result")

    def _should_retry(self, error: Exception, attempt: int) -> bool:
        if not isinstance(error, RetryableError):
            return False
        if not error.retryable():
            return False
        return attempt + 1 < self.config.max_attempts
