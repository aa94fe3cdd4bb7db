"""
Validation of model output before it is accepted for a turn.
"""

from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional

from loguru import logger

from ghostcode.core.retry_handler import RetryableError, RetryCallback, RetryConfig, RetryHandler


class ResponseErrorKind(Enum):
    EMPTY = "empty"
    HAS_ERROR_MARKER = "has_error_marker"
    TOO_SHORT = "too_short"


_MESSAGES = {
    ResponseErrorKind.EMPTY: "response is empty",
    ResponseErrorKind.HAS_ERROR_MARKER: "response contains an error marker",
    ResponseErrorKind.TOO_SHORT: "response is too short",
}

MIN_RESPONSE_LENGTH = 3


class ResponseError(RetryableError):
    """Model output failed validation."""

    def __init__(self, kind: ResponseErrorKind):
        super().__init__(
            _MESSAGES[kind],
            retryable=kind is not ResponseErrorKind.HAS_ERROR_MARKER,
        )
        self.kind = kind


class ResponseValidator:
    """Checks candidate responses; retryable failures go back through the RetryHandler."""

    def __init__(self, retry_handler: Optional[RetryHandler] = None):
        self.retry_handler = retry_handler or RetryHandler(RetryConfig())

    @staticmethod
    def validate_chunk(text: str) -> None:
        """
        Validate a candidate response.

        Raises:
            ResponseError: EMPTY, HAS_ERROR_MARKER or TOO_SHORT, checked in that order
        """
        if not text.strip():
            raise ResponseError(ResponseErrorKind.EMPTY)
        if "error:" in text or "Error:" in text:
            raise ResponseError(ResponseErrorKind.HAS_ERROR_MARKER)
        if len(text) < MIN_RESPONSE_LENGTH:
            raise ResponseError(ResponseErrorKind.TOO_SHORT)

    @staticmethod
    def finalize_response(chunks: Iterable[str]) -> str:
        return "".join(chunks)

    async def validate_with_retry(
        self,
        produce: Callable[[int], Awaitable[str]],
        on_retry: Optional[RetryCallback] = None,
    ) -> str:
        """
        Produce candidates until one validates or retries run out.

        Args:
            produce: Async callable taking the attempt number and returning text
            on_retry: Optional callback fired before each retry

        Returns:
            The first validated response
        """

        async def attempt_once(attempt: int) -> str:
            candidate = await produce(attempt)
            self.validate_chunk(candidate)
            logger.debug(f"Response validated on attempt {attempt + 1} ({len(candidate)} chars)")
            return candidate

        return await self.retry_handler.execute_with_retry(attempt_once, on_retry=on_retry)
