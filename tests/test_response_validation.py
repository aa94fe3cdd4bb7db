"""
Tests for ResponseValidator.
"""

import pytest
from helpers import FAST_RETRY

from ghostcode.core.response_validation import ResponseError, ResponseErrorKind, ResponseValidator
from ghostcode.core.retry_handler import RetryHandler


class TestValidateChunk:
    """Checks run in the order EMPTY, HAS_ERROR_MARKER, TOO_SHORT."""

    @pytest.mark.parametrize("text,kind", [
        ("", ResponseErrorKind.EMPTY),
        ("   \n\t", ResponseErrorKind.EMPTY),
        ("error: upstream", ResponseErrorKind.HAS_ERROR_MARKER),
        ("Something happened. Error: bad", ResponseErrorKind.HAS_ERROR_MARKER),
        ("ok", ResponseErrorKind.TOO_SHORT),
    ])
    def test_rejects(self, text, kind):
        with pytest.raises(ResponseError) as exc_info:
            ResponseValidator.validate_chunk(text)
        assert exc_info.value.kind is kind

    def test_empty_checked_before_length(self):
        with pytest.raises(ResponseError) as exc_info:
            ResponseValidator.validate_chunk(" ")
        assert exc_info.value.kind is ResponseErrorKind.EMPTY

    def test_marker_is_case_sensitive(self):
        ResponseValidator.validate_chunk("ERROR: shouting is fine")

    def test_accepts_normal_text(self):
        ResponseValidator.validate_chunk("Here is the answer.")

    def test_retryability(self):
        assert ResponseError(ResponseErrorKind.EMPTY).retryable()
        assert ResponseError(ResponseErrorKind.TOO_SHORT).retryable()
        assert not ResponseError(ResponseErrorKind.HAS_ERROR_MARKER).retryable()

    def test_finalize_joins_chunks(self):
        assert ResponseValidator.finalize_response(["Hel", "lo", " world"]) == "Hello world"


class TestValidateWithRetry:
    """Invalid candidates are retried through the RetryHandler."""

    @pytest.mark.asyncio
    async def test_retries_empty_response(self):
        candidates = ["", "  ", "A proper answer"]

        async def produce(attempt):
            return candidates[attempt]

        validator = ResponseValidator(RetryHandler(FAST_RETRY))
        assert await validator.validate_with_retry(produce) == "A proper answer"

    @pytest.mark.asyncio
    async def test_error_marker_fails_immediately(self):
        calls = []

        async def produce(attempt):
            calls.append(attempt)
            return "Error: quota"

        validator = ResponseValidator(RetryHandler(FAST_RETRY))
        with pytest.raises(ResponseError):
            await validator.validate_with_retry(produce)
        assert calls == [0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        calls = []

        async def produce(attempt):
            calls.append(attempt)
            return "no"

        validator = ResponseValidator(RetryHandler(FAST_RETRY))
        with pytest.raises(ResponseError) as exc_info:
            await validator.validate_with_retry(produce)
        assert exc_info.value.kind is ResponseErrorKind.TOO_SHORT
        assert calls == [0, 1, 2]
