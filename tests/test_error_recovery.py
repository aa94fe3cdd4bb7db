"""
Tests for error classification and recovery strategy selection.
"""

import pytest

from ghostcode.core.error_recovery import (
    DEFAULT_STRATEGIES,
    ErrorRecovery,
    RecoverableError,
    RecoveryConfig,
    RecoveryError,
    RecoveryResult,
    RecoveryStrategy,
)


class TestClassification:
    """First matching marker wins; matching is case-sensitive."""

    @pytest.mark.parametrize("message,category", [
        ("rate limit exceeded", RecoverableError.RATE_LIMIT_EXCEEDED),
        ("HTTP 429", RecoverableError.RATE_LIMIT_EXCEEDED),
        ("too many tokens", RecoverableError.TOKEN_LIMIT_EXCEEDED),
        ("context length exceeded", RecoverableError.TOKEN_LIMIT_EXCEEDED),
        ("model not found", RecoverableError.MODEL_NOT_AVAILABLE),
        ("status 404", RecoverableError.MODEL_NOT_AVAILABLE),
        ("connection timeout", RecoverableError.NETWORK_ERROR),
        ("read timeout", RecoverableError.TIMEOUT_ERROR),
        ("invalid JSON", RecoverableError.INVALID_RESPONSE),
        ("partial body", RecoverableError.PARTIAL_RESPONSE),
        ("Rate Limit", RecoverableError.UNKNOWN),
        ("something odd", RecoverableError.UNKNOWN),
    ])
    def test_from_string(self, message, category):
        assert RecoverableError.from_string(message) is category

    def test_context_too_large_is_never_classified(self):
        assert RecoverableError.from_string("context too large") is RecoverableError.TOKEN_LIMIT_EXCEEDED

    def test_classify_uses_exception_text(self):
        assert ErrorRecovery().classify(RuntimeError("network down")) is RecoverableError.NETWORK_ERROR


class TestErrorRecovery:
    def test_defaults(self):
        config = RecoveryConfig()
        assert config.max_recovery_attempts == 3
        assert config.fallback_models == ["gemini-2.0-flash", "gemini-1.5-pro"]
        assert config.context_reduction_factor == 0.8

    @pytest.mark.parametrize("category", list(RecoverableError))
    def test_handle_error_uses_first_strategy(self, category):
        assert ErrorRecovery().handle_error(category) is DEFAULT_STRATEGIES[category][0]

    def test_model_not_available_falls_back(self):
        assert ErrorRecovery().handle_error(RecoverableError.MODEL_NOT_AVAILABLE) is RecoveryStrategy.FALLBACK

    def test_empty_strategy_list_raises(self):
        recovery = ErrorRecovery()
        recovery.set_strategies(RecoverableError.UNKNOWN, [])

        with pytest.raises(RecoveryError):
            recovery.handle_error(RecoverableError.UNKNOWN)

    def test_should_retry(self):
        recovery = ErrorRecovery()
        assert recovery.should_retry(2)
        assert not recovery.should_retry(3)

    def test_retry_delay_doubles(self):
        recovery = ErrorRecovery()
        assert [recovery.get_retry_delay(n) for n in range(3)] == [1000, 2000, 4000]

    def test_fallback_skips_current_model(self):
        recovery = ErrorRecovery()
        assert recovery.get_fallback_model("gpt-4") == "gemini-2.0-flash"
        assert recovery.get_fallback_model("gemini-2.0-flash") == "gemini-1.5-pro"

    def test_no_fallback_available(self):
        recovery = ErrorRecovery(RecoveryConfig(fallback_models=["only"]))
        assert recovery.get_fallback_model("only") is None

    def test_context_reduction(self):
        assert ErrorRecovery().calculate_context_reduction(1000) == 800

    def test_history(self):
        recovery = ErrorRecovery()
        recovery.record_recovery(RecoveryResult(RecoveryStrategy.RETRY, True, 1))
        recovery.record_recovery(RecoveryResult(RecoveryStrategy.ABORT, False, 2))

        assert [r.strategy_used for r in recovery.get_recovery_history()] == [
            RecoveryStrategy.RETRY,
            RecoveryStrategy.ABORT,
        ]
        recovery.clear_history()
        assert recovery.get_recovery_history() == []
