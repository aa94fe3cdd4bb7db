"""
Classification of model-call failures and the recovery strategy table.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from loguru import logger


class RecoveryError(Exception):
    """No recovery strategy is available for an error."""


class RecoverableError(Enum):
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    TOKEN_LIMIT_EXCEEDED = "token_limit_exceeded"
    MODEL_NOT_AVAILABLE = "model_not_available"
    NETWORK_ERROR = "network_error"
    TIMEOUT_ERROR = "timeout_error"
    INVALID_RESPONSE = "invalid_response"
    PARTIAL_RESPONSE = "partial_response"
    CONTEXT_TOO_LARGE = "context_too_large"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, text: str) -> "RecoverableError":
        """
        Classify an error message.

        Checks are case-sensitive substring tests applied in a fixed order;
        the first hit wins, so "connection timeout" is a NETWORK_ERROR.
        CONTEXT_TOO_LARGE is never produced here because "context" is
        claimed by TOKEN_LIMIT_EXCEEDED first.
        """
        for markers, category in _CLASSIFICATION_ORDER:
            if any(marker in text for marker in markers):
                return category
        return cls.UNKNOWN


_CLASSIFICATION_ORDER = [
    (("rate limit", "429"), RecoverableError.RATE_LIMIT_EXCEEDED),
    (("token", "context"), RecoverableError.TOKEN_LIMIT_EXCEEDED),
    (("model", "404"), RecoverableError.MODEL_NOT_AVAILABLE),
    (("network", "connection"), RecoverableError.NETWORK_ERROR),
    (("timeout",), RecoverableError.TIMEOUT_ERROR),
    (("invalid",), RecoverableError.INVALID_RESPONSE),
    (("partial",), RecoverableError.PARTIAL_RESPONSE),
]


class RecoveryStrategy(Enum):
    RETRY = "retry"
    FALLBACK = "fallback"
    REDUCE_CONTEXT = "reduce_context"
    COMPRESS_HISTORY = "compress_history"
    SKIP_TOOLS = "skip_tools"
    ABORT = "abort"


DEFAULT_STRATEGIES: Dict[RecoverableError, List[RecoveryStrategy]] = {
    RecoverableError.RATE_LIMIT_EXCEEDED: [RecoveryStrategy.RETRY, RecoveryStrategy.REDUCE_CONTEXT],
    RecoverableError.TOKEN_LIMIT_EXCEEDED: [RecoveryStrategy.COMPRESS_HISTORY, RecoveryStrategy.REDUCE_CONTEXT],
    RecoverableError.MODEL_NOT_AVAILABLE: [RecoveryStrategy.FALLBACK, RecoveryStrategy.RETRY],
    RecoverableError.NETWORK_ERROR: [RecoveryStrategy.RETRY, RecoveryStrategy.FALLBACK],
    RecoverableError.TIMEOUT_ERROR: [RecoveryStrategy.RETRY, RecoveryStrategy.REDUCE_CONTEXT],
    RecoverableError.INVALID_RESPONSE: [RecoveryStrategy.RETRY, RecoveryStrategy.SKIP_TOOLS],
    RecoverableError.PARTIAL_RESPONSE: [RecoveryStrategy.RETRY, RecoveryStrategy.COMPRESS_HISTORY],
    RecoverableError.CONTEXT_TOO_LARGE: [RecoveryStrategy.COMPRESS_HISTORY, RecoveryStrategy.REDUCE_CONTEXT],
    RecoverableError.UNKNOWN: [RecoveryStrategy.RETRY, RecoveryStrategy.ABORT],
}


@dataclass
class RecoveryConfig:
    max_recovery_attempts: int = 3
    retry_delay_ms: int = 1000
    fallback_models: List[str] = field(default_factory=lambda: ["gemini-2.0-flash", "gemini-1.5-pro"])
    context_reduction_factor: float = 0.8
    enable_history_compression: bool = True


@dataclass
class RecoveryResult:
    strategy_used: RecoveryStrategy
    success: bool
    attempts: int
    fallback_model: Optional[str] = None
    context_reduced: bool = False
    history_compressed: bool = False


class ErrorRecovery:
    """Maps error categories to recovery strategies and records what was tried."""

    def __init__(self, config: Optional[RecoveryConfig] = None):
        self.config = config or RecoveryConfig()
        self.error_handlers: Dict[RecoverableError, List[RecoveryStrategy]] = {
            error: list(strategies) for error, strategies in DEFAULT_STRATEGIES.items()
        }
        self._history: List[RecoveryResult] = []

    def set_strategies(self, error: RecoverableError, strategies: List[RecoveryStrategy]) -> None:
        self.error_handlers[error] = list(strategies)

    def get_recovery_strategies(self, error: RecoverableError) -> List[RecoveryStrategy]:
        return list(self.error_handlers.get(error, [RecoveryStrategy.ABORT]))

    def handle_error(self, error: RecoverableError) -> RecoveryStrategy:
        """
        Pick the strategy for an error category.

        Raises:
            RecoveryError: If the category has an empty strategy list
        """
        strategies = self.get_recovery_strategies(error)
        if not strategies:
            raise RecoveryError("No recovery strategy available")
        return strategies[0]

    def classify(self, error: Exception) -> RecoverableError:
        return RecoverableError.from_string(str(error))

    def should_retry(self, attempts: int) -> bool:
        return attempts < self.config.max_recovery_attempts

    def get_retry_delay(self, attempt: int) -> int:
        return self.config.retry_delay_ms * (2 ** attempt)

    def get_fallback_model(self, current_model: str) -> Optional[str]:
        return next((model for model in self.config.fallback_models if model != current_model), None)

    def calculate_context_reduction(self, current_size: int) -> int:
        return int(current_size * self.config.context_reduction_factor)

    def record_recovery(self, result: RecoveryResult) -> None:
        level = "INFO" if result.success else "WARNING"
        logger.log(level, f"Recovery {result.strategy_used.value} (attempt {result.attempts}, success={result.success})")
        self._history.append(result)

    def get_recovery_history(self) -> List[RecoveryResult]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()
