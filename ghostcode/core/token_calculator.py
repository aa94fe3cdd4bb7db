"""
Token counting and cost estimation.

Counts are heuristic per encoding family unless ``use_tiktoken`` is set, in
which case tiktoken's exact encoder is used when it can be loaded.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

import tiktoken
from loguru import logger

from ghostcode.core.message_history import Message, MessageRole

MESSAGE_OVERHEAD_TOKENS = 4


class TokenEncoding(Enum):
    CL100K_BASE = "cl100k_base"  # gpt-4 / gpt-3.5
    P50K_BASE = "p50k_base"
    R50K_BASE = "r50k_base"


@dataclass
class ModelInfo:
    name: str
    encoding: TokenEncoding
    input_price_per_1k: float
    output_price_per_1k: float

    @classmethod
    def gpt4(cls) -> "ModelInfo":
        return cls("gpt-4", TokenEncoding.CL100K_BASE, 0.03, 0.06)

    @classmethod
    def gpt35_turbo(cls) -> "ModelInfo":
        return cls("gpt-3.5-turbo", TokenEncoding.CL100K_BASE, 0.0005, 0.0015)

    @classmethod
    def gemini25(cls) -> "ModelInfo":
        # Gemini is priced per million tokens
        return cls("gemini-2.5", TokenEncoding.CL100K_BASE, 0.075 / 1000, 0.30 / 1000)

    @classmethod
    def claude3(cls) -> "ModelInfo":
        return cls("claude-3", TokenEncoding.CL100K_BASE, 0.003, 0.015)


_KNOWN_MODELS = {
    "gpt-4": ModelInfo.gpt4,
    "gpt-3.5-turbo": ModelInfo.gpt35_turbo,
    "gemini-2.5": ModelInfo.gemini25,
    "claude-3": ModelInfo.claude3,
}


@dataclass
class TokenStats:
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    tool_tokens: int = 0
    system_tokens: int = 0

    def add_input(self, tokens: int) -> None:
        self.input_tokens += tokens
        self.total_tokens += tokens

    def add_output(self, tokens: int) -> None:
        self.output_tokens += tokens
        self.total_tokens += tokens

    def add_tool(self, tokens: int) -> None:
        self.tool_tokens += tokens
        self.total_tokens += tokens

    def add_system(self, tokens: int) -> None:
        self.system_tokens += tokens
        self.total_tokens += tokens


class TokenCalculator:
    """Counts tokens for one model."""

    def __init__(self, model: ModelInfo, use_tiktoken: bool = False):
        self.model = model
        self._encoder = self._load_encoder(model.encoding) if use_tiktoken else None

    @classmethod
    def from_model_name(cls, name: str, use_tiktoken: bool = False) -> "TokenCalculator":
        """Build a calculator for a known model name; unknown names use gpt-4."""
        factory = _KNOWN_MODELS.get(name, ModelInfo.gpt4)
        return cls(factory(), use_tiktoken=use_tiktoken)

    @staticmethod
    def _load_encoder(encoding: TokenEncoding):
        try:
            return tiktoken.get_encoding(encoding.value)
        except Exception as e:
            # Encoder files are fetched on first use; offline hosts keep the heuristic
            logger.debug(f"tiktoken encoding {encoding.value} unavailable: {e}")
            return None

    def count_tokens(self, text: str) -> int:
        if self._encoder is not None:
            return len(self._encoder.encode(text))

        encoding = self.model.encoding
        if encoding is TokenEncoding.CL100K_BASE:
            special_chars = sum(1 for ch in text if not ch.isalnum())
            return (len(text) + 3) // 4 + special_chars // 10
        if encoding is TokenEncoding.P50K_BASE:
            return (len(text) + 2) // 3
        return (len(text) + 5) // 6

    def count_message_tokens(self, message: Message) -> int:
        return self.count_tokens(message.content) + MESSAGE_OVERHEAD_TOKENS

    def count_conversation_tokens(self, messages: Iterable[Message]) -> TokenStats:
        stats = TokenStats()
        for message in messages:
            tokens = self.count_message_tokens(message)
            if message.role is MessageRole.USER:
                stats.add_input(tokens)
            elif message.role is MessageRole.ASSISTANT:
                stats.add_output(tokens)
            else:
                stats.add_system(tokens)
        return stats

    def estimate_cost(self, stats: TokenStats) -> float:
        """Estimated USD cost of the input and output tokens in ``stats``."""
        input_cost = (stats.input_tokens / 1000.0) * self.model.input_price_per_1k
        output_cost = (stats.output_tokens / 1000.0) * self.model.output_price_per_1k
        return input_cost + output_cost

    def exceeds_limit(self, tokens: int, limit: int) -> bool:
        return tokens > limit

    def get_model_info(self) -> ModelInfo:
        return self.model

    def calculate_remaining_tokens(self, used: int, limit: int) -> int:
        return 0 if used > limit else limit - used

    def calculate_usage_percentage(self, used: int, limit: int) -> float:
        if limit == 0:
            return 0.0
        return (used / limit) * 100.0

    def summary(self, stats: TokenStats, limit: Optional[int] = None) -> Dict[str, float]:
        """Compact usage summary for status displays."""
        result: Dict[str, float] = {
            "total_tokens": stats.total_tokens,
            "estimated_cost": round(self.estimate_cost(stats), 6),
        }
        if limit is not None:
            result["usage_percent"] = round(self.calculate_usage_percentage(stats.total_tokens, limit), 1)
        return result
