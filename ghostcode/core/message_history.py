"""
Bounded conversation history.

The history holds at most ``max_messages`` messages and ``max_tokens``
estimated tokens; the oldest messages are evicted first.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional, TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from ghostcode.core.context import ConversationContext


class HistoryError(Exception):
    """A message cannot be stored within the history budget."""


class MessageRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

    def __str__(self) -> str:
        return self.value


def estimate_tokens(text: str) -> int:
    """Rough estimate: 4 characters per token."""
    return (len(text) + 3) // 4


@dataclass
class Message:
    role: MessageRole
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    token_count: int = 0

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class Turn:
    user_message: Message
    assistant_message: Optional[Message] = None
    context: Optional["ConversationContext"] = None

    def total_tokens(self) -> int:
        total = self.user_message.token_count
        if self.assistant_message is not None:
            total += self.assistant_message.token_count
        return total


class MessageHistory:
    """FIFO message store with token and message-count budgets."""

    def __init__(
        self,
        max_messages: int = 100,
        max_tokens: int = 10000,
        token_counter: Optional[Callable[[str], int]] = None,
    ):
        """
        Args:
            max_messages: Maximum number of stored messages
            max_tokens: Maximum sum of message token counts
            token_counter: Optional per-model counter (defaults to the 4 chars/token estimate)
        """
        self.max_messages = max_messages
        self.max_tokens = max_tokens
        self.token_counter = token_counter or estimate_tokens
        self._messages: Deque[Message] = deque()
        self._turns: Deque[Turn] = deque()
        self._current_tokens = 0

    def add_message(self, message: Message) -> None:
        self._measure(message)

        while self._current_tokens + message.token_count > self.max_tokens and self._messages:
            self._evict_oldest()

        self._current_tokens += message.token_count
        self._messages.append(message)

        while len(self._messages) > self.max_messages:
            self._evict_oldest()

    def _measure(self, message: Message) -> None:
        message.token_count = self.token_counter(message.content)
        if message.token_count > self.max_tokens:
            logger.error(
                f"Message of {message.token_count} tokens exceeds history budget of {self.max_tokens}"
            )
            raise HistoryError(
                f"message needs {message.token_count} tokens but the history budget is {self.max_tokens}"
            )

    def add_turn(self, turn: Turn) -> None:
        """Store a turn's messages (user first) and keep at most max_messages // 2 turns."""
        # Both messages must fit before either is stored
        self._measure(turn.user_message)
        if turn.assistant_message is not None:
            self._measure(turn.assistant_message)

        self.add_message(turn.user_message)
        if turn.assistant_message is not None:
            self.add_message(turn.assistant_message)

        self._turns.append(turn)
        while len(self._turns) > self.max_messages // 2:
            self._turns.popleft()

    def compress(self, target_tokens: int) -> None:
        """Evict oldest messages until the history fits ``target_tokens``."""
        before = self._current_tokens
        while self._current_tokens > target_tokens and self._messages:
            self._evict_oldest()
        logger.debug(f"Compressed history from {before} to {self._current_tokens} tokens")

    def _evict_oldest(self) -> None:
        message = self._messages.popleft()
        self._current_tokens = max(0, self._current_tokens - message.token_count)

    def get_messages(self) -> List[Message]:
        return list(self._messages)

    def get_turns(self) -> List[Turn]:
        return list(self._turns)

    def get_last_n_messages(self, n: int) -> List[Message]:
        if n <= 0:
            return []
        return list(self._messages)[-n:]

    def get_last_message(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def clear(self) -> None:
        self._messages.clear()
        self._turns.clear()
        self._current_tokens = 0

    def get_current_tokens(self) -> int:
        return self._current_tokens

    def get_remaining_tokens(self) -> int:
        return max(0, self.max_tokens - self._current_tokens)

    def get_message_count(self) -> int:
        return len(self._messages)

    def get_turn_count(self) -> int:
        return len(self._turns)

    def to_chat_messages(self, last_n: Optional[int] = None) -> List[Dict[str, str]]:
        """Role/content dicts for the LLM client, oldest first."""
        messages = self.get_messages() if last_n is None else self.get_last_n_messages(last_n)
        return [message.to_dict() for message in messages]

    def to_debug_string(self) -> str:
        lines = [
            f"=== Message History ({len(self._messages)} messages, {self._current_tokens} tokens) ==="
        ]
        for index, message in enumerate(self._messages):
            lines.append(f"[{index}] {message.role}: {message.content} ({message.token_count} tokens)")
        return "\n".join(lines) + "\n"
