"""
Test doubles shared across the test modules.
"""

from typing import Dict, List, Optional

from ghostcode.core.retry_handler import RetryConfig
from ghostcode.llm.base_client import BaseLLMClient, ChunkCallback

# Zero backoff keeps retry tests instant
FAST_RETRY = RetryConfig(max_attempts=3, initial_delay_ms=0, backoff_multiplier=1.0)


class ScriptedLLMClient(BaseLLMClient):
    """Replays a list of replies; an Exception entry is raised instead of returned."""

    def __init__(self, replies=None, model: str = "test-model", default_reply: str = "Scripted reply"):
        super().__init__(model=model)
        self.replies = list(replies or [])
        self.default_reply = default_reply
        self.calls: List[Dict] = []

    async def generate_completion(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> str:
        self.calls.append({"messages": list(messages), "model": model or self.model})
        if not self.replies:
            return self.default_reply
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def generate_completion_stream(
        self,
        messages: List[Dict[str, str]],
        callback: ChunkCallback,
        model: Optional[str] = None,
    ) -> str:
        content = await self.generate_completion(messages, model)
        sent = []
        for word in content.split(" "):
            chunk = word if not sent else " " + word
            sent.append(chunk)
            if callback(chunk) is False:
                break
        return "".join(sent)
