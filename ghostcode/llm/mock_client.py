"""
Mock LLM client used for offline/demo mode.
Generates deterministic responses so the shell works without network access.
"""

from typing import Dict, List, Optional

from ghostcode.llm.base_client import BaseLLMClient, ChunkCallback

# The real request sits after this marker when project rules are attached
_REQUEST_MARKER = "User Request:\n"


class MockLLMClient(BaseLLMClient):
    """Simple rule-based client that simulates LLM behaviour for demos."""

    def __init__(self, model: str = "mock-llm", temperature: float = 0.1, max_tokens: int = 200):
        super().__init__(model=model, temperature=temperature, max_tokens=max_tokens)
        self.call_count = 0
        self.last_messages: List[Dict[str, str]] = []

    async def generate_completion(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> str:
        self.call_count += 1
        self.last_messages = list(messages)
        return self._generate_reply(self._last_user_message(messages), model or self.model)

    async def generate_completion_stream(
        self,
        messages: List[Dict[str, str]],
        callback: ChunkCallback,
        model: Optional[str] = None,
    ) -> str:
        content = await self.generate_completion(messages, model)
        words = content.split(" ")
        sent = []
        for i, word in enumerate(words):
            chunk = word + (" " if i < len(words) - 1 else "")
            sent.append(chunk)
            if callback(chunk) is False:
                break
        return "".join(sent)

    # Internal helpers -----------------------------------------------------------
    @staticmethod
    def _last_user_message(messages: List[Dict[str, str]]) -> str:
        for message in reversed(messages):
            if message.get("role") == "user":
                content = message.get("content", "")
                if _REQUEST_MARKER in content:
                    content = content.split(_REQUEST_MARKER, 1)[1]
                return content
        return ""

    def _generate_reply(self, prompt: str, model: str) -> str:
        prompt_lower = prompt.lower()

        if "<tool_result" in prompt:
            return "The changes have been applied. Let me know if you want anything else adjusted."

        if prompt.startswith("/"):
            name = prompt.split()[0].lstrip("/")
            return f"Mock mode: the '{name}' command was forwarded to {model}."

        if "help" in prompt_lower or "what can you do" in prompt_lower:
            return (
                "I'm GhostCode's offline assistant. I can help you with:\n"
                "- Reading and explaining files you mention with @path\n"
                "- Reviewing and debugging code\n"
                "- Drafting new code and files\n"
                "Set an API key with /openai, /gemini or /claude to talk to a real model."
            )

        preview = " ".join(prompt.split())[:80]
        return f"Mock response ({model}, call {self.call_count}): you asked about \"{preview}\"."
