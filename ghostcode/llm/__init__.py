"""
LLM integration layer for GhostCode.
Provides a unified async interface over OpenAI-compatible providers.
"""

from ghostcode.llm.base_client import BaseLLMClient, ModelCallError
from ghostcode.llm.openai_client import OpenAICompatibleClient
from ghostcode.llm.mock_client import MockLLMClient
from ghostcode.llm.llm_factory import create_llm_client

__all__ = [
    "BaseLLMClient",
    "ModelCallError",
    "OpenAICompatibleClient",
    "MockLLMClient",
    "create_llm_client",
]
