"""
LLM Factory - Creates LLM clients from the provider configuration.
"""

from loguru import logger

from ghostcode.core.config import LLMConfig, LLMProvider
from ghostcode.llm.base_client import BaseLLMClient
from ghostcode.llm.mock_client import MockLLMClient
from ghostcode.llm.openai_client import OpenAICompatibleClient


def create_llm_client(llm_config: LLMConfig, mock: bool = False) -> BaseLLMClient:
    """
    Create an LLM client for the configured provider.

    Args:
        llm_config: Active provider settings
        mock: Use the offline mock client

    Returns:
        Initialized LLM client
    """
    if mock:
        logger.warning("Mock mode active – using MockLLMClient.")
        return MockLLMClient(
            model=llm_config.model or "mock-llm",
            temperature=llm_config.temperature,
            max_tokens=llm_config.max_tokens,
        )

    if llm_config.provider not in (LLMProvider.OLLAMA, LLMProvider.LOCAL_SERVER) and not llm_config.api_key:
        logger.warning(f"No API key configured for {llm_config.provider.value}; requests will fail until one is set")

    logger.info(f"Creating LLM client: {llm_config.provider.value} / {llm_config.model}")
    return OpenAICompatibleClient.from_config(llm_config)
