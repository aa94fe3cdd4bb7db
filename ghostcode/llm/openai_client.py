"""
OpenAI-compatible LLM client.

Works against any endpoint that speaks the OpenAI chat completions API:
OpenAI itself, Gemini's OpenAI endpoint, Anthropic's compatibility layer,
Ollama and local inference servers.
"""

from typing import Dict, List, Optional

import openai
from loguru import logger
from openai import AsyncOpenAI

from ghostcode.core.config import LLMConfig
from ghostcode.llm.base_client import BaseLLMClient, ChunkCallback, ModelCallError

# Endpoint suffixes that the SDK appends itself
_ENDPOINT_SUFFIXES = ("/chat/completions", "/messages", "/api/chat")

RETRYABLE_STATUS_CODES = {408, 409, 429}


def sdk_base_url(url: str) -> str:
    """
    Turn a configured endpoint URL into the SDK's base URL.

    ``https://api.openai.com/v1/chat/completions`` -> ``https://api.openai.com/v1``;
    Ollama's native ``/api/chat`` maps to its OpenAI-compatible ``/v1``.
    """
    base = url.rstrip("/")
    for suffix in _ENDPOINT_SUFFIXES:
        if base.endswith(suffix):
            base = base[: -len(suffix)]
            if suffix == "/api/chat":
                base += "/v1"
            break
    return base


def _to_model_call_error(error: Exception) -> ModelCallError:
    if isinstance(error, openai.APITimeoutError):
        return ModelCallError(f"timeout: {error}")
    if isinstance(error, openai.APIConnectionError):
        return ModelCallError(f"network connection error: {error}")
    if isinstance(error, openai.APIStatusError):
        status = error.status_code
        retryable = status in RETRYABLE_STATUS_CODES or status >= 500
        if status == 429:
            message = f"429 rate limit: {error.message}"
        elif status == 404:
            message = f"404 model not found: {error.message}"
        else:
            message = f"{status}: {error.message}"
        return ModelCallError(message, status_code=status, retryable=retryable)
    return ModelCallError(str(error))


class OpenAICompatibleClient(BaseLLMClient):
    """LLM client built on the openai SDK's AsyncOpenAI."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 200,
        timeout: float = 60.0,
    ):
        super().__init__(model, temperature, max_tokens)
        self.base_url = sdk_base_url(base_url)
        self.client = AsyncOpenAI(api_key=api_key or "missing", base_url=self.base_url, timeout=timeout)
        logger.info(f"OpenAI-compatible client initialized: {model} @ {self.base_url}")

    @classmethod
    def from_config(cls, config: LLMConfig) -> "OpenAICompatibleClient":
        return cls(
            api_key=config.api_key,
            base_url=config.base_url,
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    async def generate_completion(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> str:
        model = model or self.model
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.OpenAIError as e:
            logger.error(f"LLM API error ({model}): {e}")
            raise _to_model_call_error(e) from e

        if not response.choices:
            raise ModelCallError("invalid response: no choices returned")

        content = response.choices[0].message.content or ""
        if response.usage is not None:
            logger.debug(f"LLM response: {response.usage.total_tokens} tokens ({model})")
        return content

    async def generate_completion_stream(
        self,
        messages: List[Dict[str, str]],
        callback: ChunkCallback,
        model: Optional[str] = None,
    ) -> str:
        model = model or self.model
        parts: List[str] = []
        try:
            stream = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if not text:
                    continue
                parts.append(text)
                if callback(text) is False:
                    logger.debug("Stream stopped by callback")
                    await stream.close()
                    break
        except openai.OpenAIError as e:
            logger.error(f"LLM streaming error ({model}): {e}")
            raise _to_model_call_error(e) from e

        return "".join(parts)
