"""
Base LLM client interface.
All LLM providers must implement this interface.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from ghostcode.core.retry_handler import RetryableError

ChunkCallback = Callable[[str], bool]


class ModelCallError(RetryableError):
    """A model request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = True):
        super().__init__(message, retryable=retryable)
        self.status_code = status_code


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    def __init__(self, model: str, temperature: float = 0.7, max_tokens: int = 200):
        """
        Initialize the LLM client.

        Args:
            model: Default model identifier
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate per reply
        """
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @abstractmethod
    async def generate_completion(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> str:
        """
        Generate a chat completion.

        Args:
            messages: Role/content message dicts
            model: Override the default model for this call

        Returns:
            The assistant's reply text

        Raises:
            ModelCallError: If the request fails
        """

    @abstractmethod
    async def generate_completion_stream(
        self,
        messages: List[Dict[str, str]],
        callback: ChunkCallback,
        model: Optional[str] = None,
    ) -> str:
        """
        Stream a chat completion.

        Args:
            messages: Role/content message dicts
            callback: Called with each text chunk; returning False stops the stream
            model: Override the default model for this call

        Returns:
            The text received before the stream ended or was stopped
        """

    def get_model_name(self) -> str:
        return self.model

    def set_model(self, model: str) -> None:
        self.model = model
