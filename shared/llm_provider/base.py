"""Base LLM provider interface."""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional, Dict, Any
from pydantic import BaseModel, Field


class LLMStreamChunk(BaseModel):
    """LLM streaming response chunk."""

    text: str
    done: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers."""

    def __init__(self, api_key: Optional[str] = None, model: str = "default", **kwargs):
        """
        Initialize LLM provider.

        Args:
            api_key: API key for the provider
            model: Model name to use
            **kwargs: Additional provider-specific configuration
        """
        self.api_key = api_key
        self.model = model
        self.config = kwargs

    @abstractmethod
    def stream(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> AsyncIterator[LLMStreamChunk]:
        """
        Stream a response from the LLM.

        Implementations are async generators: chunks arrive in the order the
        provider emits them and the last chunk has ``done=True``.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Additional provider-specific parameters

        Yields:
            LLMStreamChunk objects
        """

    async def aclose(self) -> None:
        """Release any client resources held by the provider."""
