"""LLM provider abstraction layer."""

from .base import BaseLLMProvider, LLMStreamChunk
from .openai import OpenAIProvider

__all__ = [
    "BaseLLMProvider",
    "LLMStreamChunk",
    "OpenAIProvider",
]
