"""OpenAI-compatible LLM provider implementation."""

from typing import AsyncIterator, Optional
import openai
from .base import BaseLLMProvider, LLMStreamChunk


class OpenAIProvider(BaseLLMProvider):
    """OpenAI chat-completions provider (also works with compatible gateways)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4",
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        **kwargs
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Model name (gpt-4, gpt-3.5-turbo, or a gateway model id)
            base_url: Optional endpoint for OpenAI-compatible gateways
            timeout: Per-operation httpx timeout in seconds (the read timer resets on each chunk)
            **kwargs: Additional configuration
        """
        super().__init__(api_key, model, **kwargs)

        if not api_key:
            raise ValueError("OpenAI API key is required")

        self.base_url = base_url
        self.timeout = timeout
        client_options = {"max_retries": 0}
        if timeout is not None:
            client_options["timeout"] = timeout
        self.client = openai.AsyncOpenAI(api_key=api_key, base_url=base_url, **client_options)

    async def stream(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> AsyncIterator[LLMStreamChunk]:
        """Stream a response from OpenAI."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        params = dict(kwargs)
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        stream = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            stream=True,
            **params
        )

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield LLMStreamChunk(text=content, done=False)
        finally:
            await stream.close()

        yield LLMStreamChunk(text="", done=True)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
