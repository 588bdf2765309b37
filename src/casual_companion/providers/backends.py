"""
Chat backends behind the provider gateway.

Every backend turns a list of casual-llm chat messages into plain text.
OpenAI-compatible and Ollama endpoints go through casual-llm providers;
Anthropic gets its own adapter because its API takes the system prompt
separately from the message list.
"""

import logging
from typing import Dict, List, Optional, Protocol

from casual_llm import (
    AssistantMessage,
    ChatMessage,
    LLMProvider,
    ModelConfig,
    Provider,
    SystemMessage,
    create_provider,
)
from typing_extensions import runtime_checkable

from casual_companion.exceptions import ProviderError

logger = logging.getLogger(__name__)


@runtime_checkable
class ChatBackend(Protocol):
    """One concrete LLM service."""

    async def complete(
        self,
        messages: List[ChatMessage],
        model: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        response_format: str = "text",
    ) -> str:
        """
        Run one chat completion.

        Args:
            messages: Conversation to complete
            model: Concrete model name
            temperature: Sampling temperature
            max_tokens: Output token cap
            response_format: "text" or "json" (strict JSON object)

        Returns:
            The assistant text

        Raises:
            ProviderError: On any failure, including an empty completion
        """
        ...


class CasualLLMBackend:
    """
    Backend for OpenAI-compatible APIs (Groq, OpenRouter, NVIDIA, Together,
    Fireworks, OpenAI) and Ollama, built on casual-llm providers.

    casual-llm binds a provider to one model, so one provider is created
    lazily per model name and cached.
    """

    def __init__(
        self,
        name: str,
        provider: Provider = Provider.OPENAI,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        self.name = name
        self.provider = provider
        self.base_url = base_url
        self.api_key = api_key
        self._providers: Dict[str, LLMProvider] = {}

    def _provider_for(self, model: str) -> LLMProvider:
        if model not in self._providers:
            config = ModelConfig(
                name=model, provider=self.provider, base_url=self.base_url, api_key=self.api_key
            )
            self._providers[model] = create_provider(config)
            logger.debug(f"Created {self.name} provider for model {model}")
        return self._providers[model]

    async def complete(
        self,
        messages: List[ChatMessage],
        model: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        response_format: str = "text",
    ) -> str:
        kwargs = {"response_format": response_format, "temperature": temperature}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            provider = self._provider_for(model)
            response = await provider.chat(messages, **kwargs)
        except Exception as e:
            raise ProviderError(self.name, str(e)) from e

        text = (getattr(response, "content", None) or "").strip()
        if not text:
            raise ProviderError(self.name, "Empty completion")
        return text


class AnthropicBackend:
    """
    Backend for the Anthropic Messages API.

    System messages are lifted into the ``system`` parameter; the text of the
    first content block is returned. JSON mode is requested through the
    system prompt since the API has no response-format switch.
    """

    name = "anthropic"

    def __init__(self, api_key: Optional[str] = None, client=None):
        if client is None:
            try:
                from anthropic import AsyncAnthropic
            except ImportError as e:
                raise ImportError(
                    "anthropic is required for AnthropicBackend. "
                    "Install with: pip install casual-companion[anthropic]"
                ) from e
            client = AsyncAnthropic(api_key=api_key)
        self.client = client

    @staticmethod
    def split_messages(messages: List[ChatMessage]):
        """Separate the system prompt from the user/assistant turns."""
        system_parts = []
        turns = []
        for message in messages:
            if isinstance(message, SystemMessage):
                system_parts.append(message.content)
            else:
                role = "assistant" if isinstance(message, AssistantMessage) else "user"
                turns.append({"role": role, "content": message.content or ""})
        return "\n\n".join(system_parts), turns

    async def complete(
        self,
        messages: List[ChatMessage],
        model: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        response_format: str = "text",
    ) -> str:
        system, turns = self.split_messages(messages)
        if response_format == "json":
            system = f"{system}\n\nRespond with a single JSON object and nothing else.".strip()

        kwargs = {
            "model": model,
            "max_tokens": max_tokens or 1024,
            "temperature": temperature,
            "messages": turns,
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self.client.messages.create(**kwargs)
        except Exception as e:
            raise ProviderError(self.name, str(e)) from e

        if not response.content:
            raise ProviderError(self.name, "Response has no content blocks")
        text = (getattr(response.content[0], "text", None) or "").strip()
        if not text:
            raise ProviderError(self.name, "Empty completion")
        return text
