"""
Provider gateway: one chat call over many LLM backends.

Backends are tried in descending priority. A failing backend is recorded and
skipped; only when every enabled backend fails does the call raise
AllProvidersFailedError.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from casual_llm import ChatMessage, Provider

from casual_companion.exceptions import AllProvidersFailedError, ProviderError
from casual_companion.providers.backends import AnthropicBackend, CasualLLMBackend, ChatBackend
from casual_companion.providers.models import (
    ChatResult,
    ModelClass,
    ProviderAttempt,
    ProviderInfo,
    ProviderStats,
)

logger = logging.getLogger(__name__)


@dataclass
class ProviderPreset:
    base_url: Optional[str]
    api_key_env: str
    priority: int
    models: Dict[str, str]


PROVIDER_PRESETS: Dict[str, ProviderPreset] = {
    "groq": ProviderPreset(
        base_url="https://api.groq.com/openai/v1",
        api_key_env="GROQ_API_KEY",
        priority=100,
        models={
            "fast": "llama-3.1-8b-instant",
            "quality": "llama-3.1-70b-versatile",
            "balanced": "mixtral-8x7b-32768",
        },
    ),
    "openrouter": ProviderPreset(
        base_url="https://openrouter.ai/api/v1",
        api_key_env="OPENROUTER_API_KEY",
        priority=90,
        models={
            "fast": "meta-llama/llama-3.1-8b-instruct:free",
            "quality": "meta-llama/llama-3.1-70b-instruct:free",
            "balanced": "google/gemma-2-9b-it:free",
        },
    ),
    "nvidia": ProviderPreset(
        base_url="https://integrate.api.nvidia.com/v1",
        api_key_env="NVIDIA_API_KEY",
        priority=85,
        models={
            "fast": "meta/llama-3.1-8b-instruct",
            "quality": "meta/llama-3.1-70b-instruct",
            "balanced": "mistralai/mixtral-8x7b-instruct-v0.1",
        },
    ),
    "together": ProviderPreset(
        base_url="https://api.together.xyz/v1",
        api_key_env="TOGETHER_API_KEY",
        priority=80,
        models={
            "fast": "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo",
            "quality": "meta-llama/Meta-Llama-3.1-70B-Instruct-Turbo",
            "balanced": "mistralai/Mixtral-8x7B-Instruct-v0.1",
        },
    ),
    "fireworks": ProviderPreset(
        base_url="https://api.fireworks.ai/inference/v1",
        api_key_env="FIREWORKS_API_KEY",
        priority=75,
        models={
            "fast": "accounts/fireworks/models/llama-v3-8b-instruct",
            "quality": "accounts/fireworks/models/mixtral-8x7b-instruct",
            "balanced": "accounts/fireworks/models/llama-v3-8b-instruct",
        },
    ),
    "openai": ProviderPreset(
        base_url=None,
        api_key_env="OPENAI_API_KEY",
        priority=70,
        models={"fast": "gpt-4o-mini", "quality": "gpt-4o", "balanced": "gpt-3.5-turbo"},
    ),
    "anthropic": ProviderPreset(
        base_url=None,
        api_key_env="ANTHROPIC_API_KEY",
        priority=65,
        models={
            "fast": "claude-3-haiku-20240307",
            "quality": "claude-3-opus-20240229",
            "balanced": "claude-3-sonnet-20240229",
        },
    ),
}

OLLAMA_PRIORITY = 10


@dataclass
class ProviderHandle:
    """A registered backend with its priority, model map and counters."""

    name: str
    backend: ChatBackend
    priority: int
    models: Dict[str, str]
    enabled: bool = True
    stats: ProviderStats = field(default_factory=ProviderStats)

    def model_for(self, model_class: str) -> str:
        return self.models.get(model_class) or self.models.get("fast") or next(
            iter(self.models.values())
        )


class ProviderGateway:
    """
    Priority-ordered failover across chat backends.

    Example:
        >>> gateway = ProviderGateway()
        >>> gateway.register("groq", CasualLLMBackend("groq", base_url=..., api_key=...),
        ...                  priority=100, models=PROVIDER_PRESETS["groq"].models)
        >>> result = await gateway.chat(messages, model_class="quality")
        >>> result.provider_name
        'groq'
    """

    def __init__(self):
        self._handles: Dict[str, ProviderHandle] = {}

    def register(
        self,
        name: str,
        backend: ChatBackend,
        priority: int,
        models: Dict[str, str],
        enabled: bool = True,
    ) -> ProviderHandle:
        if not models:
            raise ValueError(f"Provider {name} needs at least one model")
        handle = ProviderHandle(
            name=name, backend=backend, priority=priority, models=dict(models), enabled=enabled
        )
        self._handles[name] = handle
        logger.info(f"Registered provider {name} (priority={priority})")
        return handle

    def unregister(self, name: str) -> bool:
        return self._handles.pop(name, None) is not None

    def set_enabled(self, name: str, enabled: bool) -> bool:
        handle = self._handles.get(name)
        if handle is None:
            return False
        handle.enabled = enabled
        logger.info(f"Provider {name} {'enabled' if enabled else 'disabled'}")
        return True

    def ordered(self) -> List[ProviderHandle]:
        """Enabled handles, highest priority first."""
        handles = [handle for handle in self._handles.values() if handle.enabled]
        return sorted(handles, key=lambda handle: handle.priority, reverse=True)

    def get_providers(self) -> List[ProviderInfo]:
        return [
            ProviderInfo(
                name=handle.name,
                enabled=handle.enabled,
                priority=handle.priority,
                models=dict(handle.models),
                stats=handle.stats.model_copy(),
            )
            for handle in sorted(
                self._handles.values(), key=lambda handle: handle.priority, reverse=True
            )
        ]

    async def chat(
        self,
        messages: List[ChatMessage],
        model_class: ModelClass = "fast",
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        response_format: str = "text",
    ) -> ChatResult:
        """
        Complete ``messages`` with the first backend that succeeds.

        Args:
            messages: casual-llm chat messages
            model_class: "fast", "quality" or "balanced", mapped per backend
            temperature: Sampling temperature
            max_tokens: Output token cap
            response_format: "text" or "json"

        Returns:
            ChatResult with the text, the backend used and every attempt

        Raises:
            AllProvidersFailedError: No enabled backend produced a completion
        """
        attempts: List[ProviderAttempt] = []
        last_error: Optional[BaseException] = None

        for handle in self.ordered():
            model = handle.model_for(model_class)
            handle.stats.requests += 1
            handle.stats.last_used = datetime.now()
            try:
                text = await handle.backend.complete(
                    messages,
                    model=model,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    response_format=response_format,
                )
            except Exception as e:
                error = e if isinstance(e, ProviderError) else ProviderError(handle.name, str(e))
                handle.stats.errors += 1
                handle.stats.last_error = str(error)
                attempts.append(
                    ProviderAttempt(provider=handle.name, model=model, ok=False, error=str(error))
                )
                last_error = error
                logger.warning(f"Provider {handle.name} failed, trying next: {error}")
                continue

            attempts.append(ProviderAttempt(provider=handle.name, model=model, ok=True))
            logger.debug(f"Provider {handle.name} answered ({model_class} -> {model})")
            return ChatResult(text=text, provider_name=handle.name, model=model, attempts=attempts)

        logger.error(f"All providers failed after {len(attempts)} attempts")
        raise AllProvidersFailedError(last_error, attempts)


def build_gateway_from_env() -> ProviderGateway:
    """
    Register one backend per provider API key found in the environment.

    ``OLLAMA_ENDPOINT`` adds a local Ollama backend (lowest priority) whose
    models default to ``OLLAMA_MODEL`` (``llama3.1``).
    """
    gateway = ProviderGateway()

    for name, preset in PROVIDER_PRESETS.items():
        api_key = os.getenv(preset.api_key_env)
        if not api_key:
            continue
        if name == "anthropic":
            backend: ChatBackend = AnthropicBackend(api_key=api_key)
        else:
            backend = CasualLLMBackend(
                name, provider=Provider.OPENAI, base_url=preset.base_url, api_key=api_key
            )
        gateway.register(name, backend, priority=preset.priority, models=preset.models)

    ollama_endpoint = os.getenv("OLLAMA_ENDPOINT")
    if ollama_endpoint:
        model = os.getenv("OLLAMA_MODEL", "llama3.1")
        gateway.register(
            "ollama",
            CasualLLMBackend("ollama", provider=Provider.OLLAMA, base_url=ollama_endpoint),
            priority=OLLAMA_PRIORITY,
            models={"fast": model, "quality": model, "balanced": model},
        )

    if not gateway.ordered():
        logger.warning("No LLM provider configured; every turn will use the fallback reply")
    return gateway
