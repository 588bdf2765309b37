"""LLM provider gateway with priority-ordered failover."""

from casual_companion.providers.backends import AnthropicBackend, CasualLLMBackend, ChatBackend
from casual_companion.providers.gateway import (
    PROVIDER_PRESETS,
    ProviderGateway,
    ProviderHandle,
    build_gateway_from_env,
)
from casual_companion.providers.models import (
    ChatResult,
    ProviderAttempt,
    ProviderInfo,
    ProviderStats,
)

__all__ = [
    "AnthropicBackend",
    "CasualLLMBackend",
    "ChatBackend",
    "ChatResult",
    "PROVIDER_PRESETS",
    "ProviderAttempt",
    "ProviderGateway",
    "ProviderHandle",
    "ProviderInfo",
    "ProviderStats",
    "build_gateway_from_env",
]
