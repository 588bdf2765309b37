"""
Error taxonomy for casual-companion.

Only InputRejectedError is meant to reach the caller of the orchestrator.
Everything else is recovered inside the pipeline (failover, default values,
or the persona fallback message).
"""

from typing import List, Optional


class CompanionError(Exception):
    """Base class for all casual-companion errors."""


class ProviderError(CompanionError):
    """A single chat backend failed (timeout, non-2xx, malformed payload)."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class AllProvidersFailedError(CompanionError):
    """Every registered backend failed for one chat call."""

    def __init__(self, last_error: Optional[BaseException], attempts: Optional[List] = None):
        detail = str(last_error) if last_error else "No providers available"
        super().__init__(f"All providers failed. Last error: {detail}")
        self.last_error = last_error
        self.attempts = attempts or []


class StructuredOutputError(CompanionError):
    """An LLM response that must be strict JSON could not be parsed or validated."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class EmbeddingError(CompanionError):
    """The embedding service failed to produce a vector."""


class InputRejectedError(CompanionError):
    """Pre-flight validation rejected the user message."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
