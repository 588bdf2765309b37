"""
casual-companion: Humanized AI companion replies from a multi-stage LLM pipeline.

Core components:
- pipeline: Response orchestrator (perceive, recall, plan, draft, edit, rate, post-process)
- memory: Per-user memory graph with importance scoring, decay and rehearsal
- providers: LLM provider gateway with priority-ordered failover
- style: Linguistic style matching
- dialog: Dialog act classification, turn-taking rules, emotion and affect
- continuity: Phrase bank, topic stack and backchannels
- quality: Heuristic and model-based reply rating
- storage: Protocol abstractions for memory nodes, conversations and user state
"""

__version__ = "0.1.0"

from casual_companion.config import CompanionConfig
from casual_companion.exceptions import (
    AllProvidersFailedError,
    CompanionError,
    EmbeddingError,
    InputRejectedError,
    ProviderError,
    StructuredOutputError,
)
from casual_companion.models import (
    AffectState,
    ConversationPlan,
    DialogActResult,
    Emotion,
    MemoryNode,
    ScoredMemory,
    StyleVector,
    TurnRules,
)
from casual_companion.persona import DEFAULT_PERSONA, Persona
from casual_companion.pipeline import ResponseOrchestrator, TurnEvent, TurnResult, TurnStream
from casual_companion.user_state import UserState

__all__ = [
    "__version__",
    # Config
    "CompanionConfig",
    # Errors
    "AllProvidersFailedError",
    "CompanionError",
    "EmbeddingError",
    "InputRejectedError",
    "ProviderError",
    "StructuredOutputError",
    # Models
    "AffectState",
    "ConversationPlan",
    "DialogActResult",
    "Emotion",
    "MemoryNode",
    "ScoredMemory",
    "StyleVector",
    "TurnRules",
    "UserState",
    # Persona
    "DEFAULT_PERSONA",
    "Persona",
    # Pipeline
    "ResponseOrchestrator",
    "TurnEvent",
    "TurnResult",
    "TurnStream",
]
