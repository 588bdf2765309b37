"""
Configuration for casual-companion.

Every tunable of the pipeline lives on CompanionConfig with its production
default. ``CompanionConfig.from_env()`` overrides fields from ``COMPANION_*``
environment variables (``COMPANION_MEMORY_TOP_K=8`` sets ``memory_top_k``).
"""

import logging
import os
from typing import Literal, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ENV_PREFIX = "COMPANION_"


class CompanionConfig(BaseModel):
    # Memory store
    memory_top_k: int = Field(5, ge=1, description="Memories recalled per turn")
    duplicate_threshold: float = Field(
        0.9, description="Cosine at or above which a write repeats a node"
    )
    link_threshold: float = Field(0.7, description="Cosine above which nodes get a semantic edge")
    importance_threshold: float = Field(0.6, description="Write gate importance threshold")
    recency_tau_days: float = 14.0
    decay_tau_days: float = 30.0
    decay_max_importance: float = 0.7
    rehearsal_idle_days: float = 7.0
    rehearsal_min_importance: float = 0.75
    rehearsal_count: int = 3
    pending_candidates: int = Field(50, description="Rejected candidates remembered per user")

    # Style matching
    style_smoothing: float = Field(0.3, ge=0.0, le=1.0)
    style_blend_weight: float = Field(0.8, ge=0.0, le=1.0)

    # Anti-repetition
    phrase_bank_tokens: int = 1000
    avoid_list_limit: int = 20

    # Quality
    quality_pass_threshold: float = 0.7
    max_re_edits: int = Field(2, ge=0, le=2)
    use_llm_rater: bool = True
    analytics_sample_rate: float = Field(0.1, ge=0.0, le=1.0)

    # Post-processing
    backchannel_cooldown_seconds: float = 60.0
    backchannel_probability: float = Field(0.2, ge=0.0, le=1.0)
    guardrail_mode: Literal["words", "chars"] = "words"
    char_limit: int = 160

    # Input validation
    max_message_chars: int = Field(10000, ge=1, description="Longest accepted user message")

    # Learning
    summary_interval: int = Field(15, ge=1)
    history_window: int = 20

    # Delivery
    token_delay_min: float = 0.05
    token_delay_max: float = 0.15

    # Dialog acts
    llm_dialog_fallback: bool = True

    # Backends
    memory_backend: Literal["memory", "file", "qdrant"] = "memory"
    memory_file_path: str = "data/memories.json"
    qdrant_host: str = "localhost"
    qdrant_port: int = 6333
    qdrant_collection: str = "companion_memories"
    conversation_backend: Literal["memory", "sqlalchemy"] = "memory"
    database_url: str = "sqlite:///companion.db"
    user_state_backend: Literal["memory", "redis"] = "memory"
    redis_host: str = "localhost"
    redis_port: int = 6379

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, **overrides) -> "CompanionConfig":
        """
        Build a config from environment variables.

        Args:
            prefix: Environment variable prefix
            **overrides: Values that win over the environment

        Returns:
            Validated CompanionConfig
        """
        values = {}
        for name in cls.model_fields:
            raw: Optional[str] = os.getenv(f"{prefix}{name.upper()}")
            if raw is not None:
                values[name] = raw
        values.update(overrides)

        config = cls.model_validate(values)
        logger.info(
            f"Config loaded (memory={config.memory_backend}, "
            f"conversations={config.conversation_backend}, state={config.user_state_backend})"
        )
        return config
