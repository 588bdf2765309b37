from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ModelClass = Literal["fast", "quality", "balanced"]
ResponseFormat = Literal["text", "json"]


class ProviderStats(BaseModel):
    requests: int = 0
    errors: int = 0
    last_used: Optional[datetime] = None
    last_error: Optional[str] = None


class ProviderAttempt(BaseModel):
    """Outcome of trying one backend during a chat call."""

    provider: str
    model: str
    ok: bool
    error: Optional[str] = None


class ChatResult(BaseModel):
    text: str
    provider_name: str
    model: str
    attempts: List[ProviderAttempt] = Field(default_factory=list)


class ProviderInfo(BaseModel):
    """Health snapshot of one registered backend."""

    name: str
    enabled: bool
    priority: int
    models: dict
    stats: ProviderStats
