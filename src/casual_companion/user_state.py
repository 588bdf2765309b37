from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from casual_companion.continuity.phrase_bank import PhraseBank
from casual_companion.continuity.topic_stack import TopicStack
from casual_companion.models import AffectState
from casual_companion.style.profile import StyleProfile


class UserState(BaseModel):
    """
    Everything the orchestrator tracks per user between turns.

    Loaded from a UserStateStore at the start of a turn and saved back after
    the learn phase.
    """

    user_id: str
    phrase_bank: PhraseBank = Field(default_factory=PhraseBank)
    topic_stack: TopicStack = Field(default_factory=TopicStack)
    style_profile: StyleProfile = Field(default_factory=StyleProfile)
    affect: AffectState = Field(default_factory=AffectState)
    last_backchannel_at: Optional[datetime] = None
