import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

MemoryType = Literal["fact", "preference", "plan", "promise", "inside_joke", "sentiment"]
MEMORY_TYPES: tuple = ("fact", "preference", "plan", "promise", "inside_joke", "sentiment")

DialogAct = Literal[
    "ask", "answer", "ack", "repair", "plan", "feedback", "share", "greeting", "unknown"
]
Brevity = Literal["short", "medium", "long"]
EmpathyLevel = Literal["low", "medium", "high"]
EmotionLabel = Literal["joy", "sadness", "anger", "fear", "surprise", "neutral"]


def new_memory_id() -> str:
    return str(uuid.uuid4())


class MemoryEdge(BaseModel):
    """Link between two memories of the same user."""

    target_id: str
    type: str = "semantic"
    weight: float = 1.0


class MemoryNode(BaseModel):
    id: str = Field(default_factory=new_memory_id)
    user_id: str = Field(..., description="Owner of this memory (per-user isolation)")
    type: MemoryType
    content: str
    embedding: List[float] = Field(default_factory=list)
    importance: float = Field(
        default=0.0, ge=0.0, le=1.0, description="How worth-remembering this memory is"
    )
    repetitions: int = Field(
        default=1, ge=1, description="Number of times this memory has been written"
    )
    created_at: datetime = Field(default_factory=datetime.now)
    last_accessed_at: datetime = Field(default_factory=datetime.now)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    edges: List[MemoryEdge] = Field(default_factory=list)

    def add_edge(self, target_id: str, edge_type: str = "related", weight: float = 1.0) -> bool:
        """Add an edge unless one to ``target_id`` already exists."""
        if any(edge.target_id == target_id for edge in self.edges):
            return False
        self.edges.append(MemoryEdge(target_id=target_id, type=edge_type, weight=weight))
        return True


class ScoredMemory(BaseModel):
    """A retrieved memory with its combined ranking score and breakdown."""

    node: MemoryNode
    score: float
    cosine: float
    recency: float
    importance: float


class MemoryCandidate(BaseModel):
    """A memory extracted from a turn, before the write gate decides on it."""

    type: MemoryType
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class StyleVector(BaseModel):
    """
    Linguistic style features of a piece of text.

    Ratio dimensions are bounded to [0, 1]; sentence_length is the average
    number of words per sentence. A dimension left as None has no data.
    """

    contractions: Optional[float] = None
    emoji: Optional[float] = None
    punctuation: Optional[float] = None
    formality: Optional[float] = None
    sentence_length: Optional[float] = None
    question_marks: Optional[float] = None
    capitalization: Optional[float] = None
    hinglish: Optional[float] = None
    hedge_words: Optional[float] = None

    def dimensions(self) -> Dict[str, float]:
        """Dimensions that carry a value."""
        return self.model_dump(exclude_none=True)


class Emotion(BaseModel):
    label: EmotionLabel = "neutral"
    score: float = Field(default=0.5, ge=0.0, le=1.0, description="Intensity")
    valence: float = Field(default=0.5, ge=0.0, le=1.0)
    arousal: float = Field(default=0.5, ge=0.0, le=1.0)
    source: str = "default"

    @property
    def is_negative(self) -> bool:
        return self.valence < 0.5

    @property
    def is_high_arousal(self) -> bool:
        return self.arousal >= 0.6

    @property
    def is_charged(self) -> bool:
        return self.score > 0.7


class AffectState(BaseModel):
    """Smoothed mood of the companion towards one user (sent as a control event)."""

    mood: str = "neutral"
    valence: float = Field(default=0.5, ge=0.0, le=1.0)
    arousal: float = Field(default=0.5, ge=0.0, le=1.0)


class DialogActResult(BaseModel):
    act: DialogAct
    confidence: float
    source: Literal["pattern", "llm", "fallback"]


class TurnRules(BaseModel):
    """Turn-taking rules derived from the dialog act of the user turn."""

    beats: List[str] = Field(default_factory=list)
    answer_first: bool = False
    reflect_emotion: bool = False
    brevity: Brevity = "medium"
    follow_up: bool = False
    empathy: EmpathyLevel = "medium"


class ConversationPlan(BaseModel):
    intent: str = "respond"
    tone: str = "neutral"
    brevity: Brevity = "medium"
    empathy: EmpathyLevel = "medium"
    beats: List[str] = Field(default_factory=list)
    avoid: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    @classmethod
    def default(cls, rules: Optional[TurnRules] = None) -> "ConversationPlan":
        """Conservative plan used when the planner output is unusable."""
        if rules is None:
            return cls(beats=["respond"])
        return cls(brevity=rules.brevity, empathy=rules.empathy, beats=list(rules.beats))


class ConversationMessage(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)


class Conversation(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    summary: str = ""
    created_at: datetime = Field(default_factory=datetime.now)
    last_user_at: Optional[datetime] = None
