import re
from typing import List, Optional

from pydantic import BaseModel, Field

STOPWORDS = {
    "about", "after", "again", "already", "always", "because", "before", "being",
    "could", "doing", "going", "gonna", "having", "maybe", "other", "really",
    "should", "something", "still", "their", "there", "these", "thing", "things",
    "think", "those", "today", "tomorrow", "wanna", "where", "which", "while",
    "would", "yesterday",
}


def extract_topic(text: str, max_words: int = 3) -> str:
    """
    Cheap topic label: the first content words longer than four letters.

    Returns an empty string when the text has no such words.
    """
    words = re.findall(r"[a-z']+", text.lower())
    content = [word for word in words if len(word) > 4 and word not in STOPWORDS]
    return " ".join(content[:max_words])


class TopicCallback(BaseModel):
    topic: str
    similarity: float
    callback: str


class TopicStack(BaseModel):
    """Three most recent topics, newest first: current, last, latent."""

    slots: List[str] = Field(default_factory=list)
    depth: int = 3

    def push(self, topic: str) -> None:
        if not topic:
            return
        self.slots.insert(0, topic)
        del self.slots[self.depth :]

    @property
    def current(self) -> Optional[str]:
        return self.slots[0] if len(self.slots) > 0 else None

    @property
    def last(self) -> Optional[str]:
        return self.slots[1] if len(self.slots) > 1 else None

    @property
    def latent(self) -> Optional[str]:
        return self.slots[2] if len(self.slots) > 2 else None

    def check_latent_match(self, text: str) -> Optional[TopicCallback]:
        """
        Suggest a callback when ``text`` comes back to the latent topic.

        Similarity is the word overlap divided by the larger of the two word
        sets; it must exceed 0.5.
        """
        latent = self.latent
        if not latent:
            return None

        latent_words = set(latent.lower().split())
        text_words = set(text.lower().split())
        if not text_words:
            return None

        similarity = len(latent_words & text_words) / max(len(latent_words), len(text_words))
        if similarity > 0.5:
            return TopicCallback(
                topic=latent,
                similarity=similarity,
                callback=f"By the way, did {latent} get sorted?",
            )
        return None
