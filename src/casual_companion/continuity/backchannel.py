import logging
import random
from datetime import datetime
from typing import Dict, List, Optional

from casual_companion.models import Emotion

logger = logging.getLogger(__name__)

BACKCHANNELS: List[str] = [
    "mm, ",
    "oh, ",
    "yeah, ",
    "hmm, ",
    "got it, ",
    "oh wow, ",
    "i see, ",
    "right, ",
]

EMOTION_BACKCHANNELS: Dict[str, List[str]] = {
    "sadness": ["oh no, ", "aw, ", "mm, "],
    "fear": ["hey, ", "mm, ", "okay, "],
    "anger": ["ugh, ", "yeah, ", "oh man, "],
    "joy": ["oh wow, ", "ooh, ", "yay, "],
    "surprise": ["whoa, ", "oh wow, ", "wait, "],
}

LONG_MESSAGE_WORDS = 30


class BackchannelPolicy:
    """
    Decides whether to open a reply with a short listening cue ("mm, ").

    Only emotionally charged or long user turns qualify, and then only with
    ``probability``; at most one backchannel per ``cooldown_seconds`` per user.
    """

    def __init__(
        self,
        cooldown_seconds: float = 60.0,
        probability: float = 0.2,
        rng: Optional[random.Random] = None,
    ):
        self.cooldown_seconds = cooldown_seconds
        self.probability = probability
        self._rng = rng or random.Random()

    def should_insert(
        self,
        user_text: str,
        emotion: Optional[Emotion],
        last_used_at: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> bool:
        now = now or datetime.now()
        if last_used_at is not None:
            if (now - last_used_at).total_seconds() < self.cooldown_seconds:
                return False

        is_emotional = emotion is not None and emotion.score > 0.7
        is_long = len(user_text.split()) >= LONG_MESSAGE_WORDS
        if not (is_emotional or is_long):
            return False

        return self._rng.random() < self.probability

    def choose(self, emotion: Optional[Emotion] = None) -> str:
        if emotion is not None and emotion.label in EMOTION_BACKCHANNELS:
            return self._rng.choice(EMOTION_BACKCHANNELS[emotion.label])
        return self._rng.choice(BACKCHANNELS)

    def apply(self, text: str, token: str) -> str:
        """Prefix ``text`` with ``token``, lowercasing the first letter after it."""
        if not text:
            return token.strip()
        if text[0].isupper() and not text.startswith("I "):
            text = text[0].lower() + text[1:]
        logger.debug(f"Inserted backchannel: {token!r}")
        return token + text


def all_backchannels() -> List[str]:
    """Every backchannel token, generic and emotion-keyed, without trailing space."""
    tokens = {token.strip() for token in BACKCHANNELS}
    for variants in EMOTION_BACKCHANNELS.values():
        tokens.update(token.strip() for token in variants)
    return sorted(tokens, key=len, reverse=True)
