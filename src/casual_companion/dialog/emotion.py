"""
Emotion detection and the companion's smoothed affect.

The fast model labels the user's emotion; when it fails or returns something
unusable a small lexicon gives a rough label instead. Each label carries a
fixed valence/arousal pair, and the companion's own affect moves towards it
with exponential smoothing so one message never swings the mood completely.
"""

import logging
import re
from typing import Dict, Optional, Tuple

from casual_llm import SystemMessage, UserMessage
from pydantic import BaseModel

from casual_companion.dialog.prompts import EMOTION_PROMPT, EMOTION_SYSTEM_PROMPT
from casual_companion.exceptions import CompanionError
from casual_companion.models import AffectState, Emotion, EmpathyLevel
from casual_companion.providers.gateway import ProviderGateway
from casual_companion.utils.json_output import parse_structured

logger = logging.getLogger(__name__)

# label -> (valence, arousal)
AFFECT_MAP: Dict[str, Tuple[float, float]] = {
    "joy": (0.8, 0.7),
    "sadness": (0.2, 0.3),
    "anger": (0.3, 0.8),
    "fear": (0.2, 0.7),
    "surprise": (0.6, 0.7),
    "neutral": (0.5, 0.5),
}

TONE_MAP: Dict[str, str] = {
    "joy": "playful",
    "sadness": "thoughtful",
    "anger": "candid",
    "fear": "concerned",
    "surprise": "playful",
    "neutral": "neutral",
}

MOOD_MAP: Dict[str, str] = {
    "joy": "happy",
    "sadness": "sad",
    "anger": "concerned",
    "fear": "concerned",
    "surprise": "surprised",
    "neutral": "neutral",
}

AFFECT_SMOOTHING = 0.3

LEXICON: Dict[str, re.Pattern] = {
    "fear": re.compile(
        r"\b(stress(ed|ful)?|anxious|anxiety|nervous|worried|worry|scared|afraid|panic(king)?|"
        r"terrified|overwhelmed)\b",
        re.IGNORECASE,
    ),
    "sadness": re.compile(
        r"\b(sad|down|depressed|lonely|miss(ing)?|cry(ing)?|upset|heartbroken|hurt|tired|"
        r"exhausted)\b",
        re.IGNORECASE,
    ),
    "anger": re.compile(
        r"\b(angry|mad|furious|annoyed|annoying|pissed|hate|frustrated|frustrating)\b",
        re.IGNORECASE,
    ),
    "joy": re.compile(
        r"\b(happy|glad|great|awesome|amazing|excited|love|yay|wonderful|fantastic|finally)\b",
        re.IGNORECASE,
    ),
    "surprise": re.compile(r"\b(wow|whoa|omg|no way|unbelievable|can't believe)\b", re.IGNORECASE),
}

INTENSIFIERS = re.compile(r"\b(so|really|very|super|extremely|totally)\b", re.IGNORECASE)


def make_emotion(label: str, score: float, source: str) -> Emotion:
    """Emotion with the valence and arousal of its label."""
    if label not in AFFECT_MAP:
        label = "neutral"
    valence, arousal = AFFECT_MAP[label]
    return Emotion(
        label=label,
        score=min(1.0, max(0.0, score)),
        valence=valence,
        arousal=arousal,
        source=source,
    )


def lexical_emotion(text: str) -> Emotion:
    """Rough emotion from keyword hits, used when the model is unavailable."""
    best_label = "neutral"
    best_hits = 0
    for label, pattern in LEXICON.items():
        hits = len(pattern.findall(text))
        if hits > best_hits:
            best_label, best_hits = label, hits

    if best_hits == 0:
        return make_emotion("neutral", 0.5, "lexicon")

    score = 0.6 + 0.1 * (best_hits - 1)
    if INTENSIFIERS.search(text):
        score += 0.15
    if "!" in text:
        score += 0.05
    return make_emotion(best_label, min(score, 0.95), "lexicon")


class _LLMEmotion(BaseModel):
    emotion: str = "neutral"
    intensity: float = 0.5


class EmotionDetector:
    def __init__(self, gateway: Optional[ProviderGateway] = None):
        self.gateway = gateway

    async def detect(self, text: str) -> Emotion:
        """
        Label the emotion of a user message.

        Never raises; falls back to the lexicon and finally to neutral.
        """
        if not text or not text.strip():
            return Emotion()

        if self.gateway is None:
            return lexical_emotion(text)

        messages = [
            SystemMessage(content=EMOTION_SYSTEM_PROMPT),
            UserMessage(content=EMOTION_PROMPT.format(text=text)),
        ]
        try:
            result = await self.gateway.chat(
                messages,
                model_class="fast",
                temperature=0.3,
                max_tokens=50,
                response_format="json",
            )
            parsed = parse_structured(result.text, _LLMEmotion)
        except CompanionError as e:
            logger.warning(f"Emotion detection failed, using lexicon: {e}")
            return lexical_emotion(text)

        label = parsed.emotion.strip().lower()
        if label not in AFFECT_MAP:
            logger.debug(f"Unknown emotion label '{parsed.emotion}', using lexicon")
            return lexical_emotion(text)

        return make_emotion(label, parsed.intensity, "llm")


def emotion_to_tone(emotion: Emotion) -> str:
    return TONE_MAP.get(emotion.label, "neutral")


def empathy_level(emotion: Emotion) -> EmpathyLevel:
    """How much empathy a reply to this emotion should carry."""
    if emotion.score < 0.6:
        return "medium"
    if emotion.label in ("sadness", "fear", "anger"):
        return "high" if emotion.score > 0.8 else "medium"
    return "low" if emotion.label == "neutral" else "medium"


def update_affect(
    previous: AffectState, emotion: Emotion, smoothing: float = AFFECT_SMOOTHING
) -> AffectState:
    """Move the affect state towards the emotion's valence/arousal."""
    return AffectState(
        mood=MOOD_MAP.get(emotion.label, "neutral"),
        valence=(1 - smoothing) * previous.valence + smoothing * emotion.valence,
        arousal=(1 - smoothing) * previous.arousal + smoothing * emotion.arousal,
    )
