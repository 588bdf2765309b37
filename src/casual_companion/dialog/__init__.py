"""Perception of the user turn: dialog act, emotion and affect."""

from casual_companion.dialog.acts import (
    DialogActClassifier,
    classify_by_pattern,
    get_turn_taking_rules,
    turn_instructions,
)
from casual_companion.dialog.emotion import (
    EmotionDetector,
    emotion_to_tone,
    empathy_level,
    lexical_emotion,
    update_affect,
)

__all__ = [
    "DialogActClassifier",
    "EmotionDetector",
    "classify_by_pattern",
    "emotion_to_tone",
    "empathy_level",
    "get_turn_taking_rules",
    "lexical_emotion",
    "turn_instructions",
    "update_affect",
]
