"""Tests for emotion detection and affect smoothing."""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from casual_companion.dialog.emotion import (
    EmotionDetector,
    emotion_to_tone,
    empathy_level,
    lexical_emotion,
    make_emotion,
    update_affect,
)
from casual_companion.exceptions import AllProvidersFailedError
from casual_companion.models import AffectState, Emotion
from casual_companion.providers.models import ChatResult


def mock_gateway(payload) -> Mock:
    gateway = Mock()
    text = payload if isinstance(payload, str) else json.dumps(payload)
    gateway.chat = AsyncMock(return_value=ChatResult(text=text, provider_name="mock", model="m"))
    return gateway


def test_make_emotion_uses_affect_map():
    emotion = make_emotion("fear", 0.8, "llm")

    assert (emotion.valence, emotion.arousal) == (0.2, 0.7)
    assert emotion.is_negative
    assert emotion.is_high_arousal


def test_make_emotion_clamps_and_defaults():
    emotion = make_emotion("ennui", 1.7, "llm")
    assert emotion.label == "neutral"
    assert emotion.score == 1.0


def test_lexicon_detects_stress_as_fear():
    emotion = lexical_emotion("I'm so stressed about my exam tomorrow")

    assert emotion.label == "fear"
    # one hit + intensifier
    assert emotion.score == pytest.approx(0.75)
    assert emotion.source == "lexicon"


def test_lexicon_neutral_without_hits():
    emotion = lexical_emotion("The train leaves at noon")
    assert emotion.label == "neutral"
    assert emotion.score == 0.5


def test_lexicon_score_is_capped():
    emotion = lexical_emotion("sad sad sad sad sad sad, really sad!")
    assert emotion.score == 0.95


@pytest.mark.asyncio
async def test_detect_with_llm():
    detector = EmotionDetector(mock_gateway({"emotion": "Joy", "intensity": 0.9}))

    emotion = await detector.detect("I got the job!!")

    assert emotion.label == "joy"
    assert emotion.score == 0.9
    assert emotion.source == "llm"


@pytest.mark.asyncio
async def test_detect_falls_back_to_lexicon_on_failure():
    gateway = Mock()
    gateway.chat = AsyncMock(side_effect=AllProvidersFailedError(None))

    emotion = await EmotionDetector(gateway).detect("I'm really worried")

    assert emotion.label == "fear"
    assert emotion.source == "lexicon"


@pytest.mark.asyncio
async def test_detect_falls_back_on_unknown_label():
    emotion = await EmotionDetector(mock_gateway({"emotion": "smug"})).detect("I feel so sad")
    assert emotion.label == "sadness"


@pytest.mark.asyncio
async def test_detect_falls_back_on_invalid_json():
    emotion = await EmotionDetector(mock_gateway("joy, probably")).detect("ugh this is annoying")
    assert emotion.label == "anger"


@pytest.mark.asyncio
async def test_detect_empty_text_is_neutral():
    gateway = mock_gateway({"emotion": "joy"})

    emotion = await EmotionDetector(gateway).detect("  ")

    assert emotion == Emotion()
    gateway.chat.assert_not_called()


def test_emotion_to_tone():
    assert emotion_to_tone(make_emotion("fear", 0.8, "llm")) == "concerned"
    assert emotion_to_tone(Emotion()) == "neutral"


@pytest.mark.parametrize(
    "label,score,expected",
    [
        ("sadness", 0.9, "high"),
        ("fear", 0.7, "medium"),
        ("anger", 0.5, "medium"),
        ("joy", 0.9, "medium"),
        ("neutral", 0.7, "low"),
    ],
)
def test_empathy_level(label, score, expected):
    assert empathy_level(make_emotion(label, score, "llm")) == expected


def test_update_affect_smooths_towards_emotion():
    affect = update_affect(AffectState(), make_emotion("sadness", 0.9, "llm"))

    assert affect.mood == "sad"
    assert affect.valence == pytest.approx(0.7 * 0.5 + 0.3 * 0.2)
    assert affect.arousal == pytest.approx(0.7 * 0.5 + 0.3 * 0.3)
