"""Tests for dialog act classification and turn-taking rules."""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from casual_companion.dialog.acts import (
    DialogActClassifier,
    classify_by_pattern,
    get_turn_taking_rules,
    turn_instructions,
)
from casual_companion.exceptions import AllProvidersFailedError
from casual_companion.models import ConversationMessage, Emotion
from casual_companion.providers.models import ChatResult

PENDING_QUESTION = [
    ConversationMessage(role="user", content="I got a new plant"),
    ConversationMessage(role="assistant", content="Ooh, what kind is it?"),
]


@pytest.mark.parametrize(
    "text,expected",
    [
        ("hey there", "greeting"),
        ("Good morning!", "greeting"),
        ("sorry, I meant Tuesday", "repair"),
        ("ok", "ack"),
        ("sounds good", "ack"),
        ("what time is it?", "ask"),
        ("can you recommend a book", "ask"),
        ("let's watch a movie tonight", "plan"),
        ("I have a dentist appointment on Friday", "plan"),
        ("that was a great answer", "feedback"),
        ("I'm so stressed about my exam tomorrow", "share"),
        ("purple elephants", "unknown"),
    ],
)
def test_pattern_classification(text, expected):
    assert classify_by_pattern(text) == expected


def test_ack_wins_over_answer_with_pending_question():
    assert classify_by_pattern("ok, got it", PENDING_QUESTION) == "ack"


def test_answer_requires_pending_question():
    assert classify_by_pattern("maybe a fern", PENDING_QUESTION) == "answer"
    assert classify_by_pattern("maybe a fern") == "unknown"


def test_answer_needs_assistant_question_last():
    history = PENDING_QUESTION + [ConversationMessage(role="user", content="hmm")]
    assert classify_by_pattern("maybe a fern", history) == "unknown"


def test_greeting_needs_word_boundary():
    assert classify_by_pattern("history homework is done") != "greeting"


@pytest.mark.asyncio
async def test_pattern_match_skips_llm():
    gateway = Mock()
    gateway.chat = AsyncMock()
    classifier = DialogActClassifier(gateway)

    result = await classifier.classify("ok, got it", PENDING_QUESTION)

    assert result.act == "ack"
    assert result.source == "pattern"
    assert result.confidence == 0.85
    gateway.chat.assert_not_called()


@pytest.mark.asyncio
async def test_llm_fallback_for_unmatched_text():
    gateway = Mock()
    gateway.chat = AsyncMock(
        return_value=ChatResult(
            text=json.dumps({"act": "share", "confidence": 0.72}), provider_name="mock", model="m"
        )
    )

    result = await DialogActClassifier(gateway).classify("purple elephants")

    assert result.act == "share"
    assert result.source == "llm"
    assert result.confidence == pytest.approx(0.72)


@pytest.mark.asyncio
async def test_llm_unknown_label_becomes_unknown():
    gateway = Mock()
    gateway.chat = AsyncMock(
        return_value=ChatResult(text='{"act": "rant"}', provider_name="mock", model="m")
    )

    result = await DialogActClassifier(gateway).classify("purple elephants")

    assert result.act == "unknown"
    assert result.source == "llm"


@pytest.mark.asyncio
async def test_llm_failure_falls_back_to_unknown():
    gateway = Mock()
    gateway.chat = AsyncMock(side_effect=AllProvidersFailedError(None))

    result = await DialogActClassifier(gateway).classify("purple elephants")

    assert result.act == "unknown"
    assert result.source == "fallback"
    assert result.confidence == 0.5


@pytest.mark.asyncio
async def test_llm_disabled():
    result = await DialogActClassifier(None).classify("purple elephants")
    assert result.source == "fallback"


def test_share_rules_reflect_emotion_first():
    rules = get_turn_taking_rules("share", Emotion(label="fear", score=0.85))

    assert rules.reflect_emotion
    assert rules.beats[0] == "reflect"
    assert rules.empathy == "high"
    assert rules.follow_up


def test_share_rules_with_mild_emotion():
    assert get_turn_taking_rules("share", Emotion(label="joy", score=0.6)).empathy == "medium"


def test_ask_rules_answer_first():
    rules = get_turn_taking_rules("ask")
    assert rules.answer_first
    assert rules.beats == ["answer", "detail", "followup"]


@pytest.mark.parametrize("act", ["repair", "ack", "feedback", "greeting"])
def test_short_acts_have_no_follow_up(act):
    rules = get_turn_taking_rules(act)
    assert rules.brevity == "short"
    assert not rules.follow_up


def test_unknown_act_gets_default_rules():
    assert get_turn_taking_rules("unknown").beats == ["respond", "followup"]


def test_turn_instructions():
    rules = get_turn_taking_rules("repair")
    instructions = turn_instructions("repair", rules)

    assert "Answer the question in the FIRST sentence" in instructions
    assert "Structure: apology -> correction -> continue" in instructions
    assert "NO follow-up question" in instructions
