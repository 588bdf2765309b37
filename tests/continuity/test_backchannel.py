"""Tests for the backchannel policy."""

import random
from datetime import datetime, timedelta

from casual_companion.continuity.backchannel import (
    EMOTION_BACKCHANNELS,
    BackchannelPolicy,
    all_backchannels,
)
from casual_companion.models import Emotion

NOW = datetime(2024, 6, 1, 12, 0, 0)
CHARGED = Emotion(label="sadness", score=0.9, valence=0.2, arousal=0.3)
CALM = Emotion(label="neutral", score=0.5)


def test_charged_emotion_qualifies():
    policy = BackchannelPolicy(probability=1.0)
    assert policy.should_insert("I miss her", CHARGED, None, NOW)


def test_long_message_qualifies_without_emotion():
    policy = BackchannelPolicy(probability=1.0)
    text = " ".join(["word"] * 30)
    assert policy.should_insert(text, CALM, None, NOW)


def test_short_calm_message_never_qualifies():
    policy = BackchannelPolicy(probability=1.0)
    assert not policy.should_insert("what's up", CALM, None, NOW)


def test_cooldown_blocks_second_backchannel():
    policy = BackchannelPolicy(cooldown_seconds=60, probability=1.0)

    assert not policy.should_insert("I miss her", CHARGED, NOW - timedelta(seconds=30), NOW)
    assert policy.should_insert("I miss her", CHARGED, NOW - timedelta(seconds=61), NOW)


def test_probability_gate():
    policy = BackchannelPolicy(probability=0.0, rng=random.Random(1))
    assert not policy.should_insert("I miss her", CHARGED, None, NOW)


def test_choose_uses_emotion_variants():
    policy = BackchannelPolicy(rng=random.Random(3))
    assert policy.choose(CHARGED) in EMOTION_BACKCHANNELS["sadness"]


def test_apply_lowercases_first_letter():
    policy = BackchannelPolicy()
    assert policy.apply("That sounds rough.", "mm, ") == "mm, that sounds rough."


def test_apply_keeps_capital_i():
    policy = BackchannelPolicy()
    assert policy.apply("I get it.", "oh, ") == "oh, I get it."


def test_all_backchannels_longest_first():
    tokens = all_backchannels()
    assert "oh wow," in tokens
    assert tokens.index("oh wow,") < tokens.index("oh,")
