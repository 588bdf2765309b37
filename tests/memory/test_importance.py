"""Tests for importance scoring and the write gate."""

import pytest

from casual_companion.memory.importance import calculate_importance, passes_write_gate


@pytest.mark.parametrize(
    "memory_type,expected",
    [
        ("promise", 0.95),
        ("plan", 0.9),
        ("inside_joke", 0.85),
        ("fact", 0.8),
        ("preference", 0.75),
        ("sentiment", 0.6),
        ("gossip", 0.5),
    ],
)
def test_type_weights_without_boosts(memory_type, expected):
    assert calculate_importance(memory_type, "the bus was on time") == pytest.approx(expected)


def test_keyword_boost():
    assert calculate_importance("fact", "My sister's birthday is in May") == pytest.approx(0.9)


def test_keyword_matches_word_prefix():
    assert calculate_importance("sentiment", "I loved that movie") == pytest.approx(0.7)


def test_commitment_boost():
    assert calculate_importance("sentiment", "I will try harder") == pytest.approx(0.8)


def test_repetition_boosts():
    assert calculate_importance("sentiment", "meh day", repetitions=2) == pytest.approx(0.75)
    assert calculate_importance("sentiment", "meh day", repetitions=3) == pytest.approx(0.85)


def test_importance_is_capped():
    assert calculate_importance("promise", "I promise I'll never forget your birthday") == 1.0


def test_write_gate_boundary_is_inclusive():
    assert passes_write_gate(0.6, 1)
    assert not passes_write_gate(0.59, 1)


def test_write_gate_accepts_second_mention():
    assert passes_write_gate(0.1, 2)
