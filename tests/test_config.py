"""Tests for CompanionConfig."""

import pytest
from pydantic import ValidationError

from casual_companion.config import CompanionConfig


def test_defaults():
    config = CompanionConfig()

    assert config.memory_top_k == 5
    assert config.duplicate_threshold == 0.9
    assert config.importance_threshold == 0.6
    assert config.quality_pass_threshold == 0.7
    assert config.max_re_edits == 2
    assert config.summary_interval == 15
    assert config.guardrail_mode == "words"
    assert config.max_message_chars == 10000


def test_from_env(monkeypatch):
    monkeypatch.setenv("COMPANION_MEMORY_TOP_K", "8")
    monkeypatch.setenv("COMPANION_USE_LLM_RATER", "false")
    monkeypatch.setenv("COMPANION_MEMORY_BACKEND", "qdrant")

    config = CompanionConfig.from_env()

    assert config.memory_top_k == 8
    assert config.use_llm_rater is False
    assert config.memory_backend == "qdrant"


def test_overrides_win_over_env(monkeypatch):
    monkeypatch.setenv("COMPANION_SUMMARY_INTERVAL", "10")

    assert CompanionConfig.from_env(summary_interval=4).summary_interval == 4


def test_custom_prefix(monkeypatch):
    monkeypatch.setenv("KIRA_CHAR_LIMIT", "200")
    assert CompanionConfig.from_env(prefix="KIRA_").char_limit == 200


def test_invalid_env_value(monkeypatch):
    monkeypatch.setenv("COMPANION_MAX_RE_EDITS", "5")
    with pytest.raises(ValidationError):
        CompanionConfig.from_env()
