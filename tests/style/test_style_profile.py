"""Tests for the per-user style profile."""

import pytest

from casual_companion.models import StyleVector
from casual_companion.style.profile import StyleProfile


def test_first_sample_is_taken_as_is():
    profile = StyleProfile()
    sample = StyleVector(contractions=0.4, sentence_length=6.0)

    style = profile.update(sample)

    assert style == sample
    assert profile.samples == 1
    assert profile.last_updated is not None


def test_later_samples_are_smoothed():
    profile = StyleProfile()
    profile.update(StyleVector(contractions=0.0, emoji=0.0))

    style = profile.update(StyleVector(contractions=1.0, emoji=0.5), alpha=0.3)

    assert style.contractions == pytest.approx(0.3)
    assert style.emoji == pytest.approx(0.15)
    assert profile.samples == 2


def test_new_dimension_is_adopted():
    profile = StyleProfile()
    profile.update(StyleVector(contractions=0.2))

    style = profile.update(StyleVector(hinglish=0.4))

    assert style.contractions == 0.2
    assert style.hinglish == 0.4
