"""Tests for QualityRater."""

import json
import random
from unittest.mock import AsyncMock, Mock

import pytest

from casual_companion.exceptions import AllProvidersFailedError
from casual_companion.models import Emotion
from casual_companion.providers.models import ChatResult
from casual_companion.quality.heuristics import evaluate_response
from casual_companion.quality.rater import QualityRater

USER_TEXT = "I had a rough day"
RESPONSE = "Ugh, I'm sorry. Rough days are the worst. Want to tell me what happened?"


def rating_gateway(**scores) -> Mock:
    gateway = Mock()
    gateway.chat = AsyncMock(
        return_value=ChatResult(text=json.dumps(scores), provider_name="test", model="fast-model")
    )
    return gateway


def failing_gateway() -> Mock:
    gateway = Mock()
    gateway.chat = AsyncMock(side_effect=AllProvidersFailedError(None))
    return gateway


@pytest.mark.asyncio
async def test_rate_with_llm_weights_dimensions():
    gateway = rating_gateway(
        empathy=0.9, directness=0.8, brevity=0.7, humanness=0.6, feedback="Solid"
    )
    rater = QualityRater(gateway)

    rating = await rater.rate_with_llm(USER_TEXT, RESPONSE, emotion=Emotion(label="sadness", score=0.8))

    assert rating.overall == pytest.approx(0.76)
    assert rating.passed
    assert rating.grade == "B"
    assert rating.feedback == "Solid"
    assert rating.source == "llm"
    assert rating.failing(0.7) == ["humanness"]

    kwargs = gateway.chat.call_args.kwargs
    assert kwargs["model_class"] == "fast"
    assert kwargs["response_format"] == "json"
    prompt = gateway.chat.call_args.args[0][-1].content
    assert "EMOTION: sadness (0.80)" in prompt


@pytest.mark.asyncio
async def test_scores_are_clamped():
    gateway = rating_gateway(empathy=1.4, directness=-0.2, brevity=1.0, humanness=1.0)

    rating = await QualityRater(gateway).rate_with_llm(USER_TEXT, RESPONSE)

    assert rating.empathy == 1.0
    assert rating.directness == 0.0


@pytest.mark.asyncio
async def test_failed_rating_returns_default():
    rating = await QualityRater(failing_gateway()).rate_with_llm(USER_TEXT, RESPONSE)

    assert rating.source == "default"
    assert rating.overall == 0.7


@pytest.mark.asyncio
async def test_unparseable_rating_returns_default():
    gateway = Mock()
    gateway.chat = AsyncMock(
        return_value=ChatResult(text="Pretty good I think", provider_name="test", model="m")
    )

    rating = await QualityRater(gateway).rate_with_llm(USER_TEXT, RESPONSE)

    assert rating.source == "default"


@pytest.mark.asyncio
async def test_rate_without_gateway_uses_heuristics_only():
    rater = QualityRater(None)

    rating = await rater.rate(USER_TEXT, RESPONSE, brevity="short")

    heuristic = evaluate_response(USER_TEXT, RESPONSE, brevity="short")
    assert rating.llm is None
    assert rating.overall == pytest.approx(heuristic.overall)
    assert rating.failing == heuristic.failing


@pytest.mark.asyncio
async def test_rate_averages_heuristic_and_llm():
    gateway = rating_gateway(empathy=0.9, directness=0.9, brevity=0.9, humanness=0.5)
    rater = QualityRater(gateway)

    rating = await rater.rate(USER_TEXT, RESPONSE, brevity="short")

    assert rating.llm is not None
    assert rating.overall == pytest.approx((rating.heuristic.overall + rating.llm.overall) / 2)
    assert "humanness" in rating.failing
    assert rating.passed == (rating.overall >= 0.7)


@pytest.mark.asyncio
async def test_rate_ignores_default_llm_rating():
    rating = await QualityRater(failing_gateway()).rate(USER_TEXT, RESPONSE, brevity="short")

    assert rating.llm is None
    assert rating.overall == pytest.approx(rating.heuristic.overall)


@pytest.mark.asyncio
async def test_analytics_sampling_rate_zero_never_calls():
    gateway = rating_gateway(empathy=1, directness=1, brevity=1, humanness=1)
    rater = QualityRater(gateway, analytics_sample_rate=0.0)

    assert await rater.sample_for_analytics(USER_TEXT, RESPONSE) is None
    gateway.chat.assert_not_called()


@pytest.mark.asyncio
async def test_analytics_sampling_rate_one_always_rates():
    gateway = rating_gateway(empathy=1, directness=1, brevity=1, humanness=1)
    rater = QualityRater(gateway, analytics_sample_rate=1.0, rng=random.Random(0))

    rating = await rater.sample_for_analytics(USER_TEXT, RESPONSE)

    assert rating is not None
    assert rating.grade == "A"
