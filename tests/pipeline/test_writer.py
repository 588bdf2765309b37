"""Tests for ResponseWriter."""

import pytest

from casual_companion.exceptions import AllProvidersFailedError
from casual_companion.models import ConversationPlan
from casual_companion.pipeline.writer import ResponseWriter, clean_output, re_edit_issues

PLAN = ConversationPlan(
    intent="support",
    tone="warm",
    brevity="short",
    empathy="high",
    beats=["reflect", "respond"],
    avoid=["As an AI", "no worries"],
)


@pytest.mark.parametrize(
    "raw, cleaned",
    [
        ('"Hey you!"', "Hey you!"),
        ("  “Curly quotes”  ", "Curly quotes"),
        ('He said "hi" to me', 'He said "hi" to me'),
        ('"', '"'),
    ],
)
def test_clean_output(raw, cleaned):
    assert clean_output(raw) == cleaned


def test_re_edit_issues_only_known_dimensions():
    issues = re_edit_issues(["brevity", "mystery", "avoidance"], ["as an AI"])
    assert issues == [
        "Adjust length to target",
        "Remove the phrases you were told to avoid: as an AI",
    ]


@pytest.mark.asyncio
async def test_draft_uses_quality_model(gateway, backend, reply_text):
    writer = ResponseWriter(gateway)

    draft = await writer.draft(
        "I'm so stressed about my exam tomorrow",
        PLAN,
        context="RELEVANT MEMORIES:\n- Has a chemistry exam",
        callback="How did the study group go?",
    )

    assert draft == reply_text
    call = backend.calls[0]
    assert call["kind"] == "draft"
    assert call["model"] == "quality-model"
    assert call["temperature"] == 0.9
    assert call["max_tokens"] == 100
    assert "CALLBACK: How did the study group go?" in call["prompt"]
    assert "chemistry exam" in call["prompt"]


@pytest.mark.asyncio
async def test_draft_strips_wrapping_quotes(make_backend, build_gateway):
    writer = ResponseWriter(build_gateway(make_backend(draft='"Hey you!"')))
    assert await writer.draft("hi", PLAN) == "Hey you!"


@pytest.mark.asyncio
async def test_draft_failure_propagates(failing_backend, build_gateway):
    writer = ResponseWriter(build_gateway(failing_backend))
    with pytest.raises(AllProvidersFailedError):
        await writer.draft("hi", PLAN)


@pytest.mark.asyncio
async def test_edit_uses_fast_model(make_backend, build_gateway):
    backend = make_backend(edit="I'm here, you've got this.")
    writer = ResponseWriter(build_gateway(backend))

    edited = await writer.edit("I am here. You have got this.", PLAN, style_directives="casual")

    assert edited == "I'm here, you've got this."
    call = backend.calls[0]
    assert call["kind"] == "edit"
    assert call["model"] == "fast-model"
    assert "AVOID: As an AI, no worries" in call["prompt"]


@pytest.mark.asyncio
async def test_edit_failure_keeps_draft(failing_backend, build_gateway):
    writer = ResponseWriter(build_gateway(failing_backend))
    assert await writer.edit("original draft", PLAN) == "original draft"


@pytest.mark.asyncio
async def test_edit_empty_output_keeps_draft(make_backend, build_gateway):
    writer = ResponseWriter(build_gateway(make_backend(edit='""')))
    assert await writer.edit("original draft", PLAN) == "original draft"


@pytest.mark.asyncio
async def test_re_edit_lists_failing_dimensions(make_backend, build_gateway):
    backend = make_backend(re_edit="Shorter and warmer.")
    writer = ResponseWriter(build_gateway(backend))

    improved = await writer.re_edit("Long cold reply.", ["brevity", "empathy"], PLAN)

    assert improved == "Shorter and warmer."
    call = backend.calls[0]
    assert call["kind"] == "re_edit"
    assert "Adjust length to target" in call["prompt"]
    assert "Show more warmth and empathy" in call["prompt"]


@pytest.mark.asyncio
async def test_re_edit_without_known_issues_skips_the_call(gateway, backend):
    writer = ResponseWriter(gateway)
    assert await writer.re_edit("fine as is", ["mystery"], PLAN) == "fine as is"
    assert backend.calls == []


@pytest.mark.asyncio
async def test_re_edit_failure_keeps_text(failing_backend, build_gateway):
    writer = ResponseWriter(build_gateway(failing_backend))
    assert await writer.re_edit("keep me", ["brevity"], PLAN) == "keep me"
