import json
import logging
from typing import List, Optional

from casual_llm import SystemMessage, UserMessage

from casual_companion.exceptions import CompanionError
from casual_companion.models import ConversationPlan
from casual_companion.persona import DEFAULT_PERSONA, Persona
from casual_companion.pipeline.prompts import (
    DRAFT_PROMPT,
    DRAFT_SYSTEM_PROMPT,
    EDIT_PROMPT,
    EDITOR_SYSTEM_PROMPT,
    RE_EDIT_PROMPT,
    RE_EDITOR_SYSTEM_PROMPT,
)
from casual_companion.providers.gateway import ProviderGateway

logger = logging.getLogger(__name__)

DRAFT_TOKENS = {"short": 100, "medium": 200, "long": 300}

RE_EDIT_INSTRUCTIONS = {
    "empathy": "Show more warmth and empathy",
    "directness": "Answer more directly in the first sentence",
    "brevity": "Adjust length to target",
    "humanness": "Make it more natural and conversational",
    "diversity": "Rephrase anything that sounds repeated",
    "avoidance": "Remove the phrases you were told to avoid",
    "sentence_variety": "Mix short and long sentences",
}

_QUOTES = ('"', "“", "”")


def clean_output(text: str) -> str:
    """Strip whitespace and quotes wrapped around the whole reply."""
    text = text.strip()
    if len(text) >= 2 and text[0] in _QUOTES and text[-1] in _QUOTES:
        text = text[1:-1].strip()
    return text


def re_edit_issues(failing: List[str], avoid: Optional[List[str]] = None) -> List[str]:
    issues = []
    for name in failing:
        instruction = RE_EDIT_INSTRUCTIONS.get(name)
        if instruction is None:
            continue
        if name == "avoidance" and avoid:
            instruction = f"{instruction}: {', '.join(avoid)}"
        issues.append(instruction)
    return issues


class ResponseWriter:
    """
    Draft, edit and re-edit calls for one reply.

    ``draft`` lets provider failures through so the orchestrator can switch
    to the fallback message; ``edit`` and ``re_edit`` return their input
    unchanged when the model is unavailable.
    """

    def __init__(self, gateway: ProviderGateway, persona: Persona = DEFAULT_PERSONA):
        self.gateway = gateway
        self.persona = persona

    async def draft(
        self,
        text: str,
        plan: ConversationPlan,
        context: str = "",
        style_directives: str = "",
        turn_directives: str = "",
        callback: Optional[str] = None,
    ) -> str:
        prompt = DRAFT_PROMPT.format(
            persona=self.persona.describe(),
            style=style_directives,
            turn=turn_directives,
            plan=json.dumps(plan.model_dump()),
            context=context or "(none)",
            callback=f"CALLBACK: {callback}\n" if callback else "",
            text=text,
            name=self.persona.name,
        )
        messages = [
            SystemMessage(content=DRAFT_SYSTEM_PROMPT.format(name=self.persona.name)),
            UserMessage(content=prompt),
        ]
        result = await self.gateway.chat(
            messages,
            model_class="quality",
            temperature=0.9,
            max_tokens=DRAFT_TOKENS.get(plan.brevity, DRAFT_TOKENS["medium"]),
        )
        draft = clean_output(result.text)
        logger.debug(f"Draft ({result.provider_name}): {draft[:50]}...")
        return draft

    async def edit(self, draft: str, plan: ConversationPlan, style_directives: str = "") -> str:
        prompt = EDIT_PROMPT.format(
            draft=draft,
            style=style_directives,
            avoid=", ".join(plan.avoid),
            tone=plan.tone,
            brevity=plan.brevity,
        )
        messages = [
            SystemMessage(content=EDITOR_SYSTEM_PROMPT),
            UserMessage(content=prompt),
        ]
        try:
            result = await self.gateway.chat(
                messages, model_class="fast", temperature=0.9, max_tokens=300
            )
        except CompanionError as e:
            logger.warning(f"Edit failed, keeping draft: {e}")
            return draft

        edited = clean_output(result.text)
        return edited or draft

    async def re_edit(self, text: str, failing: List[str], plan: ConversationPlan) -> str:
        """Targeted rewrite listing only the failing dimensions."""
        issues = re_edit_issues(failing, plan.avoid)
        if not issues:
            return text

        speaking_style = ", ".join(
            f"{key}: {value}" for key, value in self.persona.speaking_style.items()
        )
        messages = [
            SystemMessage(content=f"{RE_EDITOR_SYSTEM_PROMPT} Speaking style: {speaking_style}"),
            UserMessage(content=RE_EDIT_PROMPT.format(issues=", ".join(issues), text=text)),
        ]
        try:
            result = await self.gateway.chat(
                messages, model_class="fast", temperature=0.9, max_tokens=300
            )
        except CompanionError as e:
            logger.warning(f"Re-edit failed: {e}")
            return text

        improved = clean_output(result.text)
        logger.info(f"Re-edited reply for: {', '.join(failing)}")
        return improved or text
