import json
import logging
from typing import Iterable, List, Optional

from casual_llm import SystemMessage, UserMessage

from casual_companion.exceptions import CompanionError
from casual_companion.models import ConversationPlan, DialogActResult, Emotion, TurnRules
from casual_companion.persona import DEFAULT_PERSONA, Persona
from casual_companion.pipeline.prompts import PLANNER_PROMPT, PLANNER_SYSTEM_PROMPT
from casual_companion.providers.gateway import ProviderGateway
from casual_companion.utils.json_output import parse_structured

logger = logging.getLogger(__name__)

EMPATHY_ORDER = {"low": 0, "medium": 1, "high": 2}

# Phrase-bank phrases merged into the plan
PLAN_AVOID_LIMIT = 10


def _dedupe(phrases: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for phrase in phrases:
        key = phrase.strip().lower()
        if key and key not in seen:
            seen.add(key)
            result.append(phrase.strip())
    return result


def _lead_with(beats: List[str], beat: str) -> List[str]:
    return [beat] + [b for b in beats if b != beat]


def finalize_plan(
    plan: ConversationPlan,
    rules: TurnRules,
    avoid_list: Iterable[str] = (),
    persona: Persona = DEFAULT_PERSONA,
) -> ConversationPlan:
    """
    Apply the turn-taking rules and the avoid-list to a plan.

    The plan's avoid list gains the phrase-bank phrases and the persona's
    never-say phrases. When the rules require reflecting emotion or answering
    first, that beat leads. Empathy is never lower than the rules ask for.
    """
    beats = list(plan.beats) or list(rules.beats)
    if rules.reflect_emotion:
        beats = _lead_with(beats, "reflect")
    elif rules.answer_first:
        beats = _lead_with(beats, "answer")

    empathy = plan.empathy
    if EMPATHY_ORDER[rules.empathy] > EMPATHY_ORDER[empathy]:
        empathy = rules.empathy

    avoid = _dedupe(
        list(plan.avoid) + list(avoid_list)[:PLAN_AVOID_LIMIT] + list(persona.never_say)
    )
    return plan.model_copy(update={"beats": beats, "empathy": empathy, "avoid": avoid})


class ConversationPlanner:
    """Plans a reply with one strict-JSON call to the fast model."""

    def __init__(self, gateway: ProviderGateway, persona: Persona = DEFAULT_PERSONA):
        self.gateway = gateway
        self.persona = persona

    async def plan(
        self,
        text: str,
        dialog_act: DialogActResult,
        emotion: Emotion,
        rules: TurnRules,
        tone: str = "neutral",
        style_directives: str = "",
        context: str = "",
        avoid_list: Optional[List[str]] = None,
    ) -> ConversationPlan:
        """
        Produce the plan for one reply.

        Falls back to ``ConversationPlan.default(rules)`` when the model is
        unavailable or its output does not validate, so planning never fails
        the turn.
        """
        avoid_list = avoid_list or []
        prompt = PLANNER_PROMPT.format(
            name=self.persona.name,
            text=text,
            dialog_act=dialog_act.act,
            emotion=emotion.label,
            emotion_score=emotion.score,
            tone=tone,
            rules=json.dumps(rules.model_dump()),
            style=style_directives,
            context=context or "(none)",
            avoid=", ".join(avoid_list[:5]),
        )
        messages = [
            SystemMessage(content=PLANNER_SYSTEM_PROMPT),
            UserMessage(content=prompt),
        ]

        try:
            result = await self.gateway.chat(
                messages,
                model_class="fast",
                temperature=0.4,
                max_tokens=200,
                response_format="json",
            )
            plan = parse_structured(result.text, ConversationPlan)
        except CompanionError as e:
            logger.warning(f"Planning failed, using default plan: {e}")
            plan = ConversationPlan.default(rules)

        plan = finalize_plan(plan, rules, avoid_list, self.persona)
        logger.info(f"Plan: {plan.intent} ({plan.tone}, {plan.brevity}), beats={plan.beats}")
        return plan
