"""
Dialog act classification and turn-taking rules.

A regex table labels most turns; the fast model is consulted only when no
pattern matches. The act then decides the shape of the reply: which beats it
needs, whether to answer or reflect emotion first, how long it should be and
whether it may end with a question.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence

from casual_llm import SystemMessage, UserMessage
from pydantic import BaseModel

from casual_companion.dialog.prompts import DIALOG_ACT_PROMPT, DIALOG_ACT_SYSTEM_PROMPT
from casual_companion.exceptions import CompanionError
from casual_companion.models import (
    ConversationMessage,
    DialogAct,
    DialogActResult,
    Emotion,
    TurnRules,
)
from casual_companion.providers.gateway import ProviderGateway
from casual_companion.utils.json_output import parse_structured

logger = logging.getLogger(__name__)

DIALOG_ACTS = ("ask", "answer", "ack", "repair", "plan", "feedback", "share", "greeting", "unknown")

PATTERN_CONFIDENCE = 0.85
LLM_DEFAULT_CONFIDENCE = 0.6
FALLBACK_CONFIDENCE = 0.5

PATTERNS: Dict[str, List[re.Pattern]] = {
    "greeting": [
        re.compile(
            r"^(hi|hey|hello|good morning|good evening|good night|bye|goodbye|see you|"
            r"later|catch you)\b",
            re.IGNORECASE,
        ),
    ],
    "repair": [
        re.compile(r"\b(actually|no wait|correction|i meant|sorry|my bad|oops|wrong)\b", re.IGNORECASE),
        re.compile(
            r"\b(not|never|didn't|don't|doesn't|wasn't|weren't|isn't|aren't)\b.*"
            r"\b(i said|you said|earlier|before)\b",
            re.IGNORECASE,
        ),
    ],
    "ack": [
        re.compile(
            r"^(ok|okay|k|kk|got it|understood|right|sure|fine|alright|cool|sounds good|np|"
            r"no prob)\b",
            re.IGNORECASE,
        ),
        re.compile(r"^(\U0001F44D|✓|✔️?|mmm|hmm|uh-huh|mhm)", re.IGNORECASE),
    ],
    "ask": [
        re.compile(
            r"\b(what|who|where|when|why|how|which|can|could|would|should|do|does|did|is|are|"
            r"was|were|will|shall)\b.*\?",
            re.IGNORECASE,
        ),
        re.compile(r"\?\s*$"),
        re.compile(
            r"\b(tell me|show me|explain|help me|suggest|recommend|any idea|wondering)\b",
            re.IGNORECASE,
        ),
    ],
    "plan": [
        re.compile(
            r"\b(let's|let us|shall we|should we|planning to|plan to|gonna|going to)\b",
            re.IGNORECASE,
        ),
        re.compile(r"\b(schedule|meeting|appointment|trip|visit)\b", re.IGNORECASE),
    ],
    "feedback": [
        re.compile(
            r"\b(good|great|excellent|perfect|awesome|nice|love it|hate it|not good|bad|wrong|"
            r"incorrect|better if)\b",
            re.IGNORECASE,
        ),
        re.compile(
            r"\b(you're|you are)\s+(right|wrong|correct|incorrect|helpful|not helpful)",
            re.IGNORECASE,
        ),
    ],
    "share": [
        re.compile(
            r"\b(i feel|i'm feeling|feeling|felt|emotion|mood|happy|sad|angry|frustrated|"
            r"excited|worried|scared|stressed|anxious|nervous|lonely|tired)\b",
            re.IGNORECASE,
        ),
        re.compile(r"\b(my day|today|yesterday|this week|happened|something|story)\b", re.IGNORECASE),
    ],
}

ANSWER_PATTERNS = [
    re.compile(r"^(yes|yeah|yep|yup|no|nope|nah|maybe|probably|i think|i'd say)\b", re.IGNORECASE),
    re.compile(r"\b(because|since|due to|the reason)\b", re.IGNORECASE),
]

PRECEDENCE = ("greeting", "repair", "ack", "ask", "plan", "feedback", "share")


def _matches(act: str, text: str) -> bool:
    return any(pattern.search(text) for pattern in PATTERNS[act])


def _pending_question(history: Sequence[ConversationMessage]) -> bool:
    if not history:
        return False
    last = history[-1]
    return last.role == "assistant" and last.content.rstrip().endswith("?")


def classify_by_pattern(
    text: str, history: Optional[Sequence[ConversationMessage]] = None
) -> DialogAct:
    """
    Label a turn with the regex table.

    Acts are checked in precedence order greeting, repair, ack, ask, plan,
    feedback, share; ``answer`` is only considered when the previous message
    is an assistant turn ending with a question mark.
    """
    stripped = text.strip()
    for act in PRECEDENCE:
        if _matches(act, stripped):
            return act

    if _pending_question(history or []):
        if any(pattern.search(stripped) for pattern in ANSWER_PATTERNS):
            return "answer"

    return "unknown"


class _LLMAct(BaseModel):
    act: str = "unknown"
    confidence: float = LLM_DEFAULT_CONFIDENCE


class DialogActClassifier:
    """Pattern-first dialog act classifier with an optional LLM fallback."""

    def __init__(self, gateway: Optional[ProviderGateway] = None, use_llm: bool = True):
        self.gateway = gateway
        self.use_llm = use_llm and gateway is not None

    async def classify(
        self, text: str, history: Optional[Sequence[ConversationMessage]] = None
    ) -> DialogActResult:
        history = list(history or [])
        act = classify_by_pattern(text, history)
        if act != "unknown":
            return DialogActResult(act=act, confidence=PATTERN_CONFIDENCE, source="pattern")

        if not self.use_llm:
            return DialogActResult(act="unknown", confidence=FALLBACK_CONFIDENCE, source="fallback")

        context = "\n".join(f"{m.role}: {m.content}" for m in history[-2:])
        messages = [
            SystemMessage(content=DIALOG_ACT_SYSTEM_PROMPT),
            UserMessage(content=DIALOG_ACT_PROMPT.format(history=context, text=text)),
        ]
        try:
            result = await self.gateway.chat(
                messages,
                model_class="fast",
                temperature=0.3,
                max_tokens=50,
                response_format="json",
            )
            parsed = parse_structured(result.text, _LLMAct)
        except CompanionError as e:
            logger.warning(f"LLM dialog act classification failed: {e}")
            return DialogActResult(act="unknown", confidence=FALLBACK_CONFIDENCE, source="fallback")

        label = parsed.act if parsed.act in DIALOG_ACTS else "unknown"
        confidence = min(1.0, max(0.0, parsed.confidence or LLM_DEFAULT_CONFIDENCE))
        return DialogActResult(act=label, confidence=confidence, source="llm")


def get_turn_taking_rules(act: str, emotion: Optional[Emotion] = None) -> TurnRules:
    """Reply structure for a dialog act."""
    if act == "ask":
        return TurnRules(
            beats=["answer", "detail", "followup"],
            answer_first=True,
            brevity="medium",
            follow_up=True,
        )
    if act == "share":
        return TurnRules(
            beats=["reflect", "respond", "followup"],
            reflect_emotion=True,
            empathy="high" if emotion is not None and emotion.score > 0.7 else "medium",
            brevity="medium",
            follow_up=True,
        )
    if act == "repair":
        return TurnRules(
            beats=["apology", "correction", "continue"],
            answer_first=True,
            brevity="short",
            follow_up=False,
        )
    if act == "ack":
        return TurnRules(beats=["ack", "callback"], brevity="short", follow_up=False)
    if act == "plan":
        return TurnRules(beats=["engage", "offer"], brevity="medium", follow_up=True)
    if act == "feedback":
        return TurnRules(beats=["accept", "adjust"], brevity="short", follow_up=False)
    if act == "greeting":
        return TurnRules(beats=["greeting", "context"], brevity="short", follow_up=False)
    if act == "answer":
        return TurnRules(beats=["ack", "build"], brevity="short", follow_up=True)
    return TurnRules(beats=["respond", "followup"], brevity="medium", follow_up=True)


def turn_instructions(act: str, rules: TurnRules) -> str:
    """Plain-language version of the turn rules for the drafting prompt."""
    instructions = []

    if rules.answer_first:
        instructions.append("Answer the question in the FIRST sentence")

    if rules.reflect_emotion:
        instructions.append("Reflect their emotion first (one clause), then respond")

    instructions.append(f"Structure: {' -> '.join(rules.beats)}")

    if act == "repair":
        instructions.append("Quick apology -> restate correct info -> move forward")

    if act == "ack":
        instructions.append("Brief ack only, unless there's a natural callback")

    if rules.follow_up:
        instructions.append("End with ONE warm, specific follow-up question")
    else:
        instructions.append("NO follow-up question")

    return ". ".join(instructions)
