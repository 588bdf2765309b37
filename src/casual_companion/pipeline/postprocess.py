"""
Post-processing of a rated reply.

Runs in a fixed order: optional backchannel, style touch-up, avoid-phrase
stripping, text cleanup, then the hard guardrails (one emoji, one
backchannel, length cap). The guardrails run last so nothing added earlier
can break them.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from casual_companion.config import CompanionConfig
from casual_companion.continuity.backchannel import BackchannelPolicy, all_backchannels
from casual_companion.models import ConversationPlan, Emotion, StyleVector
from casual_companion.style.lsm import EMOJI_RE, apply_style, first_emoji

logger = logging.getLogger(__name__)

WORD_CAPS = {"short": 100, "medium": 160, "long": 250}
MAX_STRIP_PASSES = 5

_EMOJI_WITH_VARIANT_RE = re.compile(EMOJI_RE.pattern + "\ufe0f?")
_LONG_ELLIPSIS_RE = re.compile(r"\.{4,}")
_REPEATED_BANG_RE = re.compile(r"!{2,}")
_REPEATED_QUESTION_RE = re.compile(r"\?{2,}")
_ANYTHING_ELSE_RE = re.compile(
    r"\s*(?:Is there )?anything else (?:I can|you'd like|you want)[^.!?]*[.!?]*\s*$",
    re.IGNORECASE,
)
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([,.!?;:])")
_DOUBLE_COMMA_RE = re.compile(r",\s*,")
_MULTI_SPACE_RE = re.compile(r"[ \t]{2,}")
_LEADING_PUNCT_RE = re.compile(r"^[\s,;:.]+")
_SENTENCE_END_RE = re.compile(r"[.!?](?=\s|$)")


def _backchannel_re() -> re.Pattern:
    tokens = "|".join(re.escape(token) for token in all_backchannels())
    return re.compile(rf"(?:^|(?<=[.!?] ))(?:{tokens})(?!\w)\s*", re.IGNORECASE)


_BACKCHANNEL_RE = _backchannel_re()


@dataclass
class PostProcessResult:
    """
    Final reply text plus what post-processing did to it.

    Attributes:
        text: Reply ready for delivery
        backchannel: Backchannel token inserted this turn, if any
        truncated: Whether the length cap cut the reply
    """

    text: str
    backchannel: Optional[str] = None
    truncated: bool = False


def strip_avoid_phrases(text: str, avoid: Iterable[str]) -> str:
    """
    Remove whole-word occurrences of every avoid phrase.

    Repeats until nothing changes, since a removal can join two words into
    another avoided phrase.
    """
    patterns = [
        re.compile(rf"(?<!\w){re.escape(phrase.strip())}(?!\w)", re.IGNORECASE)
        for phrase in avoid
        if phrase.strip()
    ]
    for _ in range(MAX_STRIP_PASSES):
        before = text
        for pattern in patterns:
            text = pattern.sub("", text)
        text = _MULTI_SPACE_RE.sub(" ", text)
        if text == before:
            break
    return text


def cleanup_text(text: str) -> str:
    text = _LONG_ELLIPSIS_RE.sub("...", text)
    text = _REPEATED_BANG_RE.sub("!", text)
    text = _REPEATED_QUESTION_RE.sub("?", text)
    text = _ANYTHING_ELSE_RE.sub("", text)
    text = _DOUBLE_COMMA_RE.sub(",", text)
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    text = _MULTI_SPACE_RE.sub(" ", text)
    text = _LEADING_PUNCT_RE.sub("", text)
    return text.strip()


def limit_emoji(text: str, limit: int = 1) -> str:
    """Keep the first ``limit`` emoji, drop the rest."""
    seen = 0

    def _replace(match: re.Match) -> str:
        nonlocal seen
        seen += 1
        return match.group(0) if seen <= limit else ""

    return _EMOJI_WITH_VARIANT_RE.sub(_replace, text)


def limit_backchannels(text: str, limit: int = 1) -> str:
    """Keep the first ``limit`` backchannels at clause starts, drop the rest."""
    seen = 0

    def _replace(match: re.Match) -> str:
        nonlocal seen
        seen += 1
        return match.group(0) if seen <= limit else ""

    return _BACKCHANNEL_RE.sub(_replace, text)


def strip_leading_backchannel(text: str) -> str:
    """Drop a backchannel the reply already opens with, unless nothing would be left."""
    stripped = text.lstrip()
    match = _BACKCHANNEL_RE.match(stripped)
    if match is None:
        return text
    rest = stripped[match.end() :]
    if not re.search(r"\w", rest):
        return text
    return rest[:1].upper() + rest[1:]


def cap_words(text: str, max_words: int) -> str:
    """
    Cut ``text`` to at most ``max_words`` words.

    Prefers ending on the last full sentence inside the cap; otherwise ends
    with an ellipsis.
    """
    words = text.split()
    if len(words) <= max_words:
        return text

    clipped = " ".join(words[:max_words])
    ends = [match.end() for match in _SENTENCE_END_RE.finditer(clipped)]
    if ends and ends[-1] > len(clipped) // 2:
        return clipped[: ends[-1]]
    return clipped.rstrip(",;:") + "..."


def cap_chars(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 3].rstrip() + "..."


class PostProcessor:
    def __init__(
        self,
        config: Optional[CompanionConfig] = None,
        backchannels: Optional[BackchannelPolicy] = None,
    ):
        self.config = config or CompanionConfig()
        self.backchannels = backchannels or BackchannelPolicy(
            cooldown_seconds=self.config.backchannel_cooldown_seconds,
            probability=self.config.backchannel_probability,
        )

    def over_length(self, text: str, brevity: str = "medium") -> bool:
        if self.config.guardrail_mode == "chars":
            return len(text) > self.config.char_limit
        return len(text.split()) > WORD_CAPS.get(brevity, WORD_CAPS["medium"])

    def guardrails(self, text: str, brevity: str = "medium") -> str:
        text = limit_emoji(text)
        text = limit_backchannels(text)
        text = cleanup_text(text)
        if self.config.guardrail_mode == "chars":
            return cap_chars(text, self.config.char_limit)
        return cap_words(text, WORD_CAPS.get(brevity, WORD_CAPS["medium"]))

    def process(
        self,
        text: str,
        user_text: str,
        plan: ConversationPlan,
        emotion: Optional[Emotion] = None,
        user_style: Optional[StyleVector] = None,
        lsm_score: float = 1.0,
        last_backchannel_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> PostProcessResult:
        """
        Turn a rated reply into the delivered text.

        Args:
            text: Reply after edit and re-edit
            user_text: The user turn being answered
            plan: Plan of the reply (avoid list, brevity)
            emotion: Detected user emotion
            user_style: Smoothed style profile of the user
            lsm_score: Style match between the persona and the user
            last_backchannel_at: When this user last got a backchannel
            now: Clock override

        Returns:
            PostProcessResult with the final text
        """
        now = now or datetime.now()
        original = text
        token = None

        if self.backchannels.should_insert(user_text, emotion, last_backchannel_at, now):
            token = self.backchannels.choose(emotion)
            text = self.backchannels.apply(strip_leading_backchannel(text), token)

        text = apply_style(text, user_style, lsm_score, mirror_emoji=first_emoji(user_text))

        stripped = strip_avoid_phrases(text, plan.avoid)
        if re.search(r"\w", stripped):
            text = stripped
        else:
            logger.warning("Avoid-list stripping would empty the reply, keeping it unstripped")

        truncated = self.over_length(cleanup_text(text), plan.brevity)
        text = self.guardrails(text, plan.brevity)

        if text != original:
            logger.debug(f"Post-processed reply: {text[:50]}...")
        return PostProcessResult(text=text, backchannel=token, truncated=truncated)


def avoid_phrases_present(text: str, avoid: Iterable[str]) -> List[str]:
    lowered = text.lower()
    return [
        phrase
        for phrase in avoid
        if phrase.strip()
        and re.search(rf"(?<!\w){re.escape(phrase.strip().lower())}(?!\w)", lowered)
    ]
