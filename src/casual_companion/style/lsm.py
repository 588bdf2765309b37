"""
Linguistic style matching (LSM).

Measures how a user writes (contractions, emoji, formality, sentence length
and so on), compares two style vectors, blends them, and turns a target style
into plain-language directives for the drafting and editing prompts.
"""

import re
from typing import Dict, List, Optional

from casual_companion.models import StyleVector

DIMENSIONS: List[str] = list(StyleVector.model_fields)
LENGTH_DIMENSION = "sentence_length"
DEFAULT_SENTENCE_LENGTH = 10.0

CONTRACTION_RE = re.compile(
    r"\b(i'm|you're|we're|they're|he's|she's|it's|can't|won't|don't|doesn't|isn't|"
    r"aren't|wasn't|weren't|i'll|you'll|we'll|they'll|i'd|you'd|we'd|they'd|"
    r"i've|you've|we've|they've)\b",
    re.IGNORECASE,
)
EMOJI_RE = re.compile(
    "["
    "\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F700-\U0001F77F"
    "\U0001F780-\U0001F7FF"
    "\U0001F800-\U0001F8FF"
    "\U0001F900-\U0001F9FF"
    "\U0001FA00-\U0001FA6F"
    "\U0001FA70-\U0001FAFF"
    "\u2600-\u26FF"
    "\u2700-\u27BF"
    "]"
)
ELLIPSIS_RE = re.compile(r"\.{2,}")
EM_DASH = "\u2014"
INFORMAL_RE = re.compile(
    r"\b(hey|yeah|yep|yup|nah|nope|gonna|wanna|gotta|kinda|sorta|dunno|lemme|gimme|sup|yo)\b",
    re.IGNORECASE,
)
FORMAL_RE = re.compile(
    r"\b(hello|yes|certainly|perhaps|however|therefore|consequently|furthermore|nevertheless)\b",
    re.IGNORECASE,
)
SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
CAPS_RE = re.compile(r"\b[A-Z]{2,}\b")
HINGLISH_RE = re.compile(
    r"\b(acha|accha|theek|hai|nahi|kya|kyun|kaise|haan|thoda|bahut|kuch|abhi|phir|yaar|"
    r"bhai|didi|ji|mein|tum|aap|karo|kar|ho|hoon|hoga|tha|thi|matlab|yeh|woh|aise|waisa)\b",
    re.IGNORECASE,
)
HEDGE_RE = re.compile(
    r"\b(like|kinda|sorta|maybe|probably|perhaps|seems|appears|might|could|would|"
    r"i think|i guess|i suppose|you know|i mean)\b",
    re.IGNORECASE,
)


def _ratio(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return min(1.0, count / total)


def split_sentences(text: str) -> List[str]:
    return [s for s in SENTENCE_SPLIT_RE.split(text) if s.strip()]


def analyze_style(text: str) -> StyleVector:
    """
    Extract every style dimension from ``text``.

    Ratio dimensions are per-word rates (question marks are per sentence),
    clamped to [0, 1]. Formality is informal/(informal + formal) and 0.5 when
    neither kind of marker appears.
    """
    words = len(text.split())
    sentences = split_sentences(text)

    informal = len(INFORMAL_RE.findall(text))
    formal = len(FORMAL_RE.findall(text))
    punctuation = text.count("!") + len(ELLIPSIS_RE.findall(text)) + text.count(EM_DASH)

    if sentences:
        sentence_length = sum(len(s.split()) for s in sentences) / len(sentences)
    else:
        sentence_length = DEFAULT_SENTENCE_LENGTH

    return StyleVector(
        contractions=_ratio(len(CONTRACTION_RE.findall(text)), words),
        emoji=_ratio(len(EMOJI_RE.findall(text)), words),
        punctuation=_ratio(punctuation, words),
        formality=informal / (informal + formal) if informal + formal > 0 else 0.5,
        sentence_length=sentence_length,
        question_marks=_ratio(text.count("?"), len(sentences)),
        capitalization=_ratio(len(CAPS_RE.findall(text)), words),
        hinglish=_ratio(len(HINGLISH_RE.findall(text)), words),
        hedge_words=_ratio(len(HEDGE_RE.findall(text)), words),
    )


def style_similarity(a: StyleVector, b: StyleVector) -> float:
    """
    Unweighted mean agreement over dimensions present on both sides.

    Ratio dimensions score ``1 - |a - b|``; sentence length scores
    ``min / max(a, b, 1)``. Returns 0.5 when no dimension is shared.
    """
    first = a.dimensions()
    second = b.dimensions()
    total = 0.0
    count = 0
    for key in DIMENSIONS:
        if key not in first or key not in second:
            continue
        x, y = first[key], second[key]
        if key == LENGTH_DIMENSION:
            total += min(x, y) / max(x, y, 1.0)
        else:
            total += 1.0 - abs(x - y)
        count += 1

    return total / count if count else 0.5


def blend_styles(base: StyleVector, target: StyleVector, weight: float = 0.8) -> StyleVector:
    """Interpolate ``base * (1 - weight) + target * weight`` per dimension."""
    first = base.dimensions()
    second = target.dimensions()
    blended: Dict[str, float] = {}
    for key in DIMENSIONS:
        if key in first and key in second:
            blended[key] = first[key] * (1 - weight) + second[key] * weight
        elif key in first:
            blended[key] = first[key]
        elif key in second:
            blended[key] = second[key]
    return StyleVector(**blended)


def style_instructions(style: StyleVector) -> str:
    """Turn a target style into directives for the drafting and editing prompts."""
    instructions = []

    if style.contractions is not None:
        if style.contractions > 0.15:
            instructions.append("Use contractions frequently (I'm, you're, can't)")
        elif style.contractions < 0.05:
            instructions.append("Avoid contractions, use full forms")

    if style.emoji is not None and style.emoji > 0.05:
        instructions.append(f"Use about {max(1, round(style.emoji * 10))} emoji per 10 words")
    else:
        instructions.append("Minimal or no emojis")

    if style.punctuation is not None and style.punctuation > 0.1:
        instructions.append("Use expressive punctuation (!, ...)")
    else:
        instructions.append("Keep punctuation minimal and standard")

    if style.formality is not None:
        if style.formality > 0.7:
            instructions.append("Very informal tone (hey, yeah, gonna)")
        elif style.formality < 0.3:
            instructions.append("More formal tone (hello, yes, going to)")

    if style.sentence_length is not None:
        if style.sentence_length < 8:
            instructions.append("Short, punchy sentences (5-8 words)")
        elif style.sentence_length > 15:
            instructions.append("Longer, flowing sentences (15-20 words)")

    if style.hinglish is not None and style.hinglish > 0.05:
        instructions.append("Mix in Hinglish naturally (acha, yaar, matlab)")

    if style.hedge_words is not None:
        if style.hedge_words > 0.08:
            instructions.append("Use hedges/softeners (maybe, kinda, I think)")
        elif style.hedge_words < 0.02:
            instructions.append("Be direct, avoid hedges")

    return ". ".join(instructions)


_CONTRACTIONS = [
    (re.compile(r"\bI am\b"), "I'm"),
    (re.compile(r"\bI will\b"), "I'll"),
    (re.compile(r"\bI have\b(?= (been|got|had|seen|done|heard|never|always))"), "I've"),
    (re.compile(r"\b([Yy]ou) are\b"), r"\1're"),
    (re.compile(r"\b([Ww]e) are\b"), r"\1're"),
    (re.compile(r"\b([Tt]hey) are\b"), r"\1're"),
    (re.compile(r"\b([Ii]t) is\b"), r"\1's"),
    (re.compile(r"\b([Tt]hat) is\b"), r"\1's"),
    (re.compile(r"\b([Dd]o) not\b"), r"\1n't"),
    (re.compile(r"\b([Dd]oes) not\b"), r"\1n't"),
    (re.compile(r"\b([Ii]s) not\b"), r"\1n't"),
    (re.compile(r"\b([Cc]an)(?:not| not)\b"), r"\1't"),
    (re.compile(r"\b([Ww])ill not\b"), r"\1on't"),
]


def contract(text: str) -> str:
    for pattern, replacement in _CONTRACTIONS:
        text = pattern.sub(replacement, text)
    return text


def apply_style(
    text: str,
    user_style: Optional[StyleVector],
    lsm_score: float,
    mirror_emoji: Optional[str] = None,
) -> str:
    """
    Light touch-up of a finished reply towards the user's style.

    Contracts common phrases when the user writes with contractions, and adds
    one mirrored emoji when the user is emoji-heavy and the reply still
    matches their style poorly (``lsm_score < 0.7``).
    """
    if user_style is None:
        return text

    if (user_style.contractions or 0.0) > 0.1:
        text = contract(text)

    if (
        (user_style.emoji or 0.0) > 0.05
        and lsm_score < 0.7
        and not EMOJI_RE.search(text)
    ):
        text = f"{text.rstrip()} {mirror_emoji or '🙂'}"

    return text


def first_emoji(text: str) -> Optional[str]:
    match = EMOJI_RE.search(text)
    return match.group(0) if match else None
