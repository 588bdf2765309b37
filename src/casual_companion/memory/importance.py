"""
Importance scoring for memory nodes.

Importance decides whether a memory is written at all (the write gate) and
contributes 15% of its retrieval score. It is computed on creation and
recomputed whenever a repeated mention bumps ``repetitions``.
"""

import logging
import re

logger = logging.getLogger(__name__)

TYPE_WEIGHTS = {
    "promise": 0.95,
    "plan": 0.9,
    "inside_joke": 0.85,
    "fact": 0.8,
    "preference": 0.75,
    "sentiment": 0.6,
}
UNKNOWN_TYPE_WEIGHT = 0.5

IMPORTANT_KEYWORDS = re.compile(
    r"\b(birthday|anniversary|deadline|promise|always|never|love|hate|favorite|best|worst|secret)",
    re.IGNORECASE,
)
COMMITMENT_LANGUAGE = re.compile(r"\b(i'll|i will|i promise|i won't|i'll never)\b", re.IGNORECASE)

KEYWORD_BOOST = 0.1
COMMITMENT_BOOST = 0.2
REPEAT_BOOST = 0.15
FREQUENT_BOOST = 0.1

WRITE_THRESHOLD = 0.6


def calculate_importance(memory_type: str, content: str, repetitions: int = 1) -> float:
    """
    Score how worth-remembering a memory is.

    Args:
        memory_type: Memory type (promise, plan, inside_joke, fact, preference, sentiment)
        content: Memory text, scanned for keywords and commitment language
        repetitions: How many times the memory has been written

    Returns:
        Importance between 0.0 and 1.0
    """
    score = TYPE_WEIGHTS.get(memory_type, UNKNOWN_TYPE_WEIGHT)

    if repetitions >= 2:
        score += REPEAT_BOOST
    if repetitions >= 3:
        score += FREQUENT_BOOST

    if IMPORTANT_KEYWORDS.search(content):
        score += KEYWORD_BOOST

    if COMMITMENT_LANGUAGE.search(content):
        score += COMMITMENT_BOOST

    final = min(1.0, score)
    logger.debug(
        f"Importance: type={memory_type}, repetitions={repetitions}, final={final:.2f}"
    )
    return final


def passes_write_gate(
    importance: float, repetitions: int, threshold: float = WRITE_THRESHOLD
) -> bool:
    """A memory is kept when important enough or mentioned a second time."""
    return importance >= threshold or repetitions >= 2
