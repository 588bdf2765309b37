"""
Heuristic evaluators for a candidate reply.

Six cheap checks, each returning a DimensionScore, combined with fixed
weights into one overall score.
"""

import math
import re
from typing import Dict, Iterable, List, Optional, Sequence

from casual_companion.continuity.phrase_bank import DiversityResult
from casual_companion.models import Emotion
from casual_companion.quality.models import DimensionScore, HeuristicEvaluation, grade_for

WEIGHTS: Dict[str, float] = {
    "directness": 0.25,
    "empathy": 0.20,
    "brevity": 0.15,
    "diversity": 0.15,
    "avoidance": 0.15,
    "sentence_variety": 0.10,
}

# (min, max) words
BREVITY_RANGES = {
    "short": (40, 110),
    "medium": (80, 170),
    "long": (140, 260),
}

EMPATHY_WORDS: Dict[str, List[str]] = {
    "sadness": ["sorry", "hear", "rough", "tough", "understand", "feel"],
    "joy": ["awesome", "amazing", "congrats", "celebrate", "love that", "yay"],
    "anger": ["frustrating", "that sucks", "totally get", "valid", "fair"],
    "fear": ["okay", "safe", "here", "understand", "breathe", "got this", "stress"],
    "surprise": ["wow", "whoa", "no way", "really"],
}

QUESTION_RE = re.compile(
    r"\b(what|how|why|when|where|who|which|can|could|would|should|is|are|do|does)\b",
    re.IGNORECASE,
)
SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
TRIGRAM_RE = re.compile(r"\b\w+\s+\w+\s+\w+\b")


def _sentences(text: str) -> List[str]:
    return [s for s in SENTENCE_SPLIT_RE.split(text) if s.strip()]


def evaluate_directness(user_text: str, response: str) -> DimensionScore:
    if not QUESTION_RE.search(user_text):
        return DimensionScore(1.0, True, "Not a question")

    sentences = _sentences(response)
    first = sentences[0] if sentences else ""
    if len(first.strip()) > 10:
        return DimensionScore(1.0, True, "Answered directly")
    return DimensionScore(0.5, False, "Answer buried or missing")


def evaluate_empathy(response: str, emotion: Optional[Emotion]) -> DimensionScore:
    if emotion is None or emotion.score < 0.7:
        return DimensionScore(1.0, True, "No strong emotion to reflect")

    lowered = response.lower()
    words = EMPATHY_WORDS.get(emotion.label, [])
    if any(word in lowered for word in words):
        return DimensionScore(1.0, True, "Emotion reflected")
    return DimensionScore(0.6, False, "Missed emotional context")


def evaluate_brevity(response: str, brevity: str = "medium") -> DimensionScore:
    word_count = len(response.split())
    low, high = BREVITY_RANGES.get(brevity, BREVITY_RANGES["medium"])
    reason = f"{word_count} words (target: {low}-{high})"

    if low <= word_count <= high:
        return DimensionScore(1.0, True, reason)
    distance = low - word_count if word_count < low else word_count - high
    return DimensionScore(0.7 if distance < 50 else 0.4, False, reason)


def evaluate_diversity(response: str, recent_responses: Sequence[str] = ()) -> DimensionScore:
    """Share of the reply's trigrams already seen in recent replies."""
    phrases = TRIGRAM_RE.findall(response)
    if not phrases or not recent_responses:
        return DimensionScore(1.0, True, "0% phrase repetition")

    recent = [r.lower() for r in recent_responses]
    repeated = sum(1 for phrase in phrases if any(phrase.lower() in r for r in recent))
    rate = repeated / len(phrases)

    if rate < 0.2:
        score = 1.0
    elif rate < 0.4:
        score = 0.7
    else:
        score = 0.4
    return DimensionScore(score, rate < 0.3, f"{round(rate * 100)}% phrase repetition")


def diversity_from_phrase_bank(result: DiversityResult) -> DimensionScore:
    reason = f"{len(result.violations)} repeated phrases"
    return DimensionScore(result.score, result.passed, reason)


def avoid_violations(response: str, avoid_list: Iterable[str]) -> List[str]:
    lowered = response.lower()
    return [phrase for phrase in avoid_list if phrase and phrase.lower() in lowered]


def evaluate_avoidance(response: str, avoid_list: Iterable[str] = ()) -> DimensionScore:
    violations = avoid_violations(response, avoid_list)
    if violations:
        return DimensionScore(0.0, False, f"Contains: {', '.join(violations)}")
    return DimensionScore(1.0, True, "Clean")


def evaluate_sentence_variety(response: str) -> DimensionScore:
    sentences = _sentences(response)
    if len(sentences) < 2:
        return DimensionScore(0.8, True, "Single sentence response")

    lengths = [len(s.split()) for s in sentences]
    mean = sum(lengths) / len(lengths)
    std_dev = math.sqrt(sum((n - mean) ** 2 for n in lengths) / len(lengths))
    varied = std_dev > 3
    return DimensionScore(1.0 if varied else 0.7, varied, f"Sentence length std dev: {std_dev:.1f}")


def evaluate_response(
    user_text: str,
    response: str,
    emotion: Optional[Emotion] = None,
    brevity: str = "medium",
    avoid_list: Iterable[str] = (),
    recent_responses: Sequence[str] = (),
    diversity: Optional[DiversityResult] = None,
    pass_threshold: float = 0.7,
) -> HeuristicEvaluation:
    """
    Run every heuristic evaluator and combine them.

    Args:
        user_text: The user turn being answered
        response: Candidate reply
        emotion: Detected user emotion
        brevity: Target brevity of the plan
        avoid_list: Phrases the reply must not contain
        recent_responses: Recent assistant replies, used when no phrase bank
            result is given
        diversity: Phrase bank diversity check of the reply
        pass_threshold: Overall score needed to pass

    Returns:
        HeuristicEvaluation with the weighted overall score
    """
    dimensions = {
        "directness": evaluate_directness(user_text, response),
        "empathy": evaluate_empathy(response, emotion),
        "brevity": evaluate_brevity(response, brevity),
        "diversity": (
            diversity_from_phrase_bank(diversity)
            if diversity is not None
            else evaluate_diversity(response, recent_responses)
        ),
        "avoidance": evaluate_avoidance(response, avoid_list),
        "sentence_variety": evaluate_sentence_variety(response),
    }
    overall = sum(dimensions[name].score * weight for name, weight in WEIGHTS.items())
    return HeuristicEvaluation(
        dimensions=dimensions,
        overall=overall,
        passed=overall >= pass_threshold,
        grade=grade_for(overall),
    )
