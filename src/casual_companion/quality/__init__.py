"""Heuristic and model-based quality rating of candidate replies."""

from casual_companion.quality.heuristics import WEIGHTS, evaluate_response
from casual_companion.quality.models import (
    DimensionScore,
    HeuristicEvaluation,
    LLMRating,
    QualityRating,
    grade_for,
)
from casual_companion.quality.rater import QualityRater

__all__ = [
    "WEIGHTS",
    "DimensionScore",
    "HeuristicEvaluation",
    "LLMRating",
    "QualityRater",
    "QualityRating",
    "evaluate_response",
    "grade_for",
]
