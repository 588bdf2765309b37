"""
Data structures for response quality rating.

Defines the results produced while rating a candidate reply:
- DimensionScore: Score of one heuristic dimension
- HeuristicEvaluation: All heuristic dimensions plus the weighted overall score
- LLMRating: The model rater's scores for the four rated dimensions
- QualityRating: Combined verdict used by the re-edit gate
"""

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional

Grade = Literal["A", "B", "C", "D"]


def grade_for(score: float) -> Grade:
    """Letter grade for an overall score."""
    if score >= 0.9:
        return "A"
    if score >= 0.75:
        return "B"
    if score >= 0.6:
        return "C"
    return "D"


@dataclass
class DimensionScore:
    """
    Score of one heuristic dimension.

    Attributes:
        score: Score in [0, 1]
        passed: Whether the dimension meets its own bar
        reason: Short human-readable explanation
    """

    score: float
    passed: bool
    reason: str = ""


@dataclass
class HeuristicEvaluation:
    """
    Result of the heuristic evaluators for one reply.

    Attributes:
        dimensions: Per-dimension scores keyed by dimension name
        overall: Weighted sum of the dimension scores
        passed: overall >= pass threshold
        grade: Letter grade of overall
    """

    dimensions: Dict[str, DimensionScore]
    overall: float
    passed: bool
    grade: Grade

    @property
    def failing(self) -> List[str]:
        return [name for name, result in self.dimensions.items() if not result.passed]

    @property
    def summary(self) -> str:
        failed = [f"{name}: {self.dimensions[name].reason}" for name in self.failing]
        return "; ".join(failed) or "All checks passed"


@dataclass
class LLMRating:
    """
    Model-based rating of one reply.

    Attributes:
        empathy: Reflects the user's emotion, shows warmth
        directness: Answers in the first sentence or two when asked
        brevity: Matches the target length
        humanness: Sounds spoken and natural
        overall: Weighted sum of the four dimensions
        passed: overall >= pass threshold
        grade: Letter grade of overall
        feedback: One sentence from the rater
        source: "llm" for a real rating, "default" when the rater failed
    """

    empathy: float
    directness: float
    brevity: float
    humanness: float
    overall: float
    passed: bool
    grade: Grade
    feedback: str = ""
    source: Literal["llm", "default"] = "llm"

    def failing(self, threshold: float) -> List[str]:
        scores = {
            "empathy": self.empathy,
            "directness": self.directness,
            "brevity": self.brevity,
            "humanness": self.humanness,
        }
        return [name for name, score in scores.items() if score < threshold]


@dataclass
class QualityRating:
    """
    Combined quality verdict for a candidate reply.

    Attributes:
        overall: Average of the available overall scores
        passed: overall >= pass threshold
        grade: Letter grade of overall
        failing: Dimensions below the bar in either rating
        heuristic: Heuristic evaluation, if run
        llm: Model rating, if one was obtained
    """

    overall: float
    passed: bool
    grade: Grade
    failing: List[str] = field(default_factory=list)
    heuristic: Optional[HeuristicEvaluation] = None
    llm: Optional[LLMRating] = None
