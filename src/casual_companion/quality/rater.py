"""
Quality rater combining the heuristic evaluators with a model rating.

The same rater gates the re-edit loop inside a turn and produces the
sampled analytics ratings that are only logged.
"""

import logging
import random
from typing import Iterable, List, Optional, Sequence

from casual_llm import SystemMessage, UserMessage
from pydantic import BaseModel

from casual_companion.continuity.phrase_bank import DiversityResult
from casual_companion.exceptions import CompanionError
from casual_companion.models import Emotion
from casual_companion.providers.gateway import ProviderGateway
from casual_companion.quality.heuristics import evaluate_response
from casual_companion.quality.models import LLMRating, QualityRating, grade_for
from casual_companion.quality.prompts import RATER_PROMPT, RATER_SYSTEM_PROMPT
from casual_companion.utils.json_output import parse_structured

logger = logging.getLogger(__name__)

LLM_WEIGHTS = {
    "empathy": 0.3,
    "directness": 0.25,
    "brevity": 0.2,
    "humanness": 0.25,
}

DEFAULT_SCORE = 0.7


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


class _RawRating(BaseModel):
    empathy: float = 0.0
    directness: float = 0.0
    brevity: float = 0.0
    humanness: float = 0.0
    feedback: str = ""


class QualityRater:
    """
    Rates candidate replies.

    Args:
        gateway: Provider gateway for the model rating; None disables it
        pass_threshold: Overall score a reply needs to pass
        use_llm: Ask the model for a rating in addition to the heuristics
        analytics_sample_rate: Share of turns given an extra logged rating
        rng: Random source for analytics sampling
    """

    def __init__(
        self,
        gateway: Optional[ProviderGateway] = None,
        pass_threshold: float = 0.7,
        use_llm: bool = True,
        analytics_sample_rate: float = 0.1,
        rng: Optional[random.Random] = None,
    ):
        self.gateway = gateway
        self.pass_threshold = pass_threshold
        self.use_llm = use_llm and gateway is not None
        self.analytics_sample_rate = analytics_sample_rate
        self._rng = rng or random.Random()

    def default_rating(self) -> LLMRating:
        return LLMRating(
            empathy=DEFAULT_SCORE,
            directness=DEFAULT_SCORE,
            brevity=DEFAULT_SCORE,
            humanness=DEFAULT_SCORE,
            overall=DEFAULT_SCORE,
            passed=DEFAULT_SCORE >= self.pass_threshold,
            grade=grade_for(DEFAULT_SCORE),
            feedback="Rating unavailable",
            source="default",
        )

    async def rate_with_llm(
        self,
        user_text: str,
        response: str,
        emotion: Optional[Emotion] = None,
        dialog_act: Optional[str] = None,
        brevity: str = "medium",
    ) -> LLMRating:
        """
        Ask the fast model to rate a reply.

        Returns the neutral default rating (source "default") when the
        model is unavailable or its output cannot be parsed.
        """
        if self.gateway is None:
            return self.default_rating()

        prompt = RATER_PROMPT.format(
            user_text=user_text,
            emotion_line=f"EMOTION: {emotion.label} ({emotion.score:.2f})" if emotion else "",
            dialog_act_line=f"DIALOG ACT: {dialog_act}" if dialog_act else "",
            response=response,
            brevity=brevity,
        )
        messages = [
            SystemMessage(content=RATER_SYSTEM_PROMPT),
            UserMessage(content=prompt),
        ]
        try:
            result = await self.gateway.chat(
                messages,
                model_class="fast",
                temperature=0.3,
                max_tokens=150,
                response_format="json",
            )
            raw = parse_structured(result.text, _RawRating)
        except CompanionError as e:
            logger.warning(f"Rating failed: {e}")
            return self.default_rating()

        scores = {name: _clamp(getattr(raw, name)) for name in LLM_WEIGHTS}
        overall = sum(scores[name] * weight for name, weight in LLM_WEIGHTS.items())
        return LLMRating(
            **scores,
            overall=overall,
            passed=overall >= self.pass_threshold,
            grade=grade_for(overall),
            feedback=raw.feedback,
        )

    async def rate(
        self,
        user_text: str,
        response: str,
        emotion: Optional[Emotion] = None,
        dialog_act: Optional[str] = None,
        brevity: str = "medium",
        avoid_list: Iterable[str] = (),
        recent_responses: Sequence[str] = (),
        diversity: Optional[DiversityResult] = None,
    ) -> QualityRating:
        """
        Rate a candidate reply for the re-edit gate.

        The heuristics always run. When the model rating is enabled and
        succeeds, the overall score is the average of both and a dimension
        fails if either side fails it.
        """
        avoid_list = list(avoid_list)
        heuristic = evaluate_response(
            user_text,
            response,
            emotion=emotion,
            brevity=brevity,
            avoid_list=avoid_list,
            recent_responses=recent_responses,
            diversity=diversity,
            pass_threshold=self.pass_threshold,
        )

        llm_rating: Optional[LLMRating] = None
        if self.use_llm:
            llm_rating = await self.rate_with_llm(
                user_text, response, emotion=emotion, dialog_act=dialog_act, brevity=brevity
            )
            if llm_rating.source == "default":
                llm_rating = None

        failing: List[str] = list(heuristic.failing)
        if llm_rating is not None:
            overall = (heuristic.overall + llm_rating.overall) / 2
            for name in llm_rating.failing(self.pass_threshold):
                if name not in failing:
                    failing.append(name)
        else:
            overall = heuristic.overall

        rating = QualityRating(
            overall=overall,
            passed=overall >= self.pass_threshold,
            grade=grade_for(overall),
            failing=failing,
            heuristic=heuristic,
            llm=llm_rating,
        )
        logger.debug(
            f"Rated reply {rating.grade} ({rating.overall:.2f}), failing: {rating.failing}"
        )
        return rating

    async def sample_for_analytics(
        self,
        user_text: str,
        response: str,
        emotion: Optional[Emotion] = None,
        dialog_act: Optional[str] = None,
        brevity: str = "medium",
    ) -> Optional[LLMRating]:
        """Extra model rating for a sampled share of turns; logged, never gating."""
        if self.gateway is None or self._rng.random() >= self.analytics_sample_rate:
            return None

        rating = await self.rate_with_llm(
            user_text, response, emotion=emotion, dialog_act=dialog_act, brevity=brevity
        )
        logger.info(
            f"Analytics rating {rating.grade} ({rating.overall:.2f}) "
            f"empathy={rating.empathy:.2f} directness={rating.directness:.2f} "
            f"brevity={rating.brevity:.2f} humanness={rating.humanness:.2f}"
        )
        return rating
