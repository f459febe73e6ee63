import logging
from statistics import mean
from typing import Any, Dict, Optional

from .heuristics import round_half_up
from .judgment import HeuristicJudge, JudgmentRequest, JudgmentStrategy
from .models import Composition, PerformancePrediction, Territory

logger = logging.getLogger(__name__)

FALLBACK_SCORE = 75
SUB_SCORES = ("visual_impact", "message_clarity", "channel_optimization")


def fallback_prediction() -> PerformancePrediction:
    return PerformancePrediction(
        score=FALLBACK_SCORE,
        confidence=0.0,
        visual_impact=FALLBACK_SCORE,
        message_clarity=FALLBACK_SCORE,
        channel_optimization=FALLBACK_SCORE,
        is_fallback=True,
    )


class PerformancePredictor:
    def __init__(self, judge: Optional[JudgmentStrategy] = None) -> None:
        self.judge = judge or HeuristicJudge()

    def predict(
        self, composition: Composition, territory: Optional[Territory] = None
    ) -> PerformancePrediction:
        """
        Average visual impact, message clarity and channel optimization into a
        0-100 estimate. Falls back to a flat score if the judgment fails.
        """
        request = JudgmentRequest(kind="performance", composition=composition, territory=territory)
        try:
            return parse_prediction(self.judge.compute(request))
        except Exception as exc:
            logger.warning(
                "Performance prediction failed for %s/%s, using heuristic default: %s",
                composition.channel_id,
                composition.style,
                exc,
            )
            return fallback_prediction()


def parse_prediction(payload: Dict[str, Any]) -> PerformancePrediction:
    subs = {}
    for name in SUB_SCORES:
        if name not in payload:
            raise ValueError(f"Performance payload is missing '{name}'")
        subs[name] = max(0, min(100, round_half_up(float(payload[name]))))

    confidence = float(payload.get("confidence", 0.5))
    return PerformancePrediction(
        score=max(0, min(100, round_half_up(mean(subs.values())))),
        confidence=max(0.0, min(1.0, confidence)),
        **subs,
    )
