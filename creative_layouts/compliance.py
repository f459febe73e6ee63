import logging
from statistics import mean
from typing import Any, Dict, List, Optional

from .heuristics import round_half_up
from .judgment import HeuristicJudge, JudgmentRequest, JudgmentStrategy
from .models import (
    COMPLIANCE_CATEGORIES,
    BrandGuidelines,
    ComplianceScore,
    ComplianceViolation,
    Composition,
)

logger = logging.getLogger(__name__)

FALLBACK_SCORE = 75
MANUAL_REVIEW = "Manual compliance review recommended"


def fallback_compliance_score() -> ComplianceScore:
    return ComplianceScore(
        overall=FALLBACK_SCORE,
        **{name: FALLBACK_SCORE for name in COMPLIANCE_CATEGORIES},
        recommendations=(MANUAL_REVIEW,),
        is_fallback=True,
    )


class ComplianceScorer:
    """
    Rates a composed layout against brand guidelines.

    The rating itself comes from a pluggable judgment strategy; whatever goes
    wrong there, the scorer always hands back a complete score.
    """

    def __init__(self, judge: Optional[JudgmentStrategy] = None) -> None:
        self.judge = judge or HeuristicJudge()

    def score(self, composition: Composition, guidelines: BrandGuidelines) -> ComplianceScore:
        request = JudgmentRequest(kind="compliance", composition=composition, guidelines=guidelines)
        try:
            payload = self.judge.compute(request)
            return parse_compliance(payload)
        except Exception as exc:
            # Judgment failures of any kind are recovered locally.
            logger.warning(
                "Compliance check failed for %s/%s, using default score: %s",
                composition.channel_id,
                composition.style,
                exc,
            )
            return fallback_compliance_score()


def parse_compliance(payload: Dict[str, Any]) -> ComplianceScore:
    """Build a ComplianceScore from a judgment payload; raises ValueError when malformed."""
    categories = payload.get("categories")
    if not isinstance(categories, dict):
        raise ValueError("Compliance payload has no 'categories' object")

    scores: Dict[str, int] = {}
    for name in COMPLIANCE_CATEGORIES:
        if name not in categories:
            raise ValueError(f"Compliance payload is missing category '{name}'")
        scores[name] = _bounded(categories[name], name)

    violations: List[ComplianceViolation] = []
    for item in payload.get("violations") or []:
        if not isinstance(item, dict) or not item.get("description"):
            continue
        violations.append(
            ComplianceViolation(
                type=str(item.get("type") or "warning"),
                category=str(item.get("category") or "general"),
                description=str(item["description"]),
                fix=str(item.get("fix") or ""),
                impact=str(item.get("impact") or "medium"),
                element=item.get("element"),
            )
        )
    recommendations = tuple(str(r) for r in payload.get("recommendations") or [] if r)

    return ComplianceScore(
        overall=round_half_up(mean(scores.values())),
        violations=tuple(violations),
        recommendations=recommendations,
        **scores,
    )


def _bounded(value: Any, name: str) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Category '{name}' is not a number: {value!r}") from None
    if number != number:  # NaN
        raise ValueError(f"Category '{name}' is not a number")
    return max(0, min(100, round_half_up(number)))
