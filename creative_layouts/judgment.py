import json
import logging
from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any, Dict, Literal, Optional, Protocol

from .errors import ExternalJudgmentUnavailable
from .heuristics import COMPLIANCE_SCORERS, performance_breakdown
from .models import BrandGuidelines, Composition, Territory

logger = logging.getLogger(__name__)


JudgmentKind = Literal["compliance", "performance"]


@dataclass(frozen=True)
class JudgmentRequest:
    kind: JudgmentKind
    composition: Composition
    guidelines: Optional[BrandGuidelines] = None
    territory: Optional[Territory] = None


class JudgmentStrategy(Protocol):
    """
    Anything that can rate a composed layout.

    `compute` returns a JSON-like dict:
    - compliance: {"categories": {...six scores...}, "violations": [...], "recommendations": [...]}
    - performance: {"visual_impact", "message_clarity", "channel_optimization", "confidence"}

    Implementations raise ExternalJudgmentUnavailable when they cannot answer.
    """

    def compute(self, request: JudgmentRequest) -> Dict[str, Any]:
        ...


class HeuristicJudge:
    """Local, deterministic judgment built from the scoring functions in `heuristics`."""

    def compute(self, request: JudgmentRequest) -> Dict[str, Any]:
        if request.kind == "compliance":
            if request.guidelines is None:
                raise ExternalJudgmentUnavailable("Compliance judgment requires brand guidelines")
            categories: Dict[str, int] = {}
            violations = []
            recommendations = []
            for name, scorer in COMPLIANCE_SCORERS.items():
                result = scorer(request.composition, request.guidelines)
                categories[name] = result.score
                violations.extend(asdict(v) for v in result.violations)
                recommendations.extend(result.recommendations)
            return {
                "categories": categories,
                "violations": violations,
                "recommendations": recommendations,
            }
        if request.kind == "performance":
            return performance_breakdown(request.composition, request.territory)
        raise ExternalJudgmentUnavailable(f"Unsupported judgment kind: {request.kind}")


class LLMJudge:
    """
    Adapter that asks a chat model (e.g. LangChain's ChatOpenAI) to rate a layout.

    The model is instructed to answer with a strict JSON object; anything else
    is reported as ExternalJudgmentUnavailable so the scorers fall back.
    """

    def __init__(self, llm: Any) -> None:
        self.llm = llm

    def compute(self, request: JudgmentRequest) -> Dict[str, Any]:
        if self.llm is None:
            raise ExternalJudgmentUnavailable(
                "LLMJudge.llm is None. Configure a real LLM instance before calling compute()."
            )

        prompt = self._build_prompt(request)
        logger.debug("Requesting %s judgment for %s", request.kind, request.composition.channel_id)
        try:
            raw = self.llm.invoke(prompt)
        except Exception as exc:
            raise ExternalJudgmentUnavailable(f"LLM call failed: {exc}") from exc

        text = getattr(raw, "content", None) or str(raw)
        try:
            payload = json.loads(_strip_code_fence(text))
        except ValueError as exc:
            raise ExternalJudgmentUnavailable(f"LLM returned non-JSON output: {exc}") from exc

        if not isinstance(payload, dict):
            raise ExternalJudgmentUnavailable("LLM returned JSON that is not an object")
        return payload

    @staticmethod
    def _build_prompt(request: JudgmentRequest) -> str:
        spec = request.composition.spec
        layout = _to_jsonable(
            {
                "style": request.composition.style,
                "image_placements": request.composition.image_placements,
                "text_placements": request.composition.text_placements,
                "palette": request.composition.palette,
            }
        )
        context = (
            f"- Channel: {request.composition.channel_id} "
            f"({spec.width}x{spec.height}px, {spec.dpi} dpi, {spec.color_space}, {spec.file_format})\n"
            f"- Layout: {json.dumps(layout)}\n"
        )

        if request.kind == "compliance":
            guidelines = json.dumps(_to_jsonable(request.guidelines))
            return (
                "You are a brand compliance reviewer evaluating an ad layout.\n"
                "Check color palette compliance, typography consistency, logo usage and "
                "placement, spacing and grid alignment, and legal/regulatory requirements.\n\n"
                "Context:\n"
                f"{context}"
                f"- Brand guidelines: {guidelines}\n\n"
                "Return ONLY a valid JSON object with this exact shape and no surrounding commentary:\n"
                "{\n"
                '  "categories": {"brand_alignment": 0-100, "color_compliance": 0-100, '
                '"font_compliance": 0-100, "logo_usage": 0-100, "spacing": 0-100, '
                '"legal_requirements": 0-100},\n'
                '  "violations": [{"type": "error|warning|suggestion", "category": "string", '
                '"description": "string", "fix": "string", "impact": "high|medium|low"}],\n'
                '  "recommendations": ["string"]\n'
                "}\n"
            )

        territory = json.dumps(_to_jsonable(request.territory)) if request.territory else "{}"
        return (
            "You are a performance marketing analyst predicting how an ad layout will perform.\n"
            "Analyze visual impact, message clarity and channel-specific optimization.\n\n"
            "Context:\n"
            f"{context}"
            f"- Territory: {territory}\n\n"
            "Return ONLY a valid JSON object with this exact shape and no surrounding commentary:\n"
            "{\n"
            '  "visual_impact": 0-100,\n'
            '  "message_clarity": 0-100,\n'
            '  "channel_optimization": 0-100,\n'
            '  "confidence": 0.0-1.0\n'
            "}\n"
        )


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text


def _to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {k: _to_jsonable(v) for k, v in vars(value).items()}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value
