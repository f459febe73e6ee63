"""
Deterministic scoring functions used by the heuristic judge.

Each compliance category and each performance sub-score is a plain function
of the composed layout, so it can be tested on its own and swapped out by a
real policy engine or model through the judgment strategy.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .colors import contrast_ratio, same_color
from .models import (
    AssetRole,
    BrandGuidelines,
    ComplianceViolation,
    Composition,
    ImagePlacement,
    Territory,
)


MIN_LEGIBLE_FONT_PX = 12
IDEAL_HEADLINE_WORDS = 8


@dataclass
class CategoryResult:
    score: int
    violations: List[ComplianceViolation] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def round_half_up(value: float) -> int:
    """Round halves upward, so 4.5 becomes 5 and 92.5 becomes 93."""
    return int(math.floor(value + 0.5))


def _clamp(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def _overlaps(a: Tuple[int, int, int, int], b: Tuple[int, int, int, int]) -> bool:
    return a[0] < b[2] and b[0] < a[2] and a[1] < b[3] and b[1] < a[3]


# ---------------------------------------------------------------------------
# Compliance categories
# ---------------------------------------------------------------------------


def score_brand_alignment(composition: Composition, guidelines: BrandGuidelines) -> CategoryResult:
    result = CategoryResult(score=100)
    if not same_color(composition.palette.primary, guidelines.colors.primary):
        result.score -= 30
        result.violations.append(
            ComplianceViolation(
                type="error",
                category="brand_alignment",
                description="Layout palette does not use the brand primary color",
                fix=f"Use {guidelines.colors.primary} as the primary color",
                impact="high",
            )
        )
    if composition.hero is None:
        result.score -= 15
        result.recommendations.append("Add a hero visual to strengthen brand presence")
    if composition.text_by_id("headline_main") is None:
        result.score -= 15
        result.recommendations.append("Add a headline so the layout carries the territory message")
    result.score = _clamp(result.score)
    return result


def score_color_compliance(composition: Composition, guidelines: BrandGuidelines) -> CategoryResult:
    result = CategoryResult(score=100)
    background = composition.palette.background
    for text in composition.text_placements:
        ratio = contrast_ratio(text.color, background)
        if ratio >= 4.5:
            continue
        if ratio >= 3.0:
            result.score -= 10
            result.recommendations.append(
                f"Increase contrast of '{text.placement_id}' text ({ratio:.1f}:1) to at least 4.5:1"
            )
        else:
            result.score -= 30
            result.violations.append(
                ComplianceViolation(
                    type="error",
                    category="color_compliance",
                    description=f"Text contrast {ratio:.1f}:1 is below the 3:1 minimum",
                    fix="Choose a text color with stronger contrast against the background",
                    impact="high",
                    element=text.placement_id,
                )
            )
    result.score = _clamp(result.score)
    return result


def _first_family(font_family: str) -> str:
    return font_family.split(",")[0].strip().strip("'\"").lower()


def score_font_compliance(composition: Composition, guidelines: BrandGuidelines) -> CategoryResult:
    result = CategoryResult(score=100)
    allowed = {family.lower() for family in guidelines.typography.families()}
    for text in composition.text_placements:
        if _first_family(text.font_family) not in allowed:
            result.score -= 20
            result.violations.append(
                ComplianceViolation(
                    type="warning",
                    category="font_compliance",
                    description=f"Font '{text.font_family}' is not part of the brand typography",
                    fix=f"Use {guidelines.typography.primary}",
                    element=text.placement_id,
                )
            )
        if text.font_size < MIN_LEGIBLE_FONT_PX:
            result.score -= 15
            result.recommendations.append(
                f"Increase font size of '{text.placement_id}' for better readability"
            )
    result.score = _clamp(result.score)
    return result


def score_logo_usage(composition: Composition, guidelines: BrandGuidelines) -> CategoryResult:
    logos = [p for p in composition.image_placements if p.role == AssetRole.LOGO]
    if not logos:
        return CategoryResult(score=70, recommendations=["Include the brand logo in the layout"])

    result = CategoryResult(score=100)
    rules = guidelines.logo_usage
    spec = composition.spec
    for logo in logos:
        if rules.min_size and min(logo.width, logo.height) < rules.min_size:
            result.score -= 25
            result.violations.append(
                ComplianceViolation(
                    type="error",
                    category="logo_usage",
                    description=f"Logo is smaller than the {rules.min_size}px minimum size",
                    fix="Enlarge the logo placement",
                    impact="high",
                    element=logo.asset_id,
                )
            )
        edge_distance = min(
            logo.x, logo.y, spec.width - logo.x - logo.width, spec.height - logo.y - logo.height
        )
        if rules.clear_space and edge_distance < rules.clear_space:
            result.score -= 10
            result.recommendations.append("Ensure logo meets minimum clear space requirements")

    position = logo_position(logos[0], spec.width, spec.height)
    if rules.placement and rules.placement != position:
        result.recommendations.append(
            f"Move the logo to the {rules.placement} position (currently {position})"
        )
    result.score = _clamp(result.score)
    return result


def logo_position(logo: ImagePlacement, width: int, height: int) -> str:
    """Name the canvas third the logo's center falls in, e.g. "top-left" or "center"."""
    cx = logo.x + logo.width / 2
    cy = logo.y + logo.height / 2
    horizontal = "left" if cx < width / 3 else "right" if cx > width * 2 / 3 else "center"
    vertical = "top" if cy < height / 3 else "bottom" if cy > height * 2 / 3 else "center"
    if horizontal == vertical == "center":
        return "center"
    return f"{vertical}-{horizontal}"


def score_spacing(composition: Composition, guidelines: BrandGuidelines) -> CategoryResult:
    result = CategoryResult(score=100)
    spec = composition.spec
    margin = guidelines.spacing.margins
    padding = guidelines.spacing.padding
    texts = sorted(composition.text_placements, key=lambda t: t.z_index)

    for text in texts:
        edge_distance = min(
            text.x, text.y, spec.width - text.x - text.width, spec.height - text.y - text.height
        )
        if margin and edge_distance < margin:
            result.score -= 10
            result.violations.append(
                ComplianceViolation(
                    type="warning",
                    category="spacing",
                    description=f"'{text.placement_id}' sits inside the {margin}px brand margin",
                    fix="Move the text block away from the canvas edge",
                    impact="low",
                    element=text.placement_id,
                )
            )

    for i, first in enumerate(texts):
        for second in texts[i + 1:]:
            if _overlaps(first.box, second.box):
                result.score -= 20
                result.violations.append(
                    ComplianceViolation(
                        type="error",
                        category="spacing",
                        description=f"'{first.placement_id}' overlaps '{second.placement_id}'",
                        fix="Separate the text blocks",
                        element=second.placement_id,
                    )
                )
            elif padding and _crowded(first.box, second.box, padding):
                result.score -= 5
                result.recommendations.append(
                    f"Leave at least {padding}px between '{first.placement_id}' and '{second.placement_id}'"
                )

    grid = guidelines.spacing.grid
    off_grid = [t.placement_id for t in texts if grid > 1 and (t.x % grid or t.y % grid)]
    if off_grid:
        result.recommendations.append(f"Snap {', '.join(off_grid)} to the {grid}px grid")
    result.score = _clamp(result.score)
    return result


def _crowded(a: Tuple[int, int, int, int], b: Tuple[int, int, int, int], padding: int) -> bool:
    """True when two blocks share columns and sit closer than `padding` vertically."""
    if a[0] >= b[2] or b[0] >= a[2]:
        return False
    return max(a[1], b[1]) - min(a[3], b[3]) < padding


def score_legal_requirements(
    composition: Composition, guidelines: BrandGuidelines
) -> CategoryResult:
    result = CategoryResult(score=100)
    rules = guidelines.compliance
    copy = " ".join(t.content for t in composition.text_placements).lower()

    for term in rules.prohibited_elements:
        if term and term.lower() in copy:
            result.score -= 40
            result.violations.append(
                ComplianceViolation(
                    type="error",
                    category="legal_requirements",
                    description=f"Prohibited element '{term}' appears in the copy",
                    fix=f"Remove '{term}' from the layout text",
                    impact="high",
                )
            )

    # A required element is satisfied by the copy or by an image with that role or asset id.
    visuals = {p.role.value for p in composition.image_placements}
    visuals.update(p.asset_id.lower() for p in composition.image_placements)
    for element in rules.required_elements:
        needle = element.lower()
        if needle and needle not in copy and needle not in visuals:
            result.score -= 15
            result.violations.append(
                ComplianceViolation(
                    type="warning",
                    category="legal_requirements",
                    description=f"Required element '{element}' is missing",
                    fix=f"Add '{element}' to the layout",
                    impact="medium",
                )
            )

    missing = [text for text in rules.legal_text if text and text.lower() not in copy]
    if missing:
        result.score -= 20
        result.recommendations.append(
            "Add required legal text before publishing: " + "; ".join(missing)
        )
    result.score = _clamp(result.score)
    return result


COMPLIANCE_SCORERS = {
    "brand_alignment": score_brand_alignment,
    "color_compliance": score_color_compliance,
    "font_compliance": score_font_compliance,
    "logo_usage": score_logo_usage,
    "spacing": score_spacing,
    "legal_requirements": score_legal_requirements,
}


# ---------------------------------------------------------------------------
# Performance sub-scores
# ---------------------------------------------------------------------------


def hero_coverage(composition: Composition) -> float:
    hero = composition.hero
    if hero is None:
        return 0.0
    return hero.area / composition.canvas_area


def text_coverage(composition: Composition) -> float:
    return sum(t.area for t in composition.text_placements) / composition.canvas_area


def visual_impact(composition: Composition) -> int:
    coverage = hero_coverage(composition)
    if coverage == 0:
        return 40
    score = 40 + 60 * min(1.0, coverage / 0.6)
    if len(composition.image_placements) > 4:
        # Too many secondary visuals compete with the hero.
        score -= 5 * (len(composition.image_placements) - 4)
    return _clamp(score)


def message_clarity(composition: Composition, territory: Optional[Territory] = None) -> int:
    headline = composition.text_by_id("headline_main")
    if headline is None:
        return 40

    score = 100.0
    words = len(headline.content.split())
    if words > IDEAL_HEADLINE_WORDS:
        score -= 4 * (words - IDEAL_HEADLINE_WORDS)

    ratio = text_coverage(composition)
    if ratio < 0.05:
        score -= 15
    elif ratio > 0.35:
        score -= 20

    if territory is not None and not territory.positioning.strip():
        score -= 10
    return _clamp(score)


def channel_optimization(composition: Composition) -> int:
    spec = composition.spec
    score = 100.0

    narrow = spec.aspect_ratio > 4 or spec.aspect_ratio < 0.3
    if narrow and len(composition.text_placements) > 1:
        score -= 20

    sizes = [t.font_size for t in composition.text_placements]
    if sizes and min(sizes) < MIN_LEGIBLE_FONT_PX:
        score -= 15

    if spec.category == "social" and hero_coverage(composition) < 0.2:
        score -= 10

    if spec.file_format.upper() == "MP4" and not composition.image_placements:
        score -= 25

    if spec.is_print and spec.dpi < 150:
        score -= 20
    return _clamp(score)


def prediction_confidence(composition: Composition) -> float:
    has_visual = composition.hero is not None
    has_headline = composition.text_by_id("headline_main") is not None
    if has_visual and has_headline:
        return 0.8
    if has_visual or has_headline:
        return 0.6
    return 0.4


def performance_breakdown(
    composition: Composition, territory: Optional[Territory] = None
) -> Dict[str, float]:
    return {
        "visual_impact": visual_impact(composition),
        "message_clarity": message_clarity(composition, territory),
        "channel_optimization": channel_optimization(composition),
        "confidence": prediction_confidence(composition),
    }
