"""
Shared records for layout composition, scoring and export.

Every record is a frozen dataclass and sequences are tuples: a layout or an
export result is never patched once produced, a new one is built instead.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .channels import ChannelSpec


class AssetRole(str, Enum):
    LOGO = "logo"
    PRODUCT = "product"
    LIFESTYLE = "lifestyle"
    BACKGROUND = "background"
    TEXTURE = "texture"
    ICON = "icon"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AssetRole":
        try:
            return cls((value or "other").strip().lower())
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class Asset:
    asset_id: str
    role: AssetRole = AssetRole.OTHER
    quality_score: Optional[float] = None
    dimensions: Optional[Tuple[int, int]] = None
    filename: Optional[str] = None

    @property
    def aspect_ratio(self) -> float:
        if self.dimensions and self.dimensions[0] > 0 and self.dimensions[1] > 0:
            return self.dimensions[0] / self.dimensions[1]
        return 1.0


# ---------------------------------------------------------------------------
# Brand guidelines & territory (read-only inputs)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColorPalette:
    primary: str
    secondary: Tuple[str, ...] = ()
    accent: Tuple[str, ...] = ()
    neutral: Tuple[str, ...] = ()
    background: str = "#ffffff"
    text: str = "#000000"

    def all_colors(self) -> List[str]:
        return [
            self.primary,
            *self.secondary,
            *self.accent,
            *self.neutral,
            self.background,
            self.text,
        ]


@dataclass(frozen=True)
class Typography:
    primary: str = "Arial"
    secondary: str = "Helvetica"
    fallbacks: Tuple[str, ...] = ("sans-serif",)

    def families(self) -> List[str]:
        return [self.primary, self.secondary, *self.fallbacks]

    def css_stack(self) -> str:
        return ", ".join(self.families())


@dataclass(frozen=True)
class LogoUsage:
    min_size: int = 0
    clear_space: int = 0
    placement: str = "top-left"


@dataclass(frozen=True)
class Spacing:
    grid: int = 8
    margins: int = 0
    padding: int = 0


@dataclass(frozen=True)
class ComplianceRules:
    required_elements: Tuple[str, ...] = ()
    prohibited_elements: Tuple[str, ...] = ()
    legal_text: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BrandGuidelines:
    colors: ColorPalette
    typography: Typography = Typography()
    logo_usage: LogoUsage = LogoUsage()
    spacing: Spacing = Spacing()
    compliance: ComplianceRules = ComplianceRules()


@dataclass(frozen=True)
class Headline:
    text: str
    follow_up: str = ""
    confidence: Optional[float] = None


@dataclass(frozen=True)
class Territory:
    territory_id: str
    positioning: str
    tone: str = ""
    title: str = ""
    headlines: Tuple[Headline, ...] = ()


# ---------------------------------------------------------------------------
# Placements & composition
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImageFilters:
    brightness: int = 100
    contrast: int = 100
    saturation: int = 100
    blur: int = 0


@dataclass(frozen=True)
class ImagePlacement:
    asset_id: str
    x: int
    y: int
    width: int
    height: int
    role: AssetRole = AssetRole.OTHER
    rotation: float = 0.0
    opacity: float = 1.0
    filters: ImageFilters = ImageFilters()
    z_index: int = 1

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass(frozen=True)
class TextEffects:
    shadow: bool = False
    shadow_color: str = "#000000"
    shadow_blur: int = 0
    shadow_offset: Tuple[int, int] = (0, 0)
    stroke: bool = False
    stroke_color: str = "#ffffff"
    stroke_width: int = 0


@dataclass(frozen=True)
class TextPlacement:
    placement_id: str
    content: str
    x: int
    y: int
    width: int
    height: int
    font_size: int
    font_family: str = "Arial, sans-serif"
    font_weight: str = "normal"
    color: str = "#000000"
    text_align: str = "center"
    line_height: float = 1.2
    letter_spacing: float = 0.0
    text_transform: str = "none"
    rotation: float = 0.0
    opacity: float = 1.0
    z_index: int = 10
    effects: TextEffects = TextEffects()

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def display_text(self) -> str:
        if self.text_transform == "uppercase":
            return self.content.upper()
        if self.text_transform == "lowercase":
            return self.content.lower()
        if self.text_transform == "capitalize":
            return self.content.title()
        return self.content


@dataclass(frozen=True)
class Composition:
    """A composed layout that has not been scored yet."""

    channel_id: str
    spec: ChannelSpec
    style: str
    image_placements: Tuple[ImagePlacement, ...]
    text_placements: Tuple[TextPlacement, ...]
    palette: ColorPalette

    @property
    def canvas_area(self) -> int:
        return self.spec.width * self.spec.height

    @property
    def hero(self) -> Optional[ImagePlacement]:
        return self.image_placements[0] if self.image_placements else None

    def text_by_id(self, placement_id: str) -> Optional[TextPlacement]:
        for text in self.text_placements:
            if text.placement_id == placement_id:
                return text
        return None


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------


COMPLIANCE_CATEGORIES: Tuple[str, ...] = (
    "brand_alignment",
    "color_compliance",
    "font_compliance",
    "logo_usage",
    "spacing",
    "legal_requirements",
)


@dataclass(frozen=True)
class ComplianceViolation:
    type: str
    category: str
    description: str
    fix: str = ""
    impact: str = "medium"
    element: Optional[str] = None


@dataclass(frozen=True)
class ComplianceScore:
    overall: int
    brand_alignment: int
    color_compliance: int
    font_compliance: int
    logo_usage: int
    spacing: int
    legal_requirements: int
    violations: Tuple[ComplianceViolation, ...] = ()
    recommendations: Tuple[str, ...] = ()
    is_fallback: bool = False

    @property
    def categories(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in COMPLIANCE_CATEGORIES}


@dataclass(frozen=True)
class PerformancePrediction:
    score: int
    confidence: float
    visual_impact: int
    message_clarity: int
    channel_optimization: int
    is_fallback: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LayoutVariation:
    layout_id: str
    name: str
    channel_id: str
    style: str
    palette: ColorPalette
    compliance: ComplianceScore
    performance: PerformancePrediction
    image_placements: Tuple[ImagePlacement, ...] = ()
    text_placements: Tuple[TextPlacement, ...] = ()
    territory_id: str = ""
    description: str = ""
    rationale: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def performance_score(self) -> int:
        return self.performance.score


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


class ExportQuality(str, Enum):
    DRAFT = "draft"
    PREVIEW = "preview"
    PRODUCTION = "production"


@dataclass(frozen=True)
class ExportMetadata:
    title: str
    description: str = ""
    keywords: Tuple[str, ...] = ()
    copyright: str = ""


@dataclass(frozen=True)
class ExportConfiguration:
    channel_id: str
    metadata: ExportMetadata
    quality: ExportQuality = ExportQuality.PRODUCTION
    include_bleed: bool = False
    include_marks: bool = False
    color_profile: str = "sRGB"
    compression: int = 85


@dataclass(frozen=True)
class ExportResult:
    success: bool
    channel_id: str
    size: int = 0
    url: Optional[str] = None
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    error: Optional[str] = None
    data: Optional[bytes] = field(default=None, repr=False, compare=False)

    @classmethod
    def failed(cls, channel_id: str, error: str) -> "ExportResult":
        return cls(success=False, channel_id=channel_id, size=0, error=error)


@dataclass(frozen=True)
class BatchExportResult:
    results: Tuple[ExportResult, ...]
    success_count: int
    failure_count: int
    total_size: int
    archive_url: Optional[str] = None

    @classmethod
    def from_results(
        cls, results: List[ExportResult], archive_url: Optional[str] = None
    ) -> "BatchExportResult":
        success_count = sum(1 for r in results if r.success)
        return cls(
            results=tuple(results),
            success_count=success_count,
            failure_count=len(results) - success_count,
            total_size=sum(r.size for r in results),
            archive_url=archive_url,
        )

    @property
    def succeeded(self) -> List[ExportResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[ExportResult]:
        return [r for r in self.results if not r.success]


@dataclass(frozen=True)
class LayoutRequest:
    """A generation request: one territory adapted to several channels and styles."""

    territory: Territory
    guidelines: BrandGuidelines
    channels: Tuple[str, ...]
    assets: Tuple[Asset, ...] = ()
    styles: Tuple[str, ...] = ()
