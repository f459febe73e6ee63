import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from .assets import prioritize_assets
from .channels import DEFAULT_REGISTRY, ChannelRegistry, ChannelSpec
from .compliance import ComplianceScorer
from .heuristics import round_half_up
from .judgment import JudgmentStrategy
from .models import (
    Asset,
    BrandGuidelines,
    Composition,
    ImagePlacement,
    LayoutRequest,
    LayoutVariation,
    TextPlacement,
    Territory,
)
from .performance import PerformancePredictor
from .styles import DEFAULT_STYLES, STYLE_POLICIES, StylePolicy, resolve_policy

logger = logging.getLogger(__name__)

Rect = Tuple[int, int, int, int]  # x, y, width, height

# Secondary assets stack in the lower-right column of the canvas.
SECONDARY_X = 0.7
SECONDARY_TOP = 0.72
SECONDARY_BOTTOM = 0.98
SECONDARY_WIDTH = 0.25
SECONDARY_GAP = 0.01

HEADLINE_HEIGHT = 0.14
SUBHEADING_HEIGHT = 0.1
TEXT_GAP = 0.01
TEXT_COLUMN_GUTTER = 0.02


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_layout_id() -> str:
    return f"layout_{uuid.uuid4().hex[:12]}"


class LayoutComposer:
    """
    Turns a territory plus a set of assets into channel-specific layout
    variations:
    - resolve the channel spec from the registry
    - prioritize assets (first one is the hero)
    - place the hero, secondary assets and text blocks per style policy
    - derive the style palette from the brand colors
    - score compliance and predicted performance
    """

    def __init__(
        self,
        registry: ChannelRegistry = DEFAULT_REGISTRY,
        policies: Mapping[str, StylePolicy] = STYLE_POLICIES,
        judge: Optional[JudgmentStrategy] = None,
        scorer: Optional[ComplianceScorer] = None,
        predictor: Optional[PerformancePredictor] = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_layout_id,
    ) -> None:
        self.registry = registry
        self.policies = policies
        self.scorer = scorer or ComplianceScorer(judge)
        self.predictor = predictor or PerformancePredictor(judge)
        self.clock = clock
        self.id_factory = id_factory

    def generate(self, request: LayoutRequest) -> List[LayoutVariation]:
        """Compose every (channel, style) pair, best predicted performance first."""
        # Resolve all channels up front so an unknown one fails before any work.
        for channel_id in request.channels:
            self.registry.get(channel_id)

        styles = request.styles or DEFAULT_STYLES
        logger.info(
            "Generating layouts for territory %s: %d channel(s) x %d style(s)",
            request.territory.territory_id,
            len(request.channels),
            len(styles),
        )

        variations = [
            self.compose(request.territory, request.assets, request.guidelines, channel_id, style)
            for channel_id in request.channels
            for style in styles
        ]
        variations.sort(key=lambda v: v.performance_score, reverse=True)
        logger.info("Generated %d layout variations", len(variations))
        return variations

    def compose(
        self,
        territory: Territory,
        assets: Iterable[Asset],
        guidelines: BrandGuidelines,
        channel_id: str,
        style: str,
    ) -> LayoutVariation:
        spec = self.registry.get(channel_id)
        policy = resolve_policy(style, self.policies)
        style_name = getattr(style, "value", style)

        prioritized = prioritize_assets(assets)
        images = self._place_images(prioritized, spec, policy)
        palette = policy.palette(guidelines.colors)
        texts = self._place_texts(territory, guidelines, spec, policy, images, palette.text)

        composition = Composition(
            channel_id=channel_id,
            spec=spec,
            style=style_name,
            image_placements=images,
            text_placements=texts,
            palette=palette,
        )
        compliance = self.scorer.score(composition, guidelines)
        performance = self.predictor.predict(composition, territory)

        now = self.clock()
        hero = images[0].asset_id if images else None
        variation = LayoutVariation(
            layout_id=self.id_factory(),
            name=f"{style_name.capitalize()} {channel_id.replace('_', ' ')}",
            description=f"{style_name} layout optimized for {channel_id}",
            territory_id=territory.territory_id,
            style=style_name,
            channel_id=channel_id,
            image_placements=images,
            text_placements=texts,
            palette=palette,
            compliance=compliance,
            performance=performance,
            rationale=_rationale(style_name, policy, spec, hero, images, texts),
            created_at=now,
            updated_at=now,
        )
        logger.debug(
            "Composed %s (%s/%s): compliance=%d performance=%d",
            variation.layout_id,
            channel_id,
            style_name,
            compliance.overall,
            performance.score,
        )
        return variation

    # -- images ---------------------------------------------------------------

    def _place_images(
        self, prioritized: Sequence[Asset], spec: ChannelSpec, policy: StylePolicy
    ) -> Tuple[ImagePlacement, ...]:
        if not prioritized:
            return ()

        hero, secondaries = prioritized[0], prioritized[1:]
        fx, fy, fw, fh = policy.hero_box
        hero_rect = _clamp_rect(
            (int(spec.width * fx), int(spec.height * fy), int(spec.width * fw), int(spec.height * fh)),
            spec,
        )
        placements = [_image(hero, hero_rect, z_index=1)]

        rects = self._stack_secondaries(secondaries, spec)
        for index, (asset, rect) in enumerate(zip(secondaries, rects), start=1):
            placements.append(_image(asset, rect, z_index=2 + index))
        return tuple(placements)

    @staticmethod
    def _stack_secondaries(secondaries: Sequence[Asset], spec: ChannelSpec) -> List[Rect]:
        if not secondaries:
            return []

        width = spec.width * SECONDARY_WIDTH
        sizes = [(width, width / asset.aspect_ratio) for asset in secondaries]
        region_height = spec.height * (SECONDARY_BOTTOM - SECONDARY_TOP)
        gap = spec.height * SECONDARY_GAP
        available = region_height - gap * (len(sizes) - 1)
        if available <= 0:
            gap, available = 0.0, region_height

        # One shared factor keeps every aspect ratio intact when the stack is too tall.
        scale = min(1.0, available / sum(h for _, h in sizes))

        rects = []
        cursor = spec.height * SECONDARY_TOP
        for w, h in sizes:
            rect = (
                int(spec.width * SECONDARY_X),
                int(cursor),
                max(1, int(w * scale)),
                max(1, int(h * scale)),
            )
            rects.append(_clamp_rect(rect, spec))
            cursor += h * scale + gap
        return rects

    # -- text -----------------------------------------------------------------

    def _place_texts(
        self,
        territory: Territory,
        guidelines: BrandGuidelines,
        spec: ChannelSpec,
        policy: StylePolicy,
        images: Tuple[ImagePlacement, ...],
        color: str,
    ) -> Tuple[TextPlacement, ...]:
        base_size = min(spec.width, spec.height) / 20
        x = int(spec.width * policy.text_x)
        width = int(spec.width * policy.text_width)
        if len(images) > 1:
            column_end = int(spec.width * (SECONDARY_X - TEXT_COLUMN_GUTTER))
            width = max(1, min(width, column_end - x))

        headline_rect = (
            x,
            int(spec.height * policy.headline_y),
            width,
            int(spec.height * HEADLINE_HEIGHT),
        )
        headline_size = round_half_up(base_size * 1.5 * policy.font_multiplier)
        safe_box = _hero_safe_box(images[0] if images else None, spec)
        if safe_box is not None:
            headline_rect = _avoid(headline_rect, safe_box, spec)
        headline_rect = _clamp_rect(headline_rect, spec)

        font_family = guidelines.typography.css_stack()
        placements = []
        if territory.headlines:
            placements.append(
                TextPlacement(
                    placement_id="headline_main",
                    content=territory.headlines[0].text,
                    x=headline_rect[0],
                    y=headline_rect[1],
                    width=headline_rect[2],
                    height=headline_rect[3],
                    font_size=headline_size,
                    font_family=font_family,
                    font_weight="bold",
                    color=color,
                    text_align=policy.text_align,
                    text_transform=policy.headline_transform,
                    z_index=10,
                )
            )

        if territory.positioning.strip():
            sub_rect = _clamp_rect(
                (
                    x,
                    headline_rect[1] + headline_rect[3] + int(spec.height * TEXT_GAP),
                    width,
                    int(spec.height * SUBHEADING_HEIGHT),
                ),
                spec,
            )
            placements.append(
                TextPlacement(
                    placement_id="positioning_text",
                    content=territory.positioning,
                    x=sub_rect[0],
                    y=sub_rect[1],
                    width=sub_rect[2],
                    height=sub_rect[3],
                    font_size=round_half_up(base_size * policy.font_multiplier),
                    font_family=font_family,
                    font_weight="normal",
                    color=color,
                    text_align=policy.text_align,
                    line_height=1.4,
                    z_index=9,
                )
            )
        return tuple(placements)


def _image(asset: Asset, rect: Rect, z_index: int) -> ImagePlacement:
    x, y, width, height = rect
    return ImagePlacement(
        asset_id=asset.asset_id,
        role=asset.role,
        x=x,
        y=y,
        width=width,
        height=height,
        z_index=z_index,
    )


def _clamp_rect(rect: Rect, spec: ChannelSpec) -> Rect:
    """Pull a rectangle fully inside [0, width] x [0, height], at least 1px each way."""
    x, y, width, height = rect
    x = min(max(0, x), spec.width - 1)
    y = min(max(0, y), spec.height - 1)
    width = max(1, min(width, spec.width - x))
    height = max(1, min(height, spec.height - y))
    return (x, y, width, height)


def _hero_safe_box(hero: Optional[ImagePlacement], spec: ChannelSpec) -> Optional[Tuple[int, int, int, int]]:
    """The part of the hero that lies inside the channel's declared safe area."""
    if hero is None or spec.safe_area is None:
        return None
    area = spec.safe_area
    left = max(hero.x, area.left)
    top = max(hero.y, area.top)
    right = min(hero.x + hero.width, spec.width - area.right)
    bottom = min(hero.y + hero.height, spec.height - area.bottom)
    if right <= left or bottom <= top:
        return None
    return (left, top, right, bottom)


def _avoid(rect: Rect, box: Tuple[int, int, int, int], spec: ChannelSpec) -> Rect:
    x, y, width, height = rect
    left, top, right, bottom = box
    if not (x < right and left < x + width and y < bottom and top < y + height):
        return rect

    room_below = spec.height - bottom
    room_above = top
    if room_below >= room_above and room_below > 0:
        return (x, bottom, width, min(height, room_below))
    if room_above > 0:
        new_height = min(height, room_above)
        return (x, top - new_height, width, new_height)

    logger.debug("No room to move headline clear of the hero safe area on %s", spec.channel_id)
    return rect


def _rationale(
    style: str,
    policy: StylePolicy,
    spec: ChannelSpec,
    hero: Optional[str],
    images: Sequence[ImagePlacement],
    texts: Sequence[TextPlacement],
) -> str:
    parts = [f"Generated using {style} style"]
    if policy.name != style:
        parts[0] += f" ({policy.name} formulas)"
    parts.append(
        f"for {spec.channel_id} ({spec.width}x{spec.height}px, {spec.dpi} dpi, {spec.file_format})"
    )
    if hero:
        parts.append(f"hero asset {hero} with {len(images) - 1} secondary asset(s)")
    else:
        parts.append("text-only composition (no assets supplied)")
    parts.append(f"{len(texts)} text block(s)")
    return "; ".join(parts)
