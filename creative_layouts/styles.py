"""
Style policies for the composition engine.

A style is a lookup key into STYLE_POLICIES; adding a style means adding a
policy here, the composer itself never branches on style names.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Mapping, Tuple

from .colors import adjust_saturation, lighten
from .models import ColorPalette


class Style(str, Enum):
    MINIMAL = "minimal"
    BOLD = "bold"
    ELEGANT = "elegant"


DEFAULT_STYLES: Tuple[str, ...] = tuple(style.value for style in Style)

# (x, y, width, height) as fractions of the canvas.
Box = Tuple[float, float, float, float]


def brand_palette(colors: ColorPalette) -> ColorPalette:
    return colors


def minimal_palette(colors: ColorPalette) -> ColorPalette:
    secondary = lighten(colors.secondary[0], 0.6) if colors.secondary else "#f5f5f5"
    accent = lighten(colors.accent[0], 0.6) if colors.accent else "#e0e0e0"
    return ColorPalette(
        primary=colors.primary,
        secondary=(secondary,),
        accent=(accent,),
        neutral=("#ffffff", "#f8f8f8", "#e0e0e0"),
        background="#ffffff",
        text="#333333",
    )


def bold_palette(colors: ColorPalette) -> ColorPalette:
    return ColorPalette(
        primary=colors.primary,
        secondary=colors.secondary,
        accent=colors.accent,
        neutral=("#000000", "#333333", "#666666"),
        background=colors.primary,
        text="#ffffff",
    )


def elegant_palette(colors: ColorPalette) -> ColorPalette:
    return ColorPalette(
        primary=colors.primary,
        secondary=tuple(adjust_saturation(c, -20) for c in colors.secondary),
        accent=tuple(adjust_saturation(c, -10) for c in colors.accent),
        neutral=("#f9f9f9", "#e8e8e8", "#d0d0d0"),
        background="#f9f9f9",
        text="#2c2c2c",
    )


@dataclass(frozen=True)
class StylePolicy:
    name: str
    hero_box: Box
    text_x: float
    text_width: float
    headline_y: float
    font_multiplier: float = 1.0
    text_align: str = "center"
    headline_transform: str = "none"
    palette: Callable[[ColorPalette], ColorPalette] = brand_palette


DEFAULT_POLICY = StylePolicy(
    name="default",
    hero_box=(0.05, 0.05, 0.9, 0.65),
    text_x=0.1,
    text_width=0.8,
    headline_y=0.72,
)

STYLE_POLICIES: Mapping[str, StylePolicy] = MappingProxyType(
    {
        Style.MINIMAL.value: StylePolicy(
            name=Style.MINIMAL.value,
            hero_box=(0.1, 0.1, 0.8, 0.6),
            text_x=0.1,
            text_width=0.8,
            headline_y=0.72,
            palette=minimal_palette,
        ),
        Style.BOLD.value: StylePolicy(
            name=Style.BOLD.value,
            hero_box=(0.0, 0.0, 1.0, 0.7),
            text_x=0.05,
            text_width=0.9,
            headline_y=0.72,
            font_multiplier=1.2,
            text_align="left",
            headline_transform="uppercase",
            palette=bold_palette,
        ),
        Style.ELEGANT.value: StylePolicy(
            name=Style.ELEGANT.value,
            hero_box=DEFAULT_POLICY.hero_box,
            text_x=0.1,
            text_width=0.8,
            headline_y=0.72,
            palette=elegant_palette,
        ),
    }
)


def resolve_policy(
    style: str, policies: Mapping[str, StylePolicy] = STYLE_POLICIES
) -> StylePolicy:
    """Unknown styles fall back to the default formulas, never an error."""
    key = style.value if isinstance(style, Style) else str(style).strip().lower()
    return policies.get(key, DEFAULT_POLICY)
