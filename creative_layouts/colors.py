import colorsys
from typing import Tuple


RGB = Tuple[int, int, int]

DEFAULT_COLOR: RGB = (59, 130, 246)  # blue-500


def parse_color(color_str: str) -> RGB:
    """
    Parse hex color strings like '#FF0000', 'FF0000' or '#F00' into an RGB tuple.
    Falls back to a safe default if parsing fails.
    """
    s = (color_str or "").strip().lstrip("#")
    if len(s) == 3:
        s = "".join(ch * 2 for ch in s)
    if len(s) == 6:
        try:
            return (int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))
        except ValueError:
            pass
    return DEFAULT_COLOR


def to_hex(rgb: RGB) -> str:
    r, g, b = (max(0, min(255, int(round(c)))) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def adjust_saturation(color: str, adjustment: float) -> str:
    """Shift HSL saturation by `adjustment` percentage points (-100..100)."""
    r, g, b = parse_color(color)
    h, l, s = colorsys.rgb_to_hls(r / 255, g / 255, b / 255)
    s = max(0.0, min(1.0, s + adjustment / 100))
    nr, ng, nb = colorsys.hls_to_rgb(h, l, s)
    return to_hex((nr * 255, ng * 255, nb * 255))


def lighten(color: str, amount: float) -> str:
    """Blend towards white; `amount` is 0 (unchanged) .. 1 (white)."""
    amount = max(0.0, min(1.0, amount))
    r, g, b = parse_color(color)
    return to_hex(tuple(c + (255 - c) * amount for c in (r, g, b)))


def relative_luminance(color: str) -> float:
    def channel(c: int) -> float:
        c = c / 255
        return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4

    r, g, b = parse_color(color)
    return 0.2126 * channel(r) + 0.7152 * channel(g) + 0.0722 * channel(b)


def contrast_ratio(foreground: str, background: str) -> float:
    """WCAG 2.x contrast ratio between two colors (1.0 .. 21.0)."""
    a = relative_luminance(foreground)
    b = relative_luminance(background)
    lighter, darker = max(a, b), min(a, b)
    return (lighter + 0.05) / (darker + 0.05)


def same_color(a: str, b: str) -> bool:
    return parse_color(a) == parse_color(b)
