import io
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw, ImageEnhance, ImageFilter, ImageFont

from .assets import AssetLibrary
from .channels import ChannelSpec
from .colors import parse_color
from .models import ExportConfiguration, ImagePlacement, LayoutVariation, TextPlacement


PLACEHOLDER_COLOR = "#e5e7eb"


def render_raster(
    layout: LayoutVariation,
    config: ExportConfiguration,
    spec: ChannelSpec,
    library: Optional[AssetLibrary] = None,
) -> bytes:
    """
    Composite a layout onto a channel-sized canvas and encode it.

    Order: background color, image placements in ascending z-order (real
    pixels when the asset library has them, a filled region otherwise), then
    text placements in ascending z-order.
    """
    canvas = Image.new("RGBA", (spec.width, spec.height), parse_color(layout.palette.background) + (255,))

    for placement in sorted(layout.image_placements, key=lambda p: p.z_index):
        source = library.image_for(placement.asset_id) if library is not None else None
        _paste_image(canvas, placement, source)

    for text in sorted(layout.text_placements, key=lambda t: t.z_index):
        _draw_text(canvas, text)

    return encode_raster(canvas, config, spec)


def encode_raster(canvas: Image.Image, config: ExportConfiguration, spec: ChannelSpec) -> bytes:
    buffer = io.BytesIO()
    dpi = (spec.dpi, spec.dpi)
    if spec.extension == "png":
        compress_level = min(9, max(0, round(config.compression / 100 * 9)))
        canvas.convert("RGB").save(buffer, format="PNG", compress_level=compress_level, dpi=dpi)
    else:
        mode = "CMYK" if config.color_profile.upper() == "CMYK" else "RGB"
        quality = min(95, max(1, config.compression))
        canvas.convert("RGB").convert(mode).save(buffer, format="JPEG", quality=quality, dpi=dpi)
    return buffer.getvalue()


def _paste_image(canvas: Image.Image, placement: ImagePlacement, source: Optional[Image.Image]) -> None:
    size = (placement.width, placement.height)
    if source is None:
        tile = Image.new("RGBA", size, parse_color(PLACEHOLDER_COLOR) + (255,))
    else:
        tile = _apply_filters(_fit_to_box(source, size), placement)

    if placement.opacity < 1:
        alpha = tile.getchannel("A").point(lambda a: int(a * max(0.0, placement.opacity)))
        tile.putalpha(alpha)

    x, y = placement.x, placement.y
    if placement.rotation:
        rotated = tile.rotate(-placement.rotation, expand=True, resample=Image.BICUBIC)
        x -= (rotated.width - tile.width) // 2
        y -= (rotated.height - tile.height) // 2
        tile = rotated

    canvas.alpha_composite(tile, dest=(max(0, x), max(0, y)), source=(max(0, -x), max(0, -y)))


def _fit_to_box(img: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """
    Resize while preserving aspect ratio and center inside a transparent box.
    """
    img = img.copy()
    img.thumbnail(size, Image.LANCZOS)
    box = Image.new("RGBA", size, (0, 0, 0, 0))
    x = (size[0] - img.width) // 2
    y = (size[1] - img.height) // 2
    box.paste(img, (x, y))
    return box


def _apply_filters(img: Image.Image, placement: ImagePlacement) -> Image.Image:
    filters = placement.filters
    alpha = img.getchannel("A")
    rgb = img.convert("RGB")
    if filters.brightness != 100:
        rgb = ImageEnhance.Brightness(rgb).enhance(filters.brightness / 100)
    if filters.contrast != 100:
        rgb = ImageEnhance.Contrast(rgb).enhance(filters.contrast / 100)
    if filters.saturation != 100:
        rgb = ImageEnhance.Color(rgb).enhance(filters.saturation / 100)
    if filters.blur > 0:
        rgb = rgb.filter(ImageFilter.GaussianBlur(filters.blur))
    rgb.putalpha(alpha)
    return rgb


def _draw_text(canvas: Image.Image, text: TextPlacement) -> None:
    if not text.content.strip():
        return

    overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    font = _load_font(text.font_family, size=max(1, text.font_size), bold=text.font_weight == "bold")
    fill = parse_color(text.color) + (int(255 * max(0.0, min(1.0, text.opacity))),)
    line_spacing = max(0, int(text.font_size * (text.line_height - 1)))
    effects = text.effects

    lines = _wrap_text(draw, text.display_text(), font, text.width)
    y = text.y
    for line in lines:
        if y >= text.y + text.height:
            break
        line_width = draw.textlength(line, font=font)
        x = _aligned_x(text, line_width)
        if effects.shadow:
            dx, dy = effects.shadow_offset
            draw.text((x + dx, y + dy), line, font=font, fill=parse_color(effects.shadow_color) + (255,))
        draw.text(
            (x, y),
            line,
            font=font,
            fill=fill,
            stroke_width=effects.stroke_width if effects.stroke else 0,
            stroke_fill=parse_color(effects.stroke_color) if effects.stroke else None,
        )
        y += font.getbbox(line)[3] + line_spacing

    canvas.alpha_composite(overlay)


def _aligned_x(text: TextPlacement, line_width: float) -> int:
    if text.text_align == "center":
        return int(text.x + (text.width - line_width) / 2)
    if text.text_align == "right":
        return int(text.x + text.width - line_width)
    return text.x


def _wrap_text(
    draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont, max_width: int
) -> List[str]:
    words = text.split()
    lines: List[str] = []
    current = ""
    for word in words:
        test = f"{current} {word}".strip()
        if draw.textlength(test, font=font) <= max_width or not current:
            current = test
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def _load_font(font_family: str, size: int, bold: bool = False) -> ImageFont.ImageFont:
    """
    Load a TrueType font with fallbacks to avoid pixelated bitmap fonts.
    Prioritizes fonts from the fonts/ folder matching the requested family,
    then common system fonts, then Pillow's default font.
    """
    project_root = Path(__file__).parent.parent
    fonts_dir = project_root / "fonts"

    if fonts_dir.exists():
        families = [f.strip().strip("'\"").lower().replace(" ", "") for f in font_family.split(",")]
        font_files = sorted(list(fonts_dir.glob("*.ttf")) + list(fonts_dir.glob("*.otf")))
        for family in families:
            for font_file in font_files:
                if family and font_file.stem.lower().replace(" ", "").startswith(family):
                    try:
                        return ImageFont.truetype(str(font_file), size=size)
                    except OSError:
                        continue

    system_fonts = [
        # Linux
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf" if bold else "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf" if bold else "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        # macOS
        "/System/Library/Fonts/Helvetica.ttc",
        "/System/Library/Fonts/Supplemental/Arial.ttf",
        "/Library/Fonts/Arial.ttf",
        # Windows
        "C:/Windows/Fonts/arialbd.ttf" if bold else "C:/Windows/Fonts/arial.ttf",
    ]

    for font_file in system_fonts:
        try:
            return ImageFont.truetype(font_file, size=size)
        except OSError:
            continue

    try:
        return ImageFont.truetype("arial.ttf", size=size)
    except OSError:
        # Pixelated, but always available.
        return ImageFont.load_default()
