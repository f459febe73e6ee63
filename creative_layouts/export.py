"""
Export of a single layout variation to a channel file format.

Each export runs PENDING -> RENDERING -> SUCCEEDED | FAILED and always ends
in a typed ExportResult; only configuration problems found before rendering
starts are raised to the caller.
"""

import base64
import json
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import asdict
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from fpdf import FPDF

from .assets import AssetLibrary
from .channels import DEFAULT_REGISTRY, ChannelRegistry, ChannelSpec, FormatClass
from .colors import parse_color
from .errors import InvalidExportConfiguration, UnsupportedFileFormat
from .models import ExportConfiguration, ExportQuality, ExportResult, LayoutVariation
from .render import PLACEHOLDER_COLOR, render_raster

logger = logging.getLogger(__name__)

MIME_TYPES: Dict[str, str] = {
    "jpg": "image/jpeg",
    "png": "image/png",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
    "mp4": "video/mp4",
    "zip": "application/zip",
}

DOCUMENT_MARKER = "creative_layouts.document"
BLEED_PT = 3 / 25.4 * 72  # 3 mm
CROP_MARK_PT = 6.0


class ExportState(str, Enum):
    PENDING = "pending"
    RENDERING = "rendering"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Artifact storage
# ---------------------------------------------------------------------------


class ArtifactStore(Protocol):
    def put(self, filename: str, data: bytes, mime_type: str) -> str:
        """Persist an artifact and return a reference (URL or path) to it."""
        ...


class DataUrlStore:
    """Hands artifacts back inline as base64 data URLs."""

    def put(self, filename: str, data: bytes, mime_type: str) -> str:
        return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class DirectoryStore:
    """Writes artifacts below a root folder and returns their paths."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def put(self, filename: str, data: bytes, mime_type: str) -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.root / filename
        path.write_bytes(data)
        return str(path)


# ---------------------------------------------------------------------------
# Validation & naming
# ---------------------------------------------------------------------------


def validate_export_config(
    config: ExportConfiguration, registry: ChannelRegistry = DEFAULT_REGISTRY
) -> List[str]:
    problems = []
    if config.channel_id not in registry:
        problems.append(f"Unsupported format: {config.channel_id}")
    if not 0 <= config.compression <= 100:
        problems.append("Compression must be between 0 and 100")
    if not (config.metadata and config.metadata.title and config.metadata.title.strip()):
        problems.append("Title is required in metadata")
    try:
        ExportQuality(config.quality)
    except ValueError:
        problems.append(f"Unknown quality tier: {config.quality}")
    return problems


def sanitize_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", name)


def build_filename(layout: LayoutVariation, channel_id: str, extension: str, on: date) -> str:
    return f"{sanitize_name(layout.name)}_{channel_id}_{on.isoformat()}.{extension}"


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class ExportRenderer:
    def __init__(
        self,
        registry: ChannelRegistry = DEFAULT_REGISTRY,
        store: Optional[ArtifactStore] = None,
        library: Optional[AssetLibrary] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.registry = registry
        self.store = store or DataUrlStore()
        self.library = library
        self.today = today

    def export(self, layout: LayoutVariation, config: ExportConfiguration) -> ExportResult:
        """
        Export one layout with one configuration.

        Raises UnknownChannel / InvalidExportConfiguration before rendering;
        every failure after that is returned as a failed ExportResult.
        """
        spec = self.registry.get(config.channel_id)
        problems = validate_export_config(config, self.registry)
        if problems:
            raise InvalidExportConfiguration(problems)

        state = ExportState.PENDING
        logger.info("Exporting layout %s to %s", layout.layout_id, config.channel_id)
        try:
            state = self._transition(layout, state, ExportState.RENDERING)
            data = self.render(layout, config, spec)
            filename = build_filename(layout, config.channel_id, spec.extension, self.today())
            mime_type = MIME_TYPES.get(spec.extension, "application/octet-stream")
            url = self.store.put(filename, data, mime_type)
        except Exception as exc:
            self._transition(layout, state, ExportState.FAILED)
            logger.warning("Export of %s to %s failed: %s", layout.layout_id, config.channel_id, exc)
            return ExportResult.failed(config.channel_id, str(exc) or type(exc).__name__)

        self._transition(layout, state, ExportState.SUCCEEDED)
        if spec.max_file_size and len(data) > spec.max_file_size:
            logger.warning(
                "%s is %d bytes, above the %d byte limit for %s",
                filename,
                len(data),
                spec.max_file_size,
                config.channel_id,
            )
        logger.info("Layout exported successfully: %s", filename)
        return ExportResult(
            success=True,
            channel_id=config.channel_id,
            size=len(data),
            url=url,
            filename=filename,
            mime_type=mime_type,
            data=data,
        )

    def render(self, layout: LayoutVariation, config: ExportConfiguration, spec: ChannelSpec) -> bytes:
        format_class = spec.format_class
        if format_class is FormatClass.RASTER:
            return render_raster(layout, config, spec, self.library)
        if format_class is FormatClass.VECTOR:
            return render_svg(layout, spec)
        if format_class is FormatClass.DOCUMENT:
            return render_pdf(layout, config, spec)
        if format_class is FormatClass.VIDEO:
            return render_video_placeholder(layout, config, spec)
        raise UnsupportedFileFormat(spec.file_format)

    @staticmethod
    def _transition(layout: LayoutVariation, current: ExportState, new: ExportState) -> ExportState:
        logger.debug("Export %s: %s -> %s", layout.layout_id, current.value, new.value)
        return new


# ---------------------------------------------------------------------------
# Vector
# ---------------------------------------------------------------------------


_SVG_ANCHORS = {"center": "middle", "right": "end", "left": "start", "justify": "start"}


def render_svg(layout: LayoutVariation, spec: ChannelSpec) -> bytes:
    root = ET.Element(
        "svg",
        {
            "xmlns": "http://www.w3.org/2000/svg",
            "width": str(spec.width),
            "height": str(spec.height),
            "viewBox": f"0 0 {spec.width} {spec.height}",
        },
    )
    ET.SubElement(root, "rect", {"width": "100%", "height": "100%", "fill": layout.palette.background})

    for image in sorted(layout.image_placements, key=lambda p: p.z_index):
        attrs = {
            "id": f"asset-{image.asset_id}",
            "x": str(image.x),
            "y": str(image.y),
            "width": str(image.width),
            "height": str(image.height),
            "fill": PLACEHOLDER_COLOR,
            "opacity": _fmt(image.opacity),
        }
        if image.rotation:
            cx = image.x + image.width / 2
            cy = image.y + image.height / 2
            attrs["transform"] = f"rotate({_fmt(image.rotation)} {_fmt(cx)} {_fmt(cy)})"
        ET.SubElement(root, "rect", attrs)

    for text in sorted(layout.text_placements, key=lambda t: t.z_index):
        if text.text_align == "center":
            x = text.x + text.width / 2
        elif text.text_align == "right":
            x = text.x + text.width
        else:
            x = text.x
        node = ET.SubElement(
            root,
            "text",
            {
                "id": text.placement_id,
                "x": _fmt(x),
                "y": str(text.y + text.font_size),
                "font-family": text.font_family,
                "font-size": str(text.font_size),
                "font-weight": text.font_weight,
                "fill": text.color,
                "opacity": _fmt(text.opacity),
                "text-anchor": _SVG_ANCHORS.get(text.text_align, "start"),
            },
        )
        node.text = text.display_text()

    markup = ET.tostring(root, encoding="unicode")
    return ('<?xml version="1.0" encoding="UTF-8"?>\n' + markup).encode("utf-8")


def _fmt(value: float) -> str:
    return f"{value:g}"


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


def layout_document(layout: LayoutVariation, config: ExportConfiguration, spec: ChannelSpec) -> Dict[str, Any]:
    """The structured payload carried by document and video exports."""
    return {
        DOCUMENT_MARKER: 1,
        "layout": _jsonable(asdict(layout)),
        "config": _jsonable(asdict(config)),
        "specs": _jsonable(asdict(spec)),
        "generated_at": layout.updated_at.isoformat(),
    }


def render_pdf(layout: LayoutVariation, config: ExportConfiguration, spec: ChannelSpec) -> bytes:
    scale = 72 / spec.dpi
    bleed = BLEED_PT if config.include_bleed else 0.0
    page_w = spec.width * scale + 2 * bleed
    page_h = spec.height * scale + 2 * bleed

    pdf = FPDF(orientation="P", unit="pt", format=(page_w, page_h))
    pdf.set_auto_page_break(False)
    pdf.set_margins(0, 0, 0)
    pdf.set_creation_date(layout.created_at)
    pdf.set_title(_latin1(config.metadata.title))
    pdf.set_subject(_latin1(config.metadata.description or layout.description))
    pdf.set_keywords(_latin1(" ".join(config.metadata.keywords)))
    pdf.set_author(_latin1(config.metadata.copyright))
    pdf.set_creator("creative_layouts")
    pdf.add_page()

    pdf.set_fill_color(*parse_color(layout.palette.background))
    pdf.rect(0, 0, page_w, page_h, style="F")

    pdf.set_fill_color(*parse_color(PLACEHOLDER_COLOR))
    for image in sorted(layout.image_placements, key=lambda p: p.z_index):
        pdf.rect(
            bleed + image.x * scale,
            bleed + image.y * scale,
            image.width * scale,
            image.height * scale,
            style="F",
        )

    for text in sorted(layout.text_placements, key=lambda t: t.z_index):
        size = max(1.0, text.font_size * scale)
        pdf.set_font("helvetica", style="B" if text.font_weight == "bold" else "", size=size)
        pdf.set_text_color(*parse_color(text.color))
        content = _latin1(text.display_text())
        line_w = pdf.get_string_width(content)
        if text.text_align == "center":
            x = text.x * scale + (text.width * scale - line_w) / 2
        elif text.text_align == "right":
            x = (text.x + text.width) * scale - line_w
        else:
            x = text.x * scale
        pdf.text(bleed + x, bleed + text.y * scale + size, content)

    if bleed and config.include_marks:
        _draw_crop_marks(pdf, page_w, page_h, bleed)

    document = json.dumps(layout_document(layout, config, spec))
    pdf.embed_file(
        basename="layout.json",
        bytes=document.encode("utf-8"),
        desc="Layout, export configuration and channel specification",
        compress=False,
    )
    return bytes(pdf.output())


def _draw_crop_marks(pdf: FPDF, page_w: float, page_h: float, bleed: float) -> None:
    pdf.set_draw_color(0, 0, 0)
    pdf.set_line_width(0.25)
    trim: List[Tuple[float, float]] = [
        (bleed, bleed),
        (page_w - bleed, bleed),
        (bleed, page_h - bleed),
        (page_w - bleed, page_h - bleed),
    ]
    length = min(CROP_MARK_PT, bleed)
    for x, y in trim:
        dx = -length if x == bleed else length
        dy = -length if y == bleed else length
        pdf.line(x, y, x + dx, y)
        pdf.line(x, y, x, y + dy)


def read_document_metadata(payload: bytes) -> Dict[str, Any]:
    """Recover the layout/config/specs block embedded in a document export."""
    # The block is ASCII-only JSON, so a latin-1 view of the bytes is exact.
    text = payload.decode("latin-1")
    start = text.find('{"' + DOCUMENT_MARKER)
    if start < 0:
        raise ValueError("Payload carries no layout document")
    document, _ = json.JSONDecoder().raw_decode(text, start)
    return document


def _latin1(text: str) -> str:
    # Core PDF fonts only cover latin-1.
    return (text or "").encode("latin-1", "replace").decode("latin-1")


# ---------------------------------------------------------------------------
# Video
# ---------------------------------------------------------------------------


def render_video_placeholder(
    layout: LayoutVariation, config: ExportConfiguration, spec: ChannelSpec
) -> bytes:
    # TODO: render motion frames once a video backend is wired in; until then the payload only
    # carries the layout so downstream tools can pick it up.
    document = layout_document(layout, config, spec)
    document["type"] = "video"
    return json.dumps(document).encode("utf-8")


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value
