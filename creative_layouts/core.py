import json
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .assets import AssetLibrary
from .batch import BatchExporter
from .channels import DEFAULT_REGISTRY, ChannelRegistry
from .composer import LayoutComposer
from .errors import RequestFormatError
from .export import DirectoryStore, ExportRenderer
from .judgment import JudgmentStrategy
from .models import (
    Asset,
    AssetRole,
    BatchExportResult,
    BrandGuidelines,
    ColorPalette,
    ComplianceRules,
    Headline,
    LayoutRequest,
    LayoutVariation,
    LogoUsage,
    Spacing,
    Territory,
    Typography,
)
from .presets import get_preset

logger = logging.getLogger(__name__)


def load_request(path: Path) -> LayoutRequest:
    with path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise RequestFormatError(f"{path} is not valid JSON: {exc}") from exc
    return parse_request(data)


def parse_request(data: Dict[str, Any]) -> LayoutRequest:
    """
    Build a LayoutRequest from a JSON-shaped dict.

    Keys may be snake_case or camelCase (`brand_guidelines` / `brandGuidelines`).
    Guideline sections that are missing fall back to their defaults; only the
    territory, the primary brand color and at least one channel are required.
    """
    if not isinstance(data, dict):
        raise RequestFormatError("Request must be a JSON object")

    territory_data = _field(data, "territory")
    if not isinstance(territory_data, dict):
        raise RequestFormatError("Missing territory", field="territory")

    guidelines_data = _field(data, "brand_guidelines") or _field(data, "guidelines")
    if not isinstance(guidelines_data, dict):
        raise RequestFormatError("Missing brand guidelines", field="brand_guidelines")

    channels = tuple(_field(data, "channels") or ())
    if not channels:
        raise RequestFormatError("At least one channel is required", field="channels")

    return LayoutRequest(
        territory=_parse_territory(territory_data),
        guidelines=_parse_guidelines(guidelines_data),
        channels=channels,
        assets=tuple(_parse_asset(a) for a in _field(data, "assets", [])),
        styles=tuple(_field(data, "styles", [])),
    )


def _parse_territory(data: Dict[str, Any]) -> Territory:
    territory_id = _field(data, "territory_id") or data.get("id")
    if not territory_id:
        raise RequestFormatError("Territory has no id", field="territory.id")

    headlines = []
    for item in _field(data, "headlines", []):
        if isinstance(item, str):
            headlines.append(Headline(text=item))
        else:
            headlines.append(
                Headline(
                    text=item.get("text", ""),
                    follow_up=_field(item, "follow_up", ""),
                    confidence=item.get("confidence"),
                )
            )

    return Territory(
        territory_id=str(territory_id),
        positioning=data.get("positioning", ""),
        tone=data.get("tone", ""),
        title=data.get("title", ""),
        headlines=tuple(headlines),
    )


def _parse_asset(data: Dict[str, Any]) -> Asset:
    asset_id = _field(data, "asset_id") or data.get("id")
    if not asset_id:
        raise RequestFormatError("Asset has no id", field="assets.id")

    dimensions = data.get("dimensions")
    if isinstance(dimensions, dict):
        dimensions = (int(dimensions["width"]), int(dimensions["height"]))
    elif dimensions:
        dimensions = (int(dimensions[0]), int(dimensions[1]))

    return Asset(
        asset_id=str(asset_id),
        role=AssetRole.parse(data.get("role") or data.get("type")),
        quality_score=_field(data, "quality_score"),
        dimensions=dimensions or None,
        filename=data.get("filename"),
    )


def _parse_guidelines(data: Dict[str, Any]) -> BrandGuidelines:
    colors = data.get("colors") or {}
    primary = colors.get("primary")
    if not primary:
        raise RequestFormatError("Brand guidelines need a primary color", field="colors.primary")

    typography = data.get("typography") or {}
    logo = _field(data, "logo_usage", {})
    spacing = data.get("spacing") or {}
    compliance = data.get("compliance") or {}

    return BrandGuidelines(
        colors=ColorPalette(
            primary=primary,
            secondary=_strings(colors.get("secondary")),
            accent=_strings(colors.get("accent")),
            neutral=_strings(colors.get("neutral")),
            background=colors.get("background", "#ffffff"),
            text=colors.get("text", "#000000"),
        ),
        typography=Typography(
            primary=typography.get("primary", "Arial"),
            secondary=typography.get("secondary", "Helvetica"),
            fallbacks=_strings(typography.get("fallbacks")) or ("sans-serif",),
        ),
        logo_usage=LogoUsage(
            min_size=int(_field(logo, "min_size", 0)),
            clear_space=int(_field(logo, "clear_space", 0)),
            placement=logo.get("placement", "top-left"),
        ),
        spacing=Spacing(
            grid=int(spacing.get("grid", 8)),
            margins=int(spacing.get("margins", 0)),
            padding=int(spacing.get("padding", 0)),
        ),
        compliance=ComplianceRules(
            required_elements=_strings(_field(compliance, "required_elements")),
            prohibited_elements=_strings(_field(compliance, "prohibited_elements")),
            legal_text=_strings(_field(compliance, "legal_text")),
        ),
    )


def _field(data: Dict[str, Any], name: str, default: Any = None) -> Any:
    if name in data:
        return data[name]
    head, *rest = name.split("_")
    camel = head + "".join(part.capitalize() for part in rest)
    return data.get(camel, default)


def _strings(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


@dataclass
class PipelineRun:
    layouts: List[LayoutVariation]
    exports: List[BatchExportResult]
    summary_path: Path


class LayoutPipeline:
    """
    Orchestrates layout generation and export for a request file:
    - load the request
    - compose and score every (channel, style) variation
    - keep the best `top` variations, if set
    - export them into {output_root}/{territory_id}/{channel}/
      (or into {output_root}/{territory_id}/{preset}/ when a preset pack is used)
    - write a layouts.json summary next to the exports
    """

    def __init__(
        self,
        output_root: Path,
        assets_dir: Optional[Path] = None,
        registry: ChannelRegistry = DEFAULT_REGISTRY,
        judge: Optional[JudgmentStrategy] = None,
        preset: Optional[str] = None,
        top: Optional[int] = None,
        composer: Optional[LayoutComposer] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.output_root = output_root
        self.assets_dir = assets_dir
        self.registry = registry
        self.composer = composer or LayoutComposer(registry=registry, judge=judge)
        # Resolve the preset early so a bad name fails before any rendering.
        self.preset = preset
        self.preset_configs = get_preset(preset) if preset else ()
        self.top = top
        self.today = today

    def run(self, request_path: Path) -> PipelineRun:
        request = load_request(request_path)
        layouts = self.composer.generate(request)
        if self.top is not None:
            layouts = layouts[: max(0, self.top)]

        territory_root = self.output_root / request.territory.territory_id
        territory_root.mkdir(parents=True, exist_ok=True)
        library = AssetLibrary(request.assets, self.assets_dir)

        if self.preset:
            exports = self._export_preset(layouts, territory_root, library)
        else:
            exports = self._export_channels(layouts, territory_root, library)

        summary_path = territory_root / "layouts.json"
        with summary_path.open("w", encoding="utf-8") as f:
            json.dump(_summary(request, layouts, exports), f, indent=2, ensure_ascii=False)

        logger.info("Wrote %d layouts for territory %s to %s", len(layouts), request.territory.territory_id, territory_root)
        return PipelineRun(layouts=layouts, exports=exports, summary_path=summary_path)

    def _exporter(self, out_dir: Path, library: AssetLibrary) -> BatchExporter:
        renderer = ExportRenderer(
            registry=self.registry,
            store=DirectoryStore(out_dir),
            library=library,
            today=self.today,
        )
        return BatchExporter(renderer=renderer, registry=self.registry)

    def _export_channels(
        self, layouts: List[LayoutVariation], territory_root: Path, library: AssetLibrary
    ) -> List[BatchExportResult]:
        by_channel: Dict[str, List[LayoutVariation]] = {}
        for layout in layouts:
            by_channel.setdefault(layout.channel_id, []).append(layout)

        exports = []
        for channel_id, channel_layouts in by_channel.items():
            exporter = self._exporter(territory_root / channel_id, library)
            exports.append(exporter.export_project(channel_layouts, channel_id))
        return exports

    def _export_preset(
        self, layouts: List[LayoutVariation], territory_root: Path, library: AssetLibrary
    ) -> List[BatchExportResult]:
        exporter = self._exporter(territory_root / str(self.preset), library)
        return [exporter.export_formats(layout, self.preset_configs) for layout in layouts]


def _summary(
    request: LayoutRequest, layouts: List[LayoutVariation], exports: List[BatchExportResult]
) -> Dict[str, Any]:
    return {
        "territory_id": request.territory.territory_id,
        "channels": list(request.channels),
        "layouts": [
            {
                "layout_id": layout.layout_id,
                "name": layout.name,
                "channel": layout.channel_id,
                "style": layout.style,
                "compliance": layout.compliance.overall,
                "compliance_fallback": layout.compliance.is_fallback,
                "performance": layout.performance.score,
                "confidence": layout.performance.confidence,
                "rationale": layout.rationale,
            }
            for layout in layouts
        ],
        "exports": [
            {
                "success_count": batch.success_count,
                "failure_count": batch.failure_count,
                "total_size": batch.total_size,
                "archive": batch.archive_url,
                "files": [r.filename for r in batch.succeeded],
                "errors": [{"channel": r.channel_id, "error": r.error} for r in batch.failed],
            }
            for batch in exports
        ],
    }
