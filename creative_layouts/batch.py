import io
import logging
import zipfile
from datetime import date
from typing import Iterable, List, Optional, Sequence

from .channels import DEFAULT_REGISTRY, ChannelRegistry
from .errors import InvalidExportConfiguration, LayoutError
from .export import MIME_TYPES, ExportRenderer
from .models import (
    BatchExportResult,
    ExportConfiguration,
    ExportMetadata,
    ExportQuality,
    ExportResult,
    LayoutVariation,
)
from .presets import DEFAULT_COPYRIGHT

logger = logging.getLogger(__name__)

CANCELLED = "Export cancelled"


class CancellationToken:
    """
    Cooperative cancellation for a running batch.

    The batch checks the token between exports; an export already rendering
    always completes.
    """

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class BatchExporter:
    """
    Sequences exports across many configurations (one layout) or many layouts
    (one channel) and aggregates the results. A failed item never aborts the
    batch.
    """

    def __init__(
        self,
        renderer: Optional[ExportRenderer] = None,
        registry: Optional[ChannelRegistry] = None,
        copyright: str = DEFAULT_COPYRIGHT,
    ) -> None:
        self.renderer = renderer or ExportRenderer(registry=registry or DEFAULT_REGISTRY)
        self.registry = registry or self.renderer.registry
        self.copyright = copyright

    def export_formats(
        self,
        layout: LayoutVariation,
        configs: Sequence[ExportConfiguration],
        cancel_token: Optional[CancellationToken] = None,
    ) -> BatchExportResult:
        logger.info("Batch exporting layout %s to %d formats", layout.layout_id, len(configs))
        results = self._run(((layout, config) for config in configs), cancel_token)
        archive = self._archive(results, f"{layout.layout_id}_batch_export_{self._today()}.zip")
        batch = BatchExportResult.from_results(results, archive)
        logger.info("Batch export completed: %d/%d successful", batch.success_count, len(results))
        return batch

    def export_project(
        self,
        layouts: Sequence[LayoutVariation],
        channel_id: str,
        quality: ExportQuality = ExportQuality.PRODUCTION,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BatchExportResult:
        quality = _coerce_quality(quality)
        logger.info("Exporting project with %d layouts to %s", len(layouts), channel_id)
        pairs = ((layout, self.project_config(layout, channel_id, quality)) for layout in layouts)
        results = self._run(pairs, cancel_token)
        archive = self._archive(results, f"{channel_id}_project_{self._today()}.zip")
        batch = BatchExportResult.from_results(results, archive)
        logger.info("Project export completed: %d/%d successful", batch.success_count, len(results))
        return batch

    def project_config(
        self, layout: LayoutVariation, channel_id: str, quality: ExportQuality
    ) -> ExportConfiguration:
        spec = self.registry.get(channel_id) if channel_id in self.registry else None
        print_ready = spec is not None and spec.is_print
        quality = _coerce_quality(quality)
        return ExportConfiguration(
            channel_id=channel_id,
            quality=quality,
            include_bleed=print_ready,
            include_marks=print_ready,
            color_profile="CMYK" if spec is not None and spec.color_space == "CMYK" else "sRGB",
            compression=90 if quality is ExportQuality.PRODUCTION else 75,
            metadata=ExportMetadata(
                title=layout.name,
                description=layout.description,
                keywords=tuple(k for k in (layout.territory_id, channel_id) if k),
                copyright=self.copyright,
            ),
        )

    def _run(
        self,
        pairs: Iterable,
        cancel_token: Optional[CancellationToken],
    ) -> List[ExportResult]:
        results: List[ExportResult] = []
        for layout, config in pairs:
            if cancel_token is not None and cancel_token.cancelled:
                results.append(ExportResult.failed(config.channel_id, CANCELLED))
                continue
            try:
                results.append(self.renderer.export(layout, config))
            except LayoutError as exc:
                # Configuration rejected before rendering: recorded, never attempted.
                logger.warning("Skipping export of %s to %s: %s", layout.layout_id, config.channel_id, exc)
                results.append(ExportResult.failed(config.channel_id, str(exc)))
        return results

    def _archive(self, results: Sequence[ExportResult], filename: str) -> Optional[str]:
        succeeded = [r for r in results if r.success and r.data is not None]
        if len(succeeded) < 2:
            return None
        try:
            return self.renderer.store.put(filename, build_archive(succeeded), MIME_TYPES["zip"])
        except OSError as exc:
            logger.warning("Could not store batch archive %s: %s", filename, exc)
            return None

    def _today(self) -> str:
        today: date = self.renderer.today()
        return today.isoformat()


def build_archive(results: Sequence[ExportResult]) -> bytes:
    """ZIP the payloads of successful exports; fixed timestamps keep it reproducible."""
    buffer = io.BytesIO()
    seen = set()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for result in results:
            name = result.filename or f"{result.channel_id}.bin"
            if name in seen:
                stem, _, ext = name.rpartition(".")
                name = f"{stem}_{len(seen)}.{ext}" if stem else f"{name}_{len(seen)}"
            seen.add(name)
            info = zipfile.ZipInfo(name, date_time=(1980, 1, 1, 0, 0, 0))
            info.compress_type = zipfile.ZIP_DEFLATED
            zf.writestr(info, result.data or b"")
    return buffer.getvalue()


def _coerce_quality(quality) -> ExportQuality:
    try:
        return ExportQuality(quality)
    except ValueError:
        raise InvalidExportConfiguration([f"Unknown quality tier: {quality}"]) from None
