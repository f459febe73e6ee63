import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from PIL import Image

from .models import Asset, AssetRole

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

ROLE_RANK: Dict[AssetRole, int] = {
    AssetRole.LOGO: 0,
    AssetRole.PRODUCT: 1,
    AssetRole.LIFESTYLE: 2,
    AssetRole.BACKGROUND: 3,
}
UNRANKED = 4
DEFAULT_QUALITY = 50.0


def prioritize_assets(assets: Iterable[Asset]) -> List[Asset]:
    """
    Order assets for placement: logo > product > lifestyle > background >
    everything else, then by quality score (highest first, 50 when unknown).

    `sorted` is stable, so assets that tie keep their input order. The first
    asset of the result becomes the hero of a layout.
    """
    return sorted(assets, key=_priority_key)


def _priority_key(asset: Asset):
    quality = asset.quality_score if asset.quality_score is not None else DEFAULT_QUALITY
    return (ROLE_RANK.get(asset.role, UNRANKED), -quality)


def resolve_asset_source(asset: Asset, assets_dir: Path) -> Optional[Path]:
    """
    Try to locate the pixel source of an asset in the assets folder.

    Search heuristics (in order):
    - explicit `filename` on the asset (relative to assets_dir)
    - image files containing the slugged asset id in their filename
    """
    if not assets_dir.exists():
        return None

    if asset.filename:
        candidate = assets_dir / asset.filename
        if candidate.is_file():
            return candidate

    asset_slug = _slugify(asset.asset_id)
    for path in sorted(assets_dir.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in IMAGE_EXTENSIONS:
            continue
        if asset_slug in _slugify(path.stem):
            return path
    return None


def load_asset_image(path: Path) -> Image.Image:
    with Image.open(path) as img:
        return img.convert("RGBA")


class AssetLibrary:
    """
    Lazily loads asset pixels for the raster renderer.

    Returns None for assets without a usable source; the renderer then draws a
    filled placeholder region instead.
    """

    def __init__(self, assets: Iterable[Asset] = (), assets_dir: Optional[Path] = None) -> None:
        self.assets_dir = assets_dir
        self._assets: Dict[str, Asset] = {asset.asset_id: asset for asset in assets}
        self._cache: Dict[str, Optional[Image.Image]] = {}

    def image_for(self, asset_id: str) -> Optional[Image.Image]:
        if asset_id in self._cache:
            return self._cache[asset_id]

        image = None
        asset = self._assets.get(asset_id)
        if asset is not None and self.assets_dir is not None:
            path = resolve_asset_source(asset, self.assets_dir)
            if path is not None:
                try:
                    image = load_asset_image(path)
                except OSError as exc:
                    logger.warning("Could not load asset %s from %s: %s", asset_id, path, exc)
        self._cache[asset_id] = image
        return image


def _slugify(text: str) -> str:
    slug = "".join(ch.lower() if ch.isalnum() else "-" for ch in text)
    while "--" in slug:
        slug = slug.replace("--", "-")
    return slug.strip("-") or "item"
