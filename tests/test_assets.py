from PIL import Image

from creative_layouts.assets import AssetLibrary, prioritize_assets, resolve_asset_source
from creative_layouts.models import Asset, AssetRole


def _ids(assets):
    return [a.asset_id for a in assets]


class TestPrioritizeAssets:
    def test_role_order_beats_quality(self):
        assets = [
            Asset("A", AssetRole.LIFESTYLE, quality_score=90),
            Asset("B", AssetRole.LOGO),
            Asset("C", AssetRole.PRODUCT, quality_score=80),
        ]
        assert _ids(prioritize_assets(assets)) == ["B", "C", "A"]

    def test_quality_orders_within_role(self):
        assets = [
            Asset("low", AssetRole.PRODUCT, quality_score=40),
            Asset("unknown", AssetRole.PRODUCT),
            Asset("high", AssetRole.PRODUCT, quality_score=95),
        ]
        # Missing quality counts as 50.
        assert _ids(prioritize_assets(assets)) == ["high", "unknown", "low"]

    def test_ties_keep_input_order(self):
        assets = [Asset(name, AssetRole.BACKGROUND, quality_score=60) for name in "xyz"]
        assert _ids(prioritize_assets(assets)) == ["x", "y", "z"]

    def test_unranked_roles_come_last(self):
        assets = [
            Asset("icon", AssetRole.ICON, quality_score=100),
            Asset("bg", AssetRole.BACKGROUND, quality_score=1),
            Asset("other", AssetRole.OTHER, quality_score=99),
        ]
        assert _ids(prioritize_assets(assets)) == ["bg", "icon", "other"]

    def test_empty_input(self):
        assert prioritize_assets([]) == []

    def test_input_is_not_mutated(self):
        assets = [Asset("A", AssetRole.LIFESTYLE), Asset("B", AssetRole.LOGO)]
        prioritize_assets(assets)
        assert _ids(assets) == ["A", "B"]


class TestAssetRole:
    def test_parse_is_case_insensitive(self):
        assert AssetRole.parse("Logo") is AssetRole.LOGO

    def test_parse_unknown_falls_back_to_other(self):
        assert AssetRole.parse("hologram") is AssetRole.OTHER
        assert AssetRole.parse(None) is AssetRole.OTHER


# ---------------------------------------------------------------------------
# Asset sources
# ---------------------------------------------------------------------------


def _write_png(path, size=(20, 10), color=(200, 30, 30)):
    Image.new("RGB", size, color).save(path, format="PNG")
    return path


class TestResolveAssetSource:
    def test_explicit_filename(self, tmp_path):
        _write_png(tmp_path / "pack.png")
        asset = Asset("product-pack", filename="pack.png")
        assert resolve_asset_source(asset, tmp_path) == tmp_path / "pack.png"

    def test_slug_match_in_subfolder(self, tmp_path):
        (tmp_path / "shots").mkdir()
        _write_png(tmp_path / "shots" / "Hero_Product_Pack_v2.png")
        asset = Asset("product pack")
        assert resolve_asset_source(asset, tmp_path) == tmp_path / "shots" / "Hero_Product_Pack_v2.png"

    def test_non_image_files_ignored(self, tmp_path):
        (tmp_path / "product-pack.txt").write_text("not an image")
        assert resolve_asset_source(Asset("product-pack"), tmp_path) is None

    def test_missing_folder(self, tmp_path):
        assert resolve_asset_source(Asset("x"), tmp_path / "missing") is None


class TestAssetLibrary:
    def test_loads_rgba_pixels(self, tmp_path):
        _write_png(tmp_path / "logo.png")
        library = AssetLibrary([Asset("logo")], tmp_path)
        image = library.image_for("logo")
        assert image is not None
        assert image.mode == "RGBA"
        assert image.size == (20, 10)

    def test_unknown_asset_returns_none(self, tmp_path):
        library = AssetLibrary([], tmp_path)
        assert library.image_for("ghost") is None

    def test_without_folder_returns_none(self):
        assert AssetLibrary([Asset("logo")]).image_for("logo") is None

    def test_caches_lookups(self, tmp_path):
        _write_png(tmp_path / "logo.png")
        library = AssetLibrary([Asset("logo")], tmp_path)
        assert library.image_for("logo") is library.image_for("logo")
