import base64
import io
import json
import xml.etree.ElementTree as ET
from dataclasses import replace
from datetime import date

import pytest
from PIL import Image

from creative_layouts.channels import ChannelRegistry, ChannelSpec
from creative_layouts.errors import InvalidExportConfiguration, UnknownChannel
from creative_layouts.export import (
    DirectoryStore,
    ExportRenderer,
    build_filename,
    read_document_metadata,
    sanitize_name,
    validate_export_config,
)
from creative_layouts.models import ExportMetadata

TODAY = date(2024, 1, 1)


class BrokenStore:
    def put(self, filename, data, mime_type):
        raise OSError("disk full")


class TestNaming:
    def test_sanitize_name(self):
        assert sanitize_name("My Campaign!") == "My_Campaign_"

    def test_filename_pattern(self, layout):
        layout = replace(layout, name="My Campaign!")
        assert build_filename(layout, "instagram_post", "jpg", TODAY) == "My_Campaign__instagram_post_2024-01-01.jpg"

    def test_export_uses_filename_pattern(self, layout, renderer, make_config):
        layout = replace(layout, name="My Campaign!")
        result = renderer.export(layout, make_config("instagram_post"))
        assert result.filename == "My_Campaign__instagram_post_2024-01-01.jpg"


class TestValidation:
    def test_valid_config(self, make_config):
        assert validate_export_config(make_config("instagram_post")) == []

    def test_collects_every_problem(self, make_config):
        problems = validate_export_config(make_config("myspace", title="  ", compression=150))
        assert problems == [
            "Unsupported format: myspace",
            "Compression must be between 0 and 100",
            "Title is required in metadata",
        ]

    def test_invalid_config_raises(self, layout, renderer, make_config):
        with pytest.raises(InvalidExportConfiguration) as excinfo:
            renderer.export(layout, make_config("instagram_post", compression=-1))
        assert excinfo.value.problems == ["Compression must be between 0 and 100"]

    def test_unknown_channel_raises(self, layout, renderer, make_config):
        with pytest.raises(UnknownChannel):
            renderer.export(layout, make_config("myspace"))


class TestRaster:
    def test_jpeg_export(self, layout, renderer, make_config):
        result = renderer.export(layout, make_config("instagram_post"))
        assert result.success
        assert result.mime_type == "image/jpeg"
        assert result.size == len(result.data)
        assert result.data[:2] == b"\xff\xd8"
        assert result.url.startswith("data:image/jpeg;base64,")
        assert base64.b64decode(result.url.split(",", 1)[1]) == result.data
        with Image.open(io.BytesIO(result.data)) as image:
            assert image.size == (1080, 1080)

    def test_png_export(self, composer, territory, assets, guidelines, renderer, make_config):
        layout = composer.compose(territory, assets, guidelines, "email_signature", "minimal")
        result = renderer.export(layout, make_config("email_signature"))
        assert result.success
        assert result.mime_type == "image/png"
        assert result.data.startswith(b"\x89PNG")
        assert result.filename.endswith(".png")

    def test_cmyk_profile(self, layout, renderer, make_config):
        result = renderer.export(layout, make_config("instagram_post", color_profile="CMYK"))
        with Image.open(io.BytesIO(result.data)) as image:
            assert image.mode == "CMYK"

    def test_real_asset_pixels(self, layout, make_config, tmp_path, assets):
        from creative_layouts.assets import AssetLibrary

        Image.new("RGB", (400, 400), (255, 0, 0)).save(tmp_path / "brand-logo.png")
        renderer = ExportRenderer(library=AssetLibrary(assets, tmp_path), today=lambda: TODAY)
        result = renderer.export(layout, make_config("instagram_post", compression=95))
        with Image.open(io.BytesIO(result.data)) as image:
            r, g, b = image.convert("RGB").getpixel((540, 400))
        assert r > 200 and g < 60 and b < 60

    def test_deterministic(self, layout, renderer, make_config):
        first = renderer.export(layout, make_config("instagram_post"))
        second = renderer.export(layout, make_config("instagram_post"))
        assert first.size == second.size
        assert first.data == second.data


class TestVector:
    def test_svg_structure(self, layout, renderer, make_config):
        result = renderer.export(replace(layout, channel_id="custom_vector"), make_config("custom_vector"))
        assert result.mime_type == "image/svg+xml"
        root = ET.fromstring(result.data)
        assert root.tag.endswith("svg")
        assert root.get("width") == "1080"
        ns = {"svg": "http://www.w3.org/2000/svg"}
        texts = root.findall("svg:text", ns)
        assert [t.text for t in texts] == ["Fresh coffee for early risers", "Wake up to something better"]
        assert texts[1].get("text-anchor") == "middle"
        asset_ids = [r.get("id") for r in root.findall("svg:rect", ns)[1:]]
        assert asset_ids == ["asset-brand-logo", "asset-product-pack", "asset-lifestyle-shot"]


class TestDocument:
    def test_pdf_with_embedded_layout(self, composer, territory, assets, guidelines, renderer, make_config):
        layout = composer.compose(territory, assets, guidelines, "print_a4", "elegant")
        config = make_config("print_a4", include_bleed=True, include_marks=True, color_profile="CMYK")
        result = renderer.export(layout, config)
        assert result.success
        assert result.mime_type == "application/pdf"
        assert result.data.startswith(b"%PDF")
        assert result.filename.endswith("_print_a4_2024-01-01.pdf")

        document = read_document_metadata(result.data)
        assert document["layout"]["layout_id"] == layout.layout_id
        assert document["config"]["metadata"]["title"] == "Spring launch"
        assert document["config"]["include_bleed"] is True
        assert document["specs"]["dpi"] == 300

    def test_pdf_is_reproducible(self, layout, renderer, make_config):
        printable = replace(layout, channel_id="print_a4")
        first = renderer.export(printable, make_config("print_a4"))
        second = renderer.export(printable, make_config("print_a4"))
        assert first.size == second.size

    def test_non_latin_copy_does_not_break_pdf(self, layout, renderer, make_config):
        config = replace(make_config("shelf_talker"), metadata=ExportMetadata(title="Café ☕ launch"))
        result = renderer.export(replace(layout, channel_id="shelf_talker"), config)
        assert result.success
        assert read_document_metadata(result.data)["config"]["metadata"]["title"] == "Café ☕ launch"

    def test_no_document_marker(self):
        with pytest.raises(ValueError):
            read_document_metadata(b"%PDF-1.7 nothing here")


class TestVideo:
    def test_video_placeholder(self, layout, renderer, make_config):
        result = renderer.export(replace(layout, channel_id="tiktok_video"), make_config("tiktok_video"))
        assert result.success
        assert result.mime_type == "video/mp4"
        payload = json.loads(result.data)
        assert payload["type"] == "video"
        assert payload["specs"]["channel_id"] == "tiktok_video"


class TestFailures:
    def test_unsupported_format_is_a_failed_result(self, layout, make_config):
        registry = ChannelRegistry.from_specs(ChannelSpec("gif_banner", 300, 250, 72, "RGB", "GIF"))
        renderer = ExportRenderer(registry=registry, today=lambda: TODAY)
        result = renderer.export(layout, make_config("gif_banner"))
        assert not result.success
        assert result.size == 0
        assert result.error == "Unsupported format: GIF"

    def test_store_failure_is_a_failed_result(self, layout, make_config):
        renderer = ExportRenderer(store=BrokenStore(), today=lambda: TODAY)
        result = renderer.export(layout, make_config("instagram_post"))
        assert not result.success
        assert result.error == "disk full"
        assert result.url is None


class TestDirectoryStore:
    def test_writes_files(self, layout, make_config, tmp_path):
        renderer = ExportRenderer(store=DirectoryStore(tmp_path / "out"), today=lambda: TODAY)
        result = renderer.export(layout, make_config("instagram_post"))
        path = tmp_path / "out" / result.filename
        assert result.url == str(path)
        assert path.read_bytes() == result.data
