import pytest

from creative_layouts.colors import (
    DEFAULT_COLOR,
    adjust_saturation,
    contrast_ratio,
    lighten,
    parse_color,
    same_color,
    to_hex,
)


class TestParseColor:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("#FF0000", (255, 0, 0)),
            ("00ff00", (0, 255, 0)),
            ("#00F", (0, 0, 255)),
        ],
    )
    def test_hex_forms(self, value, expected):
        assert parse_color(value) == expected

    @pytest.mark.parametrize("value", ["", None, "#12", "#zzzzzz", "red"])
    def test_invalid_falls_back(self, value):
        assert parse_color(value) == DEFAULT_COLOR


class TestColorMath:
    def test_to_hex_clamps(self):
        assert to_hex((300, -4, 15.6)) == "#ff0010"

    def test_contrast_black_on_white(self):
        assert contrast_ratio("#000000", "#ffffff") == pytest.approx(21.0)

    def test_contrast_is_symmetric(self):
        assert contrast_ratio("#1a73e8", "#ffffff") == pytest.approx(contrast_ratio("#ffffff", "#1a73e8"))

    def test_lighten(self):
        assert lighten("#000000", 1.0) == "#ffffff"
        assert lighten("#336699", 0.0) == "#336699"

    def test_full_desaturation_is_grey(self):
        r, g, b = parse_color(adjust_saturation("#1a73e8", -100))
        assert r == g == b

    def test_same_color_ignores_notation(self):
        assert same_color("#FFF", "ffffff")
        assert not same_color("#fff", "#000")
