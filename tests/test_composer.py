import pytest

from creative_layouts.channels import DEFAULT_REGISTRY
from creative_layouts.composer import LayoutComposer
from creative_layouts.errors import UnknownChannel
from creative_layouts.judgment import HeuristicJudge
from creative_layouts.models import Asset, AssetRole, LayoutRequest, Territory
from creative_layouts.styles import DEFAULT_POLICY, STYLE_POLICIES, StylePolicy


class CountingJudge(HeuristicJudge):
    def __init__(self):
        self.calls = 0

    def compute(self, request):
        self.calls += 1
        return super().compute(request)


def _inside_canvas(placement, spec):
    return (
        placement.x >= 0
        and placement.y >= 0
        and placement.width >= 1
        and placement.height >= 1
        and placement.x + placement.width <= spec.width
        and placement.y + placement.height <= spec.height
    )


class TestGenerate:
    def test_one_variation_per_channel_and_style(self, composer, territory, assets, guidelines):
        request = LayoutRequest(
            territory=territory,
            guidelines=guidelines,
            channels=("instagram_post", "facebook_post"),
            assets=assets,
        )
        variations = composer.generate(request)
        assert len(variations) == 6
        assert {(v.channel_id, v.style) for v in variations} == {
            (c, s) for c in ("instagram_post", "facebook_post") for s in ("minimal", "bold", "elegant")
        }

    def test_sorted_by_predicted_performance(self, composer, territory, assets, guidelines):
        request = LayoutRequest(
            territory=territory,
            guidelines=guidelines,
            channels=("instagram_post", "banner_leaderboard", "instagram_story"),
            assets=assets,
        )
        scores = [v.performance_score for v in composer.generate(request)]
        assert scores == sorted(scores, reverse=True)

    def test_explicit_styles(self, composer, territory, assets, guidelines):
        request = LayoutRequest(
            territory=territory,
            guidelines=guidelines,
            channels=("instagram_post",),
            assets=assets,
            styles=("bold",),
        )
        variations = composer.generate(request)
        assert [v.style for v in variations] == ["bold"]

    def test_unknown_channel_fails_before_any_scoring(self, territory, assets, guidelines):
        judge = CountingJudge()
        composer = LayoutComposer(judge=judge)
        request = LayoutRequest(
            territory=territory,
            guidelines=guidelines,
            channels=("instagram_post", "myspace_banner"),
            assets=assets,
        )
        with pytest.raises(UnknownChannel):
            composer.generate(request)
        assert judge.calls == 0

    def test_layout_ids_and_timestamps_come_from_injected_factories(self, composer, territory, assets, guidelines):
        request = LayoutRequest(territory=territory, guidelines=guidelines, channels=("custom",), assets=assets)
        variations = composer.generate(request)
        assert sorted(v.layout_id for v in variations) == ["layout_001", "layout_002", "layout_003"]
        assert all(v.created_at == v.updated_at for v in variations)


class TestPlacementBounds:
    @pytest.mark.parametrize("channel_id", DEFAULT_REGISTRY.ids())
    @pytest.mark.parametrize("style", ["minimal", "bold", "elegant", "retro"])
    def test_every_rectangle_inside_canvas(self, composer, territory, assets, guidelines, channel_id, style):
        layout = composer.compose(territory, assets, guidelines, channel_id, style)
        spec = DEFAULT_REGISTRY.get(channel_id)
        for placement in layout.image_placements + layout.text_placements:
            assert _inside_canvas(placement, spec), placement

    def test_many_tall_secondaries_still_fit(self, composer, territory, guidelines):
        assets = [Asset("hero", AssetRole.PRODUCT)] + [
            Asset(f"tall-{i}", AssetRole.LIFESTYLE, dimensions=(100, 1000)) for i in range(8)
        ]
        layout = composer.compose(territory, assets, guidelines, "banner_leaderboard", "minimal")
        spec = DEFAULT_REGISTRY.get("banner_leaderboard")
        assert len(layout.image_placements) == 9
        for placement in layout.image_placements:
            assert _inside_canvas(placement, spec)


class TestImagePlacement:
    def test_highest_priority_asset_is_hero(self, layout):
        hero = layout.image_placements[0]
        assert hero.asset_id == "brand-logo"
        assert hero.z_index == 1

    def test_hero_box_follows_style(self, layout):
        hero = layout.image_placements[0]
        assert (hero.x, hero.y, hero.width, hero.height) == (108, 108, 864, 648)

    def test_secondaries_stack_in_lower_right(self, layout):
        secondaries = layout.image_placements[1:]
        assert [p.asset_id for p in secondaries] == ["product-pack", "lifestyle-shot"]
        for placement in secondaries:
            assert placement.x == 756
            assert placement.y >= 777
            assert placement.y + placement.height <= 1059
            assert placement.z_index > 1

    def test_secondaries_keep_aspect_ratio(self, layout, assets):
        ratios = {a.asset_id: a.aspect_ratio for a in assets}
        for placement in layout.image_placements[1:]:
            assert placement.width / placement.height == pytest.approx(ratios[placement.asset_id], rel=0.03)

    def test_no_assets_means_text_only(self, composer, territory, guidelines):
        layout = composer.compose(territory, (), guidelines, "instagram_post", "minimal")
        assert layout.image_placements == ()
        assert [t.placement_id for t in layout.text_placements] == ["headline_main", "positioning_text"]
        assert "text-only" in layout.rationale


class TestTextPlacement:
    def test_headline_and_positioning(self, layout):
        headline, positioning = layout.text_placements
        assert headline.placement_id == "headline_main"
        assert headline.content == "Wake up to something better"
        assert headline.font_weight == "bold"
        assert headline.z_index == 10
        assert positioning.placement_id == "positioning_text"
        assert positioning.content == "Fresh coffee for early risers"
        assert positioning.z_index == 9
        assert positioning.y >= headline.y + headline.height

    def test_font_sizes_scale_with_canvas(self, layout):
        headline, positioning = layout.text_placements
        assert headline.font_size == round(1080 / 20 * 1.5)
        assert positioning.font_size == round(1080 / 20)

    def test_half_pixel_font_sizes_round_up(self, composer, territory, assets, guidelines):
        layout = composer.compose(territory, assets, guidelines, "banner_leaderboard", "minimal")
        assert [t.font_size for t in layout.text_placements] == [7, 5]

    def test_text_column_leaves_room_for_secondaries(self, layout):
        for text in layout.text_placements:
            assert text.x + text.width <= 756

    def test_bold_style_is_uppercase_left_aligned(self, composer, territory, assets, guidelines):
        layout = composer.compose(territory, assets, guidelines, "instagram_post", "bold")
        headline = layout.text_placements[0]
        assert headline.text_transform == "uppercase"
        assert headline.text_align == "left"
        assert headline.display_text() == "WAKE UP TO SOMETHING BETTER"
        assert headline.font_size == round(1080 / 20 * 1.5 * 1.2)

    def test_empty_territory_copy(self, composer, assets, guidelines):
        territory = Territory(territory_id="blank", positioning="   ")
        layout = composer.compose(territory, assets, guidelines, "instagram_post", "minimal")
        assert layout.text_placements == ()

    def test_headline_moves_clear_of_hero_safe_area(self, territory, assets, guidelines):
        policies = dict(STYLE_POLICIES)
        policies["overlay"] = StylePolicy(
            name="overlay",
            hero_box=(0.0, 0.0, 1.0, 0.7),
            text_x=0.1,
            text_width=0.8,
            headline_y=0.3,
        )
        composer = LayoutComposer(policies=policies)
        layout = composer.compose(territory, assets, guidelines, "instagram_story", "overlay")
        hero = layout.image_placements[0]
        headline = layout.text_placements[0]
        assert headline.y >= hero.y + hero.height


class TestStyles:
    def test_unknown_style_uses_default_formulas(self, composer, territory, assets, guidelines):
        layout = composer.compose(territory, assets, guidelines, "instagram_post", "retro")
        assert layout.style == "retro"
        hero = layout.image_placements[0]
        fx, fy, fw, fh = DEFAULT_POLICY.hero_box
        assert (hero.x, hero.y, hero.width, hero.height) == (
            int(1080 * fx),
            int(1080 * fy),
            int(1080 * fw),
            int(1080 * fh),
        )
        assert "default formulas" in layout.rationale

    def test_bold_palette_uses_primary_background(self, composer, territory, assets, guidelines):
        layout = composer.compose(territory, assets, guidelines, "instagram_post", "bold")
        assert layout.palette.background == guidelines.colors.primary
        assert layout.palette.text == "#ffffff"
        assert all(t.color == "#ffffff" for t in layout.text_placements)

    def test_minimal_palette_lightens_secondary(self, layout, guidelines):
        assert layout.palette.primary == guidelines.colors.primary
        assert layout.palette.background == "#ffffff"
        assert layout.palette.secondary != guidelines.colors.secondary

    def test_layout_name_and_description(self, layout):
        assert layout.name == "Minimal instagram post"
        assert layout.territory_id == "terr-1"
        assert "instagram_post" in layout.description


class TestScoring:
    def test_heuristic_scores_are_populated(self, layout):
        assert 0 <= layout.compliance.overall <= 100
        assert not layout.compliance.is_fallback
        assert 0 <= layout.performance.score <= 100
        assert layout.performance.confidence == pytest.approx(0.8)

    def test_failing_judge_gives_fallback_scores(self, territory, assets, guidelines, failing_judge):
        composer = LayoutComposer(judge=failing_judge)
        layout = composer.compose(territory, assets, guidelines, "instagram_post", "minimal")
        assert layout.compliance.is_fallback
        assert layout.compliance.overall == 75
        assert set(layout.compliance.categories.values()) == {75}
        assert layout.compliance.recommendations == ("Manual compliance review recommended",)
        assert layout.performance.is_fallback
        assert layout.performance.score == 75
        assert failing_judge.calls == 2
