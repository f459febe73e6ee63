import itertools
from datetime import date, datetime, timezone

import pytest

from creative_layouts.composer import LayoutComposer
from creative_layouts.export import ExportRenderer
from creative_layouts.models import (
    Asset,
    AssetRole,
    BrandGuidelines,
    ColorPalette,
    ComplianceRules,
    ExportConfiguration,
    ExportMetadata,
    Headline,
    LogoUsage,
    Spacing,
    Territory,
    Typography,
)

FIXED_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
FIXED_TODAY = date(2024, 1, 1)


class FailingJudge:
    """Judgment strategy that always blows up."""

    def __init__(self, exc=None):
        self.exc = exc or RuntimeError("judge offline")
        self.calls = 0

    def compute(self, request):
        self.calls += 1
        raise self.exc


class FakeLLM:
    """Stands in for ChatOpenAI: returns canned answers and records prompts."""

    class _Message:
        def __init__(self, content):
            self.content = content

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []

    def invoke(self, prompt):
        self.prompts.append(prompt)
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, Exception):
            raise answer
        return self._Message(answer)


@pytest.fixture
def guidelines():
    return BrandGuidelines(
        colors=ColorPalette(
            primary="#1a73e8",
            secondary=("#34a853",),
            accent=("#fbbc04",),
        ),
        typography=Typography(primary="Arial", secondary="Helvetica"),
        logo_usage=LogoUsage(min_size=40, clear_space=10),
        spacing=Spacing(grid=8, margins=20),
        compliance=ComplianceRules(prohibited_elements=("guaranteed",)),
    )


@pytest.fixture
def territory():
    return Territory(
        territory_id="terr-1",
        positioning="Fresh coffee for early risers",
        tone="warm",
        title="Morning ritual",
        headlines=(Headline("Wake up to something better"),),
    )


@pytest.fixture
def assets():
    return (
        Asset("lifestyle-shot", AssetRole.LIFESTYLE, quality_score=90, dimensions=(1600, 900)),
        Asset("brand-logo", AssetRole.LOGO, dimensions=(400, 400)),
        Asset("product-pack", AssetRole.PRODUCT, quality_score=80, dimensions=(800, 1200)),
    )


@pytest.fixture
def composer():
    counter = itertools.count(1)
    return LayoutComposer(
        clock=lambda: FIXED_NOW,
        id_factory=lambda: f"layout_{next(counter):03d}",
    )


@pytest.fixture
def layout(composer, territory, assets, guidelines):
    return composer.compose(territory, assets, guidelines, "instagram_post", "minimal")


@pytest.fixture
def renderer():
    return ExportRenderer(today=lambda: FIXED_TODAY)


@pytest.fixture
def make_config():
    def _make(channel_id, title="Spring launch", **overrides):
        return ExportConfiguration(
            channel_id=channel_id,
            metadata=ExportMetadata(title=title, description="Launch creative", keywords=("spring",)),
            **overrides,
        )

    return _make


@pytest.fixture
def request_data():
    return {
        "territory": {
            "id": "terr-1",
            "title": "Morning ritual",
            "positioning": "Fresh coffee for early risers",
            "tone": "warm",
            "headlines": [{"text": "Wake up to something better", "followUp": "Every day", "confidence": 0.9}],
        },
        "assets": [
            {"id": "brand-logo", "type": "logo", "dimensions": {"width": 400, "height": 400}},
            {"id": "product-pack", "type": "product", "qualityScore": 80, "dimensions": [800, 1200]},
        ],
        "brandGuidelines": {
            "colors": {"primary": "#1a73e8", "secondary": ["#34a853"]},
            "typography": {"primary": "Arial"},
            "logoUsage": {"minSize": 40, "clearSpace": 10},
            "spacing": {"margins": 20},
            "compliance": {"prohibitedElements": ["guaranteed"], "legalText": []},
        },
        "channels": ["instagram_post", "custom_vector"],
        "styles": ["minimal", "bold"],
    }


@pytest.fixture
def failing_judge():
    return FailingJudge()


@pytest.fixture
def fake_llm():
    return FakeLLM
