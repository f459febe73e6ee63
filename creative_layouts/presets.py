from types import MappingProxyType
from typing import Mapping, Tuple

from .errors import UnknownPreset
from .models import ExportConfiguration, ExportMetadata, ExportQuality

DEFAULT_COPYRIGHT = "All rights reserved"


def _preset(
    channel_id: str,
    title: str,
    description: str,
    keywords: Tuple[str, ...],
    compression: int,
    print_ready: bool = False,
) -> ExportConfiguration:
    return ExportConfiguration(
        channel_id=channel_id,
        quality=ExportQuality.PRODUCTION,
        include_bleed=print_ready,
        include_marks=print_ready,
        color_profile="CMYK" if print_ready else "sRGB",
        compression=compression,
        metadata=ExportMetadata(
            title=title,
            description=description,
            keywords=keywords,
            copyright=DEFAULT_COPYRIGHT,
        ),
    )


EXPORT_PRESETS: Mapping[str, Tuple[ExportConfiguration, ...]] = MappingProxyType(
    {
        "social_media_pack": (
            _preset("instagram_post", "Instagram Post", "Optimized for Instagram feed", ("social", "instagram"), 85),
            _preset("instagram_story", "Instagram Story", "Optimized for Instagram Stories", ("social", "instagram", "story"), 85),
            _preset("facebook_post", "Facebook Post", "Optimized for Facebook feed", ("social", "facebook"), 85),
        ),
        "digital_ads_pack": (
            _preset("banner_leaderboard", "Leaderboard Banner", "Web banner advertisement", ("digital", "banner", "web"), 90),
            _preset("banner_rectangle", "Rectangle Banner", "Medium rectangle web banner", ("digital", "banner", "web"), 90),
        ),
        "print_pack": (
            _preset("print_a4", "A4 Print", "Print-ready A4 format", ("print", "a4"), 100, print_ready=True),
            _preset("billboard_landscape", "Billboard", "Large format billboard", ("print", "billboard", "outdoor"), 95, print_ready=True),
        ),
    }
)


def get_preset(name: str) -> Tuple[ExportConfiguration, ...]:
    try:
        return EXPORT_PRESETS[name]
    except KeyError:
        raise UnknownPreset(name) from None
