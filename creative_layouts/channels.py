from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterator, List, Literal, Mapping, Optional

from .errors import UnknownChannel, UnsupportedFileFormat


ColorSpace = Literal["RGB", "CMYK"]


class FormatClass(str, Enum):
    RASTER = "raster"
    VECTOR = "vector"
    DOCUMENT = "document"
    VIDEO = "video"


FILE_FORMAT_CLASSES: Mapping[str, FormatClass] = MappingProxyType(
    {
        "PNG": FormatClass.RASTER,
        "JPG": FormatClass.RASTER,
        "SVG": FormatClass.VECTOR,
        "PDF": FormatClass.DOCUMENT,
        "MP4": FormatClass.VIDEO,
    }
)


@dataclass(frozen=True)
class SafeArea:
    """Pixel insets from each canvas edge that platform UI may cover."""

    top: int = 0
    right: int = 0
    bottom: int = 0
    left: int = 0


@dataclass(frozen=True)
class ChannelSpec:
    channel_id: str
    width: int
    height: int
    dpi: int
    color_space: ColorSpace
    file_format: str
    category: str = "custom"
    safe_area: Optional[SafeArea] = None
    max_file_size: Optional[int] = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Channel '{self.channel_id}' must have positive dimensions, "
                f"got {self.width}x{self.height}"
            )
        if self.dpi <= 0:
            raise ValueError(f"Channel '{self.channel_id}' must have a positive dpi")

    @property
    def format_class(self) -> FormatClass:
        try:
            return FILE_FORMAT_CLASSES[self.file_format.upper()]
        except KeyError:
            raise UnsupportedFileFormat(self.file_format) from None

    @property
    def extension(self) -> str:
        return self.file_format.lower()

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def is_print(self) -> bool:
        return self.category == "print"


class ChannelRegistry:
    """
    Read-only lookup from channel identifier to its technical spec.

    Built once and passed to the composer and exporters; there is no way to
    add or replace a channel after construction.
    """

    def __init__(self, specs: Mapping[str, ChannelSpec]) -> None:
        for channel_id, spec in specs.items():
            if spec.channel_id != channel_id:
                raise ValueError(
                    f"Channel spec registered as '{channel_id}' declares id '{spec.channel_id}'"
                )
        self._specs: Mapping[str, ChannelSpec] = MappingProxyType(dict(specs))

    @classmethod
    def from_specs(cls, *specs: ChannelSpec) -> "ChannelRegistry":
        table: Dict[str, ChannelSpec] = {}
        for spec in specs:
            if spec.channel_id in table:
                raise ValueError(f"Duplicate channel spec: {spec.channel_id}")
            table[spec.channel_id] = spec
        return cls(table)

    def get(self, channel_id: str) -> ChannelSpec:
        try:
            return self._specs[channel_id]
        except KeyError:
            raise UnknownChannel(channel_id) from None

    def ids(self) -> List[str]:
        return list(self._specs)

    def by_category(self, category: str) -> List[ChannelSpec]:
        return [spec for spec in self._specs.values() if spec.category == category]

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._specs

    def __iter__(self) -> Iterator[ChannelSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)


_STORY_SAFE_AREA = SafeArea(top=250, right=0, bottom=340, left=0)


DEFAULT_REGISTRY = ChannelRegistry.from_specs(
    # Social media
    ChannelSpec("instagram_post", 1080, 1080, 72, "RGB", "JPG", "social"),
    ChannelSpec("instagram_story", 1080, 1920, 72, "RGB", "JPG", "social", _STORY_SAFE_AREA),
    ChannelSpec("instagram_reel", 1080, 1920, 72, "RGB", "MP4", "social", _STORY_SAFE_AREA),
    ChannelSpec("facebook_post", 1200, 630, 72, "RGB", "JPG", "social"),
    ChannelSpec("facebook_story", 1080, 1920, 72, "RGB", "JPG", "social", _STORY_SAFE_AREA),
    ChannelSpec("facebook_cover", 1200, 315, 72, "RGB", "JPG", "social"),
    ChannelSpec("linkedin_post", 1200, 627, 72, "RGB", "JPG", "social"),
    ChannelSpec("linkedin_banner", 1584, 396, 72, "RGB", "JPG", "social"),
    ChannelSpec("tiktok_video", 1080, 1920, 72, "RGB", "MP4", "social", _STORY_SAFE_AREA),
    ChannelSpec("youtube_thumbnail", 1280, 720, 72, "RGB", "JPG", "social"),
    # Print
    ChannelSpec("print_a4", 2480, 3508, 300, "CMYK", "PDF", "print"),
    ChannelSpec("print_a3", 3508, 4961, 300, "CMYK", "PDF", "print"),
    ChannelSpec("billboard_landscape", 14400, 4800, 150, "CMYK", "PDF", "print"),
    ChannelSpec("billboard_portrait", 4800, 14400, 150, "CMYK", "PDF", "print"),
    # Digital advertising
    ChannelSpec("banner_leaderboard", 728, 90, 72, "RGB", "JPG", "digital", max_file_size=150_000),
    ChannelSpec("banner_rectangle", 300, 250, 72, "RGB", "JPG", "digital", max_file_size=150_000),
    ChannelSpec("banner_skyscraper", 160, 600, 72, "RGB", "JPG", "digital", max_file_size=150_000),
    ChannelSpec("email_header", 600, 200, 72, "RGB", "JPG", "digital"),
    ChannelSpec("email_signature", 320, 120, 72, "RGB", "PNG", "digital"),
    # Retail & in-store
    ChannelSpec("pos_display", 1080, 1920, 150, "RGB", "PDF", "retail"),
    ChannelSpec("shelf_talker", 600, 400, 150, "RGB", "PDF", "retail"),
    ChannelSpec("window_cling", 1200, 1600, 150, "RGB", "PDF", "retail"),
    # Custom
    ChannelSpec("custom", 1080, 1080, 72, "RGB", "JPG", "custom"),
    ChannelSpec("custom_vector", 1080, 1080, 72, "RGB", "SVG", "custom"),
)
