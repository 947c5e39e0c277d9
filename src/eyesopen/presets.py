"""Comparison parameter presets and match levels."""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Union

from .core.masks import required_block_pixels
from .core.types import Region
from .errors import ConfigurationError

DEFAULT_BLOCK_SIZE = 5
DEFAULT_MAX_COLOR_DISTANCE = 20.0
# a block is evaluated if its visible pixels reach this share of a full block
DEFAULT_BLOCK_PIXEL_THRESHOLD = 0.67
# largest per-axis size difference the reconciler tries to absorb
DEFAULT_MAX_SIZE_DIFFERENCE = 5
DEFAULT_MAX_TIME_SECONDS = 100.0


@dataclass(frozen=True)
class MatchLevel:
    """Named bundle of block size and maximum colour distance."""

    name: str
    block_size: int
    max_color_distance: float
    description: str = ""

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "block_size": self.block_size,
            "max_color_distance": self.max_color_distance,
        }


EXACT = MatchLevel("exact", 1, 1.0, "Pixel to pixel comparison.")
STRICT = MatchLevel(
    "strict",
    5,
    14.0,
    "Compares content, fonts, layout and colours; ignores changes invisible to a human "
    "such as anti-aliasing and small pixel shifts.",
)
TOLERANT = MatchLevel("tolerant", 10, 20.0, "Accepts changes which are still visible, but barely so.")

MATCH_LEVELS: Mapping[str, MatchLevel] = {
    "exact": EXACT,
    "strict": STRICT,
    "tolerant": TOLERANT,
}


def get_match_level(name: str) -> MatchLevel:
    key = name.lower()
    if key not in MATCH_LEVELS:
        raise KeyError(f"Unknown match level '{name}'. Available: {', '.join(sorted(MATCH_LEVELS))}")
    return MATCH_LEVELS[key]


def iter_match_levels() -> Iterable[MatchLevel]:
    return MATCH_LEVELS.values()


@dataclass(frozen=True)
class CompareParams:
    """Parameters driving a block based image comparison."""

    block_size: int = DEFAULT_BLOCK_SIZE
    max_color_distance: float = DEFAULT_MAX_COLOR_DISTANCE
    block_pixel_threshold: float = DEFAULT_BLOCK_PIXEL_THRESHOLD
    max_size_difference: int = DEFAULT_MAX_SIZE_DIFFERENCE
    max_time_seconds: float = DEFAULT_MAX_TIME_SECONDS
    regions: FrozenSet[Region] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if isinstance(self.block_size, bool) or not isinstance(self.block_size, int):
            raise ConfigurationError(f"Block size must be an integer, got {self.block_size!r}")
        if self.block_size < 1:
            raise ConfigurationError("Block size must be greater than or equal to 1")
        if not _is_number(self.max_color_distance) or not self.max_color_distance > 0:
            raise ConfigurationError("Max color distance must be greater than 0")
        if not _is_number(self.block_pixel_threshold) or not 0 < self.block_pixel_threshold <= 1:
            raise ConfigurationError("Block pixel threshold must be within (0, 1]")
        if isinstance(self.max_size_difference, bool) or not isinstance(self.max_size_difference, int):
            raise ConfigurationError("Max size difference must be an integer")
        if self.max_size_difference < 0:
            raise ConfigurationError("Max size difference must not be negative")
        if not _is_number(self.max_time_seconds) or not self.max_time_seconds > 0:
            raise ConfigurationError("Max time must be greater than 0 seconds")
        regions = self.regions if self.regions is not None else ()
        for region in regions:
            if not isinstance(region, Region):
                raise ConfigurationError(f"Expected a Region, got {region!r}")
        object.__setattr__(self, "regions", frozenset(regions))

    @classmethod
    def from_match_level(cls, level: Union[MatchLevel, str], **overrides) -> "CompareParams":
        if isinstance(level, str):
            level = get_match_level(level)
        values = {"block_size": level.block_size, "max_color_distance": level.max_color_distance}
        values.update(overrides)
        return cls(**values)

    def copy(self, **overrides) -> "CompareParams":
        return replace(self, **overrides)

    def with_regions(self, *regions: Region) -> "CompareParams":
        return replace(self, regions=self.regions | frozenset(regions))

    @property
    def required_block_pixels(self) -> int:
        return required_block_pixels(self.block_size, self.block_pixel_threshold)

    def to_dict(self) -> Dict[str, object]:
        return {
            "block_size": self.block_size,
            "max_color_distance": self.max_color_distance,
            "block_pixel_threshold": self.block_pixel_threshold,
            "max_size_difference": self.max_size_difference,
            "max_time_seconds": self.max_time_seconds,
            "regions": [region.to_dict() for region in _sorted_regions(self.regions)],
        }


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _sorted_regions(regions: Iterable[Region]) -> list:
    return sorted(regions, key=lambda r: (r.action.value, r.x, r.y, r.width, r.height))


def resolve_params(
    match_level: Optional[Union[MatchLevel, str]] = None,
    regions: Iterable[Region] = (),
    **overrides,
) -> CompareParams:
    """Build parameters from an optional match level plus explicit overrides."""
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if match_level is None:
        params = CompareParams(**overrides)
    else:
        params = CompareParams.from_match_level(match_level, **overrides)
    regions = tuple(regions)
    if regions:
        params = params.with_regions(*regions)
    return params
