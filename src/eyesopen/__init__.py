"""Tolerant, block based visual regression comparison of raster images."""

from __future__ import annotations

from .compare import ImageCompare, classify, compare_images
from .core.types import ComparisonModel, Rect, Region, RegionAction, Status
from .errors import ConfigurationError, EyesOpenError, SearchTimeoutError
from .presets import (
    EXACT,
    STRICT,
    TOLERANT,
    CompareParams,
    MatchLevel,
    get_match_level,
    iter_match_levels,
)

__all__ = [
    "ImageCompare",
    "classify",
    "compare_images",
    "ComparisonModel",
    "Rect",
    "Region",
    "RegionAction",
    "Status",
    "ConfigurationError",
    "EyesOpenError",
    "SearchTimeoutError",
    "EXACT",
    "STRICT",
    "TOLERANT",
    "CompareParams",
    "MatchLevel",
    "get_match_level",
    "iter_match_levels",
    "core",
]

__version__ = "0.3.0"
