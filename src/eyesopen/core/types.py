"""Geometry, region and status descriptors shared by the comparison engine."""
from __future__ import annotations

import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Tuple

from ..errors import ConfigurationError


class RegionAction(Enum):
    FOCUS = "focus"
    EXCLUDE = "exclude"
    FIND_THIS_TARGET = "find_this_target"
    WITHIN_THIS_BOUNDING_BOX = "within_this_bounding_box"


INCLUDE_ACTIONS = frozenset(
    {RegionAction.FOCUS, RegionAction.WITHIN_THIS_BOUNDING_BOX, RegionAction.FIND_THIS_TARGET}
)
FIND_ACTIONS = frozenset({RegionAction.FIND_THIS_TARGET, RegionAction.WITHIN_THIS_BOUNDING_BOX})


@dataclass(frozen=True)
class Rect:
    """Axis aligned pixel rectangle, ``(x, y)`` being the top-left corner."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Region:
    """An area of an image used to focus on, exclude, or drive a find-in-region check.

    The box is half-open: it covers columns ``[x, x + width)`` and rows
    ``[y, y + height)``.
    """

    x: int
    y: int
    width: int
    height: int
    action: RegionAction = RegionAction.FOCUS

    def __post_init__(self) -> None:
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise ConfigurationError(f"Region {name} must be an integer, got {value!r}")
            object.__setattr__(self, name, int(value))
        if self.width < 0 or self.height < 0:
            raise ConfigurationError(
                f"Region size must not be negative, got {self.width}x{self.height}"
            )
        if not isinstance(self.action, RegionAction):
            raise ConfigurationError(f"Unknown region action {self.action!r}")

    @classmethod
    def from_rect(cls, rect: Rect | Tuple[int, int, int, int], action: RegionAction) -> "Region":
        if isinstance(rect, Rect):
            return cls(rect.x, rect.y, rect.width, rect.height, action)
        x, y, width, height = rect
        return cls(x, y, width, height, action)

    @property
    def location(self) -> Tuple[int, int]:
        return self.x, self.y

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def to_rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def fits_within(self, width: int, height: int) -> bool:
        """True when the whole region lies inside a ``width`` x ``height`` image."""
        return self.x >= 0 and self.y >= 0 and self.right <= width and self.bottom <= height

    def to_dict(self) -> Dict[str, object]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "action": self.action.value,
        }


class ComparisonModel(Enum):
    STANDARD = "standard"
    FIND_WITHIN_REGION = "find_within_region"


def comparison_model(regions: Iterable[Region]) -> ComparisonModel:
    """Derive the comparison model from the region actions present.

    Focus/exclude regions cannot be combined with the find-in-region actions,
    and a find target needs exactly one bounding box (and vice versa).
    """
    counts: Dict[RegionAction, int] = {action: 0 for action in RegionAction}
    for region in regions:
        if not isinstance(region, Region):
            raise ConfigurationError(f"Expected a Region, got {region!r}")
        counts[region.action] += 1

    find_count = counts[RegionAction.FIND_THIS_TARGET]
    within_count = counts[RegionAction.WITHIN_THIS_BOUNDING_BOX]
    if not find_count and not within_count:
        return ComparisonModel.STANDARD

    if counts[RegionAction.FOCUS] or counts[RegionAction.EXCLUDE]:
        raise ConfigurationError(
            "Focus/exclude regions cannot be mixed with find-this-target/within-this-bounding-box regions"
        )
    if find_count != 1 or within_count != 1:
        raise ConfigurationError(
            "Find-within-region comparisons need exactly one FIND_THIS_TARGET and one "
            f"WITHIN_THIS_BOUNDING_BOX region (got {find_count} and {within_count})"
        )
    return ComparisonModel.FIND_WITHIN_REGION


class Status(Enum):
    """Possible tags for an image comparison."""

    # comparison results
    PASSED = "Passed"
    FAILED = "Failed"
    FAILED_TO_FIND_IMAGE_IN_REGION = "Failed To Find Image In Region"
    DIFFERENT_SIZE = "Different Size"
    MISSING = "Missing"
    NEEDS_APPROVAL = "Needs Approval"

    # triage actions
    COPY_TO_MASTER = "Copy To Master"
    REJECTED = "Rejected"
    REMOVE_FROM_MASTER = "Remove From Master"

    # performed triage actions
    COPIED_TO_MASTER = "Copied To Master"
    REMOVED_FROM_MASTER = "Removed From Master"

    MASTER_IMAGE = "Master"

    @property
    def text(self) -> str:
        return self.value

    @property
    def is_result(self) -> bool:
        return self in _RESULT_STATUSES

    def annotate(self, counter: int, original: str) -> str:
        """Prefix ``original`` with a counter and the status tag."""
        return f"{counter}__{self.name}__{original}"

    @classmethod
    def parse(cls, text: str) -> "Status":
        key = text.lower().replace("_", "").replace(" ", "")
        for status in cls:
            if key in (status.name.lower().replace("_", ""), status.value.lower().replace(" ", "")):
                return status
        raise ValueError(f"Unable to parse status: {text}")


_RESULT_STATUSES = frozenset(
    {
        Status.PASSED,
        Status.FAILED,
        Status.FAILED_TO_FIND_IMAGE_IN_REGION,
        Status.DIFFERENT_SIZE,
        Status.MISSING,
        Status.NEEDS_APPROVAL,
    }
)
