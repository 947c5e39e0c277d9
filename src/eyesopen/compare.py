"""Block based image comparison with tolerance, masks and find-in-region search.

Two images are compared by averaging their pixels into blocks and checking
that each pair of corresponding block colours lies within a colour distance.
Everything is computed when an :class:`ImageCompare` is constructed; the
instance is read-only afterwards.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from .core.blocks import BlockComparison, compare_blocks
from .core.images import as_rgb_array, blank_canvas, crop, image_size
from .core.locator import find_template
from .core.masks import compose_block_mask, compose_pixel_mask
from .core.reconcile import reconcile_sizes
from .core.types import ComparisonModel, Rect, Region, RegionAction, Status, comparison_model
from .diagnostics import describe_blocks, find_problem_areas
from .errors import ConfigurationError
from .presets import CompareParams, MatchLevel, resolve_params

logger = logging.getLogger(__name__)

Image = Optional[np.ndarray]


def classify(
    *,
    is_match: bool,
    model: ComparisonModel,
    is_same_size: bool,
    size_adjusted: bool,
    master_present: bool,
    snapshot_present: bool,
) -> Status:
    """Derive the final status; the first rule that applies wins."""
    if is_match:
        return Status.PASSED
    if not is_same_size and not size_adjusted:
        return Status.DIFFERENT_SIZE
    if master_present and not snapshot_present:
        return Status.MISSING
    if snapshot_present and not master_present:
        return Status.NEEDS_APPROVAL
    if model is ComparisonModel.FIND_WITHIN_REGION:
        return Status.FAILED_TO_FIND_IMAGE_IN_REGION
    return Status.FAILED


class ImageCompare:
    """Compare a master image with a snapshot.

    Parameters
    ----------
    master:
        The reference image, or ``None`` when no master exists yet.
    snapshot:
        The current test snapshot, or ``None`` when it was not produced. A
        missing image is replaced by a black canvas the size of the other one
        and the comparison never matches.
    params:
        Block size, colour tolerance, thresholds and regions. Defaults to
        :class:`CompareParams` defaults.
    regions:
        Extra regions added on top of ``params.regions``.
    """

    def __init__(
        self,
        master: Image,
        snapshot: Image,
        params: Optional[CompareParams] = None,
        *,
        regions: Optional[Iterable[Region]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if master is None and snapshot is None:
            raise ConfigurationError("At least one image must be provided")
        if params is None:
            params = CompareParams()
        elif not isinstance(params, CompareParams):
            raise ConfigurationError(f"Expected CompareParams, got {type(params).__name__}")
        if regions:
            params = params.with_regions(*regions)

        self.params = params
        self.model = comparison_model(params.regions)
        self.master_present = master is not None
        self.snapshot_present = snapshot is not None

        master_img = as_rgb_array(master, name="master") if master is not None else None
        snapshot_img = as_rgb_array(snapshot, name="snapshot") if snapshot is not None else None
        if master_img is None:
            master_img = _blank_like(snapshot_img)
        if snapshot_img is None:
            snapshot_img = _blank_like(master_img)

        self.master_size = image_size(master_img)
        self.snapshot_size = image_size(snapshot_img)
        self.is_same_size = self.master_size == self.snapshot_size
        self.is_snapshot_size_adjusted = False
        self.located_target: Optional[Rect] = None
        self.grid_origin: Tuple[int, int] = (0, 0)

        if self.model is ComparisonModel.FIND_WITHIN_REGION:
            content_match = self._find_within_region(master_img, snapshot_img, clock)
        else:
            content_match = self._compare_standard(master_img, snapshot_img, clock)

        self.is_match = bool(content_match and self.master_present and self.snapshot_present)
        self.status = classify(
            is_match=self.is_match,
            model=self.model,
            is_same_size=self.is_same_size,
            size_adjusted=self.is_snapshot_size_adjusted,
            master_present=self.master_present,
            snapshot_present=self.snapshot_present,
        )

        self._problem_areas: Optional[Tuple[Rect, ...]] = None
        self._lock = threading.Lock()
        logger.info(
            "Compared %dx%d master with %dx%d snapshot (%s): %s, largest distance %.1f",
            *self.master_size,
            *self.snapshot_size,
            self.model.value,
            self.status.text,
            self.largest_color_distance,
        )

    # ------------------------------------------------------------------
    # comparison models
    # ------------------------------------------------------------------

    def _compare_standard(self, master: np.ndarray, snapshot: np.ndarray, clock) -> bool:
        params = self.params
        width, height = self.master_size
        pixel_mask = compose_pixel_mask(width, height, params.regions)
        block_mask = compose_block_mask(params.block_pixel_threshold, params.block_size, width, height, pixel_mask)

        comparable = True
        if not self.is_same_size:
            reconciled = reconcile_sizes(
                master,
                snapshot,
                pixel_mask=pixel_mask,
                block_mask=block_mask,
                block_size=params.block_size,
                block_threshold=params.block_pixel_threshold,
                max_color_distance=params.max_color_distance,
                max_size_difference=params.max_size_difference,
                max_time_seconds=params.max_time_seconds,
                clock=clock,
            )
            master, snapshot = reconciled.master, reconciled.snapshot
            self.is_snapshot_size_adjusted = reconciled.adjusted
            comparable = reconciled.adjusted
            if reconciled.extra_regions or not reconciled.adjusted:
                width, height = image_size(master)
                pixel_mask = compose_pixel_mask(width, height, params.regions | reconciled.extra_regions)
                block_mask = compose_block_mask(
                    params.block_pixel_threshold, params.block_size, width, height, pixel_mask
                )

        self._set_grids(master, snapshot, pixel_mask, block_mask)
        self._comparison = compare_blocks(master, snapshot, params.block_size, block_mask, params.max_color_distance)
        return comparable and self._comparison.is_match

    def _find_within_region(self, master: np.ndarray, snapshot: np.ndarray, clock) -> bool:
        params = self.params
        target = _single_region(params.regions, RegionAction.FIND_THIS_TARGET)
        bounding_box = _single_region(params.regions, RegionAction.WITHIN_THIS_BOUNDING_BOX)
        _require_inside(target, self.master_size, "target region", "master")
        _require_inside(bounding_box, self.snapshot_size, "bounding box region", "snapshot")

        width, height = self.master_size
        pixel_mask = compose_pixel_mask(width, height, params.regions)
        template = crop(master, target.x, target.y, target.width, target.height)
        template_mask = crop(pixel_mask, target.x, target.y, target.width, target.height)
        block_mask = compose_block_mask(
            params.block_pixel_threshold, params.block_size, target.width, target.height, template_mask
        )
        bounding = crop(snapshot, bounding_box.x, bounding_box.y, bounding_box.width, bounding_box.height)

        if self.master_present and self.snapshot_present:
            self.located_target = find_template(
                template,
                bounding,
                block_size=params.block_size,
                max_color_distance=params.max_color_distance,
                block_threshold=params.block_pixel_threshold,
                max_time_seconds=params.max_time_seconds,
                template_block_mask=block_mask,
                origin=bounding_box.location,
                clock=clock,
            )

        self._set_grids(master, snapshot, pixel_mask, block_mask)
        located = self.located_target
        if located is None:
            # grids stay on the target region of the master
            self.grid_origin = target.location
            self._comparison = _unscored(block_mask)
            return False
        self.grid_origin = (located.x, located.y)
        window = crop(snapshot, located.x, located.y, located.width, located.height)
        self._comparison = compare_blocks(template, window, params.block_size, block_mask, params.max_color_distance)
        return True

    def _set_grids(self, master, snapshot, pixel_mask: np.ndarray, block_mask: np.ndarray) -> None:
        pixel_mask.setflags(write=False)
        block_mask.setflags(write=False)
        self.master = master
        self.snapshot = snapshot
        self.pixel_mask = pixel_mask
        self.block_mask = block_mask

    # ------------------------------------------------------------------
    # read-only results
    # ------------------------------------------------------------------

    @property
    def is_find_in_region_model(self) -> bool:
        return self.model is ComparisonModel.FIND_WITHIN_REGION

    @property
    def block_comparison(self) -> np.ndarray:
        """Boolean block grid; ``True`` where the block passed (masked blocks always pass)."""
        return self._comparison.passed

    @property
    def block_distances(self) -> np.ndarray:
        """Colour distance of every failing block, zero elsewhere."""
        return self._comparison.distances

    @property
    def largest_color_distance(self) -> float:
        return self._comparison.largest_distance

    def problem_areas(self) -> Tuple[Rect, ...]:
        """Pixel rectangles around groups of failing blocks, computed once.

        Rectangles are shifted by :attr:`grid_origin`: in find-in-region mode
        they lie on the snapshot where the target was located, or on the
        target region of the master when it was not found.
        """
        with self._lock:
            if self._problem_areas is None:
                self._problem_areas = tuple(
                    find_problem_areas(self.block_comparison, self.params.block_size, origin=self.grid_origin)
                )
            return self._problem_areas

    def failing_blocks(self) -> List[Dict[str, object]]:
        by, bx = np.nonzero(~self.block_comparison)
        order = np.lexsort((by, bx))
        return [
            {"block": [int(bx[i]), int(by[i])], "distance": float(self.block_distances[by[i], bx[i]])}
            for i in order
        ]

    def summary(self) -> str:
        return f"{self!r} blocks=[{describe_blocks(self)}]"

    def to_dict(self) -> Dict[str, object]:
        rows, cols = self.block_mask.shape
        return {
            "status": self.status.name,
            "status_text": self.status.text,
            "is_match": self.is_match,
            "model": self.model.value,
            "is_same_size": self.is_same_size,
            "is_snapshot_size_adjusted": self.is_snapshot_size_adjusted,
            "master_present": self.master_present,
            "snapshot_present": self.snapshot_present,
            "master_size": list(self.master_size),
            "snapshot_size": list(self.snapshot_size),
            "located_target": self.located_target.to_dict() if self.located_target else None,
            "grid_origin": list(self.grid_origin),
            "largest_color_distance": self.largest_color_distance,
            "blocks": {"columns": cols, "rows": rows, "masked": int(self.block_mask.sum())},
            "failing_blocks": self.failing_blocks(),
            "problem_areas": [area.to_dict() for area in self.problem_areas()],
            "params": self.params.to_dict(),
        }

    def __repr__(self) -> str:
        rows, cols = self.block_mask.shape
        return (
            f"ImageCompare(status={self.status.name}, master={self.master_size[0]}x{self.master_size[1]}, "
            f"snapshot={self.snapshot_size[0]}x{self.snapshot_size[1]}, block_size={self.params.block_size}, "
            f"blocks={cols}x{rows}, max_color_distance={self.params.max_color_distance}, "
            f"largest_color_distance={self.largest_color_distance:.1f}, match={self.is_match})"
        )


def compare_images(
    master: Image,
    snapshot: Image,
    match_level: Optional[Union[MatchLevel, str]] = None,
    regions: Iterable[Region] = (),
    **overrides,
) -> ImageCompare:
    """Compare two images using a match level preset plus parameter overrides."""
    return ImageCompare(master, snapshot, resolve_params(match_level, regions, **overrides))


def _blank_like(image: np.ndarray) -> np.ndarray:
    canvas = blank_canvas(*image_size(image))
    canvas.setflags(write=False)
    return canvas


def _single_region(regions: Iterable[Region], action: RegionAction) -> Region:
    return next(region for region in regions if region.action is action)


def _require_inside(region: Region, size: Tuple[int, int], label: str, image_name: str) -> None:
    width, height = size
    if region.width == 0 or region.height == 0:
        raise ConfigurationError(f"The {label} must not be empty")
    if not region.fits_within(width, height):
        raise ConfigurationError(
            f"The {label} ({region.x}, {region.y}, {region.width}x{region.height}) "
            f"lies outside the {width}x{height} {image_name}"
        )


def _unscored(block_mask: np.ndarray) -> BlockComparison:
    passed = block_mask.copy()
    distances = np.zeros(block_mask.shape, dtype=np.float64)
    passed.setflags(write=False)
    distances.setflags(write=False)
    return BlockComparison(passed=passed, distances=distances, largest_distance=0.0)
