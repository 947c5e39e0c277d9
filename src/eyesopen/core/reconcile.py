"""Reconcile a master and a snapshot whose sizes differ by a few pixels.

When the snapshot is larger, the master is looked for inside it and the
snapshot is cropped to the match. When the master is larger, the snapshot is
looked for inside the master and padded back out to the master's size; the
padding is then excluded from scoring. Anything else is padded to a common
size for inspection only and never matches.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Optional, Tuple

import numpy as np

from .images import Size, crop, image_size, pad_to
from .locator import find_template
from .types import Region, RegionAction

logger = logging.getLogger(__name__)

# distinctly coloured filler for padded canvases
FILL_COLOR = (255, 0, 255)


@dataclass(frozen=True)
class Reconciliation:
    master: np.ndarray
    snapshot: np.ndarray
    adjusted: bool
    offset: Optional[Tuple[int, int]] = None
    extra_regions: FrozenSet[Region] = field(default_factory=frozenset)


def size_delta(master_size: Size, snapshot_size: Size) -> Tuple[int, int]:
    """Snapshot size minus master size, per axis."""
    return snapshot_size[0] - master_size[0], snapshot_size[1] - master_size[1]


def can_reconcile(master_size: Size, snapshot_size: Size, max_difference: int) -> bool:
    """True if the sizes are close enough, and not larger on one axis while smaller on the other."""
    dw, dh = size_delta(master_size, snapshot_size)
    if abs(dw) > max_difference or abs(dh) > max_difference:
        return False
    return not ((dw > 0 and dh < 0) or (dw < 0 and dh > 0))


def margin_regions(width: int, height: int, inner: Tuple[int, int, int, int], block_size: int) -> FrozenSet[Region]:
    """EXCLUDE regions covering everything outside ``inner`` on a ``width`` x ``height`` canvas.

    Each margin grows towards the inner box up to the next block boundary so
    no block that is partly filler gets scored.
    """
    x, y, inner_w, inner_h = inner
    right = x + inner_w
    bottom = y + inner_h
    regions = set()
    if x > 0:
        edge = _ceil_to(x, block_size)
        regions.add(Region(0, 0, edge, height, RegionAction.EXCLUDE))
    if right < width:
        edge = (right // block_size) * block_size
        regions.add(Region(edge, 0, width - edge, height, RegionAction.EXCLUDE))
    if y > 0:
        edge = _ceil_to(y, block_size)
        regions.add(Region(0, 0, width, edge, RegionAction.EXCLUDE))
    if bottom < height:
        edge = (bottom // block_size) * block_size
        regions.add(Region(0, edge, width, height - edge, RegionAction.EXCLUDE))
    return frozenset(regions)


def _ceil_to(value: int, step: int) -> int:
    return -(-value // step) * step


def pad_to_common_size(master: np.ndarray, snapshot: np.ndarray) -> Reconciliation:
    master_w, master_h = image_size(master)
    snap_w, snap_h = image_size(snapshot)
    width, height = max(master_w, snap_w), max(master_h, snap_h)
    return Reconciliation(
        master=pad_to(master, width, height, fill=FILL_COLOR),
        snapshot=pad_to(snapshot, width, height, fill=FILL_COLOR),
        adjusted=False,
    )


def reconcile_sizes(
    master: np.ndarray,
    snapshot: np.ndarray,
    *,
    pixel_mask: np.ndarray,
    block_mask: np.ndarray,
    block_size: int,
    block_threshold: float,
    max_color_distance: float,
    max_size_difference: int,
    max_time_seconds: float,
    clock: Callable[[], float] = time.monotonic,
) -> Reconciliation:
    """Bring a differently sized snapshot to the master's size, when possible.

    ``pixel_mask`` and ``block_mask`` are the masks composed for the master.
    """
    master_size = image_size(master)
    snapshot_size = image_size(snapshot)
    if not can_reconcile(master_size, snapshot_size, max_size_difference):
        logger.warning(
            "Master %dx%d and snapshot %dx%d differ by more than %dpx or in opposite directions",
            *master_size,
            *snapshot_size,
            max_size_difference,
        )
        return pad_to_common_size(master, snapshot)

    dw, dh = size_delta(master_size, snapshot_size)
    search = dict(
        block_size=block_size,
        block_threshold=block_threshold,
        max_color_distance=max_color_distance,
        max_time_seconds=max_time_seconds,
        clock=clock,
    )
    if dw >= 0 and dh >= 0:
        found = find_template(master, snapshot, template_block_mask=block_mask, **search)
        if found is None:
            logger.info("Master not found within the larger snapshot")
            return pad_to_common_size(master, snapshot)
        logger.info("Snapshot cropped to the master at offset (%d, %d)", found.x, found.y)
        return Reconciliation(
            master=master,
            snapshot=crop(snapshot, found.x, found.y, *master_size),
            adjusted=True,
            offset=(found.x, found.y),
        )

    found = find_template(snapshot, master, bounding_pixel_mask=pixel_mask, **search)
    if found is None:
        logger.info("Snapshot not found within the larger master")
        return pad_to_common_size(master, snapshot)
    master_w, master_h = master_size
    logger.info("Snapshot padded to the master at offset (%d, %d)", found.x, found.y)
    return Reconciliation(
        master=master,
        snapshot=pad_to(snapshot, master_w, master_h, offset=(found.x, found.y), fill=FILL_COLOR),
        adjusted=True,
        offset=(found.x, found.y),
        extra_regions=margin_regions(
            master_w, master_h, (found.x, found.y, found.width, found.height), block_size
        ),
    )
