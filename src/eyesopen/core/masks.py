"""Pixel and block level masks.

Rather than adding and subtracting rectangles, the pixel mask is painted:
inclusive regions are cleared first, exclusive regions are painted after, so
an exclusion always wins where the two overlap.
"""
from __future__ import annotations

import logging
import math
from typing import Iterable, Tuple

import numpy as np

from ..errors import ConfigurationError
from .images import area_sums, summed_area_table
from .types import INCLUDE_ACTIONS, Region, RegionAction

logger = logging.getLogger(__name__)


def compose_pixel_mask(width: int, height: int, regions: Iterable[Region] | None) -> np.ndarray:
    """Return the pixel mask for an image; ``True`` marks a pixel we will not check."""
    include = []
    exclude = []
    for region in regions or ():
        if not isinstance(region, Region):
            raise ConfigurationError(f"A region of inclusion/exclusion must be provided, got {region!r}")
        if region.action is RegionAction.EXCLUDE:
            exclude.append(region)
        elif region.action in INCLUDE_ACTIONS:
            include.append(region)

    # with any inclusive region the whole image starts masked
    mask = np.full((height, width), bool(include), dtype=bool)
    for region in include:
        _paint(mask, region, False)
    for region in exclude:
        _paint(mask, region, True)

    logger.debug(
        "Composed %dx%d pixel mask from %d include / %d exclude regions (%d pixels ignored)",
        width,
        height,
        len(include),
        len(exclude),
        int(mask.sum()),
    )
    return mask


def _paint(mask: np.ndarray, region: Region, value: bool) -> None:
    height, width = mask.shape
    x0 = min(max(region.x, 0), width)
    y0 = min(max(region.y, 0), height)
    x1 = min(max(region.right, 0), width)
    y1 = min(max(region.bottom, 0), height)
    if x0 < x1 and y0 < y1:
        mask[y0:y1, x0:x1] = value


def required_block_pixels(block_size: int, threshold: float) -> int:
    """Visible pixels a block needs before it is scored (never less than one)."""
    return max(1, int(math.floor(block_size * block_size * threshold)))


def blocks_along(length: int, block_size: int, threshold: float) -> int:
    count = length // block_size
    # keep the partial edge block only if it is wide enough to be meaningful
    if length % block_size >= block_size * threshold:
        count += 1
    return count


def grid_shape(width: int, height: int, block_size: int, threshold: float) -> Tuple[int, int]:
    """``(rows, columns)`` of the block grid for an image."""
    return blocks_along(height, block_size, threshold), blocks_along(width, block_size, threshold)


def block_edges(length: int, block_size: int, count: int) -> Tuple[np.ndarray, np.ndarray]:
    """Start and stop pixel of each of ``count`` blocks along one axis, clipped at ``length``."""
    starts = np.arange(count, dtype=np.int64) * block_size
    stops = np.minimum(starts + block_size, length)
    return starts, stops


def compose_block_mask(
    threshold: float,
    block_size: int,
    width: int,
    height: int,
    pixel_mask: np.ndarray,
) -> np.ndarray:
    """Compose the mask at block level from the pixel mask.

    A block is kept only if its visible pixels reach the required share of a
    full block; ``True`` in the result means the block is left out of scoring.
    """
    if pixel_mask.shape != (height, width):
        raise ConfigurationError(
            f"Pixel mask shape {pixel_mask.shape} does not match a {width}x{height} image"
        )
    rows, cols = grid_shape(width, height, block_size, threshold)
    visible = summed_area_table(~pixel_mask)
    return block_mask_from_table(visible, block_size, threshold, width, height, rows, cols)


def block_mask_from_table(
    visible: np.ndarray,
    block_size: int,
    threshold: float,
    width: int,
    height: int,
    rows: int,
    cols: int,
    offset: Tuple[int, int] = (0, 0),
) -> np.ndarray:
    """Block mask for a ``width`` x ``height`` window at ``offset`` of a visible-pixel table."""
    ox, oy = offset
    x0, x1 = block_edges(width, block_size, cols)
    y0, y1 = block_edges(height, block_size, rows)
    counts = area_sums(visible, oy + y0[:, None], oy + y1[:, None], ox + x0[None, :], ox + x1[None, :])
    return counts < required_block_pixels(block_size, threshold)
