"""Block colour averages and the colour distance between them.

Averaging a block of pixels reduces the reliance on any single pixel and
generalises the comparison more as a human would; it also means the distance
is only computed once per block rather than once per pixel.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .images import area_sums, summed_area_table
from .masks import block_edges

logger = logging.getLogger(__name__)


def color_distance(c1: Sequence[int], c2: Sequence[int]) -> float:
    """Distance between two RGB colours, taken as a point in three dimensions."""
    return math.sqrt(sum((int(a) - int(b)) ** 2 for a, b in zip(c1[:3], c2[:3])))


def block_averages(image: np.ndarray, block_size: int, block_mask: np.ndarray) -> np.ndarray:
    """Average RGB colour per block, shaped ``(rows, columns, 3)``.

    Only blocks left unmasked are computed; masked blocks hold zeros. Each
    channel is floor-divided by the number of pixels of the block that lie
    inside the image.
    """
    return _averages(summed_area_table(image), image.shape[1], image.shape[0], block_size, block_mask)


def _averages(table: np.ndarray, width: int, height: int, block_size: int, block_mask: np.ndarray) -> np.ndarray:
    rows, cols = block_mask.shape
    averages = np.zeros((rows, cols, 3), dtype=np.int64)
    by, bx = np.nonzero(~block_mask)
    if by.size == 0:
        return averages
    x0, x1 = block_edges(width, block_size, cols)
    y0, y1 = block_edges(height, block_size, rows)
    sums = area_sums(table, y0[by], y1[by], x0[bx], x1[bx])
    counts = (x1[bx] - x0[bx]) * (y1[by] - y0[by])
    averages[by, bx] = sums // counts[:, None]
    return averages


def distances_between(avg_a: np.ndarray, avg_b: np.ndarray) -> np.ndarray:
    diff = (avg_a - avg_b).astype(np.float64)
    return np.sqrt((diff * diff).sum(axis=-1))


@dataclass(frozen=True)
class BlockComparison:
    """Block by block outcome of comparing two equally sized images.

    ``passed`` is ``True`` for blocks within the colour distance (masked blocks
    always pass); ``distances`` records the distance of failing blocks only.
    """

    passed: np.ndarray
    distances: np.ndarray
    largest_distance: float

    @property
    def is_match(self) -> bool:
        return bool(self.passed.all())

    @property
    def failing_blocks(self) -> int:
        return int((~self.passed).sum())


def compare_blocks(
    master: np.ndarray,
    snapshot: np.ndarray,
    block_size: int,
    block_mask: np.ndarray,
    max_color_distance: float,
) -> BlockComparison:
    """Compare the colour distance block by block and return the result grids."""
    if master.shape[:2] != snapshot.shape[:2]:
        raise ValueError(f"Cannot compare blocks of {master.shape[:2]} and {snapshot.shape[:2]} images")
    active = ~block_mask
    master_avg = block_averages(master, block_size, block_mask)
    snapshot_avg = block_averages(snapshot, block_size, block_mask)

    distances = np.zeros(block_mask.shape, dtype=np.float64)
    passed = np.ones(block_mask.shape, dtype=bool)
    evaluated = distances_between(master_avg[active], snapshot_avg[active])
    passed[active] = evaluated <= max_color_distance
    failing = active & ~passed
    distances[failing] = evaluated[~passed[active]]
    largest = float(evaluated.max()) if evaluated.size else 0.0

    passed.setflags(write=False)
    distances.setflags(write=False)
    logger.debug(
        "Compared %d of %d blocks: %d failing, largest distance %.1f",
        int(active.sum()),
        block_mask.size,
        int(failing.sum()),
        largest,
    )
    return BlockComparison(passed=passed, distances=distances, largest_distance=largest)
