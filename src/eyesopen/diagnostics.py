"""Read-only diagnostics derived from a finished comparison.

Nothing here draws; renderers use the rectangles and text produced here to
build their own overlays.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

import numpy as np

from .core.types import Rect

if TYPE_CHECKING:  # pragma: no cover
    from .compare import ImageCompare


def find_problem_areas(
    block_comparison: np.ndarray,
    block_size: int,
    origin: Tuple[int, int] = (0, 0),
) -> List[Rect]:
    """Bounding rectangles (in pixels) of 4-connected groups of failing blocks.

    ``origin`` is the pixel position of block ``(0, 0)`` and offsets every rectangle.

    Groups are reported in the order their first block is met, scanning the
    grid column by column.
    """
    failing = ~np.asarray(block_comparison, dtype=bool)
    ox, oy = origin
    rows, cols = failing.shape
    visited = np.zeros_like(failing)
    areas: List[Rect] = []

    for bx in range(cols):
        for by in range(rows):
            if not failing[by, bx] or visited[by, bx]:
                continue
            stack = [(by, bx)]
            visited[by, bx] = True
            min_x = max_x = bx
            min_y = max_y = by
            while stack:
                cy, cx = stack.pop()
                min_x = min(min_x, cx)
                max_x = max(max_x, cx)
                min_y = min(min_y, cy)
                max_y = max(max_y, cy)
                for ny, nx in ((cy - 1, cx), (cy + 1, cx), (cy, cx - 1), (cy, cx + 1)):
                    if 0 <= ny < rows and 0 <= nx < cols and failing[ny, nx] and not visited[ny, nx]:
                        visited[ny, nx] = True
                        stack.append((ny, nx))
            areas.append(
                Rect(
                    ox + min_x * block_size,
                    oy + min_y * block_size,
                    (max_x + 1 - min_x) * block_size,
                    (max_y + 1 - min_y) * block_size,
                )
            )
    return areas


def block_of_pixel(x: int, y: int, block_size: int, grid: Tuple[int, int]) -> Optional[Tuple[int, int]]:
    """Block ``(bx, by)`` holding pixel ``(x, y)``.

    ``None`` for pixels in a partial edge that fell below the block threshold.
    """
    bx, by = x // block_size, y // block_size
    rows, cols = grid
    if bx >= cols or by >= rows:
        return None
    return bx, by


def describe_blocks(result: "ImageCompare") -> str:
    parts = []
    rows, cols = result.block_mask.shape
    for bx in range(cols):
        for by in range(rows):
            if result.block_mask[by, bx]:
                parts.append(f"({bx},{by}) masked")
            else:
                parts.append(f"({bx},{by}) unmasked <<{result.block_distances[by, bx]:.1f}>>")
    return " | ".join(parts)
