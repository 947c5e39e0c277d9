"""Deadline bounded sliding-window search for a template inside a bounding image.

Offsets are visited column by column (``x`` outer, ``y`` inner) so the first
accepted offset is always the leftmost, then topmost, match.

Two mask modes are supported:

- block mode: a block mask for the template geometry, reused at every offset;
- pixel mode: a pixel mask the size of the bounding image, from which a fresh
  block mask is cut at every offset, because block boundaries shift with it.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Tuple

import numpy as np

from ..errors import ConfigurationError, SearchTimeoutError
from .blocks import block_averages, compare_blocks, distances_between
from .images import area_sums, image_size, summed_area_table
from .masks import block_edges, block_mask_from_table, compose_block_mask, grid_shape
from .types import Rect

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def find_template(
    template: np.ndarray,
    bounding: np.ndarray,
    *,
    block_size: int,
    max_color_distance: float,
    block_threshold: float,
    max_time_seconds: float,
    template_block_mask: Optional[np.ndarray] = None,
    bounding_pixel_mask: Optional[np.ndarray] = None,
    origin: Tuple[int, int] = (0, 0),
    deadline: Optional[float] = None,
    clock: Clock = time.monotonic,
) -> Optional[Rect]:
    """Return where ``template`` fits ``bounding``, or ``None`` if it fits nowhere.

    The returned rectangle is expressed in the coordinates of the image the
    bounding region was cut from, i.e. shifted by ``origin``.

    Raises :class:`SearchTimeoutError` once ``clock()`` passes the deadline,
    which is fixed as ``clock() + max_time_seconds`` before the search starts
    unless an explicit ``deadline`` is given.
    """
    if template_block_mask is not None and bounding_pixel_mask is not None:
        raise ConfigurationError("Provide either a template block mask or a bounding pixel mask, not both")

    tpl_w, tpl_h = image_size(template)
    box_w, box_h = image_size(bounding)
    if tpl_w > box_w or tpl_h > box_h:
        logger.debug("Template %dx%d is larger than the %dx%d bounding image", tpl_w, tpl_h, box_w, box_h)
        return None

    rows, cols = grid_shape(tpl_w, tpl_h, block_size, block_threshold)
    if bounding_pixel_mask is None:
        if template_block_mask is None:
            template_block_mask = np.zeros((rows, cols), dtype=bool)
        elif template_block_mask.shape != (rows, cols):
            raise ConfigurationError(
                f"Block mask shape {template_block_mask.shape} does not match the template grid {(rows, cols)}"
            )
    elif bounding_pixel_mask.shape != (box_h, box_w):
        raise ConfigurationError(
            f"Pixel mask shape {bounding_pixel_mask.shape} does not match the {box_w}x{box_h} bounding image"
        )

    ox, oy = origin
    if (tpl_w, tpl_h) == (box_w, box_h):
        block_mask = template_block_mask
        if block_mask is None:
            block_mask = compose_block_mask(block_threshold, block_size, box_w, box_h, bounding_pixel_mask)
        result = compare_blocks(template, bounding, block_size, block_mask, max_color_distance)
        return Rect(ox, oy, tpl_w, tpl_h) if result.is_match else None

    search = _WindowSearch(
        template,
        bounding,
        block_size=block_size,
        block_threshold=block_threshold,
        max_color_distance=max_color_distance,
        rows=rows,
        cols=cols,
        template_block_mask=template_block_mask,
        bounding_pixel_mask=bounding_pixel_mask,
    )

    started = clock()
    if deadline is None:
        deadline = started + max_time_seconds
    checked = 0
    for x in range(box_w - tpl_w + 1):
        for y in range(box_h - tpl_h + 1):
            now = clock()
            if now > deadline:
                raise SearchTimeoutError(
                    f"Unable to find a {tpl_w}x{tpl_h} template within {max_time_seconds}s "
                    f"({checked} offsets checked); retry with a larger time limit, "
                    "a smaller search region or a larger block size",
                    elapsed=now - started,
                    offsets_checked=checked,
                )
            checked += 1
            if search.matches_at(x, y):
                logger.debug(
                    "Template found at offset (%d, %d) after %d offsets in %.2fs",
                    x,
                    y,
                    checked,
                    clock() - started,
                )
                return Rect(ox + x, oy + y, tpl_w, tpl_h)

    logger.debug("Template not found after %d offsets in %.2fs", checked, clock() - started)
    return None


class _WindowSearch:
    """Fail-fast evaluation of one candidate window against the template.

    Template block averages are computed once. Window averages come from the
    bounding image's summed-area table one block column at a time, and the
    candidate is dropped as soon as a column holds a block over the distance.
    """

    def __init__(
        self,
        template: np.ndarray,
        bounding: np.ndarray,
        *,
        block_size: int,
        block_threshold: float,
        max_color_distance: float,
        rows: int,
        cols: int,
        template_block_mask: Optional[np.ndarray],
        bounding_pixel_mask: Optional[np.ndarray],
    ) -> None:
        tpl_w, tpl_h = image_size(template)
        self.block_size = block_size
        self.block_threshold = block_threshold
        self.max_color_distance = max_color_distance
        self.width = tpl_w
        self.height = tpl_h
        self.rows = rows
        self.cols = cols
        self.x0, self.x1 = block_edges(tpl_w, block_size, cols)
        self.y0, self.y1 = block_edges(tpl_h, block_size, rows)
        self.counts = (self.y1 - self.y0)[:, None] * (self.x1 - self.x0)[None, :]
        self.table = summed_area_table(bounding)

        # every block of the template grid, since pixel mode may unmask any of them
        self.template_avg = block_averages(template, block_size, np.zeros((rows, cols), dtype=bool))

        self.visible = None
        self.fixed_columns = None
        if bounding_pixel_mask is not None:
            self.visible = summed_area_table(~bounding_pixel_mask)
        else:
            self.fixed_columns = self._active_columns(template_block_mask)

    def _active_columns(self, block_mask: np.ndarray) -> List[Tuple[int, np.ndarray]]:
        columns = []
        for bx in range(self.cols):
            rows = np.flatnonzero(~block_mask[:, bx])
            if rows.size:
                columns.append((bx, rows))
        return columns

    def block_mask_at(self, x: int, y: int) -> np.ndarray:
        return block_mask_from_table(
            self.visible,
            self.block_size,
            self.block_threshold,
            self.width,
            self.height,
            self.rows,
            self.cols,
            offset=(x, y),
        )

    def matches_at(self, x: int, y: int) -> bool:
        columns = self.fixed_columns
        if columns is None:
            columns = self._active_columns(self.block_mask_at(x, y))
        for bx, rows in columns:
            xa = x + self.x0[bx]
            xb = x + self.x1[bx]
            sums = area_sums(self.table, y + self.y0[rows], y + self.y1[rows], xa, xb)
            averages = sums // self.counts[rows, bx][:, None]
            distances = distances_between(averages, self.template_avg[rows, bx])
            if (distances > self.max_color_distance).any():
                return False
        return True
