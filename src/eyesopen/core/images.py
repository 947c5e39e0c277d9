"""Pixel buffer helpers: normalisation, canvases, cropping and summed-area tables.

Images are numpy arrays shaped ``(height, width, 3)`` with ``uint8`` channels.
Alpha is dropped on the way in; the comparison never looks at transparency.
"""
from __future__ import annotations

from typing import Tuple

import numpy as np

from ..errors import ConfigurationError

RGB = Tuple[int, int, int]
Size = Tuple[int, int]


def as_rgb_array(image: np.ndarray, *, name: str = "image") -> np.ndarray:
    """Return ``image`` as a read-only ``(H, W, 3)`` uint8 array."""
    array = np.asarray(image)
    if array.ndim == 2:
        array = np.repeat(array[:, :, None], 3, axis=2)
    if array.ndim != 3 or array.shape[2] not in (3, 4):
        raise ConfigurationError(
            f"The {name} must be an (H, W), (H, W, 3) or (H, W, 4) array, got shape {array.shape}"
        )
    if array.shape[0] == 0 or array.shape[1] == 0:
        raise ConfigurationError(f"The {name} must not be empty")
    if array.dtype != np.uint8:
        if not np.issubdtype(array.dtype, np.number):
            raise ConfigurationError(f"The {name} must hold numeric pixels, got {array.dtype}")
        array = np.clip(array, 0, 255).astype(np.uint8)
    rgb = np.array(array[:, :, :3], dtype=np.uint8, order="C")
    rgb.setflags(write=False)
    return rgb


def image_size(image: np.ndarray) -> Size:
    """``(width, height)`` of an image array."""
    return int(image.shape[1]), int(image.shape[0])


def blank_canvas(width: int, height: int, color: RGB = (0, 0, 0)) -> np.ndarray:
    canvas = np.empty((height, width, 3), dtype=np.uint8)
    canvas[:, :] = color
    return canvas


def crop(image: np.ndarray, x: int, y: int, width: int, height: int) -> np.ndarray:
    return image[y : y + height, x : x + width]


def pad_to(
    image: np.ndarray,
    width: int,
    height: int,
    *,
    offset: Tuple[int, int] = (0, 0),
    fill: RGB = (0, 0, 0),
) -> np.ndarray:
    """Composite ``image`` at ``offset`` onto a ``width`` x ``height`` canvas of ``fill``."""
    ox, oy = offset
    src_w, src_h = image_size(image)
    if ox < 0 or oy < 0 or ox + src_w > width or oy + src_h > height:
        raise ValueError(
            f"A {src_w}x{src_h} image at {offset} does not fit a {width}x{height} canvas"
        )
    canvas = blank_canvas(width, height, fill)
    canvas[oy : oy + src_h, ox : ox + src_w] = image
    return canvas


def summed_area_table(values: np.ndarray) -> np.ndarray:
    """Integral image with a leading zero row/column.

    For a 2-D or 3-D input ``v`` the result ``s`` satisfies
    ``s[y1, x1] - s[y0, x1] - s[y1, x0] + s[y0, x0] == v[y0:y1, x0:x1].sum(axis=(0, 1))``.
    """
    height, width = values.shape[:2]
    table = np.zeros((height + 1, width + 1) + values.shape[2:], dtype=np.int64)
    table[1:, 1:] = values.astype(np.int64).cumsum(axis=0).cumsum(axis=1)
    return table


def area_sums(
    table: np.ndarray,
    y0: np.ndarray,
    y1: np.ndarray,
    x0: np.ndarray,
    x1: np.ndarray,
) -> np.ndarray:
    """Vectorised rectangle sums ``[y0:y1, x0:x1]`` from a summed-area table."""
    return table[y1, x1] - table[y0, x1] - table[y1, x0] + table[y0, x0]
