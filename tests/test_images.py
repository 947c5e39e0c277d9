import numpy as np
import pytest

from eyesopen.core.images import as_rgb_array, blank_canvas, pad_to, summed_area_table
from eyesopen.errors import ConfigurationError


def test_grayscale_is_expanded_to_rgb():
    gray = np.arange(6, dtype=np.uint8).reshape(2, 3)
    rgb = as_rgb_array(gray)
    assert rgb.shape == (2, 3, 3)
    assert rgb[1, 2].tolist() == [5, 5, 5]


def test_alpha_is_dropped_and_result_is_read_only():
    rgba = np.zeros((2, 2, 4), dtype=np.uint8)
    rgba[..., 3] = 255
    rgb = as_rgb_array(rgba)
    assert rgb.shape == (2, 2, 3)
    assert not rgb.flags.writeable


def test_input_is_copied():
    source = np.zeros((2, 2, 3), dtype=np.uint8)
    rgb = as_rgb_array(source)
    source[0, 0] = 255
    assert rgb[0, 0].tolist() == [0, 0, 0]


def test_wide_values_are_clipped():
    rgb = as_rgb_array(np.array([[[-5, 300, 12]]], dtype=np.int32))
    assert rgb[0, 0].tolist() == [0, 255, 12]


@pytest.mark.parametrize("shape", [(4,), (2, 2, 2), (0, 3, 3)])
def test_bad_shapes_are_rejected(shape):
    with pytest.raises(ConfigurationError):
        as_rgb_array(np.zeros(shape, dtype=np.uint8), name="master")


def test_pad_to_places_image_at_offset():
    image = np.full((2, 2, 3), 9, dtype=np.uint8)
    padded = pad_to(image, 4, 3, offset=(1, 1), fill=(255, 0, 255))
    assert padded.shape == (3, 4, 3)
    assert padded[1, 1].tolist() == [9, 9, 9]
    assert padded[0, 0].tolist() == [255, 0, 255]
    with pytest.raises(ValueError):
        pad_to(image, 2, 2, offset=(1, 0))


def test_summed_area_table_sums_rectangles():
    values = np.arange(12).reshape(3, 4)
    table = summed_area_table(values)
    assert table.shape == (4, 5)
    assert table[3, 4] == values.sum()
    assert table[3, 3] - table[1, 3] - table[3, 1] + table[1, 1] == values[1:3, 1:3].sum()


def test_blank_canvas_color():
    assert blank_canvas(2, 1, (1, 2, 3)).tolist() == [[[1, 2, 3], [1, 2, 3]]]
