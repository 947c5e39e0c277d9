import numpy as np
import pytest

from eyesopen.core.images import crop
from eyesopen.core.locator import find_template
from eyesopen.core.types import Rect
from eyesopen.errors import ConfigurationError, SearchTimeoutError

TIGHT = dict(block_size=5, max_color_distance=1.0, block_threshold=0.67, max_time_seconds=30.0)


def noise(width, height, seed=7):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


def test_finds_template_at_known_offset():
    bounding = noise(40, 30)
    template = crop(bounding, 17, 9, 10, 10).copy()
    assert find_template(template, bounding, **TIGHT) == Rect(17, 9, 10, 10)


def test_result_is_shifted_by_origin():
    bounding = noise(40, 30)
    template = crop(bounding, 17, 9, 10, 10).copy()
    found = find_template(template, bounding, origin=(100, 200), **TIGHT)
    assert found == Rect(117, 209, 10, 10)


def test_leftmost_match_wins():
    bounding = np.zeros((20, 20, 3), dtype=np.uint8)
    bounding[0:5, 12:17] = 255
    bounding[10:15, 4:9] = 255
    template = np.full((5, 5, 3), 255, dtype=np.uint8)
    assert find_template(template, bounding, **TIGHT) == Rect(4, 10, 5, 5)


def test_not_found_returns_none():
    bounding = noise(30, 30, seed=1)
    template = noise(10, 10, seed=2)
    assert find_template(template, bounding, **TIGHT) is None


def test_template_larger_than_bounding_returns_none():
    assert find_template(noise(20, 10), noise(10, 10), **TIGHT) is None


def test_same_size_is_a_single_comparison():
    image = noise(10, 10)
    calls = []

    def clock():
        calls.append(1)
        return 0.0

    assert find_template(image, image.copy(), clock=clock, **TIGHT) == Rect(0, 0, 10, 10)
    assert calls == []


def test_block_mask_skips_blocks_during_search():
    bounding = noise(30, 30)
    template = crop(bounding, 6, 4, 10, 10).copy()
    template[0:5, 0:5] = 0
    assert find_template(template, bounding, **TIGHT) is None

    block_mask = np.array([[True, False], [False, False]])
    found = find_template(template, bounding, template_block_mask=block_mask, **TIGHT)
    assert found == Rect(6, 4, 10, 10)


def test_pixel_mask_follows_the_bounding_image():
    bounding = noise(30, 30).copy()
    template = crop(bounding, 3, 5, 10, 10).copy()
    bounding[5:10, 3:8] = 0
    assert find_template(template, bounding, **TIGHT) is None

    pixel_mask = np.zeros((30, 30), dtype=bool)
    pixel_mask[5:10, 3:8] = True
    found = find_template(template, bounding, bounding_pixel_mask=pixel_mask, **TIGHT)
    assert found == Rect(3, 5, 10, 10)


def test_both_masks_are_rejected():
    with pytest.raises(ConfigurationError):
        find_template(
            noise(10, 10),
            noise(20, 20),
            template_block_mask=np.zeros((2, 2), dtype=bool),
            bounding_pixel_mask=np.zeros((20, 20), dtype=bool),
            **TIGHT,
        )


def test_block_mask_shape_is_checked():
    with pytest.raises(ConfigurationError):
        find_template(noise(10, 10), noise(20, 20), template_block_mask=np.zeros((3, 3), dtype=bool), **TIGHT)


def test_expired_deadline_times_out_before_any_offset():
    with pytest.raises(SearchTimeoutError) as excinfo:
        find_template(noise(10, 10), noise(20, 20), deadline=-1.0, clock=lambda: 0.0, **TIGHT)
    assert excinfo.value.offsets_checked == 0
    assert isinstance(excinfo.value, TimeoutError)


def test_deadline_is_checked_before_each_offset():
    ticks = iter(range(1, 100))
    params = dict(TIGHT, max_time_seconds=2.5)
    template = np.zeros((10, 10, 3), dtype=np.uint8)
    bounding = np.full((20, 20, 3), 255, dtype=np.uint8)

    with pytest.raises(SearchTimeoutError) as excinfo:
        find_template(template, bounding, clock=lambda: float(next(ticks)), **params)
    assert excinfo.value.offsets_checked == 2
    assert excinfo.value.elapsed == pytest.approx(3.0)
