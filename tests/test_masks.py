import numpy as np
import pytest

from eyesopen.core.masks import (
    block_edges,
    compose_block_mask,
    compose_pixel_mask,
    grid_shape,
)
from eyesopen.core.types import Region, RegionAction
from eyesopen.errors import ConfigurationError

FOCUS = RegionAction.FOCUS
EXCLUDE = RegionAction.EXCLUDE


def test_no_regions_masks_nothing():
    mask = compose_pixel_mask(10, 8, [])
    assert mask.shape == (8, 10)
    assert not mask.any()
    assert not compose_pixel_mask(10, 8, None).any()


def test_focus_masks_everything_else():
    mask = compose_pixel_mask(10, 8, [Region(2, 3, 4, 2, FOCUS)])
    assert not mask[3:5, 2:6].any()
    assert mask.sum() == 10 * 8 - 4 * 2


def test_several_focus_regions_add_up():
    mask = compose_pixel_mask(10, 10, [Region(0, 0, 5, 5, FOCUS), Region(3, 3, 5, 5, FOCUS)])
    assert not mask[0:5, 0:5].any()
    assert not mask[3:8, 3:8].any()
    assert mask[9, 9]


def test_exclusion_wins_over_focus():
    regions = [Region(0, 0, 10, 10, FOCUS), Region(2, 2, 3, 3, EXCLUDE)]
    mask = compose_pixel_mask(10, 10, regions)
    assert mask[2:5, 2:5].all()
    assert mask.sum() == 9


def test_regions_are_clipped_to_the_image():
    mask = compose_pixel_mask(10, 8, [Region(-2, -2, 5, 5, EXCLUDE), Region(8, 6, 10, 10, EXCLUDE)])
    assert mask[0:3, 0:3].all()
    assert mask[6:8, 8:10].all()
    assert mask.sum() == 9 + 4


def test_region_outside_the_image_has_no_effect():
    mask = compose_pixel_mask(10, 8, [Region(20, 20, 5, 5, EXCLUDE)])
    assert not mask.any()


def test_focus_then_exclude_equals_focus_on_difference():
    outer = Region(0, 0, 10, 10, FOCUS)
    inner = Region(3, 3, 4, 4, EXCLUDE)
    composed = compose_pixel_mask(12, 12, [outer, inner])

    difference = [
        Region(0, 0, 10, 3, FOCUS),
        Region(0, 7, 10, 3, FOCUS),
        Region(0, 3, 3, 4, FOCUS),
        Region(7, 3, 3, 4, FOCUS),
    ]
    assert np.array_equal(composed, compose_pixel_mask(12, 12, difference))


def test_malformed_region_raises():
    with pytest.raises(ConfigurationError):
        compose_pixel_mask(10, 10, [(0, 0, 5, 5)])


@pytest.mark.parametrize(
    "width, height, expected",
    [
        (10, 10, (2, 2)),
        (13, 10, (2, 2)),
        (14, 10, (2, 3)),
        (10, 14, (3, 2)),
        (3, 3, (0, 0)),
    ],
)
def test_grid_shape(width, height, expected):
    assert grid_shape(width, height, 5, 0.67) == expected


def test_block_edges_clip_at_the_image_edge():
    starts, stops = block_edges(14, 5, 3)
    assert starts.tolist() == [0, 5, 10]
    assert stops.tolist() == [5, 10, 14]


def test_block_mask_follows_focus():
    pixel_mask = compose_pixel_mask(10, 10, [Region(0, 0, 5, 5, FOCUS)])
    block_mask = compose_block_mask(0.67, 5, 10, 10, pixel_mask)
    assert block_mask.tolist() == [[False, True], [True, True]]


def test_block_needs_threshold_of_visible_pixels():
    # 15 of 25 visible is below floor(25 * 0.67) == 16
    mask = compose_pixel_mask(10, 10, [Region(0, 0, 5, 2, EXCLUDE)])
    assert compose_block_mask(0.67, 5, 10, 10, mask)[0, 0]

    mask = compose_pixel_mask(10, 10, [Region(0, 0, 5, 1, EXCLUDE)])
    assert not compose_block_mask(0.67, 5, 10, 10, mask)[0, 0]


def test_partial_edge_block_is_kept_when_large_enough():
    pixel_mask = compose_pixel_mask(14, 10, [])
    block_mask = compose_block_mask(0.67, 5, 14, 10, pixel_mask)
    assert block_mask.shape == (2, 3)
    assert not block_mask.any()


def test_single_pixel_blocks_follow_the_pixel_mask():
    pixel_mask = compose_pixel_mask(3, 3, [Region(1, 1, 1, 1, EXCLUDE)])
    block_mask = compose_block_mask(0.67, 1, 3, 3, pixel_mask)
    assert np.array_equal(block_mask, pixel_mask)


def test_block_mask_rejects_mismatched_pixel_mask():
    with pytest.raises(ConfigurationError):
        compose_block_mask(0.67, 5, 10, 10, np.zeros((5, 5), dtype=bool))
