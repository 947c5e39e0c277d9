import pytest

from eyesopen.core.masks import required_block_pixels
from eyesopen.core.types import Region, RegionAction
from eyesopen.errors import ConfigurationError
from eyesopen.presets import (
    DEFAULT_MAX_SIZE_DIFFERENCE,
    EXACT,
    STRICT,
    TOLERANT,
    CompareParams,
    get_match_level,
    iter_match_levels,
    resolve_params,
)


def test_match_level_values():
    assert (EXACT.block_size, EXACT.max_color_distance) == (1, 1.0)
    assert (STRICT.block_size, STRICT.max_color_distance) == (5, 14.0)
    assert (TOLERANT.block_size, TOLERANT.max_color_distance) == (10, 20.0)
    assert {level.name for level in iter_match_levels()} == {"exact", "strict", "tolerant"}


def test_get_match_level_is_case_insensitive():
    assert get_match_level("Tolerant") is TOLERANT
    with pytest.raises(KeyError):
        get_match_level("fuzzy")


def test_default_params():
    params = CompareParams()
    assert params.block_size == 5
    assert params.max_color_distance == pytest.approx(20.0)
    assert params.block_pixel_threshold == pytest.approx(0.67)
    assert params.max_size_difference == DEFAULT_MAX_SIZE_DIFFERENCE
    assert params.max_time_seconds == pytest.approx(100.0)
    assert params.regions == frozenset()


@pytest.mark.parametrize(
    "overrides",
    [
        {"block_size": 0},
        {"block_size": 2.5},
        {"max_color_distance": 0},
        {"max_color_distance": -3.0},
        {"block_pixel_threshold": 0},
        {"block_pixel_threshold": 1.5},
        {"max_size_difference": -1},
        {"max_time_seconds": 0},
        {"regions": [(0, 0, 5, 5)]},
    ],
)
def test_invalid_params_are_rejected(overrides):
    with pytest.raises(ConfigurationError):
        CompareParams(**overrides)


def test_copy_revalidates():
    params = CompareParams()
    assert params.copy(block_size=10).block_size == 10
    with pytest.raises(ConfigurationError):
        params.copy(block_size=0)


def test_from_match_level_with_overrides():
    params = CompareParams.from_match_level("strict", max_time_seconds=5)
    assert params.block_size == 5
    assert params.max_color_distance == pytest.approx(14.0)
    assert params.max_time_seconds == 5


def test_regions_are_frozen_and_merged():
    focus = Region(0, 0, 5, 5, RegionAction.FOCUS)
    exclude = Region(1, 1, 2, 2, RegionAction.EXCLUDE)
    params = CompareParams(regions=[focus])
    assert isinstance(params.regions, frozenset)
    merged = params.with_regions(exclude)
    assert merged.regions == {focus, exclude}
    assert params.regions == {focus}


def test_resolve_params_ignores_missing_overrides():
    params = resolve_params("exact", block_size=None, max_time_seconds=3)
    assert params.block_size == 1
    assert params.max_time_seconds == 3
    assert resolve_params().block_size == 5


def test_required_block_pixels():
    assert required_block_pixels(5, 0.67) == 16
    assert required_block_pixels(10, 0.67) == 67
    assert required_block_pixels(1, 0.67) == 1
    assert CompareParams(block_size=2, block_pixel_threshold=1.0).required_block_pixels == 4


def test_to_dict_lists_regions():
    params = CompareParams(regions=[Region(1, 2, 3, 4, RegionAction.EXCLUDE)])
    data = params.to_dict()
    assert data["regions"] == [{"x": 1, "y": 2, "width": 3, "height": 4, "action": "exclude"}]
