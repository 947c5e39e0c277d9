"""Comparison engine: masks, block averages, size reconciliation and template search."""

from .blocks import BlockComparison, block_averages, color_distance, compare_blocks
from .locator import find_template
from .masks import compose_block_mask, compose_pixel_mask, grid_shape
from .reconcile import FILL_COLOR, Reconciliation, can_reconcile, reconcile_sizes
from .types import ComparisonModel, Rect, Region, RegionAction, Status, comparison_model

__all__ = [
    "BlockComparison",
    "block_averages",
    "color_distance",
    "compare_blocks",
    "find_template",
    "compose_block_mask",
    "compose_pixel_mask",
    "grid_shape",
    "FILL_COLOR",
    "Reconciliation",
    "can_reconcile",
    "reconcile_sizes",
    "ComparisonModel",
    "Rect",
    "Region",
    "RegionAction",
    "Status",
    "comparison_model",
]
