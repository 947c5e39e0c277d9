"""Command line interface for EyesOpen."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np
from dotenv import load_dotenv
from PIL import Image, UnidentifiedImageError

from .compare import ImageCompare
from .core.types import Region, RegionAction
from .errors import ConfigurationError, SearchTimeoutError
from .presets import resolve_params
from .report import write_json_report
from .settings import load_settings

logger = logging.getLogger(__name__)

EXIT_PASSED = 0
EXIT_NOT_PASSED = 1
EXIT_USAGE = 2
EXIT_TIMEOUT = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eyesopen",
        description="Tolerant block based comparison of a master image and a snapshot.",
    )
    parser.add_argument("--master", help="Path to the master image (omit when there is none yet)")
    parser.add_argument("--snapshot", help="Path to the snapshot image (omit when it is missing)")
    parser.add_argument("--match-level", help="Preset name (exact|strict|tolerant)")
    parser.add_argument("--block-size", type=int, help="Pixels per block side")
    parser.add_argument("--max-color-distance", type=float, help="Largest RGB distance between block averages")
    parser.add_argument("--block-threshold", type=float, help="Share of visible pixels a block needs (0-1]")
    parser.add_argument("--max-size-difference", type=int, help="Largest size difference to reconcile (px)")
    parser.add_argument("--max-time", type=float, help="Time limit for the template search (seconds)")
    parser.add_argument("--focus", action="append", default=[], help="Region to focus on: x,y,width,height")
    parser.add_argument("--exclude", action="append", default=[], help="Region to ignore: x,y,width,height")
    parser.add_argument("--find", help="Target region on the master to look for: x,y,width,height")
    parser.add_argument("--within", help="Bounding box on the snapshot to search: x,y,width,height")
    parser.add_argument("--json", help="Write a JSON report to this path")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from . import __version__

        print(__version__)
        return 0

    load_dotenv()
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        parser.error(str(exc))
        return EXIT_USAGE

    level = (args.log_level or settings.log_level).upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING))

    if not args.master and not args.snapshot:
        parser.error("at least one of --master or --snapshot is required")
        return EXIT_USAGE

    try:
        regions = _parse_regions(args)
        master = _load_image(args.master)
        snapshot = _load_image(args.snapshot)
    except ValueError as exc:
        parser.error(str(exc))
        return EXIT_USAGE

    try:
        params = resolve_params(
            args.match_level or settings.match_level,
            regions,
            block_size=args.block_size,
            max_color_distance=args.max_color_distance,
            block_pixel_threshold=args.block_threshold,
            max_size_difference=(
                args.max_size_difference if args.max_size_difference is not None else settings.max_size_difference
            ),
            max_time_seconds=args.max_time if args.max_time is not None else settings.max_time_seconds,
        )
        result = ImageCompare(master, snapshot, params)
    except KeyError as exc:
        logger.error("%s", exc.args[0])
        return EXIT_USAGE
    except ConfigurationError as exc:
        logger.error("Invalid comparison: %s", exc)
        return EXIT_USAGE
    except SearchTimeoutError as exc:
        logger.error("%s", exc)
        return EXIT_TIMEOUT

    if args.json:
        write_json_report(result, args.json, master=args.master, snapshot=args.snapshot)

    print(result.status.text)
    if result.located_target is not None:
        target = result.located_target
        print(f"Found at {target.x},{target.y} ({target.width}x{target.height})")
    return EXIT_PASSED if result.is_match else EXIT_NOT_PASSED


def _load_image(path: Optional[str]) -> Optional[np.ndarray]:
    if not path:
        return None
    if not Path(path).is_file():
        raise ValueError(f"Image '{path}' does not exist")
    try:
        with Image.open(path) as image:
            return np.asarray(image.convert("RGB"))
    except UnidentifiedImageError as exc:
        raise ValueError(f"Image '{path}' could not be decoded") from exc


def _parse_box(value: str) -> List[int]:
    parts = [p.strip() for p in value.replace(";", ",").split(",")]
    if len(parts) != 4:
        raise ValueError(f"Region '{value}' must have four values: x,y,width,height")
    try:
        return [int(p) for p in parts]
    except ValueError as exc:
        raise ValueError(f"Region '{value}' has invalid coordinates") from exc


def _parse_regions(args: argparse.Namespace) -> List[Region]:
    boxes = [(value, RegionAction.FOCUS) for value in args.focus]
    boxes += [(value, RegionAction.EXCLUDE) for value in args.exclude]
    if args.find:
        boxes.append((args.find, RegionAction.FIND_THIS_TARGET))
    if args.within:
        boxes.append((args.within, RegionAction.WITHIN_THIS_BOUNDING_BOX))
    return [Region(*_parse_box(value), action) for value, action in boxes]


if __name__ == "__main__":
    sys.exit(main())
