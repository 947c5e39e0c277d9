"""JSON reports for finished comparisons.

A report is the flat ``ImageCompare.to_dict()`` payload plus a header naming
the generator and, when known, the image files that were compared.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from . import __version__
from .compare import ImageCompare

logger = logging.getLogger(__name__)

REPORT_FORMAT = 1


def build_report(
    result: ImageCompare,
    *,
    master: Optional[str] = None,
    snapshot: Optional[str] = None,
) -> Dict[str, object]:
    report: Dict[str, object] = {
        "format": REPORT_FORMAT,
        "generator": f"eyesopen {__version__}",
        "inputs": {"master": master, "snapshot": snapshot},
    }
    report.update(result.to_dict())
    return report


def write_json_report(
    result: ImageCompare,
    path: str | Path,
    *,
    master: Optional[str] = None,
    snapshot: Optional[str] = None,
) -> Path:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as handle:
        json.dump(build_report(result, master=master, snapshot=snapshot), handle, ensure_ascii=False, indent=2)
    logger.info("Wrote %s report to %s", result.status.text, out_path)
    return out_path


def result_to_json(result: ImageCompare) -> str:
    return json.dumps(build_report(result), ensure_ascii=False, indent=2)
