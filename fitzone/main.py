"""Command line entry point.

Two subcommands:

    # Score a stream payload stored on disk
    python -m fitzone score activity.json --resolution 9 --regions

    # Fetch a live activity and score it
    python -m fitzone fetch --activity-id 12345678 --access-token TOKEN

Both print a canonical JSON report with the score, the anti-cheat verdict and
the visited cells.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Sequence

from .anticheat import evaluate_anti_cheat
from .cells import group_by_region, project_to_cells
from .cells.projection import is_valid_resolution
from .config import CELL_RESOLUTION, REGION_RESOLUTION
from .errors import FitzoneError
from .ingest import fetch_activity_stream, stream_from_payload
from .models import ActivityStream
from .scoring import score
from .utils import json_dumps_sorted

LOGGER = logging.getLogger("fitzone")


def _setup_logging(level: str = "INFO") -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _resolution(value: str) -> int:
    resolution = int(value)
    if not is_valid_resolution(resolution):
        raise argparse.ArgumentTypeError("resolution must be between 0 and 15")
    return resolution


def build_report(
    stream: ActivityStream,
    *,
    resolution: int = CELL_RESOLUTION,
    include_regions: bool = False,
) -> Dict[str, Any]:
    """Score, evaluate and project one stream into a serialisable report."""

    cells = project_to_cells(stream.positions, resolution)
    report: Dict[str, Any] = {
        "score": score(stream),
        "verdict": evaluate_anti_cheat(stream),
        "cells": cells,
    }
    if include_regions:
        report["regions"] = group_by_region(
            cells, min(REGION_RESOLUTION, resolution)
        )
    return report


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fitzone",
        description="Score activities, run anti-cheat checks and project cells",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Python logging level",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    score_cmd = sub.add_parser("score", help="Score a stream payload JSON file")
    score_cmd.add_argument("file", type=Path, help="Path to the stream payload")

    fetch_cmd = sub.add_parser("fetch", help="Fetch and score a Strava activity")
    fetch_cmd.add_argument("--activity-id", type=int, required=True)
    fetch_cmd.add_argument(
        "--access-token", required=True, help="Bearer token for the Strava API"
    )

    for cmd in (score_cmd, fetch_cmd):
        cmd.add_argument(
            "--resolution",
            type=_resolution,
            default=CELL_RESOLUTION,
            help=f"H3 resolution for cell projection (default: {CELL_RESOLUTION})",
        )
        cmd.add_argument(
            "--regions",
            action="store_true",
            help="Also group visited cells into coarser regions",
        )
    return parser


def _load_stream(path: Path) -> ActivityStream:
    with open(path, "r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return stream_from_payload(payload)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)

    try:
        if args.command == "score":
            stream = _load_stream(args.file)
        else:
            LOGGER.info("Fetching streams for activity %s", args.activity_id)
            stream = fetch_activity_stream(args.activity_id, args.access_token)
        report = build_report(
            stream, resolution=args.resolution, include_regions=args.regions
        )
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.error("Failed to read activity payload: %s", exc)
        return 1
    except FitzoneError as exc:
        LOGGER.error("Failed to score activity: %s", exc)
        return 1

    print(json_dumps_sorted(report, indent=2))
    return 0


__all__ = ["build_report", "main"]
