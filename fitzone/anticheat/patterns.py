"""Movement-pattern detectors used by the pattern rule.

Each detector looks for one signature of synthetic or replayed data and
contributes a fixed score when it fires; the pattern rule sums them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Sequence

import numpy as np

from ..geodesy import haversine_m, path_distance_m
from ..models import LatLon

MIN_SAMPLES = 10

CIRCLE_SCORE = 5
CIRCLE_MAX_DIRECTNESS = 0.1
CIRCLE_MIN_DISTANCE_M = 1000.0
CIRCLE_MAX_ANGLE_VARIANCE = 0.5

DUPLICATE_SCORE = 8
DUPLICATE_MAX_RATIO = 0.3
# Coordinates are compared after rounding to ~10 cm.
DUPLICATE_DECIMALS = 6

TIMING_SCORE = 6
TIMING_MAX_VARIANCE = 0.1
TIMING_MIN_MEAN_INTERVAL_S = 5.0


@dataclass(frozen=True, slots=True)
class PatternSignal:
    """Result of one pattern detector."""

    pattern: str
    suspicious: bool
    score: int = 0
    metrics: Dict[str, Any] = field(default_factory=dict)


def detect_circular_loop(positions: Sequence[LatLon]) -> PatternSignal:
    """Flag closed loops whose samples sit at suspiciously uniform bearings."""

    if len(positions) < MIN_SAMPLES:
        return PatternSignal("perfect_circle", False)
    total_distance = path_distance_m(positions)
    if total_distance <= 0:
        return PatternSignal("perfect_circle", False)
    direct_distance = haversine_m(positions[0], positions[-1])
    directness = direct_distance / total_distance
    metrics: Dict[str, Any] = {
        "directness": directness,
        "total_distance_m": total_distance,
    }
    if directness >= CIRCLE_MAX_DIRECTNESS or total_distance <= CIRCLE_MIN_DISTANCE_M:
        return PatternSignal("perfect_circle", False, metrics=metrics)

    coords = np.asarray(positions, dtype=float)
    center_lat, center_lng = coords.mean(axis=0)
    angles = np.arctan2(coords[:, 1] - center_lng, coords[:, 0] - center_lat)
    variance = float(np.var(angles))
    metrics["angle_variance"] = variance
    if variance < CIRCLE_MAX_ANGLE_VARIANCE:
        return PatternSignal("perfect_circle", True, CIRCLE_SCORE, metrics)
    return PatternSignal("perfect_circle", False, metrics=metrics)


def detect_duplicate_coordinates(positions: Sequence[LatLon]) -> PatternSignal:
    """Flag tracks where a large share of samples repeat an earlier coordinate."""

    if not positions:
        return PatternSignal("duplicate_coordinates", False)
    seen: set[str] = set()
    duplicates = 0
    for lat, lng in positions:
        key = f"{lat:.{DUPLICATE_DECIMALS}f},{lng:.{DUPLICATE_DECIMALS}f}"
        if key in seen:
            duplicates += 1
        else:
            seen.add(key)
    ratio = duplicates / len(positions)
    metrics = {"duplicates": duplicates, "ratio": ratio}
    if ratio > DUPLICATE_MAX_RATIO:
        return PatternSignal("duplicate_coordinates", True, DUPLICATE_SCORE, metrics)
    return PatternSignal("duplicate_coordinates", False, metrics=metrics)


def detect_regular_timing(timestamps: Sequence[float]) -> PatternSignal:
    """Flag sampling intervals too regular to come from a real GPS device."""

    if len(timestamps) < MIN_SAMPLES:
        return PatternSignal("regular_timing", False)
    intervals = np.diff(np.asarray(timestamps, dtype=float))
    variance = float(np.var(intervals))
    mean_interval = float(np.mean(intervals))
    metrics = {"variance": variance, "mean_interval_s": mean_interval}
    if variance < TIMING_MAX_VARIANCE and mean_interval > TIMING_MIN_MEAN_INTERVAL_S:
        return PatternSignal("regular_timing", True, TIMING_SCORE, metrics)
    return PatternSignal("regular_timing", False, metrics=metrics)


__all__ = [
    "PatternSignal",
    "detect_circular_loop",
    "detect_duplicate_coordinates",
    "detect_regular_timing",
]
