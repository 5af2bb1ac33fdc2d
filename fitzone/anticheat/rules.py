"""Individual anti-cheat rules.

Every rule takes the canonical stream plus a thresholds object and returns a
:class:`CheckResult`. Rules never raise on poor data; a missing optional
series simply yields an unflagged result with zero confidence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Mapping

import numpy as np

from ..config import MAX_GPS_JUMPS, MAX_SPEED_MS, SUSPICION_SCORE_CUTOFF, SUSPICION_WEIGHTS
from ..geodesy import haversine_m, segment_speeds_ms
from ..models import ActivityStream, CheckResult
from .patterns import (
    detect_circular_loop,
    detect_duplicate_coordinates,
    detect_regular_timing,
)

_LOG = logging.getLogger(__name__)


@dataclass(slots=True)
class AntiCheatThresholds:
    """Tunable limits for the anti-cheat rules."""

    max_speed_ms: float = MAX_SPEED_MS
    max_speed_violations: int = 3
    burst_speed_factor: float = 1.5

    max_gps_jumps: int = MAX_GPS_JUMPS
    jump_distance_m: float = 500.0
    backtrack_max_ratio: float = 0.1
    backtrack_min_leg_m: float = 100.0

    min_heart_rate: float = 40.0
    max_heart_rate: float = 220.0
    mismatch_min_samples: int = 10
    mismatch_speed_ms: float = 4.0
    mismatch_heart_rate: float = 120.0
    mismatch_weight: int = 5
    flatline_min_samples: int = 60
    flatline_max_step: float = 1.0
    flatline_weight: int = 3
    max_heart_rate_anomalies: int = 5

    max_elevation_step_m: float = 100.0
    max_grade: float = 1.0
    grade_min_distance_m: float = 10.0
    max_elevation_anomalies: int = 5

    max_pattern_score: int = 10

    suspicion_cutoff: float = SUSPICION_SCORE_CUTOFF
    suspicion_weights: Mapping[str, float] = field(
        default_factory=lambda: dict(SUSPICION_WEIGHTS)
    )

    def __post_init__(self) -> None:
        for name in ("max_speed_ms", "burst_speed_factor", "jump_distance_m"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)!r}")


def _clamp_unit(value: float) -> float:
    return float(min(1.0, max(0.0, value)))


def check_impossible_speed(
    stream: ActivityStream, thresholds: AntiCheatThresholds
) -> CheckResult:
    """Flag sustained or extreme speeds beyond the configured limit."""

    positions = stream.positions
    timestamps = stream.timestamps
    limit = thresholds.max_speed_ms
    max_speed = 0.0
    violations: List[Dict[str, Any]] = []
    for i in range(1, min(len(positions), len(timestamps))):
        distance = haversine_m(positions[i - 1], positions[i])
        elapsed = max(1.0, timestamps[i] - timestamps[i - 1])
        speed = distance / elapsed
        max_speed = max(max_speed, speed)
        if speed > limit:
            violations.append(
                {
                    "index": i,
                    "speed": speed,
                    "threshold": limit,
                    "distance": distance,
                    "time_gap": elapsed,
                }
            )
    flagged = (
        len(violations) > thresholds.max_speed_violations
        or max_speed > limit * thresholds.burst_speed_factor
    )
    confidence = _clamp_unit(len(violations) / 10.0 + max(0.0, max_speed / limit - 1.0))
    return CheckResult(
        name="speed",
        flagged=flagged,
        confidence=confidence,
        violations=tuple(violations),
        diagnostics={
            "max_speed": max_speed,
            "impossible_count": len(violations),
            "threshold": limit,
        },
    )


def check_gps_consistency(
    stream: ActivityStream, thresholds: AntiCheatThresholds
) -> CheckResult:
    """Count teleport jumps and near-collinear backtracking triangles."""

    positions = stream.positions
    jumps = 0
    total_distance = 0.0
    violations: List[Dict[str, Any]] = []
    for i in range(2, len(positions)):
        d1 = haversine_m(positions[i - 2], positions[i - 1])
        d2 = haversine_m(positions[i - 1], positions[i])
        direct = haversine_m(positions[i - 2], positions[i])
        total_distance += d1

        if d1 > thresholds.jump_distance_m and d2 > thresholds.jump_distance_m:
            jumps += 1
            violations.append(
                {
                    "index": i,
                    "kind": "jump",
                    "distance1": d1,
                    "distance2": d2,
                    "direct_distance": direct,
                }
            )

        # Both legs must be real movement; a thin triangle means the track
        # went out and came straight back.
        if direct > 0 and d1 > 0 and d2 > 0:
            ratio = direct / (d1 + d2)
            if (
                ratio < thresholds.backtrack_max_ratio
                and d1 > thresholds.backtrack_min_leg_m
                and d2 > thresholds.backtrack_min_leg_m
            ):
                jumps += 1
                violations.append({"index": i, "kind": "backtrack", "ratio": ratio})

    flagged = jumps > thresholds.max_gps_jumps
    return CheckResult(
        name="gps",
        flagged=flagged,
        confidence=_clamp_unit(jumps / 10.0),
        violations=tuple(violations),
        diagnostics={
            "large_jumps": jumps,
            "total_distance_m": total_distance,
            "threshold": thresholds.max_gps_jumps,
        },
    )


def check_heart_rate(
    stream: ActivityStream, thresholds: AntiCheatThresholds
) -> CheckResult:
    """Flag impossible readings, effort/heart-rate mismatch and flatlines."""

    heart_rates = stream.heart_rates
    if not heart_rates:
        return CheckResult(
            name="heart_rate", flagged=False, confidence=0.0, note="no_heart_rate_data"
        )

    anomalies = 0
    violations: List[Dict[str, Any]] = []
    for index, hr in enumerate(heart_rates):
        if hr < thresholds.min_heart_rate or hr > thresholds.max_heart_rate:
            anomalies += 1
            violations.append(
                {"index": index, "heart_rate": hr, "reason": "impossible_value"}
            )

    positions = stream.positions
    timestamps = stream.timestamps
    if (
        len(positions) > thresholds.mismatch_min_samples
        and len(timestamps) > thresholds.mismatch_min_samples
    ):
        avg_speed = float(np.mean(segment_speeds_ms(positions, timestamps)))
        avg_hr = float(np.mean(heart_rates))
        if (
            avg_speed > thresholds.mismatch_speed_ms
            and avg_hr < thresholds.mismatch_heart_rate
        ):
            anomalies += thresholds.mismatch_weight
            violations.append(
                {"reason": "speed_hr_mismatch", "avg_speed": avg_speed, "avg_hr": avg_hr}
            )

    run_length = 1
    max_flatline = 1
    for previous, current in zip(heart_rates, heart_rates[1:]):
        if abs(current - previous) <= thresholds.flatline_max_step:
            run_length += 1
        else:
            max_flatline = max(max_flatline, run_length)
            run_length = 1
    max_flatline = max(max_flatline, run_length)
    if max_flatline >= thresholds.flatline_min_samples:
        anomalies += thresholds.flatline_weight
        violations.append(
            {"reason": "heart_rate_flatline", "flatline_length": max_flatline}
        )

    return CheckResult(
        name="heart_rate",
        flagged=anomalies > thresholds.max_heart_rate_anomalies,
        confidence=_clamp_unit(anomalies / 20.0),
        violations=tuple(violations),
        diagnostics={"anomalies": anomalies, "max_flatline": max_flatline},
    )


def check_elevation(
    stream: ActivityStream, thresholds: AntiCheatThresholds
) -> CheckResult:
    """Flag altitude jumps and grades steeper than a runner can climb."""

    altitudes = stream.altitudes
    if not altitudes:
        return CheckResult(
            name="elevation", flagged=False, confidence=0.0, note="no_elevation_data"
        )

    anomalies = 0
    violations: List[Dict[str, Any]] = []
    for i in range(1, len(altitudes)):
        change = abs(altitudes[i] - altitudes[i - 1])
        if change > thresholds.max_elevation_step_m:
            anomalies += 1
            violations.append(
                {
                    "index": i,
                    "elevation_change": change,
                    "from": altitudes[i - 1],
                    "to": altitudes[i],
                }
            )

    positions = stream.positions
    if len(positions) == len(altitudes):
        for i in range(1, len(altitudes)):
            horizontal = haversine_m(positions[i - 1], positions[i])
            if horizontal <= 0:
                continue
            change = abs(altitudes[i] - altitudes[i - 1])
            grade = change / horizontal
            if grade > thresholds.max_grade and horizontal > thresholds.grade_min_distance_m:
                anomalies += 1
                violations.append(
                    {
                        "index": i,
                        "grade_pct": grade * 100.0,
                        "horizontal_distance": horizontal,
                        "elevation_change": change,
                    }
                )

    return CheckResult(
        name="elevation",
        flagged=anomalies > thresholds.max_elevation_anomalies,
        confidence=_clamp_unit(anomalies / 15.0),
        violations=tuple(violations),
        diagnostics={"anomalies": anomalies},
    )


def check_movement_pattern(
    stream: ActivityStream, thresholds: AntiCheatThresholds
) -> CheckResult:
    """Sum the scores of the circular, duplicate and timing detectors."""

    signals = (
        detect_circular_loop(stream.positions),
        detect_duplicate_coordinates(stream.positions),
        detect_regular_timing(stream.timestamps),
    )
    fired = [signal for signal in signals if signal.suspicious]
    total = sum(signal.score for signal in fired)
    if fired:
        _LOG.debug(
            "Movement patterns fired: %s (score=%d)",
            ", ".join(signal.pattern for signal in fired),
            total,
        )
    return CheckResult(
        name="pattern",
        flagged=total > thresholds.max_pattern_score,
        confidence=_clamp_unit(total / 20.0),
        violations=tuple(
            {"pattern": signal.pattern, "score": signal.score, **signal.metrics}
            for signal in fired
        ),
        diagnostics={"suspicion_count": total},
    )


__all__ = [
    "AntiCheatThresholds",
    "check_impossible_speed",
    "check_gps_consistency",
    "check_heart_rate",
    "check_elevation",
    "check_movement_pattern",
]
