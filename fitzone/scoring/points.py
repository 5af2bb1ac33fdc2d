"""Points engine: converts an activity stream into an itemised score."""

from __future__ import annotations

import logging
import math
from typing import Dict, Sequence

import numpy as np

from ..errors import EmptyStreamError
from ..geodesy import elevation_gain_m, path_distance_m, segment_speeds_ms
from ..models import ActivityStream, LatLon, ScoreResult

_LOG = logging.getLogger(__name__)

# Base point rates.
POINTS_PER_KM = 10
POINTS_PER_FIVE_MINUTES = 2
POINTS_PER_TEN_METRES_CLIMB = 3

# (exclusive upper pace bound in min/km, bonus), fastest tier first.
PACE_BONUS_TIERS = ((4.0, 50), (4.5, 30), (5.0, 20), (5.5, 10), (6.0, 5))

# (exclusive lower gain-per-metre bound, bonus), hilliest tier first.
HILLINESS_BONUS_TIERS = ((0.05, 25), (0.03, 15), (0.02, 10), (0.01, 5))

# Fractions of the observed max heart rate separating zones 1..5.
HEART_RATE_ZONE_BOUNDS = (0.7, 0.8, 0.9, 0.95)
# Bonus points per minute spent in zones 3, 4 and 5.
HEART_RATE_ZONE_RATES = (0.5, 1.0, 1.5)

CONSISTENCY_MIN_SAMPLES = 10
CONSISTENCY_BONUS_CAP = 20
CONSISTENCY_MIN_STD_MS = 0.1

GPS_GAP_THRESHOLD_S = 30.0
GPS_GAP_MAX_PENALTY = 10

ANOMALY_SPEED_MS = 15.0
ANOMALY_PENALTY_PER_SEGMENT = 5
ANOMALY_PENALTY_CAP = 50


def _round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python rounds to even)."""

    return int(math.floor(value + 0.5))


def base_points(distance_km: float, duration_s: float, gain_m: float) -> Dict[str, int]:
    """Return the distance, duration and elevation components of the base score."""

    return {
        "distance": int(math.floor(distance_km)) * POINTS_PER_KM,
        "duration": int(math.floor(duration_s / 300.0)) * POINTS_PER_FIVE_MINUTES,
        "elevation": int(math.floor(gain_m / 10.0)) * POINTS_PER_TEN_METRES_CLIMB,
    }


def pace_bonus(distance_km: float, duration_s: float) -> int:
    """Return the tiered bonus for the average min/km pace."""

    if distance_km <= 0 or duration_s <= 0:
        return 0
    pace = (duration_s / 60.0) / distance_km
    for upper_bound, bonus in PACE_BONUS_TIERS:
        if pace < upper_bound:
            return bonus
    return 0


def heart_rate_bonus(heart_rates: Sequence[float] | None, duration_s: float) -> int:
    """Reward minutes spent in the upper heart-rate zones.

    Zones are relative to the highest reading in the activity, and every
    sample is assumed to represent an equal share of the duration.
    """

    if not heart_rates or duration_s <= 0:
        return 0
    max_hr = max(heart_rates)
    z2, z3, z4, z5 = (bound * max_hr for bound in HEART_RATE_ZONE_BOUNDS)
    zone_counts = [0, 0, 0, 0, 0]
    for hr in heart_rates:
        if hr < z2:
            zone_counts[0] += 1
        elif hr < z3:
            zone_counts[1] += 1
        elif hr < z4:
            zone_counts[2] += 1
        elif hr < z5:
            zone_counts[3] += 1
        else:
            zone_counts[4] += 1
    sample_minutes = (duration_s / len(heart_rates)) / 60.0
    bonus = sum(
        count * sample_minutes * rate
        for count, rate in zip(zone_counts[2:], HEART_RATE_ZONE_RATES)
    )
    return _round_half_up(bonus)


def consistency_bonus(positions: Sequence[LatLon], timestamps: Sequence[float]) -> int:
    """Reward an even pace: mean segment speed relative to its spread."""

    if (
        len(positions) < CONSISTENCY_MIN_SAMPLES
        or len(timestamps) < CONSISTENCY_MIN_SAMPLES
    ):
        return 0
    speeds = np.asarray(segment_speeds_ms(positions, timestamps), dtype=float)
    if speeds.size == 0:
        return 0
    avg_speed = float(np.mean(speeds))
    std_speed = float(np.std(speeds))
    ratio = avg_speed / max(std_speed, CONSISTENCY_MIN_STD_MS)
    return min(CONSISTENCY_BONUS_CAP, _round_half_up(ratio * 2.0))


def hilliness_bonus(gain_m: float, distance_km: float) -> int:
    """Return the tiered bonus for climb per metre travelled."""

    if gain_m <= 0 or distance_km <= 0:
        return 0
    ratio = gain_m / (distance_km * 1000.0)
    for lower_bound, bonus in HILLINESS_BONUS_TIERS:
        if ratio > lower_bound:
            return bonus
    return 0


def gps_gap_penalty(positions: Sequence[LatLon], timestamps: Sequence[float]) -> int:
    """Penalise recording gaps longer than 30 seconds, capped per gap."""

    if len(positions) < 2 or len(timestamps) < 2:
        return 0
    penalty = 0
    for i in range(1, min(len(positions), len(timestamps))):
        gap = timestamps[i] - timestamps[i - 1]
        if gap > GPS_GAP_THRESHOLD_S:
            penalty += min(GPS_GAP_MAX_PENALTY, int(math.floor(gap / GPS_GAP_THRESHOLD_S)))
    return penalty


def speed_anomaly_penalty(
    positions: Sequence[LatLon], timestamps: Sequence[float]
) -> int:
    """Penalise segments faster than any runner could move."""

    if len(positions) < 3 or len(timestamps) < 3:
        return 0
    anomalies = sum(
        1 for speed in segment_speeds_ms(positions, timestamps) if speed > ANOMALY_SPEED_MS
    )
    return min(ANOMALY_PENALTY_CAP, anomalies * ANOMALY_PENALTY_PER_SEGMENT)


def score(stream: ActivityStream) -> ScoreResult:
    """Score an activity stream.

    Raises:
        EmptyStreamError: The stream carries no GPS samples.
    """

    positions = stream.positions
    if not positions:
        raise EmptyStreamError("No GPS data available for points calculation")
    timestamps = stream.timestamps

    distance_km = path_distance_m(positions) / 1000.0
    if timestamps:
        duration_s = stream.elapsed_s
    else:
        duration_s = float(stream.duration_hint_s or 0.0)
    gain_m = elevation_gain_m(stream.altitudes)

    components = base_points(distance_km, duration_s, gain_m)
    total_base = sum(components.values())

    bonuses: Dict[str, float] = {
        "pace": pace_bonus(distance_km, duration_s),
        "heart_rate": heart_rate_bonus(stream.heart_rates, duration_s),
        "consistency": consistency_bonus(positions, timestamps),
        "elevation": hilliness_bonus(gain_m, distance_km),
    }
    penalties: Dict[str, float] = {
        "gps_gaps": gps_gap_penalty(positions, timestamps),
        "speed_anomalies": speed_anomaly_penalty(positions, timestamps),
    }
    total_bonuses = sum(bonuses.values())
    total_penalties = sum(penalties.values())
    total_points = max(0, _round_half_up(total_base + total_bonuses - total_penalties))

    average_pace = (
        (duration_s / 60.0) / distance_km if duration_s > 0 and distance_km > 0 else 0.0
    )
    average_speed = (distance_km * 1000.0) / duration_s if duration_s > 0 else 0.0

    _LOG.debug(
        "Scored activity: %.2f km, %.0f s, base=%d bonuses=%s penalties=%s total=%d",
        distance_km,
        duration_s,
        total_base,
        bonuses,
        penalties,
        total_points,
    )
    return ScoreResult(
        distance_km=distance_km,
        duration_s=duration_s,
        elevation_gain_m=gain_m,
        base_points=total_base,
        base_breakdown=components,
        bonuses=bonuses,
        penalties=penalties,
        total_bonuses=total_bonuses,
        total_penalties=total_penalties,
        total_points=total_points,
        average_pace_min_per_km=average_pace,
        average_speed_ms=average_speed,
        breakdown={
            "distance": (
                f"{int(math.floor(distance_km))} km x {POINTS_PER_KM} = "
                f"{components['distance']} points"
            ),
            "duration": (
                f"{int(math.floor(duration_s / 300.0))} x 5min x "
                f"{POINTS_PER_FIVE_MINUTES} = {components['duration']} points"
            ),
            "elevation": (
                f"{int(math.floor(gain_m / 10.0))} x 10m x "
                f"{POINTS_PER_TEN_METRES_CLIMB} = {components['elevation']} points"
            ),
        },
    )


__all__ = [
    "score",
    "base_points",
    "pace_bonus",
    "heart_rate_bonus",
    "consistency_bonus",
    "hilliness_bonus",
    "gps_gap_penalty",
    "speed_anomaly_penalty",
]
