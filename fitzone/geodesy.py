"""Great-circle distance and elevation helpers shared by every component.

The haversine distance here is the only distance metric in the package; the
points engine, the anti-cheat rules and the cell projection all go through
:func:`haversine_m` so their numbers agree with each other.
"""

from __future__ import annotations

import math
from typing import List, Sequence

from .models import LatLon

EARTH_RADIUS_M = 6_371_000.0

# Smoothed altitude deltas at or below this value are treated as GPS noise.
ELEVATION_NOISE_THRESHOLD_M = 0.5


def haversine_m(first: Sequence[float], second: Sequence[float]) -> float:
    """Return the great-circle distance in metres between two lat/lon pairs."""

    lat1, lon1 = first[0], first[1]
    lat2, lon2 = second[0], second[1]
    sin = math.sin
    cos = math.cos
    radians = math.radians
    lat1_rad = radians(lat1)
    lat2_rad = radians(lat2)
    delta_lat = radians(lat2 - lat1)
    delta_lon = radians(lon2 - lon1)
    sin_half_lat = sin(delta_lat / 2.0)
    sin_half_lon = sin(delta_lon / 2.0)
    a = sin_half_lat**2 + cos(lat1_rad) * cos(lat2_rad) * sin_half_lon**2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def segment_distances_m(points: Sequence[LatLon]) -> List[float]:
    """Return the distance of every consecutive point pair."""

    return [haversine_m(points[i - 1], points[i]) for i in range(1, len(points))]


def path_distance_m(points: Sequence[LatLon]) -> float:
    """Return the summed haversine length of a polyline."""

    return float(sum(segment_distances_m(points)))


def segment_speeds_ms(
    points: Sequence[LatLon],
    timestamps: Sequence[float],
) -> List[float]:
    """Return per-segment speeds (m/s) over the aligned prefix of both series.

    The elapsed time of each segment is clamped to at least one second so
    duplicated or non-increasing timestamps never divide by zero.
    """

    count = min(len(points), len(timestamps))
    speeds: List[float] = []
    for i in range(1, count):
        distance = haversine_m(points[i - 1], points[i])
        elapsed = max(1.0, timestamps[i] - timestamps[i - 1])
        speeds.append(distance / elapsed)
    return speeds


def smooth_elevation(altitudes: Sequence[float]) -> List[float]:
    """Apply a 3-point moving average, leaving both endpoints untouched."""

    values = [float(value) for value in altitudes]
    if len(values) < 3:
        return values
    smoothed = [values[0]]
    for i in range(1, len(values) - 1):
        smoothed.append((values[i - 1] + values[i] + values[i + 1]) / 3.0)
    smoothed.append(values[-1])
    return smoothed


def elevation_gain_m(altitudes: Sequence[float] | None) -> float:
    """Return the total climb of a smoothed altitude series in metres."""

    if not altitudes:
        return 0.0
    smoothed = smooth_elevation(altitudes)
    gain = 0.0
    for previous, current in zip(smoothed, smoothed[1:]):
        delta = current - previous
        if delta > ELEVATION_NOISE_THRESHOLD_M:
            gain += delta
    return gain


__all__ = [
    "EARTH_RADIUS_M",
    "haversine_m",
    "segment_distances_m",
    "path_distance_m",
    "segment_speeds_ms",
    "smooth_elevation",
    "elevation_gain_m",
]
