"""Dataclasses describing activity streams and the results derived from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import StreamInputError

LatLon = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class ActivityStream:
    """Canonical, time-aligned sensor arrays for a single activity.

    ``positions`` and ``timestamps`` share indexing whenever both are present.
    ``altitudes`` and ``heart_rates`` are expected to be index-aligned with
    ``positions`` but that is a documented precondition, not something the
    constructor enforces. ``duration_hint_s`` is only consulted when no
    timestamps were recorded.
    """

    positions: Sequence[LatLon]
    timestamps: Sequence[float] = ()
    altitudes: Optional[Sequence[float]] = None
    heart_rates: Optional[Sequence[float]] = None
    duration_hint_s: Optional[float] = None

    def __post_init__(self) -> None:
        try:
            positions = tuple((float(lat), float(lng)) for lat, lng in self.positions)
            timestamps = tuple(float(value) for value in self.timestamps)
            altitudes = _optional_series(self.altitudes)
            heart_rates = _optional_series(self.heart_rates)
        except (TypeError, ValueError) as exc:
            raise StreamInputError(f"Malformed activity stream: {exc}") from exc
        if positions and timestamps and len(positions) != len(timestamps):
            raise StreamInputError(
                "Activity positions and timestamps must be the same length "
                f"(got {len(positions)} and {len(timestamps)})"
            )
        object.__setattr__(self, "positions", positions)
        object.__setattr__(self, "timestamps", timestamps)
        object.__setattr__(self, "altitudes", altitudes)
        object.__setattr__(self, "heart_rates", heart_rates)

    @property
    def sample_count(self) -> int:
        return len(self.positions)

    @property
    def elapsed_s(self) -> float:
        """Seconds between the first and last timestamp (0 without timestamps)."""

        if not self.timestamps:
            return 0.0
        return self.timestamps[-1] - self.timestamps[0]


def _optional_series(values: Optional[Sequence[float]]) -> Optional[Tuple[float, ...]]:
    if values is None or len(values) == 0:
        return None
    return tuple(float(value) for value in values)


class VerdictReason(str, Enum):
    """Machine-readable cause attached to a flagged anti-cheat verdict."""

    INSUFFICIENT_DATA = "insufficient_data"
    IMPOSSIBLE_SPEED = "impossible_speed"
    GPS_INCONSISTENT = "gps_inconsistent"
    HEART_RATE_ANOMALY = "heart_rate_anomaly"
    ELEVATION_ANOMALY = "elevation_anomaly"
    SUSPICIOUS_PATTERN = "suspicious_pattern"
    HIGH_SUSPICION_SCORE = "high_suspicion_score"


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Outcome of a single anti-cheat rule."""

    name: str
    flagged: bool
    confidence: float
    violations: Tuple[Dict[str, Any], ...] = ()
    diagnostics: Mapping[str, Any] = field(default_factory=dict)
    note: Optional[str] = None


@dataclass(frozen=True, slots=True)
class AntiCheatVerdict:
    """Aggregate anti-cheat decision for one activity.

    ``checks`` only contains the rules that actually ran; evaluation stops at
    the first flagging rule. ``suspicion_score`` is ``None`` unless every rule
    ran without flagging.
    """

    flagged: bool
    reason: Optional[VerdictReason]
    confidence: float
    checks: Mapping[str, CheckResult] = field(default_factory=dict)
    suspicion_score: Optional[float] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    details: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ScoreResult:
    """Points awarded for an activity with every intermediate retained."""

    distance_km: float
    duration_s: float
    elevation_gain_m: float
    base_points: int
    base_breakdown: Mapping[str, int]
    bonuses: Mapping[str, float]
    penalties: Mapping[str, float]
    total_bonuses: float
    total_penalties: float
    total_points: int
    average_pace_min_per_km: float
    average_speed_ms: float
    breakdown: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CellGeometry:
    """Center, boundary and area of a hexagonal cell."""

    cell_id: str
    center: LatLon
    bounds: Tuple[LatLon, ...]
    resolution: int
    area_m2: float


@dataclass(frozen=True, slots=True)
class GeoCellVisit:
    """A cell touched by an activity together with how often it was hit."""

    cell_id: str
    hit_count: int
    center: LatLon
    bounds: Tuple[LatLon, ...]
    resolution: int
    area_m2: float
    first_hit: LatLon


@dataclass(slots=True)
class CellRegion:
    """Cells grouped under a shared coarser-resolution parent."""

    region_id: str
    center: LatLon
    resolution: int
    area_m2: float
    cells: List[GeoCellVisit | str] = field(default_factory=list)
    total_hits: int = 0


@dataclass(frozen=True, slots=True)
class ZonePowerState:
    """Ownership record of a captured cell."""

    base_score: int
    captured_at: datetime
    owner_id: Optional[str] = None
    total_captures: int = 1


@dataclass(frozen=True, slots=True)
class CaptureOutcome:
    """Result of a capture attempt against the current zone state."""

    accepted: bool
    new_state: Optional[ZonePowerState]
    previous_state: Optional[ZonePowerState]
    current_power: int
    required_score: int


__all__ = [
    "LatLon",
    "ActivityStream",
    "VerdictReason",
    "CheckResult",
    "AntiCheatVerdict",
    "ScoreResult",
    "CellGeometry",
    "GeoCellVisit",
    "CellRegion",
    "ZonePowerState",
    "CaptureOutcome",
]
