"""Global pytest fixtures & helpers.

Adds project root to path and provides stream factories shared by the
scoring, anti-cheat and workflow tests.
"""
from __future__ import annotations

import os
import sys
from typing import List, Optional, Sequence, Tuple

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fitzone.models import ActivityStream


START = (51.5, -0.12)
# 0.0001 degrees of latitude is ~11.12 m.
SMALL_STEP_DEG = 0.0001


# --- Factory helpers -------------------------------------------------
def northward_track(
    count: int,
    step_deg: float = SMALL_STEP_DEG,
    start: Tuple[float, float] = START,
) -> List[Tuple[float, float]]:
    return [(start[0] + i * step_deg, start[1]) for i in range(count)]


def even_timestamps(count: int, interval_s: float = 3.0) -> List[float]:
    return [i * interval_s for i in range(count)]


def make_stream(
    positions: Sequence[Tuple[float, float]],
    timestamps: Sequence[float] = (),
    altitudes: Optional[Sequence[float]] = None,
    heart_rates: Optional[Sequence[float]] = None,
    duration_hint_s: Optional[float] = None,
) -> ActivityStream:
    return ActivityStream(
        positions=positions,
        timestamps=timestamps,
        altitudes=altitudes,
        heart_rates=heart_rates,
        duration_hint_s=duration_hint_s,
    )


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def clean_run() -> ActivityStream:
    """Twenty samples ~11 m apart every 3 s (~3.7 m/s), no optional series."""
    positions = northward_track(20)
    return make_stream(positions, even_timestamps(20))


@pytest.fixture
def teleport_run() -> ActivityStream:
    """Samples ~1.1 km apart one second apart: fails speed and GPS checks."""
    positions = northward_track(6, step_deg=0.01)
    return make_stream(positions, even_timestamps(6, interval_s=1.0))
