"""Time-decayed power of captured zones and the capture rule.

A captured zone loses one point of power per full day since capture. A
challenger takes the zone only with a score strictly greater than the
current power, and then replaces the holder's record outright.
"""

from __future__ import annotations

from datetime import datetime, timezone
import math
from typing import Optional

from ..models import CaptureOutcome, ZonePowerState

SECONDS_PER_DAY = 86_400.0


def _to_utc_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so mixed inputs compare cleanly."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def days_between(start: datetime, end: datetime) -> float:
    """Return fractional days from ``start`` to ``end``, never negative."""

    delta = _to_utc_aware(end) - _to_utc_aware(start)
    return max(0.0, delta.total_seconds() / SECONDS_PER_DAY)


def current_power(
    base_score: int, captured_at: datetime, now: Optional[datetime] = None
) -> int:
    """Return ``max(0, base_score - whole days since capture)``."""

    now = now or _utcnow()
    decay = int(math.floor(days_between(captured_at, now)))
    return max(0, int(base_score) - decay)


def state_power(state: Optional[ZonePowerState], now: Optional[datetime] = None) -> int:
    """Return the power of a zone record; unclaimed zones have none."""

    if state is None:
        return 0
    return current_power(state.base_score, state.captured_at, now)


def minimum_capture_score(
    state: Optional[ZonePowerState], now: Optional[datetime] = None
) -> int:
    return state_power(state, now) + 1


def attempt_capture(
    challenge_score: int,
    existing_state: Optional[ZonePowerState],
    now: Optional[datetime] = None,
    *,
    challenger_id: Optional[str] = None,
) -> CaptureOutcome:
    """Decide a capture attempt and return the resulting zone record.

    The caller is responsible for making the read of ``existing_state`` and
    the write of ``new_state`` a single atomic step per zone.
    """

    now = now or _utcnow()
    power = state_power(existing_state, now)
    required = power + 1
    if challenge_score <= power:
        return CaptureOutcome(
            accepted=False,
            new_state=existing_state,
            previous_state=existing_state,
            current_power=power,
            required_score=required,
        )
    captures = existing_state.total_captures + 1 if existing_state else 1
    new_state = ZonePowerState(
        base_score=int(challenge_score),
        captured_at=now,
        owner_id=challenger_id,
        total_captures=captures,
    )
    return CaptureOutcome(
        accepted=True,
        new_state=new_state,
        previous_state=existing_state,
        current_power=power,
        required_score=required,
    )


__all__ = [
    "days_between",
    "current_power",
    "state_power",
    "minimum_capture_score",
    "attempt_capture",
]
