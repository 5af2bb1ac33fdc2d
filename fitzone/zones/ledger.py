"""Collaborator ports for zone ownership and reward dispatch.

The scoring core never stores zone records or pays out rewards itself. The
activity workflow talks to a :class:`ZoneLedger` and a
:class:`RewardDispatcher`; production deployments back these with a
database and a payment/chain adapter, tests and local runs use the
in-memory implementations below.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from threading import Lock, RLock
from typing import Dict, List, Optional, Protocol, Tuple

from ..models import CaptureOutcome, ZonePowerState
from .power import attempt_capture

# Number of locks shared by all cells of an in-memory ledger.
DEFAULT_LOCK_STRIPES = 64


@dataclass(frozen=True, slots=True)
class RewardEvent:
    """A reward the workflow asks the dispatcher to deliver."""

    kind: str
    user_id: str
    activity_id: int | str
    score: int
    occurred_at: datetime
    cell_id: Optional[str] = None


class ZoneLedger(Protocol):
    """Port: stores the current owner record of each cell."""

    def get(self, cell_id: str) -> Optional[ZonePowerState]: ...

    def capture(
        self,
        cell_id: str,
        challenge_score: int,
        challenger_id: str,
        now: datetime,
    ) -> CaptureOutcome: ...


class RewardDispatcher(Protocol):
    """Port: delivers rewards triggered by processed activities."""

    def dispatch(self, event: RewardEvent) -> None: ...


class InMemoryZoneLedger:
    """Thread-safe ledger holding zone records in a dict.

    A capture runs its power check and record update under the lock stripe
    its cell hashes to, so the two happen as one step. The stripe pool has a
    fixed size: memory for locks does not grow with the number of cells, and
    captures on different cells only contend when they share a stripe.
    """

    def __init__(
        self,
        initial: Optional[Dict[str, ZonePowerState]] = None,
        *,
        lock_stripes: int = DEFAULT_LOCK_STRIPES,
    ) -> None:
        self._states: Dict[str, ZonePowerState] = dict(initial or {})
        self._stripes: Tuple[Lock, ...] = tuple(Lock() for _ in range(max(1, lock_stripes)))
        self._registry_lock = RLock()
        self._log = logging.getLogger(self.__class__.__name__)

    @property
    def lock_stripes(self) -> int:
        return len(self._stripes)

    def _lock_for(self, cell_id: str) -> Lock:
        return self._stripes[hash(cell_id) % len(self._stripes)]

    def get(self, cell_id: str) -> Optional[ZonePowerState]:
        with self._registry_lock:
            return self._states.get(cell_id)

    def capture(
        self,
        cell_id: str,
        challenge_score: int,
        challenger_id: str,
        now: datetime,
    ) -> CaptureOutcome:
        with self._lock_for(cell_id):
            outcome = attempt_capture(
                challenge_score, self.get(cell_id), now, challenger_id=challenger_id
            )
            if outcome.accepted and outcome.new_state is not None:
                with self._registry_lock:
                    self._states[cell_id] = outcome.new_state
                self._log.info(
                    "Cell %s captured by %s with score %d (previous power %d)",
                    cell_id,
                    challenger_id,
                    challenge_score,
                    outcome.current_power,
                )
            return outcome

    def snapshot(self) -> Dict[str, ZonePowerState]:
        with self._registry_lock:
            return dict(self._states)


class LoggingRewardDispatcher:
    """Dispatcher that only records rewards in the log."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or logging.getLogger(self.__class__.__name__)

    def dispatch(self, event: RewardEvent) -> None:
        self._log.info(
            "Reward %s for user=%s activity=%s score=%d cell=%s",
            event.kind,
            event.user_id,
            event.activity_id,
            event.score,
            event.cell_id,
        )


class RecordingRewardDispatcher:
    """Dispatcher that keeps every event in memory (dry runs and tests)."""

    def __init__(self) -> None:
        self.events: List[RewardEvent] = []
        self._lock = Lock()

    def dispatch(self, event: RewardEvent) -> None:
        with self._lock:
            self.events.append(event)


__all__ = [
    "RewardEvent",
    "ZoneLedger",
    "RewardDispatcher",
    "InMemoryZoneLedger",
    "LoggingRewardDispatcher",
    "RecordingRewardDispatcher",
]
