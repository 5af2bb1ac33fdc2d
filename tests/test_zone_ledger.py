"""Tests for the in-memory zone ledger and reward dispatchers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
import threading
from typing import List

import pytest

from fitzone.models import CaptureOutcome, ZonePowerState
from fitzone.zones import (
    InMemoryZoneLedger,
    LoggingRewardDispatcher,
    RecordingRewardDispatcher,
    RewardEvent,
)

T0 = datetime(2025, 3, 1, tzinfo=timezone.utc)
CELL = "89195da49b7ffff"


def test_capture_stores_new_owner() -> None:
    ledger = InMemoryZoneLedger()
    outcome = ledger.capture(CELL, 30, "alice", T0)

    assert outcome.accepted
    assert ledger.get(CELL) == ZonePowerState(
        base_score=30, captured_at=T0, owner_id="alice", total_captures=1
    )


def test_rejected_capture_keeps_existing_state() -> None:
    ledger = InMemoryZoneLedger(
        {CELL: ZonePowerState(base_score=30, captured_at=T0, owner_id="alice")}
    )
    outcome = ledger.capture(CELL, 25, "bob", T0 + timedelta(days=2))

    assert not outcome.accepted
    assert ledger.get(CELL).owner_id == "alice"
    assert ledger.snapshot()[CELL].base_score == 30


@pytest.mark.parametrize("stripes", [1, 64])
def test_concurrent_equal_challenges_only_one_wins(stripes: int) -> None:
    """The power check and the update happen under one cell lock."""
    ledger = InMemoryZoneLedger(lock_stripes=stripes)
    workers = 8
    barrier = threading.Barrier(workers)
    outcomes: List[CaptureOutcome] = []
    outcomes_lock = threading.Lock()

    def challenger(user: str) -> None:
        barrier.wait()
        outcome = ledger.capture(CELL, 50, user, T0)
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [
        threading.Thread(target=challenger, args=(f"user{i}",)) for i in range(workers)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(outcomes) == workers
    assert sum(1 for outcome in outcomes if outcome.accepted) == 1
    assert ledger.get(CELL).total_captures == 1


def test_lock_pool_does_not_grow_with_cells() -> None:
    """Many distinct cells share a fixed pool of locks."""
    ledger = InMemoryZoneLedger()
    cells = [f"cell-{index}" for index in range(500)]

    for cell in cells:
        assert ledger.capture(cell, 20, "alice", T0).accepted

    assert ledger.lock_stripes == 64
    assert len(ledger.snapshot()) == 500
    assert {state.owner_id for state in ledger.snapshot().values()} == {"alice"}


def test_lock_stripes_are_at_least_one() -> None:
    assert InMemoryZoneLedger(lock_stripes=0).lock_stripes == 1


def test_recording_dispatcher_keeps_events() -> None:
    dispatcher = RecordingRewardDispatcher()
    event = RewardEvent(kind="high_score", user_id="alice", activity_id=1, score=120, occurred_at=T0)
    dispatcher.dispatch(event)
    assert dispatcher.events == [event]


def test_logging_dispatcher_logs_event(caplog) -> None:
    dispatcher = LoggingRewardDispatcher()
    event = RewardEvent(
        kind="zone_capture", user_id="alice", activity_id=7, score=40, occurred_at=T0, cell_id=CELL
    )
    with caplog.at_level(logging.INFO, logger="LoggingRewardDispatcher"):
        dispatcher.dispatch(event)
    assert "Reward zone_capture for user=alice" in caplog.text
