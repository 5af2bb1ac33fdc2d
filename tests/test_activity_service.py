"""Tests for the activity workflow service."""

from __future__ import annotations

from datetime import datetime, timezone
import logging

import pytest

from fitzone.errors import EmptyStreamError
from fitzone.models import ActivityStream
from fitzone.services import ActivityService, ActivityServiceConfig
from fitzone.zones import InMemoryZoneLedger, RecordingRewardDispatcher

NOW = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)


def _service(**overrides) -> tuple[ActivityService, InMemoryZoneLedger, RecordingRewardDispatcher]:
    ledger = overrides.pop("ledger", None) or InMemoryZoneLedger()
    dispatcher = overrides.pop("dispatcher", None) or RecordingRewardDispatcher()
    overrides.setdefault("rewards_enabled", True)
    config = ActivityServiceConfig(
        ledger=ledger,
        dispatcher=dispatcher,
        clock=lambda: NOW,
        **overrides,
    )
    return ActivityService(config), ledger, dispatcher


def test_clean_activity_captures_top_cells(clean_run) -> None:
    service, ledger, dispatcher = _service(high_score_threshold=10_000)

    outcome = service.process(1, "alice", clean_run)

    assert outcome.status == "processed"
    assert not outcome.verdict.flagged
    assert outcome.score.total_points > 0
    assert outcome.cells
    assert len(outcome.captures) == min(3, len(outcome.cells))
    assert all(capture.outcome.accepted for capture in outcome.captures)
    for capture in outcome.captures:
        state = ledger.get(capture.cell_id)
        assert state.owner_id == "alice"
        assert state.base_score == outcome.score.total_points
        assert state.captured_at == NOW
    assert [event.kind for event in dispatcher.events] == ["zone_capture"] * len(outcome.captures)


def test_high_score_reward_dispatched_above_threshold(clean_run) -> None:
    service, _ledger, dispatcher = _service(high_score_threshold=0)

    outcome = service.process("a-1", "alice", clean_run)

    high_scores = [event for event in dispatcher.events if event.kind == "high_score"]
    assert len(high_scores) == 1
    assert high_scores[0].score == outcome.score.total_points
    assert high_scores[0].cell_id is None


def test_rewards_can_be_disabled(clean_run) -> None:
    service, ledger, dispatcher = _service(rewards_enabled=False)
    service.process(1, "alice", clean_run)
    assert dispatcher.events == []
    assert ledger.snapshot()


def test_weaker_challenger_is_rejected(clean_run) -> None:
    service, ledger, _dispatcher = _service()
    first = service.process(1, "alice", clean_run)
    second = service.process(2, "bob", clean_run)

    assert not second.accepted_captures
    assert all(
        ledger.get(capture.cell_id).owner_id == "alice" for capture in first.captures
    )


def test_flagged_activity_skips_captures(teleport_run, caplog) -> None:
    service, ledger, dispatcher = _service(high_score_threshold=0)

    with caplog.at_level(logging.WARNING, logger="ActivityService"):
        outcome = service.process(9, "mallory", teleport_run)

    assert outcome.status == "flagged"
    assert outcome.verdict.reason.value == "impossible_speed"
    assert outcome.captures == []
    assert ledger.snapshot() == {}
    assert dispatcher.events == []
    assert "flagged: impossible_speed" in caplog.text


def test_empty_activity_cannot_be_scored() -> None:
    service, _ledger, _dispatcher = _service()
    with pytest.raises(EmptyStreamError):
        service.process(1, "alice", ActivityStream(positions=[]))


def test_process_many_skips_unscorable_activities(clean_run, caplog) -> None:
    service, _ledger, _dispatcher = _service()
    jobs = [
        (1, "alice", clean_run),
        (2, "bob", ActivityStream(positions=[])),
    ]

    with caplog.at_level(logging.WARNING, logger="ActivityService"):
        results = service.process_many(jobs)

    assert set(results) == {1}
    assert results[1].status == "processed"
    assert "Skipping activity 2" in caplog.text
    assert service.process_many([]) == {}


class _FailingLedger(InMemoryZoneLedger):
    """Ledger whose storage fails for one challenger."""

    def capture(self, cell_id, challenge_score, challenger_id, now):
        if challenger_id == "bob":
            raise RuntimeError("ledger storage unavailable")
        return super().capture(cell_id, challenge_score, challenger_id, now)


class _FailingDispatcher(RecordingRewardDispatcher):
    """Dispatcher whose payment adapter rejects one user's rewards."""

    def dispatch(self, event):
        if event.user_id == "bob":
            raise RuntimeError("payment adapter down")
        super().dispatch(event)


def test_process_many_survives_collaborator_failures(clean_run, caplog) -> None:
    """A ledger error for one activity leaves the rest of the batch intact."""
    service, _ledger, _dispatcher = _service(ledger=_FailingLedger())
    jobs = [("bad", "bob", clean_run), ("good", "alice", clean_run)]

    with caplog.at_level(logging.ERROR, logger="ActivityService"):
        results = service.process_many(jobs)

    assert set(results) == {"good"}
    assert results["good"].accepted_captures
    assert "Skipping activity bad" in caplog.text
    assert "ledger storage unavailable" in caplog.text


def test_failed_reward_dispatch_keeps_captures(clean_run, caplog) -> None:
    dispatcher = _FailingDispatcher()
    service, ledger, _dispatcher = _service(
        dispatcher=dispatcher, high_score_threshold=10_000
    )

    with caplog.at_level(logging.ERROR, logger="ActivityService"):
        results = service.process_many([("bad", "bob", clean_run)])

    outcome = results["bad"]
    assert outcome.status == "processed"
    assert len(outcome.undelivered_rewards) == len(outcome.accepted_captures)
    assert all(ledger.get(c.cell_id).owner_id == "bob" for c in outcome.captures)
    assert dispatcher.events == []
    assert "not delivered: payment adapter down" in caplog.text


def test_cells_are_challenged_with_at_least_the_minimum_score(clean_run) -> None:
    """A short activity scoring below the floor still challenges at the floor."""
    service, ledger, _dispatcher = _service(min_capture_score=500)

    outcome = service.process(3, "carol", clean_run)

    assert outcome.score.total_points < 500
    assert outcome.accepted_captures
    assert ledger.get(outcome.captures[0].cell_id).base_score == 500
