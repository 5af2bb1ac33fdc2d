"""Activity processing workflow.

Wires the pure scoring core to its collaborators: scores and projects an
activity, evaluates anti-cheat, attempts captures on the most visited cells
through the zone ledger and hands rewards to the dispatcher. Persistence and
payout mechanics stay behind the injected ports.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..anticheat import AntiCheatThresholds, evaluate_anti_cheat
from ..cells import project_to_cells
from ..config import (
    CAPTURE_MAX_CELLS,
    CELL_RESOLUTION,
    HIGH_SCORE_REWARD_THRESHOLD,
    MAX_WORKERS,
    MIN_ACTIVITY_POINTS,
    REWARDS_ENABLED,
)
from ..models import (
    ActivityStream,
    AntiCheatVerdict,
    CaptureOutcome,
    GeoCellVisit,
    ScoreResult,
)
from ..scoring import score
from ..zones.ledger import (
    InMemoryZoneLedger,
    LoggingRewardDispatcher,
    RewardDispatcher,
    RewardEvent,
    ZoneLedger,
)

ActivityJob = Tuple[int | str, str, ActivityStream]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class CellCapture:
    cell_id: str
    outcome: CaptureOutcome


@dataclass(slots=True)
class ActivityOutcome:
    """Everything the workflow derived from one activity."""

    activity_id: int | str
    user_id: str
    status: str
    score: ScoreResult
    verdict: AntiCheatVerdict
    cells: List[GeoCellVisit] = field(default_factory=list)
    captures: List[CellCapture] = field(default_factory=list)
    undelivered_rewards: List[RewardEvent] = field(default_factory=list)
    processed_at: Optional[datetime] = None

    @property
    def accepted_captures(self) -> List[CellCapture]:
        return [capture for capture in self.captures if capture.outcome.accepted]


@dataclass(slots=True)
class ActivityServiceConfig:
    ledger: ZoneLedger = field(default_factory=InMemoryZoneLedger)
    dispatcher: RewardDispatcher = field(default_factory=LoggingRewardDispatcher)
    thresholds: AntiCheatThresholds = field(default_factory=AntiCheatThresholds)
    resolution: int = CELL_RESOLUTION
    max_capture_cells: int = CAPTURE_MAX_CELLS
    min_capture_score: int = MIN_ACTIVITY_POINTS
    high_score_threshold: int = HIGH_SCORE_REWARD_THRESHOLD
    rewards_enabled: bool = REWARDS_ENABLED
    clock: Callable[[], datetime] = _utcnow
    logger: logging.Logger | None = None


class ActivityService:
    def __init__(self, config: ActivityServiceConfig | None = None):
        self.config = config or ActivityServiceConfig()
        self._log = self.config.logger or logging.getLogger(self.__class__.__name__)

    def process(
        self,
        activity_id: int | str,
        user_id: str,
        stream: ActivityStream,
    ) -> ActivityOutcome:
        """Process one activity.

        Cells are challenged with the activity total, floored at
        ``min_capture_score``. Rewards the dispatcher fails to deliver are
        kept on ``undelivered_rewards`` instead of failing the activity.

        Raises:
            EmptyStreamError: The activity has no GPS samples.
        """

        now = self.config.clock()
        points = score(stream)
        cells = project_to_cells(stream.positions, self.config.resolution)
        verdict = evaluate_anti_cheat(stream, self.config.thresholds)

        if verdict.flagged:
            self._log.warning(
                "Activity %s for user=%s flagged: %s (confidence %.2f)",
                activity_id,
                user_id,
                verdict.reason.value if verdict.reason else "unknown",
                verdict.confidence,
            )
            return ActivityOutcome(
                activity_id=activity_id,
                user_id=user_id,
                status="flagged",
                score=points,
                verdict=verdict,
                cells=cells,
                processed_at=now,
            )

        capture_score = max(points.total_points, self.config.min_capture_score)
        captures = self._capture_cells(cells, capture_score, user_id, now)
        outcome = ActivityOutcome(
            activity_id=activity_id,
            user_id=user_id,
            status="processed",
            score=points,
            verdict=verdict,
            cells=cells,
            captures=captures,
            processed_at=now,
        )
        self._dispatch_rewards(outcome, now)
        self._log.info(
            "Processed activity %s for user=%s: %d points, %d cells, %d captures",
            activity_id,
            user_id,
            points.total_points,
            len(cells),
            len(outcome.accepted_captures),
        )
        return outcome

    def process_many(self, jobs: Sequence[ActivityJob]) -> Dict[int | str, ActivityOutcome]:
        """Process independent activities in parallel.

        Activities that fail for any reason (unscorable stream, ledger
        error) are logged and left out of the result; they never abort the
        batch.
        """

        results: Dict[int | str, ActivityOutcome] = {}
        if not jobs:
            return results
        failed: List[str] = []
        max_workers = max(1, min(MAX_WORKERS, len(jobs)))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_map = {
                executor.submit(self.process, activity_id, user_id, stream): activity_id
                for activity_id, user_id, stream in jobs
            }
            for future in as_completed(future_map):
                activity_id = future_map[future]
                try:
                    results[activity_id] = future.result()
                except Exception as exc:
                    failed.append(str(activity_id))
                    self._log.error(
                        "Skipping activity %s: %s", activity_id, exc, exc_info=True
                    )
        if failed:
            self._log.warning(
                "Suppressed %d activity failures (activities: %s)",
                len(failed),
                ", ".join(sorted(failed)),
            )
        return results

    def _capture_cells(
        self,
        cells: Sequence[GeoCellVisit],
        capture_score: int,
        user_id: str,
        now: datetime,
    ) -> List[CellCapture]:
        captures: List[CellCapture] = []
        for visit in cells[: max(0, self.config.max_capture_cells)]:
            outcome = self.config.ledger.capture(
                visit.cell_id, capture_score, user_id, now
            )
            captures.append(CellCapture(cell_id=visit.cell_id, outcome=outcome))
            if not outcome.accepted:
                self._log.debug(
                    "Capture of %s rejected: score %d, required %d",
                    visit.cell_id,
                    capture_score,
                    outcome.required_score,
                )
        return captures

    def _dispatch_rewards(self, outcome: ActivityOutcome, now: datetime) -> None:
        """Send rewards; a failing dispatcher never undoes committed captures."""

        if not self.config.rewards_enabled:
            return
        total_points = outcome.score.total_points
        events = [
            RewardEvent(
                kind="zone_capture",
                user_id=outcome.user_id,
                activity_id=outcome.activity_id,
                score=total_points,
                occurred_at=now,
                cell_id=capture.cell_id,
            )
            for capture in outcome.accepted_captures
        ]
        if total_points > self.config.high_score_threshold:
            events.append(
                RewardEvent(
                    kind="high_score",
                    user_id=outcome.user_id,
                    activity_id=outcome.activity_id,
                    score=total_points,
                    occurred_at=now,
                )
            )
        for event in events:
            try:
                self.config.dispatcher.dispatch(event)
            except Exception as exc:
                outcome.undelivered_rewards.append(event)
                self._log.error(
                    "Reward %s for activity %s not delivered: %s",
                    event.kind,
                    event.activity_id,
                    exc,
                    exc_info=True,
                )


__all__ = [
    "ActivityOutcome",
    "ActivityService",
    "ActivityServiceConfig",
    "CellCapture",
]
