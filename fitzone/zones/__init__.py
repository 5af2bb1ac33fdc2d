"""Zone ownership: decaying capture power and collaborator ports."""

from .ledger import (
    InMemoryZoneLedger,
    LoggingRewardDispatcher,
    RecordingRewardDispatcher,
    RewardDispatcher,
    RewardEvent,
    ZoneLedger,
)
from .power import attempt_capture, current_power, minimum_capture_score

__all__ = [
    "InMemoryZoneLedger",
    "LoggingRewardDispatcher",
    "RecordingRewardDispatcher",
    "RewardDispatcher",
    "RewardEvent",
    "ZoneLedger",
    "attempt_capture",
    "current_power",
    "minimum_capture_score",
]
