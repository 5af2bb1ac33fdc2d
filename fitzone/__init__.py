"""FitZone scoring core.

Scores GPS activities, screens them for cheating, projects them onto
hexagonal cells and models decaying ownership of captured cells.
"""

from .anticheat import AntiCheatThresholds, evaluate_anti_cheat
from .cells import project_to_cells
from .errors import (
    EmptyStreamError,
    FitzoneError,
    InvalidCellError,
    StravaAPIError,
    StravaStreamEmptyError,
    StreamInputError,
)
from .models import (
    ActivityStream,
    AntiCheatVerdict,
    CaptureOutcome,
    GeoCellVisit,
    ScoreResult,
    VerdictReason,
    ZonePowerState,
)
from .scoring import score
from .zones import attempt_capture, current_power

__version__ = "0.3.0"

__all__ = [
    "ActivityStream",
    "AntiCheatThresholds",
    "AntiCheatVerdict",
    "CaptureOutcome",
    "EmptyStreamError",
    "FitzoneError",
    "GeoCellVisit",
    "InvalidCellError",
    "ScoreResult",
    "StravaAPIError",
    "StravaStreamEmptyError",
    "StreamInputError",
    "VerdictReason",
    "ZonePowerState",
    "attempt_capture",
    "current_power",
    "evaluate_anti_cheat",
    "project_to_cells",
    "score",
]
