"""Central configuration for the FitZone scoring core.

All values are constants imported by the rest of the package. Thresholds that
operators tune per deployment are read from environment variables (optionally
via a local `.env`); everything else is a plain default.
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except ImportError:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Anti-cheat thresholds
# ---------------------------------------------------------------------------
# Segment speed (m/s) above which a sample pair counts as a speed violation.
# A single segment above 1.5x this value flags the activity outright.
MAX_SPEED_MS = _env_float("MAX_SPEED_MS", 12.0)
if MAX_SPEED_MS <= 0:
    MAX_SPEED_MS = 12.0

# Number of GPS jumps/backtracking triangles tolerated before flagging.
MAX_GPS_JUMPS = _env_int("MAX_GPS_JUMPS", 3)

# Aggregate weighted confidence above which an otherwise clean activity is
# flagged as ``high_suspicion_score``.
SUSPICION_SCORE_CUTOFF = _env_float("SUSPICION_SCORE_CUTOFF", 0.7)

# Per-check weights for the aggregate suspicion score.
SUSPICION_WEIGHTS = {
    "speed": 0.3,
    "gps": 0.2,
    "heart_rate": 0.2,
    "elevation": 0.1,
    "pattern": 0.2,
}


# ---------------------------------------------------------------------------
# Cell projection
# ---------------------------------------------------------------------------
# H3 resolution used for visited-cell projection (res 9 ~ 0.1 km^2 cells).
CELL_RESOLUTION = _env_int("CELL_RESOLUTION", 9)

# Coarser resolution used when grouping visited cells into regions.
REGION_RESOLUTION = _env_int("REGION_RESOLUTION", 7)


# ---------------------------------------------------------------------------
# Capture workflow
# ---------------------------------------------------------------------------
# Only the most visited cells of an activity are eligible for capture.
CAPTURE_MAX_CELLS = _env_int("CAPTURE_MAX_CELLS", 3)

# Minimum score shown to clients for capturing an unclaimed cell.
MIN_ACTIVITY_POINTS = _env_int("MIN_ACTIVITY_POINTS", 10)

# Activities scoring above this value trigger a milestone reward.
HIGH_SCORE_REWARD_THRESHOLD = _env_int("HIGH_SCORE_REWARD_THRESHOLD", 100)

# Skip reward dispatch entirely (dry runs, replays).
REWARDS_ENABLED = _env_bool("REWARDS_ENABLED", True)

# Threads used when processing a batch of activities.
MAX_WORKERS = _env_int("MAX_WORKERS", 4)


# ---------------------------------------------------------------------------
# Strava ingestion
# ---------------------------------------------------------------------------
STRAVA_BASE_URL = "https://www.strava.com/api/v3"

# Request timeout in seconds.
REQUEST_TIMEOUT = _env_int("REQUEST_TIMEOUT", 15)

# Stream types requested from the Strava streams endpoint.
STRAVA_STREAM_KEYS = ("latlng", "altitude", "time", "heartrate")

# Maximum number of activity streams to keep in the in-memory cache.
ACTIVITY_STREAM_CACHE_SIZE = _env_int("ACTIVITY_STREAM_CACHE_SIZE", 64)

# Seconds a cached activity stream stays valid.
ACTIVITY_STREAM_CACHE_TTL = _env_int("ACTIVITY_STREAM_CACHE_TTL", 3600)
