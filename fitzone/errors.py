"""Central error types used across the application."""

from __future__ import annotations


class FitzoneError(RuntimeError):
    """Base error for the scoring core and its ingestion boundary."""


class StreamInputError(FitzoneError, ValueError):
    """Raised when an activity stream violates its structural preconditions."""


class EmptyStreamError(StreamInputError):
    """Raised when an activity has no GPS samples and cannot be scored."""


class InvalidCellError(FitzoneError, ValueError):
    """Raised when an explicit cell lookup receives a malformed cell id."""


class StravaAPIError(FitzoneError):
    """Raised when the upstream activity provider request fails."""


class StravaPermissionError(StravaAPIError):
    """Raised when the access token is expired, invalid or lacks the needed scope."""


class StravaResourceNotFoundError(StravaAPIError):
    """Raised when an activity or its streams do not exist or are not visible."""


class StravaRateLimitError(StravaAPIError):
    """Raised when Strava returns HTTP 429."""


class StravaStreamEmptyError(StravaAPIError):
    """Raised when an activity stream is missing required data series."""


__all__ = [
    "FitzoneError",
    "StreamInputError",
    "EmptyStreamError",
    "InvalidCellError",
    "StravaAPIError",
    "StravaPermissionError",
    "StravaResourceNotFoundError",
    "StravaRateLimitError",
    "StravaStreamEmptyError",
]
