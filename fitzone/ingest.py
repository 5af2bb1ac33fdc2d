"""Build activity streams from Strava stream payloads.

``stream_from_payload`` is the pure half: it accepts either the
``key_by_type`` response shape (``{"latlng": {"data": [...]}}``) or plain
arrays and returns a validated :class:`ActivityStream`. Malformed position
samples are dropped together with the entries of the other series at the
same index, so one bad GPS fix never rejects the whole activity.
``fetch_activity_stream`` adds the network round trip with a small TTL cache
in front of it.
"""

from __future__ import annotations

import logging
import math
from threading import RLock
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from cachetools import TTLCache

from .config import (
    ACTIVITY_STREAM_CACHE_SIZE,
    ACTIVITY_STREAM_CACHE_TTL,
    STRAVA_BASE_URL,
    STRAVA_STREAM_KEYS,
)
from .errors import StravaStreamEmptyError, StreamInputError
from .models import ActivityStream, LatLon
from .tools import _http

_LOG = logging.getLogger(__name__)

_ActivityCacheKey = Tuple[str, int | str]

_activity_stream_cache: TTLCache[_ActivityCacheKey, ActivityStream] = TTLCache(
    maxsize=max(1, ACTIVITY_STREAM_CACHE_SIZE), ttl=max(1, ACTIVITY_STREAM_CACHE_TTL)
)
_activity_stream_cache_lock = RLock()


def _series(payload: Mapping[str, Any], key: str) -> Optional[List[Any]]:
    """Return the data array for ``key`` in either payload shape."""

    entry = payload.get(key)
    if entry is None:
        return None
    if isinstance(entry, Mapping):
        entry = entry.get("data")
        if entry is None:
            return None
    if not isinstance(entry, Sequence) or isinstance(entry, (str, bytes)):
        raise StreamInputError(f"Stream '{key}' is not an array")
    return list(entry)


def _position(raw: Any) -> Optional[LatLon]:
    """Return a finite, in-range ``(lat, lng)`` pair or ``None``."""

    try:
        lat, lng = raw
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    if abs(lat) > 90.0 or abs(lng) > 180.0:
        return None
    return lat, lng


def _keep(values: Optional[List[Any]], indices: Sequence[int]) -> Optional[List[Any]]:
    if values is None:
        return None
    return [values[i] for i in indices if i < len(values)]


def stream_from_payload(
    payload: Mapping[str, Any], *, duration_hint_s: float | None = None
) -> ActivityStream:
    """Convert a Strava streams payload into an :class:`ActivityStream`.

    Raises:
        StravaStreamEmptyError: The payload carries no usable ``latlng`` samples.
        StreamInputError: A series is malformed or misaligned.
    """

    if not isinstance(payload, Mapping):
        raise StreamInputError(
            f"Unexpected streams payload type: {type(payload).__name__}"
        )
    raw_positions = _series(payload, "latlng")
    if not raw_positions:
        raise StravaStreamEmptyError("Activity stream has no latlng samples")

    positions: List[LatLon] = []
    kept: List[int] = []
    for index, raw in enumerate(raw_positions):
        point = _position(raw)
        if point is None:
            continue
        positions.append(point)
        kept.append(index)
    dropped = len(raw_positions) - len(positions)
    if not positions:
        raise StravaStreamEmptyError("Activity stream has no valid latlng samples")

    timestamps = _series(payload, "time") or []
    altitudes = _series(payload, "altitude")
    heart_rates = _series(payload, "heartrate")
    if dropped:
        _LOG.warning(
            "Dropped %d malformed GPS samples of %d", dropped, len(raw_positions)
        )
        timestamps = _keep(timestamps, kept) or []
        altitudes = _keep(altitudes, kept)
        heart_rates = _keep(heart_rates, kept)

    if duration_hint_s is None and "duration_s" in payload:
        duration_hint_s = float(payload["duration_s"])
    return ActivityStream(
        positions=positions,
        timestamps=timestamps,
        altitudes=altitudes,
        heart_rates=heart_rates,
        duration_hint_s=duration_hint_s,
    )


def fetch_activity_stream(
    activity_id: int | str, access_token: str, *, use_cache: bool = True
) -> ActivityStream:
    """Fetch and convert an activity's streams from the Strava API.

    Responses are cached per token and activity for
    ``ACTIVITY_STREAM_CACHE_TTL`` seconds.

    Raises:
        StravaPermissionError: The access token is expired or invalid.
        StravaResourceNotFoundError: The activity is missing or private.
        StravaAPIError: Any other request failure.
        StravaStreamEmptyError: The activity has no GPS samples.
    """

    cache_key: _ActivityCacheKey = (access_token, activity_id)
    if use_cache:
        with _activity_stream_cache_lock:
            cached = _activity_stream_cache.get(cache_key)
        if cached is not None:
            _LOG.debug("Activity stream cache hit for %s", activity_id)
            return cached

    url = f"{STRAVA_BASE_URL}/activities/{activity_id}/streams"
    params = {"keys": ",".join(STRAVA_STREAM_KEYS), "key_by_type": "true"}
    payload = _http.http_get(
        url, access_token, params=params, context=f"Streams for activity {activity_id}"
    )

    stream = stream_from_payload(payload)
    _LOG.info(
        "Fetched activity %s stream with %d samples", activity_id, stream.sample_count
    )
    with _activity_stream_cache_lock:
        _activity_stream_cache[cache_key] = stream
    return stream


def clear_stream_cache() -> None:
    with _activity_stream_cache_lock:
        _activity_stream_cache.clear()


__all__ = ["clear_stream_cache", "fetch_activity_stream", "stream_from_payload"]
