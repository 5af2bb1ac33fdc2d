"""Authenticated GET against the Strava API with typed failures.

Non-success statuses are classified into the ``StravaAPIError`` family so
callers can tell an expired token from a missing activity or a rate limit
without inspecting ``requests`` internals.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from fitzone.config import REQUEST_TIMEOUT
from fitzone.errors import (
    StravaAPIError,
    StravaPermissionError,
    StravaRateLimitError,
    StravaResourceNotFoundError,
)

LOGGER = logging.getLogger(__name__)


def _error_detail(response: requests.Response) -> Optional[str]:
    """Return Strava's ``message`` field, or a trimmed body, when present."""

    try:
        data = response.json()
    except ValueError:
        text = (response.text or "").strip()
        return text[:200] or None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return None


def classify_status(response: requests.Response, context: str) -> Optional[StravaAPIError]:
    """Return the error matching a non-success status, or ``None`` when OK."""

    status = response.status_code
    if status < 400:
        return None
    detail = _error_detail(response)
    suffix = f" | {detail}" if detail else ""
    if status in (401, 403):
        return StravaPermissionError(
            f"{context}: access token expired or invalid (status {status}){suffix}"
        )
    if status == 404:
        return StravaResourceNotFoundError(f"{context}: not found or not accessible{suffix}")
    if status == 429:
        return StravaRateLimitError(f"{context}: rate limit exceeded{suffix}")
    return StravaAPIError(f"{context}: request failed (status {status}){suffix}")


def http_get(
    url: str,
    token: str,
    *,
    params: dict[str, Any] | None = None,
    context: str = "GET",
) -> Any:
    """Perform an authenticated GET and return the decoded JSON body.

    Raises:
        StravaAPIError: Transport failure, error status or undecodable body;
            the subclass tells which.
    """
    headers = {"Authorization": f"Bearer {token}"}
    LOGGER.debug("GET %s params=%s", url, params)
    try:
        response = requests.get(
            url,
            headers=headers,
            params=params,
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as exc:
        raise StravaAPIError(f"{context}: request failed: {exc}") from exc

    error = classify_status(response, context)
    if error is not None:
        LOGGER.warning("%s", error)
        raise error
    try:
        return response.json()
    except ValueError as exc:
        raise StravaAPIError(f"{context}: response was not valid JSON") from exc
