"""Ordered anti-cheat pipeline.

Rules run in a fixed priority order and evaluation stops at the first rule
that flags; that rule's reason becomes the verdict. Only when every rule
passes is the weighted suspicion score computed.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Mapping, Optional, Tuple

from ..models import ActivityStream, AntiCheatVerdict, CheckResult, VerdictReason
from .rules import (
    AntiCheatThresholds,
    check_elevation,
    check_gps_consistency,
    check_heart_rate,
    check_impossible_speed,
    check_movement_pattern,
)

_LOG = logging.getLogger(__name__)

Rule = Callable[[ActivityStream, AntiCheatThresholds], CheckResult]

RULES: Tuple[Tuple[str, VerdictReason, Rule], ...] = (
    ("speed", VerdictReason.IMPOSSIBLE_SPEED, check_impossible_speed),
    ("gps", VerdictReason.GPS_INCONSISTENT, check_gps_consistency),
    ("heart_rate", VerdictReason.HEART_RATE_ANOMALY, check_heart_rate),
    ("elevation", VerdictReason.ELEVATION_ANOMALY, check_elevation),
    ("pattern", VerdictReason.SUSPICIOUS_PATTERN, check_movement_pattern),
)


def suspicion_score(
    checks: Mapping[str, CheckResult], weights: Mapping[str, float]
) -> float:
    """Weighted sum of the confidences of checks that did not flag."""

    total = 0.0
    for name, result in checks.items():
        if result.flagged:
            continue
        total += result.confidence * weights.get(name, 0.0)
    return total


def evaluate_anti_cheat(
    stream: ActivityStream,
    thresholds: Optional[AntiCheatThresholds] = None,
) -> AntiCheatVerdict:
    """Run the anti-cheat pipeline over a stream. Never raises on bad data."""

    thresholds = thresholds or AntiCheatThresholds()
    metadata = {"total_points": stream.sample_count, "duration_s": stream.elapsed_s}

    if stream.sample_count < 2:
        return AntiCheatVerdict(
            flagged=True,
            reason=VerdictReason.INSUFFICIENT_DATA,
            confidence=1.0,
            metadata=metadata,
            details="Activity has insufficient GPS data points",
        )

    checks: Dict[str, CheckResult] = {}
    for name, reason, rule in RULES:
        result = rule(stream, thresholds)
        checks[name] = result
        if result.flagged:
            _LOG.info(
                "Activity flagged by %s check (reason=%s confidence=%.2f)",
                name,
                reason.value,
                result.confidence,
            )
            return AntiCheatVerdict(
                flagged=True,
                reason=reason,
                confidence=result.confidence,
                checks=checks,
                metadata=metadata,
            )

    aggregate = suspicion_score(checks, thresholds.suspicion_weights)
    if aggregate > thresholds.suspicion_cutoff:
        _LOG.info("Activity flagged by aggregate suspicion score %.2f", aggregate)
        return AntiCheatVerdict(
            flagged=True,
            reason=VerdictReason.HIGH_SUSPICION_SCORE,
            confidence=min(1.0, aggregate),
            checks=checks,
            suspicion_score=aggregate,
            metadata=metadata,
        )
    return AntiCheatVerdict(
        flagged=False,
        reason=None,
        confidence=0.0,
        checks=checks,
        suspicion_score=aggregate,
        metadata=metadata,
    )


__all__ = ["RULES", "evaluate_anti_cheat", "suspicion_score"]
