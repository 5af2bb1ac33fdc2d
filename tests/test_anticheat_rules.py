"""Tests for the individual anti-cheat rules and pattern detectors."""

from __future__ import annotations

import pytest

from fitzone.anticheat.patterns import (
    detect_circular_loop,
    detect_duplicate_coordinates,
    detect_regular_timing,
)
from fitzone.anticheat.rules import (
    AntiCheatThresholds,
    check_elevation,
    check_gps_consistency,
    check_heart_rate,
    check_impossible_speed,
    check_movement_pattern,
)

from conftest import even_timestamps, make_stream, northward_track

DEFAULTS = AntiCheatThresholds()


@pytest.mark.parametrize("name", ["max_speed_ms", "burst_speed_factor", "jump_distance_m"])
def test_thresholds_reject_non_positive_limits(name: str) -> None:
    """A zero speed limit would divide by zero when grading confidence."""
    with pytest.raises(ValueError, match=name):
        AntiCheatThresholds(**{name: 0})


# --- Speed -----------------------------------------------------------
def test_single_burst_above_one_and_a_half_times_limit_flags() -> None:
    # ~1112 m in 58 s is ~19.2 m/s, above 1.5 x 12 m/s.
    stream = make_stream(northward_track(2, step_deg=0.01), [0, 58])
    result = check_impossible_speed(stream, DEFAULTS)
    assert result.flagged
    assert result.diagnostics["impossible_count"] == 1
    assert result.confidence == pytest.approx(0.1 + (19.17 / 12.0 - 1.0), abs=0.01)


def test_sustained_violations_flag_only_above_three() -> None:
    # ~111 m every 8.5 s is ~13.1 m/s: over the limit but below the burst factor.
    three = make_stream(northward_track(4, step_deg=0.001), even_timestamps(4, 8.5))
    five = make_stream(northward_track(6, step_deg=0.001), even_timestamps(6, 8.5))

    assert not check_impossible_speed(three, DEFAULTS).flagged
    assert check_impossible_speed(five, DEFAULTS).flagged
    assert len(check_impossible_speed(five, DEFAULTS).violations) == 5


def test_unflagged_speed_check_still_reports_confidence() -> None:
    stream = make_stream(northward_track(4, step_deg=0.001), even_timestamps(4, 8.5))
    result = check_impossible_speed(stream, DEFAULTS)
    assert 0.3 < result.confidence < 0.5


def test_speed_without_timestamps_is_clean() -> None:
    result = check_impossible_speed(make_stream(northward_track(5, 0.01)), DEFAULTS)
    assert not result.flagged
    assert result.confidence == 0.0


# --- GPS consistency -------------------------------------------------
def test_gps_jumps_flag_above_threshold() -> None:
    four_jumps = make_stream(northward_track(6, step_deg=0.01))
    three_jumps = make_stream(northward_track(5, step_deg=0.01))

    flagged = check_gps_consistency(four_jumps, DEFAULTS)
    assert flagged.flagged
    assert flagged.diagnostics["large_jumps"] == 4
    assert flagged.confidence == pytest.approx(0.4)
    assert not check_gps_consistency(three_jumps, DEFAULTS).flagged


def test_gps_backtracking_triangles_count_as_jumps() -> None:
    """Out-and-back legs of ~220 m along a line form thin triangles."""
    positions = [
        (51.5 + (i // 2) * 0.0001 + (0.002 if i % 2 else 0.0), -0.12)
        for i in range(6)
    ]
    result = check_gps_consistency(make_stream(positions), DEFAULTS)
    assert result.flagged
    assert {v["kind"] for v in result.violations} == {"backtrack"}


# --- Heart rate ------------------------------------------------------
def test_missing_heart_rate_is_not_flagged(clean_run) -> None:
    result = check_heart_rate(clean_run, DEFAULTS)
    assert not result.flagged
    assert result.confidence == 0.0
    assert result.note == "no_heart_rate_data"


def test_impossible_heart_rate_readings_flag() -> None:
    stream = make_stream(northward_track(6), heart_rates=[250, 30, 250, 30, 250, 30])
    result = check_heart_rate(stream, DEFAULTS)
    assert result.flagged
    assert result.diagnostics["anomalies"] == 6


def test_speed_heart_rate_mismatch_weighs_five() -> None:
    # ~11 m every 2 s is ~5.6 m/s with a resting heart rate.
    positions = northward_track(12)
    timestamps = even_timestamps(12, 2.0)
    calm = make_stream(positions, timestamps, heart_rates=[100] * 12)
    result = check_heart_rate(calm, DEFAULTS)
    assert result.diagnostics["anomalies"] == 5
    assert not result.flagged

    spiky = make_stream(positions, timestamps, heart_rates=[100] * 11 + [30])
    assert check_heart_rate(spiky, DEFAULTS).flagged


def test_heart_rate_flatline_of_sixty_samples() -> None:
    stream = make_stream(northward_track(60), heart_rates=[150] * 60)
    result = check_heart_rate(stream, DEFAULTS)
    assert result.diagnostics["max_flatline"] == 60
    assert result.diagnostics["anomalies"] == 3
    assert result.confidence == pytest.approx(0.15)

    shorter = make_stream(northward_track(59), heart_rates=[150] * 59)
    assert check_heart_rate(shorter, DEFAULTS).diagnostics["anomalies"] == 0


# --- Elevation -------------------------------------------------------
def test_missing_elevation_is_not_flagged(clean_run) -> None:
    result = check_elevation(clean_run, DEFAULTS)
    assert not result.flagged
    assert result.note == "no_elevation_data"


def test_steep_grades_flag_elevation() -> None:
    # 20 m of climb over ~11 m of ground, six times.
    stream = make_stream(northward_track(7), altitudes=[i * 20.0 for i in range(7)])
    result = check_elevation(stream, DEFAULTS)
    assert result.diagnostics["anomalies"] == 6
    assert result.flagged


def test_large_altitude_steps_flag_elevation() -> None:
    # Misaligned lengths skip the grade check; only the 7 steps count.
    altitudes = [0.0, 200.0] * 4
    stream = make_stream(northward_track(3), altitudes=altitudes)
    result = check_elevation(stream, DEFAULTS)
    assert result.diagnostics["anomalies"] == 7
    assert result.flagged


# --- Patterns --------------------------------------------------------
def test_circular_loop_detector() -> None:
    positions = [(0.0, 0.0)] * 19 + [(-0.01, 0.0)] * 2 + [(0.0, 0.0)] * 19
    signal = detect_circular_loop(positions)
    assert signal.suspicious
    assert signal.score == 5
    assert signal.metrics["angle_variance"] < 0.5


def test_straight_line_is_not_circular() -> None:
    assert not detect_circular_loop(northward_track(20, step_deg=0.001)).suspicious


def test_duplicate_coordinates_ratio() -> None:
    positions = northward_track(7) + northward_track(3)
    signal = detect_duplicate_coordinates(positions)
    assert signal.metrics["duplicates"] == 3
    assert not signal.suspicious

    positions = northward_track(6) + northward_track(4)
    assert detect_duplicate_coordinates(positions).suspicious


def test_regular_timing_detector() -> None:
    assert detect_regular_timing(even_timestamps(10, 10.0)).suspicious
    assert not detect_regular_timing(even_timestamps(10, 3.0)).suspicious
    assert not detect_regular_timing(even_timestamps(9, 10.0)).suspicious


def test_pattern_check_needs_more_than_one_detector(clean_run) -> None:
    result = check_movement_pattern(clean_run, DEFAULTS)
    assert not result.flagged
    assert result.diagnostics["suspicion_count"] == 0
