"""Tests for JSON serialisation helpers and the command line entry point."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path

import pytest

from fitzone import main as cli
from fitzone.errors import StravaAPIError
from fitzone.models import ActivityStream, CheckResult, VerdictReason, ZonePowerState
from fitzone.utils import json_dumps_sorted

from conftest import even_timestamps, northward_track


def test_json_dumps_sorted_handles_dataclasses_and_enums() -> None:
    state = ZonePowerState(
        base_score=10, captured_at=datetime(2025, 1, 1, tzinfo=timezone.utc)
    )
    payload = {"reason": VerdictReason.IMPOSSIBLE_SPEED, "state": state}

    decoded = json.loads(json_dumps_sorted(payload))

    assert decoded["reason"] == "impossible_speed"
    assert decoded["state"]["captured_at"] == "2025-01-01T00:00:00+00:00"
    assert decoded["state"]["total_captures"] == 1


def test_json_dumps_sorted_converts_tuples_and_mappings() -> None:
    check = CheckResult(name="gps", flagged=False, confidence=0.0, violations=({"index": 2},))
    decoded = json.loads(json_dumps_sorted({"check": check, "path": ((1.0, 2.0),)}))
    assert decoded["check"]["violations"] == [{"index": 2}]
    assert decoded["path"] == [[1.0, 2.0]]


def test_json_dumps_sorted_indent() -> None:
    assert json_dumps_sorted({"b": 1, "a": 2}) == '{"a":2,"b":1}'
    assert "\n" in json_dumps_sorted({"a": 1}, indent=2)


def _write_payload(tmp_path: Path, extra_samples: int = 0) -> Path:
    positions = northward_track(20)
    payload = {
        "latlng": {"data": [list(point) for point in positions] + [None] * extra_samples},
        "time": {"data": even_timestamps(20 + extra_samples)},
    }
    path = tmp_path / "activity.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_cli_score_prints_report(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_payload(tmp_path)

    exit_code = cli.main(["score", str(path), "--regions"])

    assert exit_code == 0
    report = json.loads(capsys.readouterr().out)
    assert set(report) == {"cells", "regions", "score", "verdict"}
    assert report["verdict"]["flagged"] is False
    assert report["score"]["total_points"] > 0
    assert report["cells"][0]["resolution"] == 9
    assert report["regions"][0]["resolution"] == 7


def test_cli_score_skips_null_gps_sample(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_payload(tmp_path, extra_samples=1)

    assert cli.main(["score", str(path)]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["verdict"]["flagged"] is False
    assert sum(cell["hit_count"] for cell in report["cells"]) == 20


def test_cli_score_respects_resolution(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_payload(tmp_path)
    assert cli.main(["score", str(path), "--resolution", "6"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert {cell["resolution"] for cell in report["cells"]} == {6}
    assert "regions" not in report


def test_cli_rejects_invalid_resolution(tmp_path: Path) -> None:
    path = _write_payload(tmp_path)
    with pytest.raises(SystemExit):
        cli.main(["score", str(path), "--resolution", "16"])


def test_cli_score_missing_file(tmp_path: Path) -> None:
    assert cli.main(["score", str(tmp_path / "missing.json")]) == 1


def test_cli_fetch(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    requested = []

    def fake_fetch(activity_id: int, token: str) -> ActivityStream:
        requested.append((activity_id, token))
        return ActivityStream(positions=northward_track(20), timestamps=even_timestamps(20))

    monkeypatch.setattr(cli, "fetch_activity_stream", fake_fetch)

    assert cli.main(["fetch", "--activity-id", "5", "--access-token", "tok"]) == 0
    assert requested == [(5, "tok")]
    assert json.loads(capsys.readouterr().out)["score"]["distance_km"] > 0


def test_cli_fetch_reports_api_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_fetch(activity_id: int, token: str) -> ActivityStream:
        raise StravaAPIError("boom")

    monkeypatch.setattr(cli, "fetch_activity_stream", failing_fetch)
    assert cli.main(["fetch", "--activity-id", "5", "--access-token", "tok"]) == 1
