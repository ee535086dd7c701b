"""
Unit tests for the health writer module.

Tests verify:
- HealthWriter.record_cycle() writes health.json with all four fields.
- A successful cycle sets last_success_ts, a failed one keeps the previous.
- next_poll_s is null when no further cycle is scheduled.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
from pathlib import Path

from solarmeter.src.health import HealthWriter

# ---------------------------------------------------------------------------
# Test: record_cycle writes the health file
# ---------------------------------------------------------------------------


class TestRecordCycle:
    def test_success_writes_all_fields(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_cycle(success=True, http_code="Ok", next_poll_s=300)

        data = json.loads(health_path.read_text())
        assert set(data) == {"last_poll_ts", "last_success_ts", "http_code", "next_poll_s"}
        assert "T" in data["last_poll_ts"]
        assert data["last_success_ts"] == data["last_poll_ts"]
        assert data["http_code"] == "Ok"
        assert data["next_poll_s"] == 300

    def test_failure_before_any_success(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_cycle(success=False, http_code="503", next_poll_s=30)

        data = json.loads(health_path.read_text())
        assert data["last_poll_ts"] is not None
        assert data["last_success_ts"] is None
        assert data["http_code"] == "503"

    def test_failure_keeps_last_success(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_cycle(success=True, http_code="Ok", next_poll_s=300)
        first = json.loads(health_path.read_text())
        writer.record_cycle(success=False, http_code="-99", next_poll_s=300)
        second = json.loads(health_path.read_text())

        assert second["last_success_ts"] == first["last_success_ts"]
        assert second["http_code"] == "-99"

    def test_not_rearmed_writes_null_delay(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_cycle(success=False, http_code="", next_poll_s=None)

        assert json.loads(health_path.read_text())["next_poll_s"] is None

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        health_path = str(tmp_path / "health.json")
        writer = HealthWriter(health_path)

        writer.record_cycle(success=True, http_code="Ok", next_poll_s=60)

        assert json.loads(Path(health_path).read_text())["next_poll_s"] == 60
