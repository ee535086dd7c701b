"""
Health file writer for the solar meter daemon.

Writes a JSON health file at a configurable path with four fields:
- last_poll_ts: ISO timestamp of the most recent refresh cycle.
- last_success_ts: ISO timestamp of the most recent successful refresh.
- http_code: "Ok" after a success, otherwise the failure code.
- next_poll_s: Seconds until the next cycle, null when none is scheduled.

The file is rewritten after every cycle, providing a simple liveness signal
that Docker HEALTHCHECK or monitoring can inspect.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes meter health status to a JSON file.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_poll_ts: str | None = None
        self._last_success_ts: str | None = None
        self._http_code: str | int | None = None
        self._next_poll_s: int | None = None

    def record_cycle(
        self,
        *,
        success: bool,
        http_code: str | int,
        next_poll_s: int | None,
    ) -> None:
        """Record one refresh cycle and write the health file.

        Args:
            success: Whether the refresh produced a reading.
            http_code: "Ok" or the failure code.
            next_poll_s: Delay until the next cycle, None when not re-armed.
        """
        now = datetime.now(tz=UTC).isoformat()
        self._last_poll_ts = now
        if success:
            self._last_success_ts = now
        self._http_code = http_code
        self._next_poll_s = next_poll_s
        self._write()

    def _write(self) -> None:
        """Write the health JSON file with current state."""
        data = {
            "last_poll_ts": self._last_poll_ts,
            "last_success_ts": self._last_success_ts,
            "http_code": self._http_code,
            "next_poll_s": self._next_poll_s,
        }
        self.path.write_text(json.dumps(data))
