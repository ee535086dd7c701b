"""
External key/value store used for configuration, metrics and rolling series.

The meter keeps no state of its own beyond one refresh cycle: every metric,
every rolling series and every vendor setting lives in a store namespaced by
device.  Two implementations are provided:

- MemoryStore: plain in-process dict, used by tests and when embedding the
  meter in a host that mirrors values elsewhere.
- SqliteStore: async SQLite (WAL mode) database file, used by the standalone
  daemon so values survive restarts.

Operations (all async, all accept an optional ``device``):
- get(key): value as text, ``""`` when absent.
- get_number(key): value coerced with :func:`to_number` (``0`` when absent).
- set(key, value): write only when the textual value changed.
- default(key, fallback): create the key when absent and return its value.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import aiosqlite

from solarmeter.src.utils import format_value, to_number

# ---------------------------------------------------------------------------
# Device namespaces and well-known keys
# ---------------------------------------------------------------------------

MAIN_DEVICE = "SolarMeter"

KEY_SYSTEM = "System"
KEY_DAY_INTERVAL = "DayInterval"
KEY_DISABLED = "Disabled"
KEY_WATTS = "Watts"
KEY_KWH = "KWH"
KEY_DAY_KWH = "DayKWH"
KEY_WEEK_KWH = "WeekKWH"
KEY_MONTH_KWH = "MonthKWH"
KEY_YEAR_KWH = "YearKWH"
KEY_LIFE_KWH = "LifeKWH"
KEY_LAST_REFRESH = "LastRefresh"
KEY_LAST_UPDATE = "LastUpdate"
KEY_HTTP_CODE = "HttpCode"
KEY_STATUS_MESSAGE = "StatusMessage"
KEY_DISPLAY_LINE1 = "DisplayLine1"
KEY_DISPLAY_LINE2 = "DisplayLine2"
KEY_ACTUAL_USAGE = "ActualUsage"


class Store(Protocol):
    """Async key/value store namespaced by device."""

    async def get(self, key: str, device: str = MAIN_DEVICE) -> str: ...

    async def get_number(self, key: str, device: str = MAIN_DEVICE) -> float | int: ...

    async def set(self, key: str, value: object, device: str = MAIN_DEVICE) -> None: ...

    async def default(
        self, key: str, fallback: object, device: str = MAIN_DEVICE
    ) -> str: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class MemoryStore:
    """Dict backed store.

    Args:
        initial: Optional ``{(device, key): value}`` seed values.
    """

    def __init__(self, initial: dict[tuple[str, str], object] | None = None) -> None:
        self._values: dict[tuple[str, str], str] = {}
        for (device, key), value in (initial or {}).items():
            self._values[(device, key)] = format_value(value)
        self.writes: int = 0

    async def get(self, key: str, device: str = MAIN_DEVICE) -> str:
        return self._values.get((device, key), "")

    async def get_number(self, key: str, device: str = MAIN_DEVICE) -> float | int:
        return to_number(self._values.get((device, key)))

    async def set(self, key: str, value: object, device: str = MAIN_DEVICE) -> None:
        text = format_value(value)
        if self._values.get((device, key), "") == text:
            return
        self._values[(device, key)] = text
        self.writes += 1

    async def default(
        self, key: str, fallback: object, device: str = MAIN_DEVICE
    ) -> str:
        if (device, key) not in self._values:
            self._values[(device, key)] = format_value(fallback)
            self.writes += 1
        return self._values[(device, key)]

    def snapshot(self, device: str = MAIN_DEVICE) -> dict[str, str]:
        """Return a copy of every key stored for *device*."""
        return {k: v for (d, k), v in self._values.items() if d == device}


# ---------------------------------------------------------------------------
# SQLite implementation
# ---------------------------------------------------------------------------

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS variables (
    device TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (device, key)
);
"""

_SELECT_SQL = "SELECT value FROM variables WHERE device = ? AND key = ?;"

_UPSERT_SQL = """\
INSERT INTO variables (device, key, value) VALUES (?, ?, ?)
ON CONFLICT (device, key) DO UPDATE
SET value = excluded.value, updated_at = datetime('now');
"""

_INSERT_IGNORE_SQL = """\
INSERT OR IGNORE INTO variables (device, key, value) VALUES (?, ?, ?);
"""


class SqliteStore:
    """Store backed by a SQLite database file.

    Every write is committed immediately so a value is settled before the
    next read, which is all the single refresh loop requires.

    Args:
        path: Filesystem path for the SQLite database file.

    Usage::

        async with SqliteStore("/data/solarmeter.db") as store:
            await store.set("Watts", 1500)
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        """Open the connection and create the table when needed."""
        self._db = await aiosqlite.connect(str(self._path))
        await self._db.execute("PRAGMA journal_mode=WAL;")
        await self._db.execute(_CREATE_TABLE_SQL)
        await self._db.commit()

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> SqliteStore:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(self, key: str, device: str = MAIN_DEVICE) -> str:
        value = await self._fetch(key, device)
        return "" if value is None else value

    async def get_number(self, key: str, device: str = MAIN_DEVICE) -> float | int:
        return to_number(await self._fetch(key, device))

    async def set(self, key: str, value: object, device: str = MAIN_DEVICE) -> None:
        text = format_value(value)
        current = await self._fetch(key, device)
        if (current or "") == text:
            return
        db = self._require_open()
        await db.execute(_UPSERT_SQL, (device, key, text))
        await db.commit()

    async def default(
        self, key: str, fallback: object, device: str = MAIN_DEVICE
    ) -> str:
        db = self._require_open()
        await db.execute(_INSERT_IGNORE_SQL, (device, key, format_value(fallback)))
        await db.commit()
        return await self.get(key, device)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_open(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not opened. Call open() or use async with."
        return self._db

    async def _fetch(self, key: str, device: str) -> str | None:
        db = self._require_open()
        cursor = await db.execute(_SELECT_SQL, (device, key))
        row = await cursor.fetchone()
        return None if row is None else row[0]
