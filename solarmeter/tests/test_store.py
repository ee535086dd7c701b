"""
Unit tests for the external key/value stores.

Tests verify, for both MemoryStore and SqliteStore:
- get() returns "" and get_number() 0 for absent keys.
- set() stores the textual form and skips unchanged values.
- default() creates absent keys only.
- Devices are separate namespaces.
And for SqliteStore: WAL mode, persistence across reopen, and use before
open() failing loudly.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio

from solarmeter.src.store import MemoryStore, SqliteStore

# ---------------------------------------------------------------------------
# Shared behaviour
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def any_store(
    request: pytest.FixtureRequest, tmp_path: Path
) -> AsyncIterator[MemoryStore | SqliteStore]:
    if request.param == "memory":
        yield MemoryStore()
        return
    async with SqliteStore(tmp_path / "store.db") as store:
        yield store


class TestStoreContract:
    @pytest.mark.asyncio
    async def test_absent_key(self, any_store: MemoryStore | SqliteStore) -> None:
        assert await any_store.get("Watts") == ""
        assert await any_store.get_number("Watts") == 0

    @pytest.mark.asyncio
    async def test_set_and_get(self, any_store: MemoryStore | SqliteStore) -> None:
        await any_store.set("DayKWH", 12.5)

        assert await any_store.get("DayKWH") == "12.5"
        assert await any_store.get_number("DayKWH") == 12.5

    @pytest.mark.asyncio
    async def test_whole_float_stored_as_int(
        self, any_store: MemoryStore | SqliteStore
    ) -> None:
        await any_store.set("Watts", 150.0)

        assert await any_store.get("Watts") == "150"

    @pytest.mark.asyncio
    async def test_default_creates_only_when_absent(
        self, any_store: MemoryStore | SqliteStore
    ) -> None:
        assert await any_store.default("DayInterval", 30) == "30"
        assert await any_store.default("DayInterval", 60) == "30"

        await any_store.set("DayInterval", 45)
        assert await any_store.default("DayInterval", 60) == "45"

    @pytest.mark.asyncio
    async def test_devices_are_separate(
        self, any_store: MemoryStore | SqliteStore
    ) -> None:
        await any_store.set("Watts", 100)
        await any_store.set("Watts", 7, "SMTR_House")

        assert await any_store.get_number("Watts") == 100
        assert await any_store.get_number("Watts", "SMTR_House") == 7

    @pytest.mark.asyncio
    async def test_empty_value_on_absent_key_is_not_written(
        self, any_store: MemoryStore | SqliteStore
    ) -> None:
        await any_store.set("HouseWatts", "")

        assert await any_store.default("HouseWatts", 5) == "5"


class TestMemoryStore:
    @pytest.mark.asyncio
    async def test_unchanged_value_is_not_rewritten(self) -> None:
        store = MemoryStore()
        await store.set("Watts", 10)
        await store.set("Watts", 10)
        await store.set("Watts", 10.0)

        assert store.writes == 1

    def test_initial_values_and_snapshot(self) -> None:
        store = MemoryStore({("SolarMeter", "System"): 6, ("SMTR_House", "Watts"): 1})

        assert store.snapshot() == {"System": "6"}
        assert store.snapshot("SMTR_House") == {"Watts": "1"}


class TestSqliteStore:
    @pytest.mark.asyncio
    async def test_wal_mode_enabled(self, tmp_path: Path) -> None:
        db_path = tmp_path / "wal.db"
        async with SqliteStore(db_path):
            async with aiosqlite.connect(str(db_path)) as conn:
                cursor = await conn.execute("PRAGMA journal_mode;")
                row = await cursor.fetchone()

        assert row[0] == "wal"

    @pytest.mark.asyncio
    async def test_values_survive_reopen(self, tmp_path: Path) -> None:
        db_path = tmp_path / "persist.db"
        async with SqliteStore(db_path) as store:
            await store.set("WeeklyDaily", "1,2,3,4,5,6,7")

        async with SqliteStore(str(db_path)) as store:
            assert await store.get("WeeklyDaily") == "1,2,3,4,5,6,7"

    @pytest.mark.asyncio
    async def test_unchanged_value_keeps_updated_at(self, tmp_path: Path) -> None:
        db_path = tmp_path / "stamp.db"
        async with SqliteStore(db_path) as store:
            await store.set("Watts", 5)
            async with aiosqlite.connect(str(db_path)) as conn:
                await conn.execute(
                    "UPDATE variables SET updated_at = 'marker' WHERE key = 'Watts';"
                )
                await conn.commit()
            await store.set("Watts", 5)
            async with aiosqlite.connect(str(db_path)) as conn:
                cursor = await conn.execute(
                    "SELECT updated_at FROM variables WHERE key = 'Watts';"
                )
                row = await cursor.fetchone()

        assert row[0] == "marker"

    @pytest.mark.asyncio
    async def test_use_before_open_fails(self, tmp_path: Path) -> None:
        store = SqliteStore(tmp_path / "closed.db")

        with pytest.raises(AssertionError, match="not opened"):
            await store.get("Watts")
