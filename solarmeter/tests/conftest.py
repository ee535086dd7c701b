"""
Shared test fixtures for solar meter tests.

Provides environment isolation for MeterSettings, an in-memory store, a
controllable clock, and a factory building a MeterContext whose HTTP client
is served by an ``httpx.MockTransport`` handler.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import httpx
import pytest

from solarmeter.src.clock import Clock, SunSchedule
from solarmeter.src.config import VendorConfig
from solarmeter.src.context import MeterContext
from solarmeter.src.store import MemoryStore

# All MeterSettings environment variable names, used for cleanup.
_ALL_METER_ENV_VARS = (
    "SYSTEM",
    "DAY_INTERVAL_S",
    "REQUEST_TIMEOUT_S",
    "STARTUP_DELAY_S",
    "LATITUDE",
    "LONGITUDE",
    "TIMEZONE",
    "STORE_PATH",
    "HEALTH_PATH",
    "DISABLED",
    "SHOW_HOUSE_CHILD",
    "SHOW_GRID_CHILD",
    "SHOW_BATTERY_CHILD",
    "LOG_LEVEL",
    "EN_IP_ADDRESS",
    "EN_API_KEY",
    "EN_USER_ID",
    "EN_SYSTEM_ID",
    "FA_IP_ADDRESS",
    "FA_DEVICE_ID",
    "SE_API_KEY",
    "SE_SYSTEM_ID",
    "SG_USER_ID",
    "SG_PASSWORD",
    "PV_API_KEY",
    "PV_SYSTEM_ID",
    "PV_HTTPS",
    "SM_DEVICE_ID",
    "SM_REMEMBER_ME",
    "SX_API_KEY",
    "SX_SYSTEM_ID",
)

# Wednesday 2026-06-17 10:00:00 UTC
FIXED_NOW = int(datetime(2026, 6, 17, 10, 0, 0, tzinfo=UTC).timestamp())

Handler = Callable[[httpx.Request], httpx.Response]


class FakeTime:
    """Settable replacement for time.time()."""

    def __init__(self, ts: float = FIXED_NOW) -> None:
        self.ts = ts

    def __call__(self) -> float:
        return self.ts


@pytest.fixture(autouse=True)
def _clean_meter_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all meter env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_METER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture()
def clock(fake_time: FakeTime) -> Clock:
    return Clock("UTC", now_fn=fake_time)


@pytest.fixture()
def sent() -> list[httpx.Request]:
    """Every request issued through a context built by make_ctx."""
    return []


@pytest.fixture()
def make_ctx(
    store: MemoryStore, clock: Clock, sent: list[httpx.Request]
) -> Callable[..., MeterContext]:
    """Factory: ``make_ctx(handler, **vendor_fields)`` -> MeterContext.

    Without a handler every request is answered with 404.
    """

    def _factory(handler: Handler | None = None, **vendor: object) -> MeterContext:
        def _record(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            if handler is None:
                return httpx.Response(404)
            return handler(request)

        return MeterContext(
            store=store,
            clock=clock,
            sun=SunSchedule(50.85, 4.35),
            http=httpx.AsyncClient(transport=httpx.MockTransport(_record)),
            vendor=VendorConfig(**vendor),
        )

    return _factory


@pytest.fixture()
def advance(fake_time: FakeTime) -> Callable[[float], None]:
    """Move the test clock forward by the given number of seconds."""

    def _advance(seconds: float) -> None:
        fake_time.ts += seconds

    return _advance
