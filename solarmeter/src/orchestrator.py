"""
Refresh orchestrator: one polling cycle at a time against the selected vendor.

Lifecycle:
1. start(): seed metric defaults, provision enabled sub-meters, honour the
   ``Disabled`` flag, then resolve and initialise the vendor adapter.
2. refresh_once(): invoke the adapter, round and store the reading, fan the
   auxiliary values out to the sub-meters, and compute the next delay.
3. run(): the Idle -> Polling -> Idle loop, sleeping between cycles until
   the shutdown event is set.

Failures never escape a cycle.  A refresh failure leaves every stored
metric untouched, records ``HttpCode`` / ``StatusMessage`` and still
schedules the next cycle.  A configuration failure (no vendor selected,
adapter Init rejected) stops scheduling until the meter is reconfigured.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: A skipped cycle clears the previous refresh result

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from enum import Enum
from typing import TYPE_CHECKING

from solarmeter.src.config import VendorConfig
from solarmeter.src.models import (
    CanonicalReading,
    Failure,
    FailureKind,
    RefreshOk,
    RefreshResult,
)
from solarmeter.src.store import (
    KEY_ACTUAL_USAGE,
    KEY_DAY_INTERVAL,
    KEY_DAY_KWH,
    KEY_DISABLED,
    KEY_DISPLAY_LINE1,
    KEY_DISPLAY_LINE2,
    KEY_HTTP_CODE,
    KEY_KWH,
    KEY_LAST_REFRESH,
    KEY_LAST_UPDATE,
    KEY_LIFE_KWH,
    KEY_MONTH_KWH,
    KEY_STATUS_MESSAGE,
    KEY_SYSTEM,
    KEY_WATTS,
    KEY_WEEK_KWH,
    KEY_YEAR_KWH,
)
from solarmeter.src.submeters import enabled_sub_meters, fan_out, provision_sub_meters
from solarmeter.src.utils import floor_decimals
from solarmeter.src.vendors import create_adapter

if TYPE_CHECKING:
    from solarmeter.src.context import MeterContext
    from solarmeter.src.health import HealthWriter
    from solarmeter.src.submeters import SubMeter
    from solarmeter.src.vendors import VendorAdapter

logger = logging.getLogger(__name__)

MIN_DELAY_S = 10
"""Delays shorter than this fall back to the configured interval."""

SUNRISE_OFFSET_S = 10
PHASE_OFFSET_S = 30
INITIAL_REFRESH_AGE_S = 900

MSG_NO_SYSTEM = "Configure solar system via Settings."
MSG_BAD_CONFIG = "Configure system parameters via Settings."
MSG_OK = "Ok"


class OrchestratorState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def apply_rounding(reading: CanonicalReading) -> CanonicalReading:
    """Round energy values down the way they are stored.

    Day, week and month keep two decimals; year and lifetime are whole
    kWh.  Watts and absent fields are left as they are.
    """

    def down(value: float | None, decimals: int) -> float | None:
        return None if value is None else floor_decimals(value, decimals)

    return reading.model_copy(
        update={
            "day_kwh": down(reading.day_kwh, 2),
            "week_kwh": down(reading.week_kwh, 2),
            "month_kwh": down(reading.month_kwh, 2),
            "year_kwh": down(reading.year_kwh, 0),
            "life_kwh": down(reading.life_kwh, 0),
        }
    )


def compute_next_delay(
    *,
    now: float,
    interval_s: int,
    watts: float,
    is_night: bool,
    continuous_poll: bool,
    sunrise_ts: float,
    last_refresh: float,
) -> int:
    """Seconds until the next refresh cycle.

    At night with no production (and no grid/battery telemetry to follow)
    polling resumes just after sunrise.  Otherwise the next cycle is aligned
    to the vendor's last sample plus the interval, so polls track the
    vendor's own update cadence instead of drifting.
    """
    if watts == 0 and is_night and not continuous_poll:
        delay = sunrise_ts + SUNRISE_OFFSET_S - now
    else:
        delay = last_refresh + interval_s + PHASE_OFFSET_S - now
    if delay < MIN_DELAY_S:
        # Late cycle: wait a full interval.
        delay = interval_s
    return int(delay)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class RefreshOrchestrator:
    """Drives the selected vendor adapter and writes the results.

    Args:
        ctx: Runtime context shared with the adapters.

    Attributes:
        state: Idle between cycles, Polling while one is in flight.
        adapter: The initialised adapter, None until configured.
        last_result: Result of the most recent refresh.
    """

    def __init__(self, ctx: MeterContext) -> None:
        self._ctx = ctx
        self.state = OrchestratorState.IDLE
        self.adapter: VendorAdapter | None = None
        self.last_result: RefreshResult | None = None
        self._sub_meters: list[SubMeter] = []

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Prepare the store and the adapter.

        Returns:
            True when polling can begin.
        """
        store = self._ctx.store
        await store.default(KEY_ACTUAL_USAGE, 1)
        for key in (
            KEY_WATTS,
            KEY_KWH,
            KEY_DAY_KWH,
            KEY_WEEK_KWH,
            KEY_MONTH_KWH,
            KEY_YEAR_KWH,
            KEY_LIFE_KWH,
        ):
            await store.default(key, 0)
        await store.default(
            KEY_LAST_REFRESH, self._ctx.clock.timestamp() - INITIAL_REFRESH_AGE_S
        )

        self._sub_meters = await enabled_sub_meters(store)
        await provision_sub_meters(store, self._sub_meters)

        if await self._is_disabled():
            logger.warning("Meter is disabled, not polling")
            await store.set(KEY_DISPLAY_LINE2, "Disabled. ")
            return False

        system = int(await store.get_number(KEY_SYSTEM))
        return await self._select(system)

    async def _is_disabled(self) -> bool:
        return await self._ctx.store.get_number(KEY_DISABLED) == 1

    async def _select(self, system: int) -> bool:
        """Resolve *system* to an adapter and initialise it."""
        store = self._ctx.store
        self.adapter = None
        self._ctx.vendor = await VendorConfig.load(store)
        adapter = create_adapter(system, self._ctx)
        if adapter is None:
            logger.error("No solar system selected (System=%s)", system)
            await store.set(KEY_STATUS_MESSAGE, MSG_NO_SYSTEM)
            return False

        try:
            result = await adapter.init()
        except Exception as exc:
            logger.error("%s init raised", adapter.label, exc_info=True)
            result = Failure(FailureKind.UNEXPECTED, 0, str(exc))
        if isinstance(result, Failure):
            logger.error("%s init failed: %s", adapter.label, result.message)
            await store.set(KEY_STATUS_MESSAGE, MSG_BAD_CONFIG)
            return False

        logger.info("Polling %s (System=%d)", adapter.label, adapter.vendor_id)
        await store.set(KEY_STATUS_MESSAGE, MSG_OK)
        self.adapter = adapter
        return True

    # ------------------------------------------------------------------
    # One cycle
    # ------------------------------------------------------------------

    async def refresh_once(self) -> int | None:
        """Run one cycle.

        Returns:
            Seconds until the next cycle, or None when polling must stop
            (meter disabled, or no usable vendor configuration).
        """
        store = self._ctx.store
        self.last_result = None
        if await self._is_disabled():
            logger.warning("Meter is disabled, skipping refresh")
            return None

        system = int(await store.get_number(KEY_SYSTEM))
        if self.adapter is None or self.adapter.vendor_id != system:
            if not await self._select(system):
                return None
        assert self.adapter is not None

        self.state = OrchestratorState.POLLING
        try:
            try:
                result = await self.adapter.refresh()
            except Exception as exc:
                logger.error("%s refresh raised", self.adapter.label, exc_info=True)
                result = Failure(FailureKind.UNEXPECTED, 0, f"{type(exc).__name__}: {exc}")
            self.last_result = result

            if isinstance(result, RefreshOk):
                await self._record(result.reading)
            else:
                logger.error(
                    "Refresh failed (%s %s): %s",
                    result.kind.value,
                    result.code,
                    result.message,
                )
                self._ctx.polling.http_code = str(result.code)
                await store.set(KEY_HTTP_CODE, result.code)
                await store.set(KEY_STATUS_MESSAGE, result.message)
        finally:
            self.state = OrchestratorState.IDLE

        return await self._next_delay()

    async def _record(self, reading: CanonicalReading) -> None:
        """Write a successful reading, skipping absent fields."""
        store = self._ctx.store
        clock = self._ctx.clock
        rounded = apply_rounding(reading)
        logger.debug("Reading: %s", rounded.model_dump())

        if rounded.watts is not None:
            await store.set(KEY_WATTS, rounded.watts)
        if rounded.day_kwh is not None:
            await store.set(KEY_KWH, math.floor(rounded.day_kwh))
            await store.set(KEY_DAY_KWH, rounded.day_kwh)
        for key, value in (
            (KEY_WEEK_KWH, rounded.week_kwh),
            (KEY_MONTH_KWH, rounded.month_kwh),
            (KEY_YEAR_KWH, rounded.year_kwh),
            (KEY_LIFE_KWH, rounded.life_kwh),
        ):
            if value is not None:
                await store.set(key, value)

        sampled = clock.from_timestamp(rounded.ts)
        await store.set(KEY_LAST_REFRESH, rounded.ts)
        await store.set(KEY_LAST_UPDATE, sampled.strftime("%H:%M:%S %d"))
        await store.set(KEY_HTTP_CODE, MSG_OK)
        await store.set(KEY_STATUS_MESSAGE, MSG_OK)

        watts = await store.get_number(KEY_WATTS)
        day_kwh = await store.get_number(KEY_DAY_KWH)
        await store.set(KEY_DISPLAY_LINE1, f"{math.floor(watts + 0.5)} Watts")
        await store.set(
            KEY_DISPLAY_LINE2,
            f"Day: {day_kwh:.3f}  Last Upd: {sampled.strftime('%H:%M')}",
        )

        self._ctx.polling.http_code = MSG_OK
        await fan_out(store, self._sub_meters)

    async def _next_delay(self) -> int:
        store = self._ctx.store
        now = self._ctx.clock.timestamp()
        sun = self._ctx.sun
        delay = compute_next_delay(
            now=now,
            interval_s=int(await store.get_number(KEY_DAY_INTERVAL)),
            watts=await store.get_number(KEY_WATTS),
            is_night=sun.is_night(now),
            continuous_poll=self._ctx.polling.continuous_poll,
            sunrise_ts=sun.next_sunrise(now),
            last_refresh=await store.get_number(KEY_LAST_REFRESH),
        )
        logger.debug("Next refresh in %d seconds", delay)
        return delay

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run(
        self,
        shutdown_event: asyncio.Event,
        *,
        startup_delay_s: float,
        health: HealthWriter | None = None,
    ) -> None:
        """Poll until *shutdown_event* is set.

        When start() fails, or a cycle asks not to be re-armed, the loop
        stays idle until shutdown; reconfiguring the meter needs a restart.
        """
        ready = await self.start()
        delay: float | None = startup_delay_s if ready else None
        if ready:
            logger.info("First refresh in %ss", startup_delay_s)

        while delay is not None and not shutdown_event.is_set():
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(shutdown_event.wait(), timeout=delay)
            if shutdown_event.is_set():
                break
            delay = await self.refresh_once()
            if health is not None:
                try:
                    health.record_cycle(
                        success=isinstance(self.last_result, RefreshOk),
                        http_code=self._ctx.polling.http_code,
                        next_poll_s=delay,
                    )
                except Exception:
                    logger.warning("Failed to write health file", exc_info=True)

        if not shutdown_event.is_set():
            logger.warning("Polling stopped, waiting for shutdown")
            await shutdown_event.wait()
        logger.info("Refresh loop stopped")
