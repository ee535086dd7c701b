"""
Unit tests for house/grid/battery sub-meter provisioning and fan-out.

Tests verify:
- Only sub-meters switched on in the store are enabled.
- Provisioning creates the metric keys (WholeHouse for the house meter)
  without overwriting existing values.
- Fan-out copies auxiliary values and shows directed power only while the
  status matches, zero otherwise.
- Auxiliary keys the vendor never wrote leave sub-meter values untouched.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import pytest

from solarmeter.src.store import MAIN_DEVICE, MemoryStore
from solarmeter.src.submeters import (
    SUB_METERS,
    enabled_sub_meters,
    fan_out,
    provision_sub_meters,
)


def _store(**main: object) -> MemoryStore:
    return MemoryStore({(MAIN_DEVICE, key): value for key, value in main.items()})


class TestEnabledSubMeters:
    @pytest.mark.asyncio
    async def test_none_enabled_by_default(self) -> None:
        assert await enabled_sub_meters(MemoryStore()) == []

    @pytest.mark.asyncio
    async def test_grid_enables_both_directions(self) -> None:
        meters = await enabled_sub_meters(_store(ShowGridChild=1))

        assert [m.device for m in meters] == ["SMTR_GridIn", "SMTR_GridOut"]


class TestProvisioning:
    @pytest.mark.asyncio
    async def test_creates_metric_defaults(self) -> None:
        store = MemoryStore()

        await provision_sub_meters(store, list(SUB_METERS))

        house = store.snapshot("SMTR_House")
        assert house["ActualUsage"] == "1"
        assert house["WholeHouse"] == "1"
        assert house["Watts"] == "0"
        assert house["LifeKWH"] == "0"
        assert "WholeHouse" not in store.snapshot("SMTR_GridIn")

    @pytest.mark.asyncio
    async def test_keeps_existing_values(self) -> None:
        store = MemoryStore({("SMTR_BatteryIn", "LifeKWH"): 321})

        await provision_sub_meters(store, list(SUB_METERS))

        assert await store.get("LifeKWH", "SMTR_BatteryIn") == "321"


class TestFanOut:
    @pytest.mark.asyncio
    async def test_grid_sell_shows_on_grid_out_only(self) -> None:
        store = _store(
            GridStatus="Sell",
            GridWatts=-500,
            GridDayPurchasedKWH=1.5,
            GridDayDeliveredKWH=4.25,
            GridMonthDeliveredKWH=80,
        )
        meters = await enabled_sub_meters(_store(ShowGridChild=1))

        await fan_out(store, meters)

        assert await store.get_number("Watts", "SMTR_GridOut") == 500
        assert await store.get_number("Watts", "SMTR_GridIn") == 0
        assert await store.get("DayKWH", "SMTR_GridOut") == "4.25"
        assert await store.get("KWH", "SMTR_GridOut") == "4.25"
        assert await store.get("MonthKWH", "SMTR_GridOut") == "80"
        assert await store.get("DayKWH", "SMTR_GridIn") == "1.5"

    @pytest.mark.asyncio
    async def test_battery_charge_shows_on_battery_in(self) -> None:
        store = _store(
            BatteryStatus="Charge",
            BatteryWatts=950,
            BatteryDayChargedKWH=3.2,
            BatteryDayDischargedKWH=1.1,
        )
        meters = [m for m in SUB_METERS if m.device.startswith("SMTR_Battery")]

        await fan_out(store, meters)

        assert await store.get_number("Watts", "SMTR_BatteryIn") == 950
        assert await store.get_number("Watts", "SMTR_BatteryOut") == 0
        assert await store.get("DayKWH", "SMTR_BatteryOut") == "1.1"

    @pytest.mark.asyncio
    async def test_house_copies_watts_and_energy(self) -> None:
        store = _store(HouseWatts=1300, HouseDayKWH=7.7, HouseLifeKWH=5120)
        meters = [SUB_METERS[0]]

        await fan_out(store, meters)

        assert await store.get_number("Watts", "SMTR_House") == 1300
        assert await store.get("DayKWH", "SMTR_House") == "7.7"
        assert await store.get("LifeKWH", "SMTR_House") == "5120"

    @pytest.mark.asyncio
    async def test_unreported_keys_leave_values(self) -> None:
        store = _store(HouseWatts=1300)
        await store.set("WeekKWH", 42, "SMTR_House")

        await fan_out(store, [SUB_METERS[0]])

        # No vendor reports a house week figure.
        assert await store.get("WeekKWH", "SMTR_House") == "42"
