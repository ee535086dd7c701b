"""
House, grid and battery sub-meters fed from the main meter's auxiliary keys.

Vendors reporting more than solar production (Fronius power flow, Solarman
battery and grid figures) store those values as auxiliary keys on the main
device.  Each enabled sub-meter is a separate store device carrying the
canonical metric keys; after every successful refresh the values are copied
across.  Grid and battery are split in two directions: the ``In`` / ``Out``
meter shows the power only while the status key reports its direction, and
zero otherwise.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from solarmeter.src.config import SUB_METER_KEYS
from solarmeter.src.store import (
    KEY_ACTUAL_USAGE,
    KEY_DAY_KWH,
    KEY_KWH,
    KEY_LIFE_KWH,
    KEY_MONTH_KWH,
    KEY_WATTS,
    KEY_WEEK_KWH,
    KEY_YEAR_KWH,
)
from solarmeter.src.utils import to_number

if TYPE_CHECKING:
    from solarmeter.src.store import Store

logger = logging.getLogger(__name__)

METRIC_KEYS = (
    KEY_WATTS,
    KEY_KWH,
    KEY_DAY_KWH,
    KEY_WEEK_KWH,
    KEY_MONTH_KWH,
    KEY_YEAR_KWH,
    KEY_LIFE_KWH,
)


@dataclass(frozen=True, slots=True)
class SubMeter:
    """Static description of one sub-meter.

    Attributes:
        device: Store device namespace.
        enable_key: Main device key switching the meter on.
        watts_key: Auxiliary key holding the power.
        status_key: Auxiliary status key, empty for undirected meters.
        active_status: Status value during which the power is shown.
        energy_prefix: Auxiliary energy keys are ``{prefix}{Period}{suffix}``.
        energy_suffix: See *energy_prefix*.
        whole_house: Flag the meter as whole-house consumption.
    """

    device: str
    enable_key: str
    watts_key: str
    energy_prefix: str
    energy_suffix: str = "KWH"
    status_key: str = ""
    active_status: str = ""
    whole_house: bool = False

    def energy_key(self, period: str) -> str:
        return f"{self.energy_prefix}{period}{self.energy_suffix}"


_HOUSE = SUB_METER_KEYS["show_house_child"]
_GRID = SUB_METER_KEYS["show_grid_child"]
_BATTERY = SUB_METER_KEYS["show_battery_child"]

SUB_METERS: tuple[SubMeter, ...] = (
    SubMeter("SMTR_House", _HOUSE, "HouseWatts", "House", whole_house=True),
    SubMeter(
        "SMTR_GridIn", _GRID, "GridWatts", "Grid", "PurchasedKWH",
        status_key="GridStatus", active_status="Buy",
    ),
    SubMeter(
        "SMTR_GridOut", _GRID, "GridWatts", "Grid", "DeliveredKWH",
        status_key="GridStatus", active_status="Sell",
    ),
    SubMeter(
        "SMTR_BatteryIn", _BATTERY, "BatteryWatts", "Battery", "ChargedKWH",
        status_key="BatteryStatus", active_status="Charge",
    ),
    SubMeter(
        "SMTR_BatteryOut", _BATTERY, "BatteryWatts", "Battery", "DischargedKWH",
        status_key="BatteryStatus", active_status="Discharge",
    ),
)

# Sub-meter key -> period name in the auxiliary key
_PERIODS: dict[str, str] = {
    KEY_KWH: "Day",
    KEY_DAY_KWH: "Day",
    KEY_WEEK_KWH: "Week",
    KEY_MONTH_KWH: "Month",
    KEY_YEAR_KWH: "Year",
    KEY_LIFE_KWH: "Life",
}


async def enabled_sub_meters(store: Store) -> list[SubMeter]:
    """Return the sub-meters switched on in the store."""
    return [m for m in SUB_METERS if await store.get_number(m.enable_key) == 1]


async def provision_sub_meters(store: Store, meters: list[SubMeter]) -> None:
    """Create the metric keys of every meter in *meters* when absent."""
    for meter in meters:
        logger.info("Provisioning sub-meter %s", meter.device)
        await store.default(KEY_ACTUAL_USAGE, 1, meter.device)
        for key in METRIC_KEYS:
            await store.default(key, 0, meter.device)
        if meter.whole_house:
            await store.default("WholeHouse", 1, meter.device)


async def fan_out(store: Store, meters: list[SubMeter]) -> None:
    """Copy auxiliary main-device values onto each sub-meter.

    Auxiliary keys the vendor never wrote are skipped, leaving the
    sub-meter's value untouched.
    """
    for meter in meters:
        if meter.status_key:
            if await store.get(meter.status_key) == meter.active_status:
                watts = abs(await store.get_number(meter.watts_key))
            else:
                watts = 0
            await store.set(KEY_WATTS, watts, meter.device)
        else:
            value = await store.get(meter.watts_key)
            if value:
                await store.set(KEY_WATTS, to_number(value), meter.device)

        for key, period in _PERIODS.items():
            value = await store.get(meter.energy_key(period))
            if value:
                await store.set(key, value, meter.device)
