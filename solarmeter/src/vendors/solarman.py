"""
Solarman portal adapter (home.solarman.cn web backend).

The portal has no public API; the adapter replays the JSON call made by the
inverter detail page, authenticated with the ``rememberMe`` session cookie
captured from a logged-in browser.  The answer nests a flat dictionary of
opaque short codes under ``result.deviceWapper.dataJSON``; every code the
meter understands is listed below, anything else is ignored.

Battery or grid status codes switch the meter to continuous polling.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from typing import Any

from solarmeter.src.aggregator import WEEK
from solarmeter.src.models import CanonicalReading, FailureKind, VendorId
from solarmeter.src.utils import to_number
from solarmeter.src.vendors.base import VendorAdapter, VendorError

logger = logging.getLogger(__name__)

SOLARMAN_ORIGIN = "https://home.solarman.cn"
SOLARMAN_URL = f"{SOLARMAN_ORIGIN}/cpro/device/inverter/goDetailAjax.json"

# Bodies this short are the portal's login redirect or an error stub.
MIN_BODY_LENGTH = 100

# Status code -> status text
BATTERY_STATUS: dict[int, str] = {0: "Static", 1: "Charge", 2: "Discharge"}
GRID_STATUS: dict[int, str] = {0: "Static", 1: "Sell", 2: "Buy"}

# Opaque key -> auxiliary store key (numeric values)
AUX_KEYS: dict[str, str] = {
    # inverter
    "1df": "InverterTemperature",
    # battery
    "1cr": "BatteryVoltage",
    "1cv": "BatteryRemainingCapacity",
    "1cs": "BatteryCurrent",
    "1ct": "BatteryWatts",
    "1cz": "BatteryDayChargedKWH",
    "1da": "BatteryDayDischargedKWH",
    "1db": "BatteryMonthChargedKWH",
    "1dc": "BatteryMonthDischargedKWH",
    "1dd": "BatteryYearChargedKWH",
    "1de": "BatteryYearDischargedKWH",
    "1cx": "BatteryLifeChargedKWH",
    "1cy": "BatteryLifeDischargedKWH",
    "1jp": "BatteryTemperature",
    # grid
    "1bq": "GridWatts",
    "1bx": "GridDayPurchasedKWH",
    "1bw": "GridDayDeliveredKWH",
    "1by": "GridMonthDeliveredKWH",
    "1bz": "GridMonthPurchasedKWH",
    "1cb": "GridYearPurchasedKWH",
    "1ca": "GridYearDeliveredKWH",
    "1bv": "GridLifePurchasedKWH",
    "1bu": "GridLifeDeliveredKWH",
    # house
    "1cj": "HouseWatts",
    "1co": "HouseDayKWH",
    "1cp": "HouseMonthKWH",
    "1cq": "HouseYearKWH",
    "1cn": "HouseLifeKWH",
}


class SolarmanAdapter(VendorAdapter):
    """Solarman portal inverter detail."""

    vendor_id = VendorId.SOLARMAN
    label = "Solarman"
    required = ("sm_device_id", "sm_remember_me")
    series = (WEEK,)

    async def _refresh(self) -> CanonicalReading:
        data = await self._fetch()
        reading = CanonicalReading(ts=self._ctx.clock.timestamp(), watts=0)

        if "dt" in data:
            reading.ts = int(to_number(data["dt"]) / 1000)
        if "1ab" in data:
            reading.watts = to_number(data["1ab"])
        if "1bd" in data:
            reading.day_kwh = to_number(data["1bd"])
            reading.week_kwh = await self._ctx.aggregator.week_total(reading.day_kwh)
        if "1be" in data:
            reading.month_kwh = to_number(data["1be"])
        if "1bf" in data:
            reading.year_kwh = to_number(data["1bf"])
        if "1bc" in data:
            reading.life_kwh = to_number(data["1bc"])

        if "1ez" in data:
            await self._set("InverterStatus", data["1ez"])
        if "1ff" in data:
            await self._set_status("BatteryStatus", data["1ff"], BATTERY_STATUS)
        if "1fe" in data:
            await self._set_status("GridStatus", data["1fe"], GRID_STATUS)
        for code, key in AUX_KEYS.items():
            if code in data:
                await self._set(key, to_number(data[code]))
        return reading

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _fetch(self) -> dict[str, Any]:
        cfg = self._ctx.vendor
        headers = {
            "origin": SOLARMAN_ORIGIN,
            "referer": (
                f"{SOLARMAN_ORIGIN}/device/inverter/view.html"
                f"?v=2.2.9.2&deviceId={cfg.sm_device_id}"
            ),
            "accept": "application/json",
            "content-type": "application/x-www-form-urlencoded",
            "cookie": (
                "language=2; autoLogin=on; Language=en_US; "
                f"rememberMe={cfg.sm_remember_me}"
            ),
        }
        response = await self._request(
            "POST",
            SOLARMAN_URL,
            headers=headers,
            content=f"deviceId={cfg.sm_device_id}",
        )
        body = response.text
        if len(body) <= MIN_BODY_LENGTH:
            raise VendorError(FailureKind.PROTOCOL, 200, "No valid data received.")
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise VendorError(
                FailureKind.PROTOCOL, 200, "No valid data received."
            ) from exc

        data: Any = payload
        for name in ("result", "deviceWapper", "dataJSON"):
            data = data.get(name) if isinstance(data, dict) else None
        if not isinstance(data, dict):
            raise VendorError(FailureKind.PROTOCOL, 200, "No valid data received.")
        return data

    async def _set_status(self, key: str, value: Any, states: dict[int, str]) -> None:
        self._ctx.polling.continuous_poll = True
        status = states.get(int(to_number(value)))
        if status is None:
            logger.debug("Unknown %s code %r", key, value)
            return
        await self._set(key, status)
