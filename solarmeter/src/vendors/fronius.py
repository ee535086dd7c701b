"""
Fronius Solar API v1 adapter (inverter realtime data + site power flow).

Two calls per cycle:

1. ``GetInverterRealtimeData.cgi`` for the configured inverter.  Skipped
   when the device id is ``0``, which selects site-level aggregation.
2. ``GetPowerFlowRealtimeData.fcgi`` for the whole site, always issued.

Both responses share the envelope ``{Head: {Status: {Code, Reason}},
Body: {Data: {...}}}``; a non-zero ``Code`` is a vendor-reported failure.

Site power flow values are signed.  Grid: negative = export (``Sell``),
positive = import (``Buy``).  Battery: negative = ``Discharge``, positive =
``Charge``.  Zero is ``Static``.  The adapter stores the status plus the
unsigned magnitude, and a present grid or battery value switches the meter
to continuous polling.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from typing import Any

from solarmeter.src.aggregator import MONTH, WEEK
from solarmeter.src.models import CanonicalReading, FailureKind, VendorId
from solarmeter.src.utils import is_number, to_number
from solarmeter.src.vendors.base import VendorAdapter, VendorError

KEY_STATUS = "Fronius_Status"

GRID_STATES = ("Sell", "Static", "Buy")
BATTERY_STATES = ("Discharge", "Static", "Charge")


def flow_status(value: float, states: tuple[str, str, str]) -> tuple[str, float]:
    """Map a signed flow to ``(status, magnitude)``.

    *states* is ``(negative, zero, positive)``.
    """
    if value < 0:
        return states[0], abs(value)
    if value > 0:
        return states[2], value
    return states[1], 0


class FroniusAdapter(VendorAdapter):
    """Fronius Datamanager / Gen24 local Solar API."""

    vendor_id = VendorId.FRONIUS
    label = "Fronius API"
    required = ("fa_device_id",)
    ipv4_fields = ("fa_ip_address",)
    series = (WEEK, MONTH)

    async def _refresh(self) -> CanonicalReading:
        cfg = self._ctx.vendor
        device = cfg.fa_device_id
        site_only = to_number(device) == 0
        reading = CanonicalReading(ts=self._ctx.clock.timestamp())

        if not site_only:
            data = await self._fetch(
                f"http://{cfg.fa_ip_address}/solar_api/v1/GetInverterRealtimeData.cgi",
                params={
                    "Scope": "Device",
                    "DeviceId": device,
                    "DataCollection": "CommonInverterData",
                },
            )
            await self._apply_inverter(data, reading)

        data = await self._fetch(
            f"http://{cfg.fa_ip_address}/solar_api/v1/GetPowerFlowRealtimeData.fcgi",
            record_status=True,
        )
        site = data.get("Site")
        if isinstance(site, dict):
            if site_only:
                await self._apply_site_production(site, reading)
            await self._apply_power_flow(site)
        inverters = data.get("Inverters")
        inverter = inverters.get(str(device)) if isinstance(inverters, dict) else None
        if isinstance(inverter, dict) and inverter.get("SOC") is not None:
            await self._set("BatterySOC", inverter["SOC"])

        reading.ts = await self._stable_timestamp(
            reading.ts, reading.watts, reading.day_kwh
        )
        return reading

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _fetch(
        self, url: str, *, record_status: bool = False, **kwargs: Any
    ) -> dict[str, Any]:
        """GET *url* and unwrap the ``Body.Data`` envelope."""
        payload = await self._get_json(url, **kwargs)
        head = payload.get("Head") if isinstance(payload, dict) else None
        status = head.get("Status") if isinstance(head, dict) else None
        if not isinstance(status, dict) or status.get("Code") != 0:
            code = status.get("Code") if isinstance(status, dict) else None
            reason = status.get("Reason") if isinstance(status, dict) else None
            raise VendorError(
                FailureKind.PROTOCOL,
                int(to_number(code)) if code is not None else -1,
                f"No data received. Reason: {reason or 'unknown'}",
            )
        if record_status:
            await self._set(KEY_STATUS, status["Code"])
        data = (payload.get("Body") or {}).get("Data")
        if not isinstance(data, dict):
            raise VendorError(FailureKind.PROTOCOL, 200, "No data received.")
        return data

    async def _apply_inverter(
        self, data: dict[str, Any], reading: CanonicalReading
    ) -> None:
        def value(name: str) -> float | int | None:
            entry = data.get(name)
            return to_number(entry.get("Value")) if isinstance(entry, dict) else None

        aggregator = self._ctx.aggregator
        # PAC is missing while nothing is produced.
        reading.watts = value("PAC") or 0
        if (day := value("DAY_ENERGY")) is not None:
            reading.day_kwh = day / 1000
        if (year := value("YEAR_ENERGY")) is not None:
            reading.year_kwh = year / 1000
        if (total := value("TOTAL_ENERGY")) is not None:
            reading.life_kwh = total / 1000
        reading.week_kwh = await aggregator.week_total(reading.day_kwh)
        reading.month_kwh = await aggregator.month_total(reading.day_kwh)

        if (iac := value("IAC")) is not None:
            await self._set("Fronius_IAC", iac)
        if "IAC_L1" in data:
            phases = [value(f"IAC_L{n}") or 0 for n in (1, 2, 3)]
            await self._set("Fronius_IAC", sum(phases))
        if (idc := value("IDC")) is not None:
            await self._set("Fronius_IDC", idc)
        if (uac := value("UAC")) is not None:
            await self._set("Fronius_UAC", uac)
        if (uac_l1 := value("UAC_L1")) is not None:
            await self._set("Fronius_UAC", uac_l1)
        if (udc := value("UDC")) is not None:
            await self._set("Fronius_UDC", udc)
        status = data.get("DeviceStatus")
        if isinstance(status, dict) and "StatusCode" in status:
            await self._set(KEY_STATUS, status["StatusCode"])

    async def _apply_site_production(
        self, site: dict[str, Any], reading: CanonicalReading
    ) -> None:
        aggregator = self._ctx.aggregator
        # P_PV is null while nothing is produced.
        reading.watts = to_number(site.get("P_PV"))
        if site.get("E_Day") is not None:
            reading.day_kwh = to_number(site["E_Day"]) / 1000
        if site.get("E_Year") is not None:
            reading.year_kwh = to_number(site["E_Year"]) / 1000
        if site.get("E_Total") is not None:
            reading.life_kwh = to_number(site["E_Total"]) / 1000
        reading.week_kwh = await aggregator.week_total(reading.day_kwh)
        reading.month_kwh = await aggregator.month_total(reading.day_kwh)

    async def _apply_power_flow(self, site: dict[str, Any]) -> None:
        grid = site.get("P_Grid")
        if is_number(grid):
            self._ctx.polling.continuous_poll = True
            status, magnitude = flow_status(grid, GRID_STATES)
            await self._set("ToGrid", -grid)
            await self._set("GridWatts", magnitude)
            await self._set("GridStatus", status)

        battery = site.get("P_Akku")
        if is_number(battery):
            self._ctx.polling.continuous_poll = True
            status, magnitude = flow_status(battery, BATTERY_STATES)
            await self._set("ToBatt", battery)
            await self._set("BatteryWatts", magnitude)
            await self._set("BatteryStatus", status)

        load = site.get("P_Load")
        if is_number(load):
            await self._set("ToHouse", -load)
            await self._set("HouseWatts", abs(load))
        else:
            await self._set("HouseWatts", 0)
