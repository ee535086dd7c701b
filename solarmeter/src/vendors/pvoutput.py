"""
PVOutput adapter (``getstatus.jsp`` service).

The response is a single comma separated line::

    date,time,energy_wh,power_w,energy_used_wh,power_used_w,normalised,temp,volt

Fields are positional.  Fewer than four fields means no status is available.
Week, month and year are derived locally from the day energy.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from solarmeter.src.aggregator import MONTH, WEEK, YEAR
from solarmeter.src.models import CanonicalReading, FailureKind, VendorId
from solarmeter.src.utils import to_number
from solarmeter.src.vendors.base import VendorAdapter, VendorError

TIMESTAMP_FORMAT = "%Y%m%d %H:%M"

# Optional trailing fields, by position
_AUX_FIELDS: tuple[tuple[int, str], ...] = (
    (4, "PV_EnergyConsumption"),
    (5, "PV_PowerConsumption"),
    (6, "PV_NormalisedOutput"),
    (7, "PV_Temperature"),
    (8, "PV_Voltage"),
)


class PVOutputAdapter(VendorAdapter):
    """pvoutput.org system status."""

    vendor_id = VendorId.PVOUTPUT
    label = "PV Output"
    required = ("pv_api_key", "pv_system_id")
    series = (WEEK, MONTH, YEAR)

    async def _refresh(self) -> CanonicalReading:
        cfg = self._ctx.vendor
        scheme = "https" if cfg.pv_https else "http"
        response = await self._request(
            "GET",
            f"{scheme}://pvoutput.org/service/r2/getstatus.jsp",
            params={"key": cfg.pv_api_key, "sid": cfg.pv_system_id},
        )
        fields = [f.strip() for f in response.text.strip().split(",")]
        if len(fields) < 4:
            raise VendorError(FailureKind.PROTOCOL, 200, "No data received.")

        try:
            ts = self._ctx.clock.parse_local(f"{fields[0]} {fields[1]}", TIMESTAMP_FORMAT)
        except ValueError as exc:
            raise VendorError(
                FailureKind.PROTOCOL, 200, f"Unparsable status time: {fields[0]} {fields[1]}"
            ) from exc

        aggregator = self._ctx.aggregator
        day_kwh = to_number(fields[2]) / 1000
        month_kwh = await aggregator.month_total(day_kwh)
        reading = CanonicalReading(
            ts=ts,
            watts=to_number(fields[3]),
            day_kwh=day_kwh,
            week_kwh=await aggregator.week_total(day_kwh),
            month_kwh=month_kwh,
            year_kwh=await aggregator.year_total(month_kwh),
        )
        for position, key in _AUX_FIELDS:
            if len(fields) > position:
                await self._set(key, fields[position])
        return reading
