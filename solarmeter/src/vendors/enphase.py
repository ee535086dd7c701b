"""
Enphase adapters: Envoy gateway on the local network and the Enlighten API.

Envoy (local):
    ``GET http://{ip}/api/v1/production`` returns
    ``{wattsNow, wattHoursToday, wattHoursSevenDays, wattHoursLifetime}``.
    Month and year are derived locally.

Enlighten (remote, two calls):
    ``GET .../systems/{id}/stats?start_at=..`` returns interval power
    readings.  The newest interval is often reported low while it is still
    filling, so when it is below half of the one before, the earlier value
    is used.  ``GET .../systems/{id}/summary`` is only issued when the
    reported ``last_report_at`` moved, and supplies the energy figures.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: Fields missing from the payload are absent instead of 0

TODO:
- None
"""

from __future__ import annotations

import logging

from solarmeter.src.aggregator import MONTH, WEEK, YEAR
from solarmeter.src.models import CanonicalReading, FailureKind, VendorId
from solarmeter.src.store import KEY_DAY_INTERVAL
from solarmeter.src.utils import optional_number, to_number
from solarmeter.src.vendors.base import VendorAdapter, VendorError

logger = logging.getLogger(__name__)

ENLIGHTEN_BASE_URL = "https://api.enphaseenergy.com/api/v2/systems"

KEY_LAST_REPORT = "Enphase_LastReport"

# Enlighten summary field -> auxiliary store key
_SUMMARY_AUX: dict[str, str] = {
    "modules": "Enphase_ModuleCount",
    "size_w": "Enphase_MaxPower",
    "status": "Enphase_Status",
    "operational_at": "Enphase_InstallDate",
    "last_energy_at": "Enphase_LastEnergy",
    "last_report_at": KEY_LAST_REPORT,
}


class EnphaseLocalAdapter(VendorAdapter):
    """Envoy gateway production endpoint."""

    vendor_id = VendorId.ENPHASE_LOCAL
    label = "Enphase Local"
    ipv4_fields = ("en_ip_address",)
    series = (MONTH, YEAR)

    async def _refresh(self) -> CanonicalReading:
        ts = self._ctx.clock.timestamp()
        url = f"http://{self._ctx.vendor.en_ip_address}/api/v1/production"
        data = await self._get_json(url)
        if not isinstance(data, dict):
            raise VendorError(FailureKind.PROTOCOL, 200, "Unexpected body contents.")

        watts = optional_number(data.get("wattsNow"))
        day_kwh = optional_number(data.get("wattHoursToday"), 1000)
        month_kwh = await self._ctx.aggregator.month_total(day_kwh)
        year_kwh = await self._ctx.aggregator.year_total(month_kwh)
        return CanonicalReading(
            ts=await self._stable_timestamp(ts, watts, day_kwh),
            watts=watts,
            day_kwh=day_kwh,
            week_kwh=optional_number(data.get("wattHoursSevenDays"), 1000),
            month_kwh=month_kwh,
            year_kwh=year_kwh,
            life_kwh=optional_number(data.get("wattHoursLifetime"), 1000),
        )


class EnphaseRemoteAdapter(VendorAdapter):
    """Enlighten systems API (stats + summary)."""

    vendor_id = VendorId.ENPHASE_REMOTE
    label = "Enphase Remote"
    required = ("en_api_key", "en_user_id", "en_system_id")
    series = (WEEK, MONTH, YEAR)

    async def _refresh(self) -> CanonicalReading:
        cfg = self._ctx.vendor
        store = self._ctx.store
        last_report = int(await store.get_number(KEY_LAST_REPORT))
        interval = int(await store.get_number(KEY_DAY_INTERVAL))
        now = self._ctx.clock.timestamp()
        if now - last_report > interval * 5:
            start_at = now - interval * 5
        else:
            start_at = last_report - interval

        stats = await self._get_json(
            f"{ENLIGHTEN_BASE_URL}/{cfg.en_system_id}/stats",
            params={"start_at": start_at, "key": cfg.en_api_key, "user_id": cfg.en_user_id},
        )
        meta = stats.get("meta") if isinstance(stats, dict) else None
        if not isinstance(meta, dict):
            raise VendorError(FailureKind.PROTOCOL, 400, "Unexpected body contents.")

        ts = int(to_number(meta.get("last_report_at")))
        watts = _interval_watts(stats.get("intervals") or [])
        reading = CanonicalReading(ts=ts, watts=watts)
        if ts == last_report:
            logger.debug("No new Enlighten report since %d", last_report)
            return reading

        summary = await self._get_json(
            f"{ENLIGHTEN_BASE_URL}/{cfg.en_system_id}/summary",
            params={"key": cfg.en_api_key, "user_id": cfg.en_user_id},
        )
        if not isinstance(summary, dict):
            raise VendorError(FailureKind.PROTOCOL, 200, "Unexpected body contents.")

        aggregator = self._ctx.aggregator
        day_kwh = optional_number(summary.get("energy_today"), 1000)
        month_kwh = await aggregator.month_total(day_kwh)
        reading.day_kwh = day_kwh
        reading.life_kwh = optional_number(summary.get("energy_lifetime"), 1000)
        reading.week_kwh = await aggregator.week_total(day_kwh)
        reading.month_kwh = month_kwh
        reading.year_kwh = await aggregator.year_total(month_kwh)

        for field_name, key in _SUMMARY_AUX.items():
            if field_name in summary:
                await self._set(key, summary[field_name])
        return reading


def _interval_watts(intervals: list[dict]) -> float | None:
    """Pick the power of the newest interval, guarding a low trailing sample."""
    latest: float | None = None
    previous: float | None = None
    last_end = 0
    for item in intervals:
        end_at = to_number(item.get("end_at"))
        power = optional_number(item.get("powr"))
        if power is not None and end_at > last_end:
            previous = latest
            latest = power
            last_end = end_at
    if latest is not None and previous is not None and latest < previous / 2:
        return previous
    return latest
