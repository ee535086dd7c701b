"""
SunGrow adapter (solarinfobank open API).

``GET http://www.solarinfobank.com/openapi/loginvalidV2?username=..&password=..``
answers ``{power, todayEnergy}`` with power in kW and today's energy already
in kWh.  Week, month and year are derived locally.

The endpoint only takes credentials over plain HTTP; the password is masked
in every logged URL.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: Fields missing from the payload are absent instead of 0

TODO:
- None
"""

from __future__ import annotations

import math

from solarmeter.src.aggregator import MONTH, WEEK, YEAR
from solarmeter.src.models import CanonicalReading, FailureKind, VendorId
from solarmeter.src.utils import optional_number
from solarmeter.src.vendors.base import VendorAdapter, VendorError

SUNGROW_URL = "http://www.solarinfobank.com/openapi/loginvalidV2"


class SunGrowAdapter(VendorAdapter):
    """SunGrow inverters reporting to solarinfobank."""

    vendor_id = VendorId.SUNGROW
    label = "SunGrow"
    required = ("sg_user_id", "sg_password")
    series = (WEEK, MONTH, YEAR)

    async def _refresh(self) -> CanonicalReading:
        cfg = self._ctx.vendor
        ts = self._ctx.clock.timestamp()
        data = await self._get_json(
            SUNGROW_URL,
            params={"username": cfg.sg_user_id, "password": cfg.sg_password},
        )
        if not isinstance(data, dict):
            raise VendorError(FailureKind.PROTOCOL, 200, "No data received.")

        aggregator = self._ctx.aggregator
        power_kw = optional_number(data.get("power"))
        watts = None if power_kw is None else math.floor(power_kw * 1000)
        day_kwh = optional_number(data.get("todayEnergy"))
        month_kwh = await aggregator.month_total(day_kwh)
        return CanonicalReading(
            # The daily counter moves in coarse steps, so only watts decide.
            ts=await self._stable_timestamp(ts, watts, compare_day=False),
            watts=watts,
            day_kwh=day_kwh,
            week_kwh=await aggregator.week_total(day_kwh),
            month_kwh=month_kwh,
            year_kwh=await aggregator.year_total(month_kwh),
        )
