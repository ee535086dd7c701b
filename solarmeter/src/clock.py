"""
Wall clock and sun schedule used for bucketing and for night-time suspension.

Clock hands out timezone-aware "now" values in the configured zone and
converts the local wall-clock strings some vendors report into epoch seconds.

SunSchedule approximates sunrise and sunset from the solar declination and
the sunrise hour angle (no equation-of-time correction, so results can be
off by a quarter of an hour).  That precision is ample for deciding when to
resume polling in the morning.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class Clock:
    """Source of the current time in the meter's timezone.

    Args:
        timezone: IANA zone name; empty means the host's local zone.
        now_fn: Optional replacement for :func:`time.time` (tests).
    """

    def __init__(
        self,
        timezone: str = "",
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        self._tz: tzinfo | None = ZoneInfo(timezone) if timezone else None
        self._now_fn = now_fn or time.time

    def timestamp(self) -> int:
        """Current time as whole seconds since the epoch."""
        return int(self._now_fn())

    def now(self) -> datetime:
        """Current time as an aware datetime in the configured zone."""
        return self.from_timestamp(self._now_fn())

    def from_timestamp(self, ts: float) -> datetime:
        """Convert epoch seconds to an aware datetime in the configured zone."""
        if self._tz is None:
            return datetime.fromtimestamp(ts).astimezone()
        return datetime.fromtimestamp(ts, tz=self._tz)

    def parse_local(self, text: str, fmt: str) -> int:
        """Parse a local wall-clock string and return epoch seconds.

        Raises:
            ValueError: If *text* does not match *fmt*.
        """
        naive = datetime.strptime(text.strip(), fmt)
        if self._tz is None:
            return int(naive.timestamp())
        return int(naive.replace(tzinfo=self._tz).timestamp())


# ---------------------------------------------------------------------------
# Sun schedule
# ---------------------------------------------------------------------------


class SunSchedule:
    """Approximate sunrise/sunset for a fixed location.

    Args:
        latitude: Degrees north (negative for south).
        longitude: Degrees east (negative for west).
    """

    def __init__(self, latitude: float, longitude: float) -> None:
        self.latitude = latitude
        self.longitude = longitude

    def _hour_angle(self, day: date) -> float:
        """Sunrise hour angle in degrees (0 = polar night, 180 = polar day)."""
        day_of_year = day.timetuple().tm_yday
        declination = 23.45 * math.sin(math.radians(360 * (284 + day_of_year) / 365))
        cos_ha = -math.tan(math.radians(self.latitude)) * math.tan(
            math.radians(declination)
        )
        cos_ha = max(-1.0, min(1.0, cos_ha))
        return math.degrees(math.acos(cos_ha))

    def _solar_noon(self, day: date) -> datetime:
        noon = datetime(day.year, day.month, day.day, 12, tzinfo=UTC)
        return noon - timedelta(hours=self.longitude / 15.0)

    def sunrise(self, day: date) -> datetime:
        """Sunrise on *day* (UTC calendar date) as an aware UTC datetime."""
        return self._solar_noon(day) - timedelta(hours=self._hour_angle(day) / 15.0)

    def sunset(self, day: date) -> datetime:
        """Sunset on *day* (UTC calendar date) as an aware UTC datetime."""
        return self._solar_noon(day) + timedelta(hours=self._hour_angle(day) / 15.0)

    def _local_day(self, now: float) -> date:
        # Solar-local calendar day, so the sunrise and sunset compared against
        # belong to the same daylight period.
        moment = datetime.fromtimestamp(now, tz=UTC)
        return (moment + timedelta(hours=self.longitude / 15.0)).date()

    def is_night(self, now: float) -> bool:
        """True before today's sunrise or after today's sunset."""
        day = self._local_day(now)
        if self._hour_angle(day) == 0.0:
            return True
        return not (
            self.sunrise(day).timestamp() <= now < self.sunset(day).timestamp()
        )

    def next_sunrise(self, now: float) -> float:
        """Epoch seconds of the next sunrise at or after *now*.

        During polar night the next sunrise is searched day by day for up to
        a year; if none is found, noon tomorrow is returned.
        """
        day = self._local_day(now)
        for offset in range(367):
            candidate = day + timedelta(days=offset)
            if self._hour_angle(candidate) == 0.0:
                continue
            ts = self.sunrise(candidate).timestamp()
            if ts >= now:
                return ts
        return self._solar_noon(day + timedelta(days=1)).timestamp()
