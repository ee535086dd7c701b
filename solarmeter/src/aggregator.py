"""
Rolling aggregator deriving week, month and year totals from daily figures.

Most vendor APIs only report today's energy (and sometimes lifetime).  The
aggregator keeps three calendar-indexed series in the external store and
derives the missing period totals from them:

- Week (7 slots, indexed by day of week, Sunday = 1): trailing seven-day
  sum of all slots.  Never reset.
- Month (31 slots, indexed by day of month): sum of slots 1..today.  Slot 1
  seeds the month, so on the 1st the month total is the day total.
- Year (12 slots, indexed by month): sum of slots 1..this month, fed with
  the month total.  Slot 1 seeds the year.

An update only happens when the value stored in the current slot differs
from the newly observed one.  Vendors are polled far more often than their
daily counters move, so unchanged inputs return ``None`` and cause no store
write at all.

Series are serialized as comma-joined text under ``WeeklyDaily``,
``MonthlyDaily`` and ``YearlyMonthly``.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: Drop unused series lookup

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from solarmeter.src.utils import (
    day_of_month_index,
    day_of_week_index,
    format_value,
    month_index,
    to_number,
)

if TYPE_CHECKING:
    from solarmeter.src.clock import Clock
    from solarmeter.src.store import Store

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Series definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SeriesSpec:
    """Static description of one rolling series.

    Attributes:
        name: Short label used in logs.
        store_key: Store key holding the comma-joined values.
        capacity: Number of slots.
        trailing: True for a trailing sum over all slots (week), False for
            a cumulative sum from slot 1 with slot 1 reseeding (month, year).
    """

    name: str
    store_key: str
    capacity: int
    trailing: bool


WEEK = SeriesSpec("week", "WeeklyDaily", 7, trailing=True)
MONTH = SeriesSpec("month", "MonthlyDaily", 31, trailing=False)
YEAR = SeriesSpec("year", "YearlyMonthly", 12, trailing=False)


# ---------------------------------------------------------------------------
# Pure series arithmetic
# ---------------------------------------------------------------------------


class RollingSeries:
    """Fixed capacity, 1-indexed series of per-slot energy values.

    Args:
        spec: The series definition.
        values: Initial slot values; trimmed from the oldest end when longer
            than the capacity and zero padded when shorter.
    """

    def __init__(self, spec: SeriesSpec, values: list[float] | None = None) -> None:
        self.spec = spec
        slots = list(values or [])
        if len(slots) > spec.capacity:
            slots = slots[len(slots) - spec.capacity :]
        slots.extend([0] * (spec.capacity - len(slots)))
        self._values: list[float] = slots

    @classmethod
    def from_text(cls, spec: SeriesSpec, text: str) -> RollingSeries:
        """Parse a comma-joined series as kept in the store."""
        parts = [p for p in text.split(",") if p.strip()] if text else []
        if len(parts) > spec.capacity:
            logger.warning(
                "Series '%s' has %d entries, trimming to %d",
                spec.name,
                len(parts),
                spec.capacity,
            )
        return cls(spec, [to_number(p) for p in parts])

    def to_text(self) -> str:
        return ",".join(format_value(v) for v in self._values)

    @property
    def values(self) -> list[float]:
        return list(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def update(self, index: int, value: float | None) -> float | None:
        """Record *value* in slot *index* and return the period total.

        Returns ``None`` when *value* is ``None`` or equals the value already
        held in the slot.

        Raises:
            ValueError: If *index* is outside ``1..capacity``.
        """
        if not 1 <= index <= self.spec.capacity:
            raise ValueError(
                f"Slot {index} outside 1..{self.spec.capacity} for {self.spec.name}"
            )
        if value is None:
            return None
        if self._values[index - 1] == value:
            return None

        self._values[index - 1] = value
        if self.spec.trailing:
            return _total(self._values)
        if index == 1:
            return value
        return _total(self._values[:index])


def _total(values: list[float]) -> float:
    # Totals are floored to two decimals downstream; strip float noise first.
    return round(math.fsum(values), 6)


# ---------------------------------------------------------------------------
# Store-backed aggregator
# ---------------------------------------------------------------------------


class RollingAggregator:
    """Holds the week/month/year series and persists them on every change.

    Adapters call :meth:`init` for the series their vendor cannot supply;
    asking for a total of a series that was never initialised raises
    ``RuntimeError``.

    Args:
        store: External store holding the serialized series.
        clock: Source of "now" for slot indices.
    """

    def __init__(self, store: Store, clock: Clock) -> None:
        self._store = store
        self._clock = clock
        self._series: dict[str, RollingSeries] = {}

    async def init(self, *specs: SeriesSpec) -> None:
        """Load (or create) the given series from the store."""
        for spec in specs:
            empty = ",".join(["0"] * spec.capacity)
            text = await self._store.default(spec.store_key, empty)
            series = RollingSeries.from_text(spec, text)
            self._series[spec.name] = series
            # Rewrite so trimmed legacy values do not linger in the store.
            await self._store.set(spec.store_key, series.to_text())

    async def week_total(self, daily: float | None) -> float | None:
        """Trailing seven-day total, or ``None`` when unchanged."""
        return await self._apply(WEEK, day_of_week_index(self._clock.now()), daily)

    async def month_total(self, daily: float | None) -> float | None:
        """Month-to-date total, or ``None`` when unchanged."""
        return await self._apply(MONTH, day_of_month_index(self._clock.now()), daily)

    async def year_total(self, monthly: float | None) -> float | None:
        """Year-to-date total fed with the month total, or ``None``."""
        return await self._apply(YEAR, month_index(self._clock.now()), monthly)

    async def _apply(
        self, spec: SeriesSpec, index: int, value: float | None
    ) -> float | None:
        series = self._series.get(spec.name)
        if series is None:
            raise RuntimeError(f"Rolling series '{spec.name}' was not initialised")
        total = series.update(index, value)
        if total is not None:
            await self._store.set(spec.store_key, series.to_text())
            logger.debug("Series %s slot %d -> total %s", spec.name, index, total)
        return total
