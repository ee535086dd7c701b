"""
Numeric and calendar helpers shared by the aggregator and the vendor adapters.

Vendor payloads routinely carry strings, nulls or missing keys where numbers
are expected; :func:`to_number` is the single parsing boundary for all of
them, and :func:`optional_number` keeps a missing value apart from zero.
The calendar helpers decompose "now" into the slot indices used by the
rolling series.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: Add optional_number() for values a vendor may leave out

TODO:
- None
"""

from __future__ import annotations

import math
from datetime import datetime

# ---------------------------------------------------------------------------
# Numeric coercion
# ---------------------------------------------------------------------------


def to_number(value: object) -> float | int:
    """Coerce *value* to a number, returning ``0`` when that is not possible.

    Ints are returned unchanged, numeric strings are parsed (ints stay
    ints), anything else (``None``, empty or malformed strings, containers)
    yields ``0``.  NaN and infinities also yield ``0``.  Never raises.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    if isinstance(value, (str, bytes)):
        text = value.decode(errors="ignore") if isinstance(value, bytes) else value
        text = text.strip()
        if not text or "_" in text:
            return 0
        try:
            return int(text, 10)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return 0
        return number if math.isfinite(number) else 0
    return 0


def optional_number(value: object, divisor: float = 1) -> float | int | None:
    """Like :func:`to_number` divided by *divisor*, but ``None`` when absent.

    A missing key or JSON null is "no data" and must not be stored as 0.
    """
    if value is None or value == "":
        return None
    number = to_number(value)
    return number if divisor == 1 else number / divisor


def is_number(value: object) -> bool:
    """Return True for real JSON numbers (not bools, not numeric strings)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def floor_decimals(value: float, decimals: int) -> float | int:
    """Round *value* down to *decimals* places (``0`` gives an int)."""
    if decimals <= 0:
        return math.floor(round(value, 6))
    factor = 10**decimals
    # 4.56 * 100 is 455.99999999999994 in binary floating point.
    return math.floor(round(value * factor, 6)) / factor


def format_value(value: object) -> str:
    """Render a value the way it is kept in the external store.

    Whole floats drop their fractional part (``5.0`` -> ``"5"``) so that a
    value read back and written again compares equal as text.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


# ---------------------------------------------------------------------------
# Calendar decomposition
# ---------------------------------------------------------------------------


def day_of_week_index(now: datetime) -> int:
    """Return 1..7 with Sunday as 1."""
    return now.isoweekday() % 7 + 1


def day_of_month_index(now: datetime) -> int:
    """Return 1..31."""
    return now.day


def month_index(now: datetime) -> int:
    """Return 1..12."""
    return now.month
