"""
Unit tests for the numeric and calendar helpers.

Tests verify:
- to_number() never raises and yields 0 for anything non-numeric.
- floor_decimals() rounds down, including whole units.
- format_value() renders values the way the store compares them.
- Calendar indices (Sunday = 1 for the week).

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime

import pytest

from solarmeter.src.utils import (
    day_of_month_index,
    day_of_week_index,
    floor_decimals,
    format_value,
    is_number,
    month_index,
    optional_number,
    to_number,
)

# ---------------------------------------------------------------------------
# to_number
# ---------------------------------------------------------------------------


class TestToNumber:
    """to_number() is the parsing boundary for vendor payload values."""

    @pytest.mark.parametrize(
        "value",
        [None, "", "   ", "abc", "12abc", "1_000", [], {}, object(), float("nan"), "inf"],
    )
    def test_non_numeric_yields_zero(self, value: object) -> None:
        assert to_number(value) == 0

    def test_numbers_pass_through(self) -> None:
        assert to_number(42) == 42
        assert to_number(-3.5) == -3.5

    def test_numeric_strings_are_parsed(self) -> None:
        assert to_number("42") == 42
        assert isinstance(to_number("42"), int)
        assert to_number(" 3.25 ") == 3.25
        assert to_number("-7") == -7

    def test_bytes_are_parsed(self) -> None:
        assert to_number(b"15") == 15

    def test_bool_is_int(self) -> None:
        assert to_number(True) == 1


class TestOptionalNumber:
    @pytest.mark.parametrize("value", [None, ""])
    def test_absent_is_none(self, value: object) -> None:
        assert optional_number(value) is None
        assert optional_number(value, 1000) is None

    def test_zero_is_kept(self) -> None:
        assert optional_number(0, 1000) == 0

    def test_scaled(self) -> None:
        assert optional_number("4560", 1000) == 4.56
        assert optional_number(150) == 150

    def test_garbage_reads_as_zero(self) -> None:
        assert optional_number("n/a") == 0


class TestIsNumber:
    def test_real_numbers(self) -> None:
        assert is_number(0)
        assert is_number(-500.5)

    def test_rejects_bools_strings_and_none(self) -> None:
        assert not is_number(True)
        assert not is_number("5")
        assert not is_number(None)


# ---------------------------------------------------------------------------
# Rounding and formatting
# ---------------------------------------------------------------------------


class TestFloorDecimals:
    def test_two_decimals_round_down(self) -> None:
        assert floor_decimals(12.349, 2) == 12.34
        assert floor_decimals(0.999, 2) == 0.99

    def test_binary_float_noise_does_not_drop_a_cent(self) -> None:
        assert floor_decimals(4.56, 2) == 4.56
        assert floor_decimals(1.15, 2) == 1.15

    def test_zero_decimals_gives_int(self) -> None:
        result = floor_decimals(1234.9, 0)
        assert result == 1234
        assert isinstance(result, int)


class TestFormatValue:
    def test_whole_float_drops_fraction(self) -> None:
        assert format_value(5.0) == "5"

    def test_fraction_kept(self) -> None:
        assert format_value(5.12) == "5.12"

    def test_bool_and_none(self) -> None:
        assert format_value(True) == "1"
        assert format_value(False) == "0"
        assert format_value(None) == ""

    def test_text_unchanged(self) -> None:
        assert format_value("Sell") == "Sell"


# ---------------------------------------------------------------------------
# Calendar decomposition
# ---------------------------------------------------------------------------


class TestCalendarIndices:
    def test_sunday_is_first_day_of_week(self) -> None:
        assert day_of_week_index(datetime(2026, 6, 14)) == 1  # Sunday

    def test_saturday_is_last_day_of_week(self) -> None:
        assert day_of_week_index(datetime(2026, 6, 20)) == 7  # Saturday

    def test_day_of_month_and_month(self) -> None:
        moment = datetime(2026, 12, 31)
        assert day_of_month_index(moment) == 31
        assert month_index(moment) == 12
