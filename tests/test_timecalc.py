"""
Tests for clock-time parsing and hour arithmetic.
"""

import pytest

from tsheet.TIMETRACK.timecalc import (coerce_hours, duration_hours,
                                       entry_total, format_date, format_hours,
                                       in_range, is_iso_date, now_iso,
                                       parse_clock_time, round_hours)


class TestParseClockTime:
    """Only strict HH:MM inside a day is accepted."""

    def test_valid_times(self):
        assert parse_clock_time("09:00") == 540
        assert parse_clock_time("00:00") == 0
        assert parse_clock_time("23:59") == 23 * 60 + 59

    @pytest.mark.parametrize("value", ["9:00", "25:00", "09:60", "", "0900", "09:00:00", " 09:00", "ab:cd", None, 540])
    def test_invalid_times_give_none(self, value):
        assert parse_clock_time(value) is None


class TestDurationHours:

    def test_same_day(self):
        assert duration_hours("09:00", "17:00") == 8.0

    def test_overnight_wraps_once(self):
        assert duration_hours("22:00", "06:00") == 8.0
        assert duration_hours("23:30", "00:15") == 0.75

    def test_zero_length(self):
        assert duration_hours("09:00", "09:00") == 0.0

    def test_bad_input(self):
        assert duration_hours("09:00", "nope") is None
        assert duration_hours(None, "17:00") is None

    def test_always_under_a_day(self):
        assert duration_hours("00:01", "00:00") == pytest.approx(23 + 59 / 60)


class TestRoundHours:

    def test_exact_half_rounds_up(self):
        assert round_hours(7.005) == 7.01

    def test_regular_values(self):
        assert round_hours(8) == 8.0
        assert round_hours(1 / 3) == 0.33
        assert round_hours(1.005) == 1.01

    def test_negative_rounds_away_from_zero(self):
        assert round_hours(-1.005) == -1.01


class TestEntryTotal:

    def test_break_is_subtracted(self):
        assert entry_total("09:00", "17:30", 0.5) == 8.0

    def test_break_longer_than_shift_clamps_to_zero(self):
        assert entry_total("09:00", "10:00", 3) == 0.0

    def test_non_numeric_break_counts_as_zero(self):
        assert entry_total("09:00", "17:00", "lunch") == 8.0
        assert entry_total("09:00", "17:00", None) == 8.0

    def test_unparseable_time(self):
        assert entry_total("9am", "17:00", 0) is None


class TestCoerceHours:

    @pytest.mark.parametrize("value,expected", [
        (3.25, 3.25), (4, 4.0), ("4.75", 4.75), (" 2 ", 2.0),
        ("abc", 0.0), ("", 0.0), (None, 0.0), (True, 0.0), ([1], 0.0),
        (float("nan"), 0.0), (float("inf"), 0.0),
    ])
    def test_coercion(self, value, expected):
        assert coerce_hours(value) == expected


class TestDates:

    def test_in_range_is_inclusive(self):
        assert in_range("2026-02-16", "2026-02-16", "2026-03-01")
        assert in_range("2026-03-01", "2026-02-16", "2026-03-01")
        assert not in_range("2026-03-02", "2026-02-16", "2026-03-01")
        assert not in_range("", "2026-02-16", "2026-03-01")

    def test_is_iso_date(self):
        assert is_iso_date("2026-02-28")
        assert not is_iso_date("2026-02-30")
        assert not is_iso_date("2026-2-3")
        assert not is_iso_date(None)

    def test_now_iso_shape(self):
        stamp = now_iso()
        assert stamp.endswith("Z")
        assert len(stamp) == len("2026-02-16T10:00:00.000Z")


class TestFormatting:

    def test_format_date(self):
        assert format_date("2026-02-16") == "02/16/2026"
        assert format_date("") == ""

    def test_format_hours(self):
        assert format_hours(8) == "8.00"
        assert format_hours(7.005) == "7.01"
        assert format_hours(None) == ""
        assert format_hours(float("nan")) == ""
