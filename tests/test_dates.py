"""Tests for active.dates calendar helpers."""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from active.dates import (
    add_days,
    add_minutes,
    add_years,
    beginning_of_day,
    combine_fire_date,
    difference_in_days,
    end_of_day,
    format_fire_time,
    is_in_range,
    is_in_today,
    is_same_day,
    parse_fire_time,
)

UTC = timezone.utc
SAO_PAULO = ZoneInfo("America/Sao_Paulo")
NEW_YORK = ZoneInfo("America/New_York")


class TestDayBoundaries:
    def test_beginning_of_day(self):
        value = datetime(2026, 3, 10, 15, 42, 7, tzinfo=UTC)
        assert beginning_of_day(value) == datetime(2026, 3, 10, tzinfo=UTC)

    def test_beginning_of_day_from_date(self):
        assert beginning_of_day(date(2026, 3, 10), SAO_PAULO) == datetime(2026, 3, 10, tzinfo=SAO_PAULO)

    def test_beginning_of_day_in_other_timezone(self):
        # 01:00 UTC is still the previous evening in Sao Paulo
        value = datetime(2026, 3, 10, 1, 0, tzinfo=UTC)
        start = beginning_of_day(value, SAO_PAULO)
        assert start.date() == date(2026, 3, 9)
        assert start.hour == 0

    def test_naive_is_read_in_given_timezone(self):
        start = beginning_of_day(datetime(2026, 3, 10, 8, 0), SAO_PAULO)
        assert start.tzinfo is SAO_PAULO

    def test_end_of_day(self):
        value = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)
        assert end_of_day(value) == datetime(2026, 3, 10, 23, 59, 59, tzinfo=UTC)

    def test_is_same_day(self):
        assert is_same_day(
            datetime(2026, 3, 10, 0, 0, tzinfo=UTC), datetime(2026, 3, 10, 23, 59, tzinfo=UTC)
        )
        assert not is_same_day(
            datetime(2026, 3, 10, 23, 59, tzinfo=UTC), datetime(2026, 3, 11, 0, 0, tzinfo=UTC)
        )

    def test_is_in_today(self):
        now = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)
        assert is_in_today(datetime(2026, 3, 10, 22, 0, tzinfo=UTC), now)
        assert not is_in_today(datetime(2026, 3, 11, 0, 0, tzinfo=UTC), now)


class TestArithmetic:
    def test_add_days(self):
        value = datetime(2026, 3, 31, 10, 0, tzinfo=UTC)
        assert add_days(value, 1) == datetime(2026, 4, 1, 10, 0, tzinfo=UTC)
        assert add_days(value, -31) == datetime(2026, 2, 28, 10, 0, tzinfo=UTC)

    def test_add_minutes_across_dst(self):
        # 2026-03-08 02:00 is skipped in New York
        before = datetime(2026, 3, 8, 1, 30, tzinfo=NEW_YORK)
        after = add_minutes(before, 60)
        assert after.hour == 3
        assert after.minute == 30

    def test_add_years_leap_day(self):
        leap = datetime(2024, 2, 29, tzinfo=UTC)
        assert add_years(leap, 1) == datetime(2025, 2, 28, tzinfo=UTC)
        assert add_years(leap, 4) == datetime(2028, 2, 29, tzinfo=UTC)

    def test_difference_in_days(self):
        start = datetime(2026, 3, 10, tzinfo=UTC)
        assert difference_in_days(start, datetime(2026, 3, 13, tzinfo=UTC)) == 3
        assert difference_in_days(start, datetime(2026, 3, 7, tzinfo=UTC)) == -3

    def test_difference_in_days_truncates(self):
        start = datetime(2026, 3, 10, 0, 0, tzinfo=UTC)
        assert difference_in_days(start, datetime(2026, 3, 10, 23, 0, tzinfo=UTC)) == 0
        assert difference_in_days(start, datetime(2026, 3, 9, 1, 0, tzinfo=UTC)) == 0

    def test_is_in_range_inclusive(self):
        start = datetime(2026, 3, 10, tzinfo=UTC)
        end = datetime(2026, 3, 12, tzinfo=UTC)
        assert is_in_range(start, start, end)
        assert is_in_range(end, start, end)
        assert not is_in_range(datetime(2026, 3, 12, 0, 1, tzinfo=UTC), start, end)


class TestFireTimes:
    def test_parse_and_format(self):
        parsed = parse_fire_time("07:30")
        assert parsed == time(7, 30)
        assert format_fire_time(parsed) == "07:30"

    @pytest.mark.parametrize("raw", ["", "25:00", "7h30", "noon"])
    def test_parse_invalid(self, raw):
        with pytest.raises(ValueError, match="Invalid fire time"):
            parse_fire_time(raw)

    def test_combine_fire_date(self):
        day = datetime(2026, 3, 10, tzinfo=SAO_PAULO)
        fire_date = combine_fire_date(day, time(20, 0), SAO_PAULO)
        assert fire_date == datetime(2026, 3, 10, 20, 0, tzinfo=SAO_PAULO)
        assert fire_date.astimezone(UTC).hour == 23
