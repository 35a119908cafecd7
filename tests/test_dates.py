"""Tests for familyhub.core.dates."""

from datetime import date, datetime

from familyhub.core.dates import (
    format_de_date,
    format_de_short,
    format_time,
    iso_week,
    month_grid_start,
    next_full_hour,
    parse_iso_date,
    time_of,
    week_start,
    weekday_abbr,
)


class TestParseIsoDate:
    def test_plain_date(self):
        assert parse_iso_date("2025-06-11") == date(2025, 6, 11)

    def test_timestamp_uses_date_part(self):
        assert parse_iso_date("2025-06-11T23:30:00+02:00") == date(2025, 6, 11)
        assert parse_iso_date("2025-06-11 08:00") == date(2025, 6, 11)

    def test_date_objects(self):
        assert parse_iso_date(date(2025, 1, 2)) == date(2025, 1, 2)
        assert parse_iso_date(datetime(2025, 1, 2, 10, 0)) == date(2025, 1, 2)

    def test_invalid(self):
        assert parse_iso_date(None) is None
        assert parse_iso_date("") is None
        assert parse_iso_date("2025-02-30") is None
        assert parse_iso_date("tomorrow") is None


class TestTimes:
    def test_time_of(self):
        assert time_of("2025-06-11T09:05:00") == "09:05"
        assert time_of("2025-06-11") is None
        assert time_of(None) is None

    def test_format_time(self):
        assert format_time("14:30:00") == "14:30"
        assert format_time("14:30") == "14:30"
        assert format_time(None) == ""

    def test_next_full_hour(self):
        assert next_full_hour(datetime(2025, 6, 11, 9, 41)) == "10:00"
        assert next_full_hour(datetime(2025, 6, 11, 23, 5)) == "00:00"


class TestWeeks:
    def test_week_start_is_monday(self):
        assert week_start(date(2025, 6, 15)) == date(2025, 6, 9)
        assert week_start(date(2025, 6, 9)) == date(2025, 6, 9)

    def test_month_grid_start(self):
        assert month_grid_start(date(2025, 6, 20)) == date(2025, 5, 26)

    def test_iso_week(self):
        assert iso_week(date(2025, 1, 1)) == 1


class TestGermanFormatting:
    def test_formats(self):
        assert format_de_date(date(2025, 6, 1)) == "01.06.2025"
        assert format_de_short(date(2025, 6, 1)) == "01.06."
        assert weekday_abbr(date(2025, 6, 9)) == "Mo"
        assert weekday_abbr(date(2025, 6, 15)) == "So"
