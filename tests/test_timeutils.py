"""
Calendar-day and wall-clock helpers.
"""

from datetime import date, datetime

import pytest

from agenda.core.config import settings
from agenda.core.errors import ValidationError
from agenda.services.timeutils import (
    add_minutes,
    between,
    day_window,
    ensure_end_after_start,
    month_grid,
    month_window,
    normalize_date,
    normalize_time,
    on_day,
    parse_time,
    suggest_end_time,
    time_ranges_overlap,
    week_days,
    week_window,
)


class Item:
    def __init__(self, day):
        self.date = day


class TestParsing:
    def test_parse_time(self):
        assert parse_time("00:00") == 0
        assert parse_time("09:15") == 555
        assert parse_time("23:59") == 1439

    def test_seconds_are_tolerated(self):
        assert normalize_time("09:15:00") == "09:15"
        assert normalize_time("9:05") == "09:05"

    @pytest.mark.parametrize("bad", ["24:00", "12:60", "noon", "", "9"])
    def test_invalid_time(self, bad):
        with pytest.raises(ValidationError):
            parse_time(bad)

    def test_normalize_time_empty(self):
        assert normalize_time(None) is None
        assert normalize_time("  ") is None

    def test_normalize_date_keeps_calendar_day(self):
        assert normalize_date("2024-01-10T23:30:00-03:00") == "2024-01-10"
        assert normalize_date(date(2024, 1, 10)) == "2024-01-10"
        assert normalize_date(datetime(2024, 1, 10, 23, 59)) == "2024-01-10"

    def test_normalize_date_invalid(self):
        with pytest.raises(ValidationError):
            normalize_date("10/01/2024")


class TestArithmetic:
    def test_default_end_time_is_one_hour(self):
        assert suggest_end_time("09:30") == "10:30"

    def test_default_duration_comes_from_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "DEFAULT_DURATION_MINUTES", 45)
        assert suggest_end_time("09:30") == "10:15"
        assert suggest_end_time("09:30", 90) == "11:00"

    def test_end_must_follow_start(self):
        ensure_end_after_start("09:00", "09:30")
        ensure_end_after_start("09:00", None)
        with pytest.raises(ValidationError):
            ensure_end_after_start("23:00", "01:00")

    def test_duration_wraps_past_midnight(self):
        assert add_minutes("23:30", 60) == "00:30"


class TestOverlap:
    def test_overlapping(self):
        assert time_ranges_overlap("09:10", "09:30", "09:00", "09:15")

    def test_touching_endpoints_do_not_overlap(self):
        assert not time_ranges_overlap("09:15", "09:30", "09:00", "09:15")
        assert not time_ranges_overlap("08:45", "09:00", "09:00", "09:15")

    def test_containment(self):
        assert time_ranges_overlap("09:00", "12:00", "10:00", "10:30")

    def test_open_end_is_a_point(self):
        assert time_ranges_overlap("09:05", None, "09:00", "09:15")
        assert not time_ranges_overlap("09:15", None, "09:00", "09:15")
        assert time_ranges_overlap("09:00", None, "09:00", None)


class TestWindows:
    def test_weeks_start_on_sunday(self):
        # 2024-01-10 is a Wednesday
        days = week_days("2024-01-10")
        assert days[0] == "2024-01-07"
        assert days[-1] == "2024-01-13"
        assert week_window("2024-01-07") == ("2024-01-07", "2024-01-13")

    def test_month_grid_has_42_cells(self):
        cells = month_grid("2024-02-15")
        assert len(cells) == 42
        # Feb 1st 2024 is a Thursday: Sun..Wed come from January
        assert cells[0] == ("2024-01-28", "prev")
        assert cells[4] == ("2024-02-01", "current")
        assert ("2024-02-29", "current") in cells
        assert cells[-1][1] == "next"

    def test_month_window(self):
        assert month_window("2024-02-15") == ("2024-02-01", "2024-02-29")
        assert day_window("2024-02-15") == ("2024-02-15", "2024-02-15")

    def test_on_day_and_between(self):
        items = [Item("2024-01-09"), Item("2024-01-10"), Item("2024-01-31"), Item("2024-02-01")]
        assert [i.date for i in on_day(items, "2024-01-10")] == ["2024-01-10"]
        inside = between(items, month_window("2024-01-20"))
        assert [i.date for i in inside] == ["2024-01-09", "2024-01-10", "2024-01-31"]
