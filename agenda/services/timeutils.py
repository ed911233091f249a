# agenda/services/timeutils.py
"""
Plain calendar-day and wall-clock arithmetic.

Dates are `YYYY-MM-DD` strings and times are `HH:MM` strings. Nothing
here goes through a timezone: a stored day is the day the user picked.
"""
from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, TypeVar

from agenda.core.config import settings
from agenda.core.errors import ValidationError

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")

T = TypeVar("T")


def parse_time(value: str) -> int:
    """`HH:MM` (seconds tolerated) -> minutes since midnight."""
    match = _TIME_RE.match((value or "").strip())
    if not match:
        raise ValidationError(f"Invalid time: {value!r}", field="time")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValidationError(f"Invalid time: {value!r}", field="time")
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: Optional[str]) -> Optional[str]:
    """Canonical `HH:MM`, or None for empty input."""
    if value is None or not str(value).strip():
        return None
    return format_minutes(parse_time(value))


def normalize_date(value: str | date | datetime) -> str:
    """Keep only the calendar day, whatever shape it arrived in."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    raw = (value or "").strip().split("T")[0]
    try:
        return date.fromisoformat(raw).isoformat()
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}", field="date")


def to_date(value: str) -> date:
    return date.fromisoformat(normalize_date(value))


def add_minutes(time_value: str, minutes: int) -> str:
    """Wraps past midnight, like the duration chips in the booking form."""
    return format_minutes(parse_time(time_value) + minutes)


def suggest_end_time(start_time: str, duration_minutes: Optional[int] = None) -> str:
    if duration_minutes is None:
        duration_minutes = settings.DEFAULT_DURATION_MINUTES
    return add_minutes(start_time, duration_minutes)


def ensure_end_after_start(start_time: Optional[str], end_time: Optional[str]) -> None:
    """Both given and end not after start -> ValidationError. Overnight ranges are rejected."""
    if start_time and end_time and parse_time(end_time) <= parse_time(start_time):
        raise ValidationError("End time must be after start time", field="end_time")


def intervals_overlap(start_a: int, end_a: Optional[int], start_b: int, end_b: Optional[int]) -> bool:
    """
    Half-open overlap test for [start_a, end_a) and [start_b, end_b).

    An open end is a point at its start; two identical points overlap,
    a point touching another interval's end does not.
    """
    if end_a is None or end_a <= start_a:
        end_a = start_a
    if end_b is None or end_b <= start_b:
        end_b = start_b
    if start_a == end_a and start_b == end_b:
        return start_a == start_b
    if start_a == end_a:
        return start_b <= start_a < end_b
    if start_b == end_b:
        return start_a <= start_b < end_a
    return start_a < end_b and start_b < end_a


def time_ranges_overlap(start_a: str, end_a: Optional[str], start_b: str, end_b: Optional[str]) -> bool:
    return intervals_overlap(
        parse_time(start_a),
        parse_time(end_a) if end_a else None,
        parse_time(start_b),
        parse_time(end_b) if end_b else None,
    )


# ---------- Calendar windows ----------

def week_start(day: str | date) -> date:
    """Sunday on or before `day`."""
    d = to_date(day) if isinstance(day, str) else day
    # weekday(): Mon=0 .. Sun=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def week_days(day: str | date) -> list[str]:
    first = week_start(day)
    return [(first + timedelta(days=i)).isoformat() for i in range(7)]


def month_grid(day: str | date) -> list[tuple[str, str]]:
    """
    42 cells for a Sunday-first month view: (date, 'prev'|'current'|'next').
    """
    d = to_date(day) if isinstance(day, str) else day
    first = d.replace(day=1)
    grid_start = week_start(first)

    cells = []
    for i in range(42):
        cell = grid_start + timedelta(days=i)
        if cell < first:
            tag = "prev"
        elif cell.month == d.month and cell.year == d.year:
            tag = "current"
        else:
            tag = "next"
        cells.append((cell.isoformat(), tag))
    return cells


def day_window(day: str | date) -> tuple[str, str]:
    d = normalize_date(day)
    return d, d


def week_window(day: str | date) -> tuple[str, str]:
    days = week_days(day)
    return days[0], days[-1]


def month_window(day: str | date) -> tuple[str, str]:
    d = to_date(day) if isinstance(day, str) else day
    _, days_in_month = calendar.monthrange(d.year, d.month)
    return d.replace(day=1).isoformat(), d.replace(day=days_in_month).isoformat()


def in_window(day: str, window: tuple[str, str]) -> bool:
    # ISO dates sort lexically
    return window[0] <= day <= window[1]


def on_day(items: Iterable[T], day: str | date, *, attr: str = "date") -> list[T]:
    target = normalize_date(day)
    return [item for item in items if getattr(item, attr) == target]


def between(items: Iterable[T], window: tuple[str, str], *, attr: str = "date") -> list[T]:
    return [item for item in items if in_window(getattr(item, attr), window)]
