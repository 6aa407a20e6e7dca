"""
Date-range resolution for relative ride-search tokens.

Maps the closed token set (today, tomorrow, this_weekend, this_week,
next_week) to calendar-date bounds. Weeks run Monday to Sunday. All
functions take ``now`` explicitly so results are deterministic.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timedelta

from pydantic import BaseModel

from ridebot.models.query import DateRange

_SATURDAY = 5
_SUNDAY = 6


class DateWindow(BaseModel):
    """Inclusive calendar-date bounds."""

    start: date
    end: date


def _today(today: date) -> DateWindow:
    return DateWindow(start=today, end=today)


def _tomorrow(today: date) -> DateWindow:
    tomorrow = today + timedelta(days=1)
    return DateWindow(start=tomorrow, end=tomorrow)


def _this_weekend(today: date) -> DateWindow:
    """Saturday on or after today; on a Sunday this is next Saturday."""
    saturday = today + timedelta(days=(_SATURDAY - today.weekday()) % 7)
    return DateWindow(start=saturday, end=saturday + timedelta(days=1))


def _this_week(today: date) -> DateWindow:
    """Today through the upcoming Sunday."""
    sunday = today + timedelta(days=_SUNDAY - today.weekday())
    return DateWindow(start=today, end=sunday)


def _next_week(today: date) -> DateWindow:
    """Monday through Sunday of next week."""
    monday = today + timedelta(days=7 - today.weekday())
    return DateWindow(start=monday, end=monday + timedelta(days=6))


_RELATIVE_HANDLERS: dict[str, Callable[[date], DateWindow]] = {
    "today": _today,
    "tomorrow": _tomorrow,
    "this_weekend": _this_weekend,
    "this_week": _this_week,
    "next_week": _next_week,
}

_RELATIVE_PHRASES: dict[str, str] = {
    "today": "today",
    "tomorrow": "tomorrow",
    "this_weekend": "this weekend",
    "this_week": "this week",
    "next_week": "next week",
}


def _as_date(now: datetime | date) -> date:
    return now.date() if isinstance(now, datetime) else now


def resolve_relative_range(token: str, now: datetime | date) -> DateWindow:
    """
    Expand a relative token into calendar-date bounds.

    Args:
        token: One of today, tomorrow, this_weekend, this_week, next_week
        now: Anchor in the server's local timezone

    Returns:
        DateWindow with inclusive start and end dates

    Raises:
        ValueError: If the token is not in the closed set
    """
    handler = _RELATIVE_HANDLERS.get(token)
    if handler is None:
        raise ValueError(f"Unknown relative date token: {token!r}")
    return handler(_as_date(now))


def resolve_date_range(
    date_range: DateRange | None, now: datetime | date
) -> tuple[date | None, date | None]:
    """Turn a parsed date range into (date_from, date_to)."""
    if date_range is None:
        return None, None
    if date_range.relative is not None:
        window = resolve_relative_range(date_range.relative, now)
        return window.start, window.end
    return date_range.start, date_range.end


def _short(day: date) -> str:
    return f"{day:%a}, {day:%b} {day.day}"


def describe_date_range(date_range: DateRange | None) -> str:
    """Human phrase for a parsed date range, e.g. "this weekend"."""
    if date_range is None or date_range.is_empty:
        return ""
    if date_range.relative is not None:
        return _RELATIVE_PHRASES[date_range.relative]

    start, end = date_range.start, date_range.end
    if start and end:
        if start == end:
            return f"on {_short(start)}"
        return f"between {_short(start)} and {_short(end)}"
    if start:
        return f"from {_short(start)}"
    return f"until {_short(end)}" if end else ""
