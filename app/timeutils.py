"""
Calendar and clock helpers shared by every slot query and command.

Clock times travel as zero-padded 24h "HH:MM" strings (that is how they are
stored), calendar days as ``datetime.date`` or "YYYY-MM-DD" strings.
Weekdays follow the Monday=0 ... Sunday=6 convention used by
``offer_availability.weekday``.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from datetime import date, timedelta

from app.settings import MAX_RANGE_DAYS

_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_TIME_RE = re.compile(r"[0-9]{2}:[0-9]{2}")


def time_to_minutes(value: str) -> int:
    """Minutes since midnight for a trusted "HH:MM" string."""
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_time(value: str) -> int | None:
    """Like time_to_minutes, but returns None for anything that is not a real clock time."""
    if not isinstance(value, str) or not _TIME_RE.fullmatch(value):
        return None
    hours, minutes = (int(part) for part in value.split(":"))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return hours * 60 + minutes


def is_valid_time(value: str) -> bool:
    return parse_time(value) is not None


def parse_date(value: str) -> date | None:
    """
    Parse "YYYY-MM-DD" strictly.

    The string must have the exact shape and must name a real calendar day,
    so "2024-02-30" and "2024-13-01" both come back as None.
    """
    if not isinstance(value, str) or not _DATE_RE.fullmatch(value):
        return None
    year, month, day = (int(part) for part in value.split("-"))
    try:
        parsed = date(year, month, day)
    except ValueError:
        return None
    if parsed.isoformat() != value:
        return None
    return parsed


def is_valid_date(value: str) -> bool:
    return parse_date(value) is not None


def as_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    return parsed


def weekday_of(value: date | str) -> int:
    """Monday=0 ... Sunday=6."""
    return as_date(value).weekday()


def date_range(start: date, end: date) -> Iterator[date]:
    """Every day from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def check_range(start: date, end: date, max_days: int = MAX_RANGE_DAYS) -> None:
    """Raise ValueError for a reversed range or one spanning more than max_days."""
    if start > end:
        raise ValueError("start date must be before or equal to end date")
    if (end - start).days > max_days:
        raise ValueError(f"Date range too large. Maximum {max_days} days allowed.")
