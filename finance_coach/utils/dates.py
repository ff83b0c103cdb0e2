# finance_coach/utils/dates.py
from __future__ import annotations

import calendar
import datetime as dt
import re
from typing import NamedTuple, Optional

from finance_coach.errors import InvalidRequest

_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class DateRange(NamedTuple):
    """Half-open calendar range ``[start, end)``."""

    start: dt.date
    end: dt.date

    def contains(self, d: dt.date) -> bool:
        return self.start <= d < self.end


def _parse_month(month: str) -> tuple[int, int]:
    """Parse YYYY-MM into (year, month). Raises InvalidRequest on bad input."""
    if not isinstance(month, str) or not _MONTH_RE.match(month):
        raise InvalidRequest("month must be YYYY-MM", code="invalid_month")
    y, m = int(month[:4]), int(month[5:])
    if not (1 <= m <= 12):
        raise InvalidRequest("month must be between 01 and 12", code="invalid_month")
    return y, m


def _next_month_start(y: int, m: int) -> dt.date:
    return dt.date(y + (1 if m == 12 else 0), (1 if m == 12 else m + 1), 1)


def parse_month(month: str) -> DateRange:
    y, m = _parse_month(month)
    return DateRange(dt.date(y, m, 1), _next_month_start(y, m))


def prev_month(month: str) -> str:
    y, m = _parse_month(month)
    d = dt.date(y, m, 1)
    prev = (d - dt.timedelta(days=1)).replace(day=1)
    return prev.strftime("%Y-%m")


def previous_month_range(month: str) -> DateRange:
    return parse_month(prev_month(month))


def days_in_month(month: str) -> int:
    y, m = _parse_month(month)
    return calendar.monthrange(y, m)[1]


def day_of_month(d: dt.date) -> int:
    return d.day


def is_weekend(d: dt.date) -> bool:
    # Saturday=5, Sunday=6
    return d.weekday() >= 5


def month_key(d: dt.date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def months_between(start: dt.date, end: dt.date) -> int:
    """Whole calendar months from start to end, ignoring the day of month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def add_days(d: dt.date, days: float) -> dt.date:
    """Add a (possibly fractional) day count, truncating to whole days."""
    return d + dt.timedelta(days=int(days))


def parse_iso_date(value: str) -> dt.date:
    if not isinstance(value, str) or not _DATE_RE.match(value.strip()):
        raise InvalidRequest("date must be YYYY-MM-DD", code="invalid_date")
    try:
        return dt.date.fromisoformat(value.strip())
    except ValueError:
        raise InvalidRequest(f"not a calendar date: {value}", code="invalid_date")


def latest_month(dates) -> Optional[str]:
    """Most recent YYYY-MM across an iterable of dates, or None when empty."""
    months = {month_key(d) for d in dates}
    return max(months) if months else None
