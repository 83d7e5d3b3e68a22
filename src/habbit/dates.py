"""Calendar-day helpers. Pure functions over YYYY-MM-DD strings.

All comparisons are civil-date comparisons: no time component, no timezone.
Weekdays use the Sunday = 0 .. Saturday = 6 scale throughout habbit.
"""

from __future__ import annotations

import re
from datetime import date, timedelta

from habbit.errors import InvalidDateFormat

DATE_FORMAT = "%Y-%m-%d"
MONDAY = 1
SUNDAY = 0

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(d: str) -> date:
    """Parse a YYYY-MM-DD string to a date object.

    Raises InvalidDateFormat for anything else, including impossible days
    such as 2026-02-30.
    """
    if not isinstance(d, str) or not _DATE_RE.match(d):
        raise InvalidDateFormat(d)
    try:
        return date.fromisoformat(d)
    except ValueError:
        raise InvalidDateFormat(d) from None


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def today() -> str:
    """Today's local date as YYYY-MM-DD."""
    return format_date(date.today())


def weekday_index(d: date) -> int:
    """0 = Sunday .. 6 = Saturday for a date object."""
    return d.isoweekday() % 7


def day_of_week(d: str) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return weekday_index(parse_date(d))


def add_days(d: str, n: int) -> str:
    return format_date(parse_date(d) + timedelta(days=n))


def days_between(a: str, b: str) -> int:
    """Absolute number of calendar days between two dates."""
    return abs((parse_date(b) - parse_date(a)).days)


def is_same_or_before(a: str, b: str) -> bool:
    return parse_date(a) <= parse_date(b)


def _check_first_day(first_day_of_week: int) -> None:
    if not 0 <= first_day_of_week <= 6:
        raise ValueError(f"first_day_of_week must be 0-6, got {first_day_of_week}")


def week_start(d: str, first_day_of_week: int = MONDAY) -> str:
    """First day of the week containing d."""
    _check_first_day(first_day_of_week)
    offset = (day_of_week(d) - first_day_of_week) % 7
    return add_days(d, -offset)


def week_end(d: str, first_day_of_week: int = MONDAY) -> str:
    """Last day of the week containing d."""
    return add_days(week_start(d, first_day_of_week), 6)


def week_days(d: str, first_day_of_week: int = MONDAY) -> list[str]:
    """The seven dates of the week containing d, in order."""
    start = week_start(d, first_day_of_week)
    return [add_days(start, i) for i in range(7)]


def month_start(d: str) -> str:
    return format_date(parse_date(d).replace(day=1))


def month_end(d: str) -> str:
    first = parse_date(d).replace(day=1)
    # Day 28 + 4 always lands in the following month
    next_month = (first.replace(day=28) + timedelta(days=4)).replace(day=1)
    return format_date(next_month - timedelta(days=1))


def past_days(count: int, reference: str | None = None) -> list[str]:
    """The last `count` dates ending at reference (default today), oldest first."""
    end = reference or today()
    return [add_days(end, -i) for i in range(count - 1, -1, -1)]
