"""
Calendar-month helpers for the payroll period and member plans.

Pure functions, no I/O.  A payroll period is one calendar month, keyed by
``month_year`` in ``"yyyy-MM"`` form (e.g. ``"2025-03"``).
"""

import calendar
import re
from datetime import date, datetime, time

_MONTH_YEAR_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def month_year_of(moment: date | datetime) -> str:
    """Return the ``"yyyy-MM"`` key for the month containing ``moment``."""
    return f"{moment.year:04d}-{moment.month:02d}"


def is_valid_month_year(value: str) -> bool:
    return bool(_MONTH_YEAR_RE.match(value))


def month_date_bounds(moment: date | datetime) -> tuple[date, date]:
    """First and last calendar day of the month containing ``moment``."""
    last_day = calendar.monthrange(moment.year, moment.month)[1]
    return (
        date(moment.year, moment.month, 1),
        date(moment.year, moment.month, last_day),
    )


def month_datetime_bounds(moment: datetime) -> tuple[datetime, datetime]:
    """
    Inclusive ``[start, end]`` datetimes of the month containing ``moment``.

    Start is 00:00:00 on the first day, end is 23:59:59.999999 on the last
    day, both in ``moment``'s timezone.
    """
    first, last = month_date_bounds(moment)
    return (
        datetime.combine(first, time.min, tzinfo=moment.tzinfo),
        datetime.combine(last, time.max, tzinfo=moment.tzinfo),
    )


def add_one_month(moment: date) -> date:
    """
    Same day next month, clamped to the last day of a shorter month.

    Jan 31 -> Feb 28 (or 29), Dec 15 -> Jan 15.
    """
    year = moment.year + (1 if moment.month == 12 else 0)
    month = 1 if moment.month == 12 else moment.month + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
