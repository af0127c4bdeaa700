"""
utils/dates.py
--------------
Calendar helpers shared by the billing scheduler.
Month arithmetic goes through dateutil's relativedelta so that
month ends are handled the same way everywhere.
"""

import calendar
from datetime import date, datetime, tzinfo
from typing import Optional, Union

from dateutil import tz
from dateutil.relativedelta import relativedelta

from config import BILLING_TIMEZONE


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the given month (28-31)."""
    return calendar.monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> date:
    """
    Build a date, pulling `day` down to the month's last day when needed.

    Example:
        clamp_day(2023, 2, 31) -> date(2023, 2, 28)
    """
    return date(year, month, min(day, last_day_of_month(year, month)))


def first_of_month(d: date) -> date:
    return d.replace(day=1)


def add_months(d: date, months: int) -> date:
    """Shift a date by whole months; the day is clamped at month end."""
    return d + relativedelta(months=months)


def month_index(d: date) -> int:
    """Absolute month counter, so that month differences are plain subtraction."""
    return d.year * 12 + (d.month - 1)


def resolve_tz(zone: Union[str, tzinfo, None] = None) -> tzinfo:
    """
    Resolve a time zone name or object, defaulting to BILLING_TIMEZONE.

    Raises:
        ValueError: If the zone name is unknown.
    """
    if zone is None:
        zone = BILLING_TIMEZONE
    if isinstance(zone, tzinfo):
        return zone
    resolved = tz.gettz(zone)
    if resolved is None:
        raise ValueError(f"Unknown time zone: {zone!r}")
    return resolved


def to_local_date(value: Union[date, datetime], zone: Union[str, tzinfo, None] = None) -> date:
    """
    Reduce a reference instant to the billing calendar date.

    - `date` values are returned unchanged.
    - Naive datetimes are taken as already being in billing local time.
    - Aware datetimes are converted to `zone` (default BILLING_TIMEZONE).
    """
    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            return value.date()
        return value.astimezone(resolve_tz(zone)).date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def parse_date(value) -> Optional[date]:
    """Accept a date, datetime or ISO string (None passes through)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip())
    raise TypeError(f"Cannot interpret {value!r} as a date")
