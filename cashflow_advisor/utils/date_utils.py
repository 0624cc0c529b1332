"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timezone
from typing import List


def utc_now() -> datetime:
    """Current time, timezone-aware UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalize aware ones"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_start(day: date) -> date:
    """First day of the month containing `day`"""
    return date(day.year, day.month, 1)


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month length"""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, days_in_month(year, month)))


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def months_between(start: date, end: date) -> int:
    """Calendar-month difference, ignoring the day of month (end - start)"""
    return (end.year - start.year) * 12 + (end.month - start.month)


def days_left_in_month(today: date) -> int:
    """Days from today until the first day of next month"""
    return (add_months(month_start(today), 1) - today).days


def month_label(day: date) -> str:
    """MM/YYYY label used in projections and reports"""
    return day.strftime("%m/%Y")


def generate_month_range(start: date, count: int) -> List[date]:
    """Generate `count` consecutive month starts beginning at the month of `start`"""
    first = month_start(start)
    return [add_months(first, i) for i in range(count)]
