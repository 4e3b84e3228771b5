# fundfolio/utils/date_utils.py
"""
Date helpers shared by the valuation services.

Usage:
    from fundfolio.utils.date_utils import generate_dates

    dates = generate_dates(start_date, end_date, "weekly")
"""

import calendar
from datetime import date, timedelta

from fundfolio.services.constants import HISTORY_INTERVALS, WEEKLY_SAMPLE_WEEKDAY
from fundfolio.services.exceptions import InvalidIntervalError


def generate_dates(start_date: date, end_date: date, interval: str = "daily") -> list[date]:
    """
    Sample dates between start_date and end_date (inclusive).

    Intervals:
        daily   - every calendar day
        weekly  - every Friday, plus end_date
        monthly - every month end, plus end_date

    end_date is always the last element so a series finishes on the
    requested day. An empty list is returned when start_date > end_date.

    Raises:
        InvalidIntervalError: If interval is not daily, weekly or monthly

    Example:
        >>> generate_dates(date(2024, 1, 1), date(2024, 1, 10), "weekly")
        [date(2024, 1, 5), date(2024, 1, 10)]
    """
    if interval not in HISTORY_INTERVALS:
        raise InvalidIntervalError(interval)

    if start_date > end_date:
        return []

    if interval == "daily":
        return daily_dates(start_date, end_date)
    if interval == "weekly":
        return weekly_dates(start_date, end_date)
    return monthly_dates(start_date, end_date)


def daily_dates(start_date: date, end_date: date) -> list[date]:
    days = (end_date - start_date).days
    return [start_date + timedelta(days=offset) for offset in range(days + 1)]


def weekly_dates(start_date: date, end_date: date) -> list[date]:
    dates = []
    current = start_date + timedelta(days=(WEEKLY_SAMPLE_WEEKDAY - start_date.weekday()) % 7)

    while current <= end_date:
        dates.append(current)
        current += timedelta(days=7)

    if not dates or dates[-1] != end_date:
        dates.append(end_date)
    return dates


def monthly_dates(start_date: date, end_date: date) -> list[date]:
    dates = []
    current = month_end(start_date)

    while current <= end_date:
        dates.append(current)
        current = month_end(current + timedelta(days=1))

    if not dates or dates[-1] != end_date:
        dates.append(end_date)
    return dates


def month_end(d: date) -> date:
    """Last calendar day of d's month."""
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])

