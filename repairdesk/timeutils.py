"""Naive-UTC time helpers.

All timestamp columns store naive UTC so SQLite and PostgreSQL behave the same.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_month(moment: datetime) -> datetime:
    return start_of_day(moment).replace(day=1)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift to the first day of the month `months` away (negative goes back)."""
    month_index = moment.year * 12 + (moment.month - 1) + months
    return moment.replace(year=month_index // 12, month=month_index % 12 + 1, day=1)


def month_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m")
