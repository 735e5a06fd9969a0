"""Local calendar-day bucketing for point records.

All boundaries are computed in the timezone of the ``now`` value handed in by
the caller. Naive datetimes are treated as local wall-clock time; aware record
dates are converted into ``now``'s zone before comparison.
"""

from datetime import datetime, timedelta
from typing import Iterable

from .models import PointRecord, PointType


def _align(value: datetime, now: datetime) -> datetime:
    if value.tzinfo is None and now.tzinfo is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=now.tzinfo)
    if now.tzinfo is None:
        return value.astimezone().replace(tzinfo=None)
    return value.astimezone(now.tzinfo)


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def yesterday_window(now: datetime) -> tuple[datetime, datetime]:
    """Return ``[yesterday 00:00, today 00:00)``."""
    today_start = start_of_day(now)
    return start_of_day(today_start - timedelta(days=1)), today_start


def is_same_day(value: datetime, now: datetime) -> bool:
    return _align(value, now).date() == now.date()


def in_window(value: datetime, start: datetime, end: datetime, now: datetime) -> bool:
    aligned = _align(value, now)
    return start <= aligned < end


def earned_today(history: Iterable[PointRecord], now: datetime, *, include_bonus: bool = True) -> list[PointRecord]:
    today_start = start_of_day(now)
    return [
        record for record in history
        if record.type == PointType.EARNED
        and today_start <= _align(record.date, now) <= now
        and (include_bonus or not record.is_streak_bonus)
    ]


def active_in_window(history: Iterable[PointRecord], start: datetime, end: datetime, now: datetime) -> bool:
    return any(in_window(record.date, start, end, now) for record in history)


def calculate_daily_points(history: Iterable[PointRecord], now: datetime) -> int:
    # Sum over the whole local day, not just up to ``now``.
    return sum(
        record.amount for record in history
        if record.type == PointType.EARNED and is_same_day(record.date, now)
    )
