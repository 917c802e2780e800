"""
Calendar helpers for the reminder engine

Every notion of "today" on the server goes through this module so that
classification, advancement and the delivery ledger agree on one zone
(``settings.reminders.timezone``).
"""
from __future__ import annotations

import datetime as dt
from functools import lru_cache
from typing import Optional, Union
from zoneinfo import ZoneInfo

from src.core.config import settings

DateLike = Union[dt.date, dt.datetime]


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def reminder_zone() -> ZoneInfo:
    """Return the authoritative zone for calendar comparisons."""

    return _zone(settings.reminders.timezone)


def as_utc(value: dt.datetime) -> dt.datetime:
    """Normalise a datetime to aware UTC; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def local_now(now: Optional[dt.datetime] = None) -> dt.datetime:
    if now is None:
        now = dt.datetime.now(dt.timezone.utc)
    return as_utc(now).astimezone(reminder_zone())


def local_today(now: Optional[dt.datetime] = None) -> dt.date:
    """Calendar date of ``now`` (default: the current instant) in the reminder zone."""

    return local_now(now).date()


def start_of_day(day: dt.date) -> dt.datetime:
    """Midnight of ``day`` in the reminder zone as an aware datetime."""

    return dt.datetime.combine(day, dt.time.min, tzinfo=reminder_zone())


def to_local_date(value: DateLike) -> dt.date:
    """Truncate a timestamp to its calendar date in the reminder zone."""

    if isinstance(value, dt.datetime):
        return as_utc(value).astimezone(reminder_zone()).date()
    return value


def to_local_datetime(value: DateLike) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return as_utc(value).astimezone(reminder_zone())
    return start_of_day(value)
