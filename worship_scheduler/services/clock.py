"""UTC/local conversions. Persisted datetimes are naive UTC; recurrence math runs on local wall-clock time."""
from datetime import date, datetime, time, timezone
from typing import Optional

import pytz


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware or naive-UTC datetime to naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def utc_to_local(value: datetime, tz_name: str) -> datetime:
    """Naive UTC -> naive wall-clock time in tz_name."""
    tz = pytz.timezone(tz_name)
    return pytz.utc.localize(value).astimezone(tz).replace(tzinfo=None)


def local_to_utc(value: datetime, tz_name: str) -> datetime:
    """Naive wall-clock time in tz_name -> naive UTC. Ambiguous DST times resolve to standard time."""
    tz = pytz.timezone(tz_name)
    return tz.localize(value, is_dst=False).astimezone(pytz.utc).replace(tzinfo=None)


def combine_local(day: date, at: Optional[time], tz_name: str) -> Optional[datetime]:
    """Build a naive UTC datetime from a local date and time of day."""
    if at is None:
        return None
    return local_to_utc(datetime.combine(day, at), tz_name)
