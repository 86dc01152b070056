"""Recurrence patterns and the date sequence generator.

A pattern is a tagged union over the four recurrence kinds the scheduler
supports (weekly, biweekly, monthly, custom). Patterns are immutable and are
compared by their structural signature, never by their serialized text, so
field order or whitespace in stored JSON cannot make an unchanged pattern look
changed.

``generate_dates`` is a pure function over naive wall-clock datetimes: callers
convert to and from the series' local timezone around it.
"""
from __future__ import annotations

import enum
import json
import math
from datetime import date, datetime, timedelta
from itertools import count
from typing import Annotated, Any, Iterator, Literal, Optional, Union

from dateutil.relativedelta import relativedelta, weekday as rd_weekday
from fastapi import HTTPException, status
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from worship_scheduler.constants import DAY_NAMES, MAX_GENERATED_OCCURRENCES


class MonthlyType(str, enum.Enum):
    date = "date"
    weekday_of_month = "weekdayOfMonth"


class _PatternBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    interval: int = Field(1, ge=1)
    max_occurrences: Optional[int] = Field(None, ge=1, alias="maxOccurrences")
    end_date: Optional[date] = Field(None, alias="endDate")

    @field_validator("end_date", mode="before")
    @classmethod
    def _strip_time(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value

    def signature(self) -> tuple:
        """Fields that decide which dates a pattern produces. endDate is deliberately excluded."""
        return (self.type, self.interval, self.max_occurrences)


class _WeekdayPatternBase(_PatternBase):
    weekdays: tuple[int, ...] = ()  # 0 = Sunday

    @field_validator("weekdays", mode="before")
    @classmethod
    def _normalize_weekdays(cls, value: Any) -> Any:
        if value is None:
            return ()
        return tuple(sorted(set(value)))

    @field_validator("weekdays")
    @classmethod
    def _check_weekday_range(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        for day in value:
            if not 0 <= day <= 6:
                raise ValueError(f"weekday {day} out of range 0..6")
        return value

    def signature(self) -> tuple:
        return super().signature() + (self.weekdays,)


class WeeklyPattern(_WeekdayPatternBase):
    type: Literal["weekly"] = "weekly"


class BiweeklyPattern(_PatternBase):
    type: Literal["biweekly"] = "biweekly"


class MonthlyPattern(_PatternBase):
    type: Literal["monthly"] = "monthly"
    monthly_type: MonthlyType = Field(MonthlyType.date, alias="monthlyType")
    week_of_month: Optional[Union[Literal["last"], int]] = Field(None, alias="weekOfMonth")

    @field_validator("monthly_type", mode="before")
    @classmethod
    def _legacy_monthly_type(cls, value: Any) -> Any:
        # Older rows stored "weekday" for the nth-weekday rule
        return MonthlyType.weekday_of_month if value == "weekday" else value

    @field_validator("week_of_month")
    @classmethod
    def _check_week_of_month(cls, value: Any) -> Any:
        if isinstance(value, int) and not 1 <= value <= 5:
            raise ValueError("weekOfMonth must be 1..5 or 'last'")
        return value

    def signature(self) -> tuple:
        return super().signature() + (self.monthly_type, self.week_of_month)


class CustomPattern(_WeekdayPatternBase):
    type: Literal["custom"] = "custom"


RecurrencePattern = Annotated[
    Union[WeeklyPattern, BiweeklyPattern, MonthlyPattern, CustomPattern],
    Field(discriminator="type"),
]

_pattern_adapter: TypeAdapter = TypeAdapter(RecurrencePattern)

_LEGACY_PATTERNS = {
    "weekly": {"type": "weekly"},
    "biweekly": {"type": "biweekly"},
    "monthly": {"type": "monthly", "monthlyType": "date"},
}


def parse_recurrence_pattern(raw: Union[str, dict, _PatternBase]) -> RecurrencePattern:
    """Parse a stored or submitted pattern (JSON text, dict, or legacy bare string).

    Raises ValueError (pydantic's ValidationError is one) on anything unrecognized.
    """
    if isinstance(raw, _PatternBase):
        return raw
    data: Any = raw
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            data = raw
        if isinstance(data, str):
            legacy = _LEGACY_PATTERNS.get(data.strip().lower())
            if legacy is None:
                raise ValueError(f"Unrecognized recurrence pattern: {raw!r}")
            data = legacy
    return _pattern_adapter.validate_python(data)


def parse_recurrence_pattern_or_400(raw: Union[str, dict, _PatternBase]) -> RecurrencePattern:
    """Same as parse_recurrence_pattern, reported as an HTTP 400 for request handlers."""
    try:
        return parse_recurrence_pattern(raw)
    except (ValidationError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid recurrence pattern: {exc}",
        ) from exc


def serialize_pattern(pattern: RecurrencePattern) -> str:
    return pattern.model_dump_json(by_alias=True, exclude_none=True)


def pattern_changed(old: Optional[RecurrencePattern], new: RecurrencePattern) -> bool:
    if old is None:
        return True
    return old.signature() != new.signature()


def resolve_pattern_for_anchor(pattern: RecurrencePattern, anchor: datetime) -> RecurrencePattern:
    """Pin anchor-derived defaults so later re-anchoring cannot drift the series."""
    if (
        isinstance(pattern, MonthlyPattern)
        and pattern.monthly_type == MonthlyType.weekday_of_month
        and pattern.week_of_month is None
    ):
        return pattern.model_copy(update={"week_of_month": math.ceil(anchor.day / 7)})
    return pattern


def describe_pattern(pattern: RecurrencePattern, anchor: Optional[datetime] = None) -> str:
    """Human-readable summary, e.g. 'Monthly on the 2nd Tuesday'."""
    if isinstance(pattern, WeeklyPattern):
        if len(pattern.weekdays) > 1:
            return "Weekly on " + ", ".join(DAY_NAMES[d][:3] for d in pattern.weekdays)
        return "Weekly"
    if isinstance(pattern, BiweeklyPattern):
        return "Every 2 weeks"
    if isinstance(pattern, MonthlyPattern):
        if pattern.monthly_type == MonthlyType.weekday_of_month:
            ordinal = "last" if pattern.week_of_month == "last" else _ordinal(pattern.week_of_month or 1)
            day_name = DAY_NAMES[_sunday_index(anchor)] if anchor else "weekday"
            return f"Monthly on the {ordinal} {day_name}"
        return "Monthly"
    if isinstance(pattern, CustomPattern):
        label = f"Every {pattern.interval} week{'s' if pattern.interval > 1 else ''}"
        if pattern.weekdays:
            label += " on " + ", ".join(DAY_NAMES[d][:3] for d in pattern.weekdays)
        return label
    raise TypeError(f"Unsupported recurrence pattern: {pattern!r}")


def generate_dates(
    pattern: RecurrencePattern,
    anchor: datetime,
    horizon_end: date,
    recurrence_end: Optional[date] = None,
    after: Optional[datetime] = None,
) -> list[datetime]:
    """Return the occurrences after ``anchor``, in order.

    Generation stops at whichever binds first: ``horizon_end``, ``recurrence_end``
    or the pattern's own end date (all inclusive, by calendar date), the
    pattern's maxOccurrences, or MAX_GENERATED_OCCURRENCES. The anchor itself is
    never returned.

    ``after`` resumes a capped sequence: only occurrences strictly later than it
    are returned, while offsets and maxOccurrences are still counted from
    ``anchor``.
    """
    last_day = _as_date(horizon_end)
    for limit in (recurrence_end, pattern.end_date):
        if limit is not None:
            last_day = min(last_day, _as_date(limit))

    dates: list[datetime] = []
    for index, occurrence in enumerate(_occurrences(pattern, anchor), start=1):
        if occurrence.date() > last_day or len(dates) >= MAX_GENERATED_OCCURRENCES:
            break
        if pattern.max_occurrences is not None and index > pattern.max_occurrences:
            break
        if after is not None and occurrence <= after:
            continue
        dates.append(occurrence)
    return dates


def generate_all_dates(
    pattern: RecurrencePattern,
    anchor: datetime,
    horizon_end: date,
    recurrence_end: Optional[date] = None,
    after: Optional[datetime] = None,
) -> list[datetime]:
    """Like ``generate_dates``, re-invoked past each full batch until a limit other than the cap binds."""
    dates: list[datetime] = []
    while True:
        batch = generate_dates(pattern, anchor, horizon_end, recurrence_end, after=after)
        dates.extend(batch)
        if len(batch) < MAX_GENERATED_OCCURRENCES:
            return dates
        after = batch[-1]


def _occurrences(pattern: RecurrencePattern, anchor: datetime) -> Iterator[datetime]:
    if isinstance(pattern, WeeklyPattern):
        if pattern.weekdays:
            return _weekday_occurrences(anchor, pattern.weekdays, week_step=1)
        return _fixed_step_occurrences(anchor, timedelta(weeks=1))
    if isinstance(pattern, BiweeklyPattern):
        return _fixed_step_occurrences(anchor, timedelta(weeks=2))
    if isinstance(pattern, MonthlyPattern):
        if pattern.monthly_type == MonthlyType.weekday_of_month:
            week = pattern.week_of_month or math.ceil(anchor.day / 7)
            return _nth_weekday_occurrences(anchor, week)
        return _day_of_month_occurrences(anchor)
    if isinstance(pattern, CustomPattern):
        if pattern.weekdays:
            return _weekday_occurrences(anchor, pattern.weekdays, week_step=pattern.interval)
        return _fixed_step_occurrences(anchor, timedelta(weeks=pattern.interval))
    raise TypeError(f"Unsupported recurrence pattern: {pattern!r}")


def _fixed_step_occurrences(anchor: datetime, step: timedelta) -> Iterator[datetime]:
    for k in count(1):
        yield anchor + step * k


def _day_of_month_occurrences(anchor: datetime) -> Iterator[datetime]:
    # Offsets are taken from the anchor each time, so Jan 31 -> Feb 29 -> Mar 31.
    for k in count(1):
        yield anchor + relativedelta(months=k)


def _nth_weekday_occurrences(anchor: datetime, week: Union[int, str]) -> Iterator[datetime]:
    day = anchor.weekday()
    for k in count(1):
        if week == "last":
            yield anchor + relativedelta(months=k, day=31, weekday=rd_weekday(day, -1))
            continue
        target_month = (anchor + relativedelta(months=k)).month
        candidate = anchor + relativedelta(months=k, day=1, weekday=rd_weekday(day, week))
        if candidate.month == target_month:
            yield candidate


def _weekday_occurrences(anchor: datetime, weekdays: tuple[int, ...], week_step: int) -> Iterator[datetime]:
    week_start = anchor - timedelta(days=_sunday_index(anchor))
    for week in count(0, week_step):
        base = week_start + timedelta(weeks=week)
        for day in weekdays:
            occurrence = base + timedelta(days=day)
            if occurrence > anchor:
                yield occurrence


def _sunday_index(moment: date) -> int:
    """Day of week with Sunday = 0."""
    return (moment.weekday() + 1) % 7


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


def _ordinal(n: int) -> str:
    return {1: "1st", 2: "2nd", 3: "3rd"}.get(n, f"{n}th")
