"""Pydantic schemas for events, recurring series, and series edits."""
from __future__ import annotations
from datetime import date, datetime, time
from typing import Any, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from worship_scheduler.models.assignment import AssignmentStatus


class _Request(BaseModel):
    """Request bodies accept both snake_case and camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RoleSpec(_Request):
    name: str = Field(min_length=1)
    max_count: int = Field(1, ge=0)
    assigned_musicians: list[str] = []


class HymnSpec(_Request):
    service_part_id: Optional[str] = None
    title: str = ""
    notes: Optional[str] = None


class _SeriesFields(_Request):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    location: str = Field(min_length=1)
    start_date: date
    start_time: time
    end_time: Optional[time] = None
    event_type_id: Optional[str] = None
    recurrence_pattern: Union[dict[str, Any], str]
    recurrence_end_date: Optional[date] = None


class RecurringEventCreate(_SeriesFields):
    roles: list[RoleSpec] = []
    hymns: list[HymnSpec] = []
    selected_groups: list[str] = []


class SeriesEditRequest(_SeriesFields):
    # roles / hymns: omitted = keep as is, null or [] = clear, non-empty = replace
    roles: Optional[list[RoleSpec]] = None
    hymns: Optional[list[HymnSpec]] = None
    selected_groups: list[str] = []
    edit_scope: Literal["future", "all"] = "future"
    dry_run: bool = False


class OccurrenceUpdate(_Request):
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    event_type_id: Optional[str] = None

    @model_validator(mode="after")
    def _end_after_start(self) -> OccurrenceUpdate:
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SeriesExtendRequest(_Request):
    target_date: date


class AssignmentOut(BaseModel):
    assignment_id: str
    role_name: Optional[str] = None
    user_id: Optional[str] = None
    group_id: Optional[str] = None
    status: AssignmentStatus
    max_musicians: Optional[int] = None
    is_auto_assigned: bool

    model_config = {"from_attributes": True}


class HymnOut(BaseModel):
    hymn_id: str
    service_part_id: Optional[str] = None
    title: str
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class EventOut(BaseModel):
    event_id: str
    church_id: str
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    event_type_id: Optional[str] = None
    is_root_event: bool
    is_recurring: bool
    recurrence_pattern: Optional[str] = None
    recurrence_end: Optional[date] = None
    generated_from: Optional[str] = None
    is_modified: bool
    assignments: list[AssignmentOut] = []
    hymns: list[HymnOut] = []

    model_config = {"from_attributes": True}


class SeriesCreateOut(BaseModel):
    root: EventOut
    generated_count: int
    generated_dates: list[datetime]


class SeriesUpdateOut(BaseModel):
    root_event_id: str
    edit_scope: str
    pattern_changed: bool
    dry_run: bool
    events_updated: int
    events_skipped: int
    skipped_event_dates: list[str]
    events_created: int
    events_removed: int
    would_create: int
    would_delete: int
    would_update: int
    blocked_reason: Optional[str] = None
    progress: str

    model_config = {"from_attributes": True}


class SeriesImpactOut(BaseModel):
    future: int
    total: int
    modified: int


class SeriesExtendOut(BaseModel):
    root_event_id: str
    created: int
    created_dates: list[datetime]
