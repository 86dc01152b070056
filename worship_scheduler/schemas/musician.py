"""Pydantic schemas for musician unavailability."""
from __future__ import annotations
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class UnavailabilityCreate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    reason: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="after")
    def _one_kind(self) -> UnavailabilityCreate:
        if self.day_of_week is None and self.start_date is None:
            raise ValueError("Either startDate or dayOfWeek is required")
        if self.day_of_week is not None and (self.start_date or self.end_date):
            raise ValueError("dayOfWeek cannot be combined with a date range")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class UnavailabilityOut(BaseModel):
    unavailability_id: str
    user_id: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    day_of_week: Optional[int] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AvailabilitySummaryOut(BaseModel):
    total_unavailabilities: int
    date_ranges: int
    recurring_days: int
    upcoming_unavailabilities: int
