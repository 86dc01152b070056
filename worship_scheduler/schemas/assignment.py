"""Pydantic schemas for open roles and auto-assignment."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AutoAssignRequest(BaseModel):
    event_ids: list[str] = Field(min_length=1)
    preview: bool = False
    group_filter: Optional[list[str]] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProposalOut(BaseModel):
    assignment_id: str
    event_id: str
    event_name: str
    event_start_time: datetime
    role_name: str
    person_id: Optional[str] = None
    person_name: Optional[str] = None
    reason: Optional[str] = None

    model_config = {"from_attributes": True}


class AutoAssignOut(BaseModel):
    proposals: list[ProposalOut]
    successful_assignments: int
    total_assignments: int
    committed: int
    preview: bool


class OpenEventOut(BaseModel):
    event_id: str
    name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    open_roles: list[str]
