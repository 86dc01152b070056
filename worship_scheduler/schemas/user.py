"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from worship_scheduler.models.user import UserRole


class UserCreate(BaseModel):
    church_id: str
    first_name: str = Field(min_length=1)
    last_name: str = ""
    email: str
    role: UserRole = UserRole.musician
    instruments: list[str] = []
    is_verified: bool = True
    default_timezone: str = "UTC"


class UserUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[UserRole] = None
    instruments: Optional[list[str]] = None
    is_verified: Optional[bool] = None
    default_timezone: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    church_id: str
    first_name: str
    last_name: str
    email: str
    role: UserRole
    instruments: list[str] = []
    is_verified: bool
    default_timezone: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
