"""Pydantic schemas for Groups."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class GroupCreate(BaseModel):
    church_id: str
    name: str


class GroupOut(BaseModel):
    group_id: str
    church_id: str
    name: str
    created_at: Optional[datetime] = None
    members: list[GroupMemberOut] = []

    model_config = {"from_attributes": True}


class GroupMemberAdd(BaseModel):
    user_id: str


class GroupMemberOut(BaseModel):
    user_id: str
    joined_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# Rebuild GroupOut now that GroupMemberOut is defined
GroupOut.model_rebuild()
