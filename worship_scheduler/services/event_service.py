"""Single-event reads and edits.

Editing one occurrence of a series marks it ``is_modified`` so later series
edits and regenerations leave it alone.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from worship_scheduler.models.assignment import AssignmentStatus, EventAssignment
from worship_scheduler.models.event import Event
from worship_scheduler.services.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("name", "description", "location", "start_time", "end_time", "event_type_id")


def get_event(db: Session, event_id: str, church_id: str) -> Event:
    event = (
        db.query(Event)
        .options(selectinload(Event.assignments), selectinload(Event.hymns))
        .filter(Event.event_id == event_id, Event.church_id == church_id)
        .first()
    )
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def list_events(
    db: Session,
    church_id: str,
    start_after: Optional[datetime] = None,
    start_before: Optional[datetime] = None,
    root_event_id: Optional[str] = None,
) -> list[Event]:
    query = db.query(Event).filter(Event.church_id == church_id)
    if start_after:
        query = query.filter(Event.start_time >= to_naive_utc(start_after))
    if start_before:
        query = query.filter(Event.start_time <= to_naive_utc(start_before))
    if root_event_id:
        query = query.filter((Event.event_id == root_event_id) | (Event.generated_from == root_event_id))
    return query.order_by(Event.start_time, Event.event_id).all()


def update_occurrence(db: Session, event_id: str, church_id: str, updates: dict[str, Any]) -> Event:
    """Edit one event. A generated occurrence becomes ``is_modified``."""
    event = get_event(db, event_id, church_id)
    for field, value in updates.items():
        if field not in _EDITABLE_FIELDS:
            continue
        if isinstance(value, datetime):
            value = to_naive_utc(value)
        setattr(event, field, value)

    if event.end_time is not None and event.end_time <= event.start_time:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="End time must be after start time")

    if event.generated_from is not None and updates:
        event.is_modified = True
    db.commit()
    db.refresh(event)
    logger.info("Updated event %s (modified=%s)", event_id, event.is_modified)
    return event


def list_open_events(db: Session, church_id: str, days: int = 30, now: Optional[datetime] = None) -> list[dict]:
    """Upcoming events with at least one open individual role, soonest first."""
    now = now or utcnow()
    rows = (
        db.query(Event, EventAssignment)
        .join(EventAssignment, EventAssignment.event_id == Event.event_id)
        .filter(
            Event.church_id == church_id,
            Event.start_time >= now,
            Event.start_time <= now + timedelta(days=days),
            EventAssignment.user_id.is_(None),
            EventAssignment.group_id.is_(None),
            EventAssignment.status == AssignmentStatus.pending,
        )
        .order_by(Event.start_time, Event.event_id, EventAssignment.role_name)
        .all()
    )
    by_event: dict[str, dict] = {}
    for event, assignment in rows:
        entry = by_event.setdefault(
            event.event_id,
            {
                "event_id": event.event_id,
                "name": event.name,
                "start_time": event.start_time,
                "end_time": event.end_time,
                "open_roles": [],
            },
        )
        entry["open_roles"].append(assignment.role_name or "")
    return list(by_event.values())
