"""Event and recurring-series API routes."""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from worship_scheduler.database import get_db
from worship_scheduler.models.activity import ActivityType
from worship_scheduler.models.user import User
from worship_scheduler.routers.deps import actor_timezone, get_actor, get_scheduler
from worship_scheduler.schemas.event import (
    EventOut,
    OccurrenceUpdate,
    RecurringEventCreate,
    SeriesCreateOut,
    SeriesEditRequest,
    SeriesExtendOut,
    SeriesExtendRequest,
    SeriesImpactOut,
    SeriesUpdateOut,
)
from worship_scheduler.services import event_service, series_service
from worship_scheduler.services.activity_service import log_activity
from worship_scheduler.services.clock import combine_local, utc_to_local
from worship_scheduler.services.content_update import content_update_from_field
from worship_scheduler.services.recurrence import describe_pattern, parse_recurrence_pattern_or_400

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/recurring", response_model=SeriesCreateOut, status_code=status.HTTP_201_CREATED)
def create_recurring_event(
    payload: RecurringEventCreate,
    actor: User = Depends(get_scheduler),
    db: Session = Depends(get_db),
):
    """Create a root event and materialize its occurrences."""
    tz_name = actor_timezone(actor)
    pattern = parse_recurrence_pattern_or_400(payload.recurrence_pattern)
    start = combine_local(payload.start_date, payload.start_time, tz_name)
    root, children = series_service.create_recurring_event(
        db=db,
        church_id=actor.church_id,
        name=payload.name,
        start_time=start,
        pattern=pattern,
        tz_name=tz_name,
        description=payload.description,
        location=payload.location,
        end_time=combine_local(payload.start_date, payload.end_time, tz_name),
        recurrence_end=payload.recurrence_end_date,
        event_type_id=payload.event_type_id,
        roles=payload.roles,
        hymns=payload.hymns,
        group_ids=payload.selected_groups,
    )
    log_activity(
        db,
        church_id=actor.church_id,
        user_id=actor.user_id,
        type=ActivityType.event_created,
        description=(
            f"Created recurring event: {root.name} "
            f"({describe_pattern(pattern, utc_to_local(start, tz_name))}, {len(children)} occurrences)"
        ),
        details={"event_id": root.event_id, "generated": len(children)},
    )
    return SeriesCreateOut(
        root=EventOut.model_validate(root),
        generated_count=len(children),
        generated_dates=[child.start_time for child in children],
    )


@router.get("/", response_model=list[EventOut])
def list_events(
    start_after: Optional[datetime] = Query(None),
    start_before: Optional[datetime] = Query(None),
    root_event_id: Optional[str] = Query(None),
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """List the church's events, optionally limited to a window or one series."""
    return event_service.list_events(db, actor.church_id, start_after, start_before, root_event_id)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, actor: User = Depends(get_actor), db: Session = Depends(get_db)):
    return event_service.get_event(db, event_id, actor.church_id)


@router.patch("/{event_id}", response_model=EventOut)
def update_occurrence(
    event_id: str,
    payload: OccurrenceUpdate,
    actor: User = Depends(get_scheduler),
    db: Session = Depends(get_db),
):
    """Edit a single event. Generated occurrences become modified and are protected from series edits."""
    event = event_service.update_occurrence(db, event_id, actor.church_id, payload.model_dump(exclude_unset=True))
    log_activity(
        db,
        church_id=actor.church_id,
        user_id=actor.user_id,
        type=ActivityType.event_updated,
        description=f"Updated event: {event.name}",
        details={"event_id": event.event_id},
    )
    return event


@router.patch("/{event_id}/series", response_model=SeriesUpdateOut)
def update_series(
    event_id: str,
    payload: SeriesEditRequest,
    actor: User = Depends(get_scheduler),
    db: Session = Depends(get_db),
):
    """Edit a recurring series. ``dryRun`` previews the plan without writing."""
    tz_name = actor_timezone(actor)
    edit = series_service.SeriesEdit(
        name=payload.name,
        start_time=combine_local(payload.start_date, payload.start_time, tz_name),
        pattern=parse_recurrence_pattern_or_400(payload.recurrence_pattern),
        description=payload.description,
        location=payload.location,
        end_time=combine_local(payload.start_date, payload.end_time, tz_name),
        recurrence_end=payload.recurrence_end_date,
        event_type_id=payload.event_type_id,
        edit_scope=payload.edit_scope,
        roles=content_update_from_field("roles" in payload.model_fields_set, payload.roles),
        hymns=content_update_from_field("hymns" in payload.model_fields_set, payload.hymns),
        group_ids=payload.selected_groups,
    )
    result = series_service.update_series(
        db, event_id, actor.church_id, edit, tz_name=tz_name, dry_run=payload.dry_run
    )
    if not payload.dry_run:
        log_activity(
            db,
            church_id=actor.church_id,
            user_id=actor.user_id,
            type=ActivityType.event_updated,
            description=result.description,
            details={"event_id": event_id, "edit_scope": result.edit_scope, "progress": result.progress},
        )
    return SeriesUpdateOut.model_validate(result)


@router.delete("/{event_id}/series")
def delete_series(event_id: str, actor: User = Depends(get_scheduler), db: Session = Depends(get_db)):
    """Delete a root event and every occurrence generated from it."""
    removed = series_service.delete_series(db, event_id, actor.church_id)
    log_activity(
        db,
        church_id=actor.church_id,
        user_id=actor.user_id,
        type=ActivityType.event_deleted,
        description=f"Deleted recurring series ({removed} events)",
        details={"event_id": event_id, "removed": removed},
    )
    return {"deleted": removed}


@router.get("/{event_id}/impact", response_model=SeriesImpactOut)
def series_impact(event_id: str, actor: User = Depends(get_actor), db: Session = Depends(get_db)):
    """How many occurrences a series-wide change would touch."""
    return series_service.series_impact(db, event_id, actor.church_id)


@router.post("/{event_id}/extend", response_model=SeriesExtendOut)
def extend_series(
    event_id: str,
    payload: SeriesExtendRequest,
    actor: User = Depends(get_scheduler),
    db: Session = Depends(get_db),
):
    """Generate further occurrences so the series reaches ``targetDate``."""
    created = series_service.extend_series(
        db, event_id, actor.church_id, payload.target_date, tz_name=actor_timezone(actor)
    )
    return SeriesExtendOut(
        root_event_id=event_id,
        created=len(created),
        created_dates=[event.start_time for event in created],
    )
