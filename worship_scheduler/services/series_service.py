"""Recurring series lifecycle: creation, materialization, safe regeneration, extension, deletion.

Rules enforced here:
- Generated children copy the root's structure (role slots, service parts), never its
  filled-in content (assigned musicians, hymn titles).
- A child with ``is_modified`` set is never deleted or overwritten automatically.
- A pattern change never deletes anything unless at least one replacement date exists,
  and replacements are created before anything is removed.
- Dry-run computes exactly the plan that live mode would apply and writes nothing.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from dateutil.relativedelta import relativedelta
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from worship_scheduler.config import settings
from worship_scheduler.constants import EDIT_SCOPE_ALL, EDIT_SCOPE_FUTURE
from worship_scheduler.database import atomic
from worship_scheduler.models.assignment import EventAssignment, AssignmentStatus
from worship_scheduler.models.document import EventDocument
from worship_scheduler.models.event import Event
from worship_scheduler.models.group import Group
from worship_scheduler.models.hymn import EventHymn
from worship_scheduler.services.clock import local_to_utc, utc_to_local, utcnow
from worship_scheduler.services.content_update import (
    Clear,
    ContentUpdate,
    Unchanged,
    replacement_items,
)
from worship_scheduler.services.recurrence import (
    RecurrencePattern,
    describe_pattern,
    generate_all_dates,
    generate_dates,
    parse_recurrence_pattern_or_400,
    pattern_changed,
    resolve_pattern_for_anchor,
    serialize_pattern,
)

logger = logging.getLogger(__name__)


class SeriesRegenerationError(HTTPException):
    """A pattern change would leave the series with no future occurrences."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


@dataclass
class SeriesEdit:
    name: str
    start_time: datetime  # naive UTC
    pattern: RecurrencePattern
    description: Optional[str] = None
    location: Optional[str] = None
    end_time: Optional[datetime] = None
    recurrence_end: Optional[date] = None
    event_type_id: Optional[str] = None
    edit_scope: str = EDIT_SCOPE_FUTURE
    roles: ContentUpdate = field(default_factory=Unchanged)
    hymns: ContentUpdate = field(default_factory=Unchanged)
    group_ids: Sequence[str] = ()


@dataclass
class SeriesUpdateResult:
    """Outcome of a series edit.

    ``would_delete`` counts future children on dates the new pattern no longer
    produces and that are safe to discard; children on a kept date are retimed
    and counted in ``would_update`` instead.
    """

    root_event_id: str
    edit_scope: str
    pattern_changed: bool
    dry_run: bool
    events_updated: int = 0
    events_skipped: int = 0
    skipped_event_dates: list[str] = field(default_factory=list)
    events_created: int = 0
    events_removed: int = 0
    would_create: int = 0
    would_delete: int = 0
    would_update: int = 0
    blocked_reason: Optional[str] = None
    description: str = ""

    @property
    def progress(self) -> str:
        if self.dry_run:
            text = (
                f"Would create {self.would_create}, remove {self.would_delete}, "
                f"update {self.would_update} events"
            )
        else:
            text = f"Updated {self.events_updated} events"
            if self.events_created or self.events_removed:
                text += f", created {self.events_created}, removed {self.events_removed}"
        if self.events_skipped:
            text += (
                f", skipped {self.events_skipped} modified events "
                f"({', '.join(self.skipped_event_dates)})"
            )
        return text


@dataclass
class _Plan:
    """What a series edit will do. Shared verbatim by dry-run and live mode."""

    to_create: list[datetime] = field(default_factory=list)  # local wall-clock starts
    to_update: list[tuple[Event, datetime, Optional[datetime]]] = field(default_factory=list)  # UTC
    to_delete: list[Event] = field(default_factory=list)
    skipped: list[Event] = field(default_factory=list)
    candidate_count: int = 0


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
def get_root_event(db: Session, root_event_id: str, church_id: str) -> Event:
    root = (
        db.query(Event)
        .filter(
            Event.event_id == root_event_id,
            Event.church_id == church_id,
            Event.is_root_event.is_(True),
            Event.is_recurring.is_(True),
        )
        .first()
    )
    if not root:
        raise HTTPException(status_code=404, detail="Root recurring event not found")
    return root


def get_series_children(db: Session, root: Event) -> list[Event]:
    return (
        db.query(Event)
        .filter(Event.generated_from == root.event_id, Event.church_id == root.church_id)
        .order_by(Event.start_time)
        .all()
    )


def is_safe_to_discard(event: Event) -> bool:
    """Untouched by users: not hand-edited, no titled hymns, no documents."""
    if event.is_modified:
        return False
    if any((hymn.title or "").strip() for hymn in event.hymns):
        return False
    return not event.documents


# ---------------------------------------------------------------------------
# Structure builders
# ---------------------------------------------------------------------------
def build_assignments(db: Session, church_id: str, roles: Sequence, group_ids: Sequence[str]) -> list[EventAssignment]:
    """Assignment rows for an event that owns its content (a root or a one-off event)."""
    rows: list[EventAssignment] = []
    for role in roles:
        if role.assigned_musicians:
            for user_id in role.assigned_musicians:
                rows.append(EventAssignment(role_name=role.name, user_id=user_id, status=AssignmentStatus.pending))
        else:
            for _ in range(role.max_count):
                rows.append(EventAssignment(role_name=role.name, max_musicians=1, status=AssignmentStatus.pending))

    for group_id in group_ids:
        group = db.query(Group).filter(Group.group_id == group_id, Group.church_id == church_id).first()
        if not group:
            logger.warning("Skipping unknown group %s for church %s", group_id, church_id)
            continue
        rows.append(EventAssignment(group_id=group.group_id, status=AssignmentStatus.pending))
        for member in group.members:
            rows.append(
                EventAssignment(group_id=group.group_id, user_id=member.user_id, status=AssignmentStatus.pending)
            )
    return rows


def build_hymns(hymns: Sequence) -> list[EventHymn]:
    return [
        EventHymn(
            service_part_id=None if hymn.service_part_id in (None, "", "custom") else hymn.service_part_id,
            title=(hymn.title or "").strip(),
            notes=(hymn.notes or "").strip() or None,
        )
        for hymn in hymns
    ]


def role_skeleton(root: Event) -> list[EventAssignment]:
    """Open copies of the root's role slots plus its group-level placeholders."""
    rows: list[EventAssignment] = []
    seen_groups: set[str] = set()
    for assignment in root.assignments:
        if assignment.group_id:
            # Group-derived individual slots are resolved from the placeholder
            if assignment.user_id is None and assignment.group_id not in seen_groups:
                seen_groups.add(assignment.group_id)
                rows.append(
                    EventAssignment(
                        group_id=assignment.group_id,
                        role_name=assignment.role_name,
                        status=AssignmentStatus.pending,
                    )
                )
            continue
        rows.append(
            EventAssignment(
                role_name=assignment.role_name,
                max_musicians=assignment.max_musicians or 1,
                status=AssignmentStatus.pending,
            )
        )
    return rows


def hymn_skeleton(root: Event) -> list[EventHymn]:
    return [EventHymn(service_part_id=hymn.service_part_id, title="", notes=None) for hymn in root.hymns]


# ---------------------------------------------------------------------------
# Materializer
# ---------------------------------------------------------------------------
def series_horizon(anchor_local: datetime, now_local: Optional[datetime] = None) -> date:
    base = max(anchor_local, now_local) if now_local else anchor_local
    return (base + relativedelta(months=settings.SERIES_HORIZON_MONTHS)).date()


def materialize_series(
    db: Session,
    root: Event,
    pattern: RecurrencePattern,
    tz_name: str,
    dates: Optional[Sequence[datetime]] = None,
) -> list[Event]:
    """Create child events for ``dates`` (local wall-clock) or for the pattern's generated dates.

    Runs inside the caller's transaction: rows are added and flushed, never committed.
    """
    if dates is None:
        anchor_local = utc_to_local(root.start_time, tz_name)
        dates = generate_dates(pattern, anchor_local, series_horizon(anchor_local), root.recurrence_end)
    if not dates:
        return []

    duration = root.end_time - root.start_time if root.end_time else None
    children: list[Event] = []
    for local_start in dates:
        start = local_to_utc(local_start, tz_name)
        child = Event(
            church_id=root.church_id,
            name=root.name,
            description=root.description,
            location=root.location,
            event_type_id=root.event_type_id,
            start_time=start,
            end_time=start + duration if duration is not None else None,
            is_root_event=False,
            is_recurring=False,
            recurrence_pattern=None,
            recurrence_end=None,
            generated_from=root.event_id,
            is_modified=False,
        )
        child.assignments = role_skeleton(root)
        child.hymns = hymn_skeleton(root)
        children.append(child)

    db.add_all(children)
    db.flush()
    logger.info("Materialized %d occurrences for series %s", len(children), root.event_id)
    return children


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------
def create_recurring_event(
    db: Session,
    church_id: str,
    name: str,
    start_time: datetime,
    pattern: RecurrencePattern,
    tz_name: str,
    description: Optional[str] = None,
    location: Optional[str] = None,
    end_time: Optional[datetime] = None,
    recurrence_end: Optional[date] = None,
    event_type_id: Optional[str] = None,
    roles: Sequence = (),
    hymns: Sequence = (),
    group_ids: Sequence[str] = (),
) -> tuple[Event, list[Event]]:
    """Create a root event with its content and materialize its series in one transaction."""
    if not name or not location:
        raise HTTPException(status_code=400, detail="Name, location, start date, and start time are required")
    if end_time is not None and end_time <= start_time:
        raise HTTPException(status_code=400, detail="End time must be after start time")

    pattern = resolve_pattern_for_anchor(pattern, utc_to_local(start_time, tz_name))
    with atomic(db, timeout_seconds=settings.SERIES_TRANSACTION_TIMEOUT_SECONDS):
        root = Event(
            church_id=church_id,
            name=name,
            description=description or None,
            location=location,
            start_time=start_time,
            end_time=end_time,
            event_type_id=event_type_id,
            is_root_event=True,
            is_recurring=True,
            recurrence_pattern=serialize_pattern(pattern),
            recurrence_end=recurrence_end,
        )
        root.assignments = build_assignments(db, church_id, roles, group_ids)
        root.hymns = build_hymns(hymns)
        db.add(root)
        db.flush()
        children = materialize_series(db, root, pattern, tz_name)

    logger.info(
        "Created recurring event '%s' (%s) with %d generated occurrences",
        name, root.event_id, len(children),
    )
    return root, children


# ---------------------------------------------------------------------------
# Safe regeneration
# ---------------------------------------------------------------------------
def update_series(
    db: Session,
    root_event_id: str,
    church_id: str,
    edit: SeriesEdit,
    tz_name: str,
    dry_run: bool = False,
    now: Optional[datetime] = None,
) -> SeriesUpdateResult:
    """Apply a series edit, regenerating future occurrences when the pattern changed."""
    now = now or utcnow()
    root = get_root_event(db, root_event_id, church_id)
    old_pattern = parse_recurrence_pattern_or_400(root.recurrence_pattern) if root.recurrence_pattern else None
    new_pattern = resolve_pattern_for_anchor(edit.pattern, utc_to_local(edit.start_time, tz_name))
    changed = pattern_changed(old_pattern, new_pattern)
    regenerate = changed and edit.edit_scope == EDIT_SCOPE_FUTURE

    children = get_series_children(db, root)
    if regenerate:
        plan = _plan_regeneration(children, edit, new_pattern, tz_name, now)
    else:
        plan = _plan_in_place(root, children, edit, tz_name, now)

    result = SeriesUpdateResult(
        root_event_id=root.event_id,
        edit_scope=edit.edit_scope,
        pattern_changed=changed,
        dry_run=dry_run,
        events_skipped=len(plan.skipped),
        skipped_event_dates=[
            utc_to_local(event.start_time, tz_name).date().isoformat() for event in plan.skipped
        ],
        would_create=len(plan.to_create),
        would_delete=len(plan.to_delete),
        would_update=len(plan.to_update),
    )

    if regenerate and plan.candidate_count == 0:
        reason = (
            "Pattern change would remove all future events without generating any replacement dates; "
            "no changes were made"
        )
        if dry_run:
            result.blocked_reason = reason
            result.would_create = result.would_delete = result.would_update = 0
            return result
        logger.warning("Refusing to regenerate series %s: no future candidate dates", root.event_id)
        raise SeriesRegenerationError(reason)

    if dry_run:
        result.description = f"Previewed changes to recurring event series: {edit.name} ({edit.edit_scope} scope)"
        return result

    with atomic(db, timeout_seconds=settings.SERIES_TRANSACTION_TIMEOUT_SECONDS):
        _apply_root_update(db, root, edit, new_pattern, church_id)

        # Additive phase first: the series never shrinks mid-operation
        created = materialize_series(db, root, new_pattern, tz_name, dates=plan.to_create)

        for child, start, end in plan.to_update:
            _apply_child_update(db, root, child, edit, start, end)
        db.flush()

        removed = delete_events(db, plan.to_delete)

    result.events_created = len(created)
    result.events_removed = removed
    result.events_updated = len(plan.to_update)
    result.description = f"Updated recurring event series: {edit.name} ({edit.edit_scope} scope)"
    if changed:
        result.description += f", now {describe_pattern(new_pattern, utc_to_local(edit.start_time, tz_name))}"
    logger.info(
        "Series %s updated: %d updated, %d skipped, %d created, %d removed",
        root.event_id, result.events_updated, result.events_skipped, result.events_created, result.events_removed,
    )
    return result


def _plan_in_place(root: Event, children: list[Event], edit: SeriesEdit, tz_name: str, now: datetime) -> _Plan:
    """Keep every child, shifting it by its original offset from the root."""
    plan = _Plan()
    old_root_local = utc_to_local(root.start_time, tz_name)
    new_root_local = utc_to_local(edit.start_time, tz_name)
    new_end_local = utc_to_local(edit.end_time, tz_name) if edit.end_time else None

    for child in children:
        if edit.edit_scope != EDIT_SCOPE_ALL and child.start_time < now:
            continue
        if child.is_modified:
            plan.skipped.append(child)
            continue
        offset = utc_to_local(child.start_time, tz_name) - old_root_local
        start = local_to_utc(new_root_local + offset, tz_name)
        end = local_to_utc(new_end_local + offset, tz_name) if new_end_local else None
        plan.to_update.append((child, start, end))
    return plan


def _plan_regeneration(
    children: list[Event],
    edit: SeriesEdit,
    pattern: RecurrencePattern,
    tz_name: str,
    now: datetime,
) -> _Plan:
    """Minimal diff between the new pattern's future dates and the existing future children.

    Existing children on a candidate date are kept (and retimed unless modified),
    missing candidate dates are created, and leftover children are removed only
    when safe to discard.
    """
    plan = _Plan()
    anchor_local = utc_to_local(edit.start_time, tz_name)
    now_local = utc_to_local(now, tz_name)
    horizon = series_horizon(anchor_local, now_local)
    future_children = [child for child in children if child.start_time >= now]
    if future_children:
        # Occurrences added by extension may sit past the default horizon
        latest = max(utc_to_local(child.start_time, tz_name).date() for child in future_children)
        horizon = max(horizon, latest)
    candidates = [
        moment
        for moment in generate_all_dates(pattern, anchor_local, horizon, edit.recurrence_end)
        if local_to_utc(moment, tz_name) >= now
    ]
    plan.candidate_count = len(candidates)
    if not candidates:
        return plan

    duration = edit.end_time - edit.start_time if edit.end_time else None
    future_by_day: dict[date, list[Event]] = {}
    for child in future_children:
        future_by_day.setdefault(utc_to_local(child.start_time, tz_name).date(), []).append(child)

    leftovers: list[Event] = []
    for moment in candidates:
        existing = future_by_day.pop(moment.date(), [])
        if not existing:
            plan.to_create.append(moment)
            continue
        keeper = existing[0]
        if keeper.is_modified:
            plan.skipped.append(keeper)
        else:
            start = local_to_utc(moment, tz_name)
            plan.to_update.append((keeper, start, start + duration if duration is not None else None))
        # Same-day duplicates count as leftovers
        leftovers.extend(existing[1:])

    for remaining in future_by_day.values():
        leftovers.extend(remaining)

    for child in sorted(leftovers, key=lambda event: event.start_time):
        if is_safe_to_discard(child):
            plan.to_delete.append(child)
        else:
            plan.skipped.append(child)

    plan.skipped.sort(key=lambda event: event.start_time)
    return plan


def _apply_root_update(db: Session, root: Event, edit: SeriesEdit, pattern: RecurrencePattern, church_id: str) -> None:
    root.name = edit.name
    root.description = edit.description or None
    root.location = edit.location or None
    root.start_time = edit.start_time
    root.end_time = edit.end_time
    if edit.event_type_id:
        root.event_type_id = edit.event_type_id
    root.recurrence_pattern = serialize_pattern(pattern)
    root.recurrence_end = edit.recurrence_end

    if not isinstance(edit.roles, Unchanged):
        group_ids = () if isinstance(edit.roles, Clear) else edit.group_ids
        root.assignments = build_assignments(db, church_id, replacement_items(edit.roles), group_ids)
    if not isinstance(edit.hymns, Unchanged):
        root.hymns = build_hymns(replacement_items(edit.hymns))
    db.flush()


def _apply_child_update(
    db: Session,
    root: Event,
    child: Event,
    edit: SeriesEdit,
    start: datetime,
    end: Optional[datetime],
) -> None:
    child.name = edit.name
    child.description = edit.description or None
    child.location = edit.location or None
    child.start_time = start
    child.end_time = end
    child.event_type_id = root.event_type_id

    if not isinstance(edit.roles, Unchanged):
        child.assignments = role_skeleton(root)
    if not isinstance(edit.hymns, Unchanged):
        _restructure_hymns(child, root)


def _restructure_hymns(child: Event, root: Event) -> None:
    """Adopt the root's service-part structure, keeping the child's own titles per service part."""
    existing = {hymn.service_part_id: hymn for hymn in child.hymns if hymn.service_part_id}
    rebuilt: list[EventHymn] = []
    for part in root.hymns:
        previous = existing.get(part.service_part_id) if part.service_part_id else None
        rebuilt.append(
            EventHymn(
                service_part_id=part.service_part_id,
                title=previous.title if previous else "",
                notes=previous.notes if previous else None,
            )
        )
    child.hymns = rebuilt


# ---------------------------------------------------------------------------
# Deletion, impact, extension
# ---------------------------------------------------------------------------
def delete_events(db: Session, events: Sequence[Event]) -> int:
    """Delete events and their owned rows, children-first, inside the caller's transaction."""
    ids = [event.event_id for event in events]
    if not ids:
        return 0
    for model in (EventAssignment, EventHymn, EventDocument):
        db.query(model).filter(model.event_id.in_(ids)).delete(synchronize_session=False)
    db.query(Event).filter(Event.event_id.in_(ids)).delete(synchronize_session=False)
    for event in events:
        db.expunge(event)
    return len(ids)


def delete_series(db: Session, root_event_id: str, church_id: str) -> int:
    """Delete a root event and every occurrence generated from it. Returns rows removed."""
    root = get_root_event(db, root_event_id, church_id)
    with atomic(db, timeout_seconds=settings.SERIES_TRANSACTION_TIMEOUT_SECONDS):
        removed = delete_events(db, get_series_children(db, root))
        removed += delete_events(db, [root])
    logger.info("Deleted series %s (%d events)", root_event_id, removed)
    return removed


def series_impact(db: Session, root_event_id: str, church_id: str, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    root = get_root_event(db, root_event_id, church_id)
    children = get_series_children(db, root)
    future = sum(1 for child in children if child.start_time >= now)
    if root.start_time >= now:
        future += 1
    return {
        "future": future,
        "total": len(children) + 1,
        "modified": sum(1 for child in children if child.is_modified),
    }


def extend_series(
    db: Session,
    root_event_id: str,
    church_id: str,
    target_date: date,
    tz_name: str,
) -> list[Event]:
    """Generate occurrences past the latest existing one so the series reaches ``target_date``."""
    root = get_root_event(db, root_event_id, church_id)
    pattern = parse_recurrence_pattern_or_400(root.recurrence_pattern)
    children = get_series_children(db, root)
    latest = children[-1] if children else root
    latest_local = utc_to_local(latest.start_time, tz_name)
    if latest_local.date() >= target_date:
        return []

    horizon = target_date + relativedelta(months=settings.SERIES_EXTENSION_MONTHS)
    anchor = utc_to_local(root.start_time, tz_name)
    dates = generate_all_dates(pattern, anchor, horizon, root.recurrence_end, after=latest_local)
    if not dates:
        return []

    with atomic(db, timeout_seconds=settings.SERIES_TRANSACTION_TIMEOUT_SECONDS):
        created = materialize_series(db, root, pattern, tz_name, dates=dates)
    logger.info("Extended series %s by %d occurrences to %s", root_event_id, len(created), target_date)
    return created
