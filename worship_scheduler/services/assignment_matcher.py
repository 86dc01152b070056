"""Auto-assignment of musicians to open roles.

``load_snapshot`` reads everything the matcher needs with a fixed number of
queries, ``propose`` is a pure function over that snapshot, and ``commit``
persists the proposals that found someone. Preview and commit run the exact
same computation; preview just stops before ``commit``.

Matching is greedy in a stable order (event start, role name, assignment id):
each musician is used at most once per batch, and ties among eligible musicians
are broken by the injected random source.
"""
import enum
import logging
import random
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from worship_scheduler.config import settings
from worship_scheduler.constants import ROLE_SKILL_MAP
from worship_scheduler.database import atomic
from worship_scheduler.models.assignment import AssignmentStatus, EventAssignment
from worship_scheduler.models.event import Event
from worship_scheduler.models.group import GroupMember
from worship_scheduler.models.unavailability import MusicianUnavailability
from worship_scheduler.models.user import User, UserRole
from worship_scheduler.services.availability_service import unavailable_reason, windows_conflict
from worship_scheduler.services.clock import utcnow

logger = logging.getLogger(__name__)


class MatchReason(str, enum.Enum):
    no_one_qualified = "No one qualified"
    all_unavailable = "All qualified musicians are unavailable"
    all_conflicted = "All qualified musicians have conflicts"
    no_match = "No qualified musicians available"


@dataclass(frozen=True)
class OpenRole:
    assignment_id: str
    event_id: str
    event_name: str
    role_name: str
    start_time: datetime
    end_time: Optional[datetime] = None


@dataclass(frozen=True)
class Commitment:
    start_time: datetime
    end_time: Optional[datetime] = None


@dataclass(frozen=True)
class Unavailability:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    day_of_week: Optional[int] = None
    reason: Optional[str] = None


@dataclass
class Candidate:
    person_id: str
    name: str
    instruments: tuple[str, ...] = ()
    commitments: list[Commitment] = field(default_factory=list)
    unavailabilities: list[Unavailability] = field(default_factory=list)
    timezone: str = "UTC"


@dataclass
class MatchSnapshot:
    open_roles: list[OpenRole]
    candidates: list[Candidate]


@dataclass
class Proposal:
    assignment_id: str
    event_id: str
    event_name: str
    event_start_time: datetime
    role_name: str
    person_id: Optional[str] = None
    person_name: Optional[str] = None
    reason: Optional[str] = None


def is_qualified(instruments: Sequence[str], role_name: str) -> bool:
    """Whether declared instruments/skills qualify for a role.

    Known role keywords go through ROLE_SKILL_MAP; anything else falls back to
    substring containment either way. No declared skills never qualifies.
    """
    skills = [skill.strip().lower() for skill in instruments if skill and skill.strip()]
    role = (role_name or "").strip().lower()
    if not skills or not role:
        return False
    for keyword, accepted in ROLE_SKILL_MAP.items():
        if keyword in role:
            return any(skill in accepted for skill in skills)
    return any(skill in role or role in skill for skill in skills)


def has_conflict(candidate: Candidate, role: OpenRole) -> bool:
    return any(
        windows_conflict(role.start_time, role.end_time, commitment.start_time, commitment.end_time, candidate.timezone)
        for commitment in candidate.commitments
    )


def is_unavailable(candidate: Candidate, role: OpenRole) -> bool:
    return unavailable_reason(candidate.unavailabilities, role.start_time, candidate.timezone) is not None


def propose(snapshot: MatchSnapshot, rng: Optional[random.Random] = None) -> list[Proposal]:
    """Pair each open role with at most one eligible musician. Pure: reads only the snapshot."""
    rng = rng or random.Random()
    used: set[str] = set()
    proposals: list[Proposal] = []

    for role in sorted(snapshot.open_roles, key=lambda r: (r.start_time, r.role_name, r.assignment_id)):
        pool = [c for c in snapshot.candidates if c.person_id not in used]
        qualified = [c for c in pool if is_qualified(c.instruments, role.role_name)]
        eligible = [c for c in qualified if not has_conflict(c, role) and not is_unavailable(c, role)]

        proposal = Proposal(
            assignment_id=role.assignment_id,
            event_id=role.event_id,
            event_name=role.event_name,
            event_start_time=role.start_time,
            role_name=role.role_name,
        )
        if eligible:
            chosen = rng.choice(eligible)
            used.add(chosen.person_id)
            proposal.person_id = chosen.person_id
            proposal.person_name = chosen.name
        else:
            proposal.reason = _diagnose(snapshot.candidates, used, qualified, role).value
            logger.debug("No musician for %s on %s: %s", role.role_name, role.event_id, proposal.reason)
        proposals.append(proposal)

    return proposals


def _diagnose(
    candidates: Sequence[Candidate],
    used: set[str],
    qualified: Sequence[Candidate],
    role: OpenRole,
) -> MatchReason:
    """Name the single filter that emptied the pool for a role."""
    if not qualified:
        if any(c.person_id in used and is_qualified(c.instruments, role.role_name) for c in candidates):
            return MatchReason.no_match
        return MatchReason.no_one_qualified
    if all(is_unavailable(c, role) for c in qualified):
        return MatchReason.all_unavailable
    if all(has_conflict(c, role) for c in qualified):
        return MatchReason.all_conflicted
    return MatchReason.no_match


def load_snapshot(
    db: Session,
    church_id: str,
    event_ids: Sequence[str],
    group_filter: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
) -> MatchSnapshot:
    """Read open roles and the candidate pool. Four queries regardless of pool size."""
    now = now or utcnow()

    open_rows = (
        db.query(EventAssignment, Event)
        .join(Event, EventAssignment.event_id == Event.event_id)
        .filter(
            EventAssignment.event_id.in_(list(event_ids)),
            Event.church_id == church_id,
            EventAssignment.user_id.is_(None),
            EventAssignment.group_id.is_(None),
            EventAssignment.status == AssignmentStatus.pending,
        )
        .all()
    )
    open_roles = [
        OpenRole(
            assignment_id=assignment.assignment_id,
            event_id=event.event_id,
            event_name=event.name,
            role_name=assignment.role_name or "",
            start_time=event.start_time,
            end_time=event.end_time,
        )
        for assignment, event in open_rows
    ]

    musician_query = db.query(User).filter(
        User.church_id == church_id,
        User.role == UserRole.musician,
        User.is_verified.is_(True),
    )
    if group_filter:
        members = select(GroupMember.user_id).where(GroupMember.group_id.in_(list(group_filter)))
        musician_query = musician_query.filter(User.user_id.in_(members))
    musicians = musician_query.order_by(User.last_name, User.first_name, User.user_id).all()

    candidates = {
        user.user_id: Candidate(
            person_id=user.user_id,
            name=user.full_name,
            instruments=tuple(user.instruments or ()),
            timezone=user.default_timezone or "UTC",
        )
        for user in musicians
    }
    if candidates:
        commitments = (
            db.query(EventAssignment.user_id, Event.start_time, Event.end_time)
            .join(Event, EventAssignment.event_id == Event.event_id)
            .filter(
                EventAssignment.user_id.in_(list(candidates)),
                EventAssignment.status.in_([AssignmentStatus.pending, AssignmentStatus.accepted]),
                Event.start_time >= now,
            )
            .all()
        )
        for user_id, start_time, end_time in commitments:
            candidates[user_id].commitments.append(Commitment(start_time=start_time, end_time=end_time))

        unavailabilities = (
            db.query(MusicianUnavailability)
            .filter(MusicianUnavailability.user_id.in_(list(candidates)))
            .all()
        )
        for row in unavailabilities:
            candidates[row.user_id].unavailabilities.append(
                Unavailability(
                    start_date=row.start_date,
                    end_date=row.end_date,
                    day_of_week=row.day_of_week,
                    reason=row.reason,
                )
            )

    logger.info(
        "Loaded %d open roles and %d candidates for church %s",
        len(open_roles), len(candidates), church_id,
    )
    return MatchSnapshot(open_roles=open_roles, candidates=list(candidates.values()))


def commit(db: Session, proposals: Sequence[Proposal]) -> int:
    """Persist proposals that found someone in one transaction. Returns rows written.

    Assignments stay PENDING (the musician still has to accept) and are tagged
    as auto-assigned. Slots filled by someone else since the preview are skipped.
    """
    chosen = [proposal for proposal in proposals if proposal.person_id]
    if not chosen:
        return 0

    written = 0
    with atomic(db, timeout_seconds=settings.ASSIGNMENT_TRANSACTION_TIMEOUT_SECONDS):
        rows = {
            row.assignment_id: row
            for row in db.query(EventAssignment)
            .filter(EventAssignment.assignment_id.in_([p.assignment_id for p in chosen]))
            .all()
        }
        for proposal in chosen:
            row = rows.get(proposal.assignment_id)
            if row is None or not row.is_open_role:
                logger.warning("Assignment %s is no longer open, skipping", proposal.assignment_id)
                continue
            row.user_id = proposal.person_id
            row.is_auto_assigned = True
            row.status = AssignmentStatus.pending
            written += 1

    logger.info("Committed %d of %d auto-assignments", written, len(chosen))
    return written


def auto_assign(
    db: Session,
    church_id: str,
    event_ids: Sequence[str],
    preview: bool = False,
    group_filter: Optional[Sequence[str]] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Propose assignments for the selected events and, unless previewing, commit them."""
    snapshot = load_snapshot(db, church_id, event_ids, group_filter=group_filter, now=now)
    proposals = propose(snapshot, rng=rng)
    committed = 0 if preview else commit(db, proposals)
    successful = sum(1 for proposal in proposals if proposal.person_id)
    return {
        "proposals": proposals,
        "successful_assignments": successful,
        "total_assignments": len(proposals),
        "committed": committed,
        "preview": preview,
        "description": f"Auto-assigned {successful} of {len(proposals)} open roles",
    }
