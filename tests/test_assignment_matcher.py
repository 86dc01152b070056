"""Tests for the auto-assignment matcher.

Covers:
- Qualification via the role/skill map and substring fallback
- No double-booking within one batch
- Existing commitments and declared unavailability exclude candidates
- Failure reasons and deterministic seeded choice
- Snapshot loading and commit against the database
"""
import random
from datetime import date, datetime, timedelta

from worship_scheduler.models.assignment import AssignmentStatus, EventAssignment
from worship_scheduler.models.event import Event
from worship_scheduler.models.group import Group, GroupMember
from worship_scheduler.models.unavailability import MusicianUnavailability
from worship_scheduler.models.user import UserRole
from worship_scheduler.services import assignment_matcher
from worship_scheduler.services.assignment_matcher import (
    Candidate,
    Commitment,
    MatchReason,
    MatchSnapshot,
    OpenRole,
    Unavailability,
    is_qualified,
    propose,
)
from tests.conftest import CHURCH_ID, add_db_user

SERVICE_START = datetime(2030, 6, 2, 14, 0)
SERVICE_END = datetime(2030, 6, 2, 15, 30)


def _role(name="Pianist", assignment_id="a1", start=SERVICE_START, end=SERVICE_END):
    return OpenRole(
        assignment_id=assignment_id,
        event_id="e1",
        event_name="Sunday Service",
        role_name=name,
        start_time=start,
        end_time=end,
    )


def _candidate(person_id, instruments=("piano",), **kwargs):
    return Candidate(person_id=person_id, name=person_id.title(), instruments=tuple(instruments), **kwargs)


class TestQualification:
    """Role-to-skill matching."""

    def test_mapped_roles(self):
        assert is_qualified(["Piano"], "Pianist")
        assert is_qualified(["organ"], "Accompanist")
        assert is_qualified(["vocals"], "Lead Vocalist")
        assert not is_qualified(["drums"], "Pianist")

    def test_unknown_role_uses_substring(self):
        assert is_qualified(["trumpet"], "Trumpet")
        assert is_qualified(["flute"], "Flute soloist")
        assert not is_qualified(["cello"], "Trumpet")

    def test_no_instruments_never_qualifies(self):
        assert not is_qualified([], "Musician")
        assert not is_qualified(["  "], "Pianist")

    def test_empty_role_never_qualifies(self):
        assert not is_qualified(["piano"], "")


class TestPropose:
    """Pure proposal logic over a snapshot."""

    def test_candidate_without_instruments_is_never_proposed(self):
        snapshot = MatchSnapshot(open_roles=[_role("Musician")], candidates=[_candidate("ann", instruments=())])
        [proposal] = propose(snapshot, random.Random(1))
        assert proposal.person_id is None
        assert proposal.reason == MatchReason.no_one_qualified.value

    def test_no_double_booking_in_one_batch(self):
        snapshot = MatchSnapshot(
            open_roles=[_role("Pianist", "a1"), _role("Accompanist", "a2")],
            candidates=[_candidate("ann")],
        )
        first, second = propose(snapshot, random.Random(7))
        assert {first.person_id, second.person_id} == {"ann", None}
        assert [p for p in (first, second) if p.person_id is None][0].reason == MatchReason.no_match.value

    def test_accepted_overlap_excludes_candidate(self):
        busy = _candidate("ann", commitments=[
            Commitment(SERVICE_START + timedelta(minutes=30), SERVICE_END + timedelta(hours=1)),
        ])
        free = _candidate("bob")
        snapshot = MatchSnapshot(open_roles=[_role()], candidates=[busy, free])
        for seed in range(10):
            [proposal] = propose(snapshot, random.Random(seed))
            assert proposal.person_id == "bob"

    def test_touching_windows_do_not_conflict(self):
        earlier = _candidate("ann", commitments=[Commitment(SERVICE_START - timedelta(hours=1), SERVICE_START)])
        [proposal] = propose(MatchSnapshot([_role()], [earlier]), random.Random(0))
        assert proposal.person_id == "ann"

    def test_missing_end_time_conflicts_on_same_day(self):
        busy = _candidate("ann", commitments=[Commitment(SERVICE_START + timedelta(hours=5))])
        [proposal] = propose(MatchSnapshot([_role()], [busy]), random.Random(0))
        assert proposal.person_id is None
        assert proposal.reason == MatchReason.all_conflicted.value

    def test_all_unavailable(self):
        away = _candidate("ann", unavailabilities=[Unavailability(start_date=date(2030, 6, 1), end_date=date(2030, 6, 3))])
        sundays = _candidate("bob", unavailabilities=[Unavailability(day_of_week=0)])
        [proposal] = propose(MatchSnapshot([_role()], [away, sundays]), random.Random(0))
        assert proposal.reason == MatchReason.all_unavailable.value

    def test_unavailability_uses_candidate_timezone(self):
        # 01:00 UTC Monday is still Sunday evening in New York
        role = _role(start=datetime(2030, 6, 3, 1, 0), end=datetime(2030, 6, 3, 2, 0))
        sundays = _candidate("ann", unavailabilities=[Unavailability(day_of_week=0)], timezone="America/New_York")
        [proposal] = propose(MatchSnapshot([role], [sundays]), random.Random(0))
        assert proposal.person_id is None

    def test_mixed_failures_are_generic(self):
        away = _candidate("ann", unavailabilities=[Unavailability(start_date=date(2030, 6, 2))])
        busy = _candidate("bob", commitments=[Commitment(SERVICE_START, SERVICE_END)])
        [proposal] = propose(MatchSnapshot([_role()], [away, busy]), random.Random(0))
        assert proposal.reason == MatchReason.no_match.value

    def test_seeded_choice_is_deterministic(self):
        snapshot = MatchSnapshot(
            open_roles=[_role("Pianist", f"a{i}", start=SERVICE_START + timedelta(days=7 * i),
                              end=SERVICE_END + timedelta(days=7 * i)) for i in range(4)],
            candidates=[_candidate(name) for name in ("ann", "bob", "cal", "dee", "eve")],
        )
        first = [p.person_id for p in propose(snapshot, random.Random(42))]
        second = [p.person_id for p in propose(snapshot, random.Random(42))]
        assert first == second
        assert len(set(first)) == 4

    def test_roles_processed_in_start_order(self):
        later = _role("Pianist", "a-late", start=SERVICE_START + timedelta(days=7), end=SERVICE_END + timedelta(days=7))
        earlier = _role("Pianist", "a-early")
        proposals = propose(MatchSnapshot([later, earlier], [_candidate("ann")]), random.Random(0))
        assert [p.assignment_id for p in proposals] == ["a-early", "a-late"]
        assert proposals[0].person_id == "ann"


def _event_with_open_role(db, role_name="Pianist", start=SERVICE_START, end=SERVICE_END):
    event = Event(church_id=CHURCH_ID, name="Sunday Service", location="Sanctuary", start_time=start, end_time=end)
    event.assignments = [EventAssignment(role_name=role_name, status=AssignmentStatus.pending)]
    db.add(event)
    db.commit()
    return event


class TestSnapshotAndCommit:
    """Database-backed loading and committing."""

    def test_commit_tags_auto_assigned_and_stays_pending(self, db):
        pianist = add_db_user(db, "Pia", instruments=["piano"])
        event = _event_with_open_role(db)

        outcome = assignment_matcher.auto_assign(
            db, CHURCH_ID, [event.event_id], rng=random.Random(0), now=datetime(2030, 1, 1),
        )
        assert outcome["successful_assignments"] == 1
        assert outcome["committed"] == 1
        db.expire_all()
        row = db.query(EventAssignment).filter(EventAssignment.event_id == event.event_id).one()
        assert row.user_id == pianist.user_id
        assert row.is_auto_assigned
        assert row.status == AssignmentStatus.pending

    def test_preview_writes_nothing(self, db):
        add_db_user(db, "Pia", instruments=["piano"])
        event = _event_with_open_role(db)
        outcome = assignment_matcher.auto_assign(
            db, CHURCH_ID, [event.event_id], preview=True, rng=random.Random(0), now=datetime(2030, 1, 1),
        )
        assert outcome["successful_assignments"] == 1
        assert outcome["committed"] == 0
        db.expire_all()
        assert db.query(EventAssignment).filter(EventAssignment.user_id.isnot(None)).count() == 0

    def test_existing_accepted_assignment_blocks(self, db):
        pianist = add_db_user(db, "Pia", instruments=["piano"])
        other = Event(church_id=CHURCH_ID, name="Wedding", location="Chapel",
                      start_time=SERVICE_START - timedelta(minutes=30), end_time=SERVICE_START + timedelta(minutes=30))
        other.assignments = [
            EventAssignment(role_name="Pianist", user_id=pianist.user_id, status=AssignmentStatus.accepted),
        ]
        db.add(other)
        db.commit()
        event = _event_with_open_role(db)

        snapshot = assignment_matcher.load_snapshot(db, CHURCH_ID, [event.event_id], now=datetime(2030, 1, 1))
        assert len(snapshot.open_roles) == 1
        [proposal] = propose(snapshot, random.Random(0))
        assert proposal.person_id is None
        assert proposal.reason == MatchReason.all_conflicted.value

    def test_unverified_and_non_musicians_are_not_candidates(self, db):
        add_db_user(db, "Director", role=UserRole.director, instruments=["piano"])
        unverified = add_db_user(db, "New", instruments=["piano"])
        unverified.is_verified = False
        db.commit()
        event = _event_with_open_role(db)

        snapshot = assignment_matcher.load_snapshot(db, CHURCH_ID, [event.event_id], now=datetime(2030, 1, 1))
        assert snapshot.candidates == []

    def test_group_placeholders_are_not_open_roles(self, db):
        group = Group(church_id=CHURCH_ID, name="Choir")
        db.add(group)
        db.commit()
        event = Event(church_id=CHURCH_ID, name="Sunday Service", location="Sanctuary", start_time=SERVICE_START)
        event.assignments = [EventAssignment(group_id=group.group_id, status=AssignmentStatus.pending)]
        db.add(event)
        db.commit()

        snapshot = assignment_matcher.load_snapshot(db, CHURCH_ID, [event.event_id], now=datetime(2030, 1, 1))
        assert snapshot.open_roles == []

    def test_group_filter_limits_pool(self, db):
        inside = add_db_user(db, "Ina", instruments=["piano"])
        add_db_user(db, "Otto", instruments=["piano"])
        group = Group(church_id=CHURCH_ID, name="Band")
        group.members = [GroupMember(user_id=inside.user_id)]
        db.add(group)
        db.commit()
        event = _event_with_open_role(db)

        snapshot = assignment_matcher.load_snapshot(
            db, CHURCH_ID, [event.event_id], group_filter=[group.group_id], now=datetime(2030, 1, 1),
        )
        assert [c.person_id for c in snapshot.candidates] == [inside.user_id]

    def test_unavailability_loaded_from_database(self, db):
        pianist = add_db_user(db, "Pia", instruments=["piano"])
        db.add(MusicianUnavailability(user_id=pianist.user_id, start_date=date(2030, 6, 1), end_date=date(2030, 6, 8)))
        db.commit()
        event = _event_with_open_role(db)

        snapshot = assignment_matcher.load_snapshot(db, CHURCH_ID, [event.event_id], now=datetime(2030, 1, 1))
        [proposal] = propose(snapshot, random.Random(0))
        assert proposal.reason == MatchReason.all_unavailable.value

    def test_commit_skips_slot_filled_since_preview(self, db):
        pia = add_db_user(db, "Pia", instruments=["piano"])
        other = add_db_user(db, "Oli", instruments=["piano"])
        event = _event_with_open_role(db)
        snapshot = assignment_matcher.load_snapshot(db, CHURCH_ID, [event.event_id], now=datetime(2030, 1, 1))
        proposals = propose(snapshot, random.Random(0))

        row = db.query(EventAssignment).filter(EventAssignment.event_id == event.event_id).one()
        row.user_id = other.user_id if proposals[0].person_id == pia.user_id else pia.user_id
        db.commit()

        assert assignment_matcher.commit(db, proposals) == 0
