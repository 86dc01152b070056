"""Tests for availability rules: window conflicts, unavailability coverage, summaries."""
from datetime import date, datetime

from worship_scheduler.models.unavailability import MusicianUnavailability
from worship_scheduler.services.availability_service import (
    availability_summary,
    cleanup_expired_unavailabilities,
    describe_unavailability,
    unavailability_covers,
    unavailable_reason,
    windows_conflict,
)
from tests.conftest import add_db_user


class TestWindowsConflict:
    """Overlap rules between two events."""

    def test_overlap(self):
        assert windows_conflict(
            datetime(2030, 6, 2, 14), datetime(2030, 6, 2, 16),
            datetime(2030, 6, 2, 15), datetime(2030, 6, 2, 17),
        )

    def test_back_to_back_is_fine(self):
        assert not windows_conflict(
            datetime(2030, 6, 2, 14), datetime(2030, 6, 2, 15),
            datetime(2030, 6, 2, 15), datetime(2030, 6, 2, 16),
        )

    def test_missing_end_compares_local_days(self):
        # 23:30 UTC on the 2nd and 02:00 UTC on the 3rd are both the evening of the 2nd in New York
        assert windows_conflict(datetime(2030, 6, 2, 23, 30), None, datetime(2030, 6, 3, 2, 0), None,
                                "America/New_York")
        assert not windows_conflict(datetime(2030, 6, 2, 23, 30), None, datetime(2030, 6, 3, 2, 0), None)


class TestUnavailability:
    """Date-range and weekly rules."""

    def test_range_inclusive(self):
        rule = MusicianUnavailability(start_date=date(2030, 6, 1), end_date=date(2030, 6, 3))
        assert unavailability_covers(rule, date(2030, 6, 1))
        assert unavailability_covers(rule, date(2030, 6, 3))
        assert not unavailability_covers(rule, date(2030, 6, 4))

    def test_single_day(self):
        rule = MusicianUnavailability(start_date=date(2030, 6, 2))
        assert unavailability_covers(rule, date(2030, 6, 2))
        assert not unavailability_covers(rule, date(2030, 6, 3))

    def test_weekly_day_sunday_is_zero(self):
        rule = MusicianUnavailability(day_of_week=0, reason="Teaches Sunday school")
        assert unavailability_covers(rule, date(2030, 6, 2))  # a Sunday
        assert not unavailability_covers(rule, date(2030, 6, 3))
        assert describe_unavailability(rule) == "Not available on Sundays (Teaches Sunday school)"

    def test_reason_for_event(self):
        rules = [MusicianUnavailability(start_date=date(2030, 6, 1), end_date=date(2030, 6, 7), reason="Vacation")]
        assert unavailable_reason(rules, datetime(2030, 6, 2, 14)) == "Not available 2030-06-01 - 2030-06-07 (Vacation)"
        assert unavailable_reason(rules, datetime(2030, 6, 9, 14)) is None


class TestSummary:
    """Per-musician counts and cleanup."""

    def test_summary_counts_current_and_upcoming(self, db):
        musician = add_db_user(db, "Sam", instruments=["bass"])
        db.add_all([
            MusicianUnavailability(user_id=musician.user_id, start_date=date(2030, 5, 1), end_date=date(2030, 5, 2)),
            MusicianUnavailability(user_id=musician.user_id, start_date=date(2030, 5, 30), end_date=date(2030, 6, 5)),
            MusicianUnavailability(user_id=musician.user_id, start_date=date(2030, 7, 4)),
            MusicianUnavailability(user_id=musician.user_id, day_of_week=3),
        ])
        db.commit()

        summary = availability_summary(db, musician.user_id, today=date(2030, 6, 1))
        assert summary == {
            "total_unavailabilities": 3,
            "date_ranges": 2,
            "recurring_days": 1,
            "upcoming_unavailabilities": 1,
        }

    def test_cleanup_keeps_weekly_rules(self, db):
        musician = add_db_user(db, "Sam", instruments=["bass"])
        db.add_all([
            MusicianUnavailability(user_id=musician.user_id, start_date=date(2030, 5, 1), end_date=date(2030, 5, 2)),
            MusicianUnavailability(user_id=musician.user_id, start_date=date(2030, 5, 20)),
            MusicianUnavailability(user_id=musician.user_id, start_date=date(2030, 6, 1)),
            MusicianUnavailability(user_id=musician.user_id, day_of_week=3),
        ])
        db.commit()

        assert cleanup_expired_unavailabilities(db, today=date(2030, 6, 1)) == 2
        assert db.query(MusicianUnavailability).count() == 2
