"""Musician availability: declared unavailability and existing-commitment conflicts."""
import logging
from datetime import date, datetime
from typing import Any, Optional, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from worship_scheduler.constants import DAY_NAMES
from worship_scheduler.models.unavailability import MusicianUnavailability
from worship_scheduler.models.user import User
from worship_scheduler.services.clock import utc_to_local

logger = logging.getLogger(__name__)


def windows_conflict(
    start1: datetime,
    end1: Optional[datetime],
    start2: datetime,
    end2: Optional[datetime],
    tz_name: str = "UTC",
) -> bool:
    """Check whether two event windows clash.

    With both end times known this is a strict overlap test (touching windows do
    not clash). If either end is missing, any two events on the same local
    calendar day clash.
    """
    if end1 is not None and end2 is not None:
        return start1 < end2 and end1 > start2
    return utc_to_local(start1, tz_name).date() == utc_to_local(start2, tz_name).date()


def unavailability_covers(unavailability: Any, day: date) -> bool:
    """Whether a date-range or weekly day-of-week rule covers ``day``.

    Works on ORM rows and on plain snapshots with the same attributes.
    """
    if unavailability.day_of_week is not None:
        return (day.weekday() + 1) % 7 == unavailability.day_of_week
    if unavailability.start_date is not None:
        end = unavailability.end_date or unavailability.start_date
        return unavailability.start_date <= day <= end
    return False


def describe_unavailability(unavailability: Any) -> str:
    if unavailability.day_of_week is not None:
        text = f"Not available on {DAY_NAMES[unavailability.day_of_week]}s"
    elif unavailability.start_date and unavailability.end_date:
        text = f"Not available {unavailability.start_date.isoformat()} - {unavailability.end_date.isoformat()}"
    elif unavailability.start_date:
        text = f"Not available on {unavailability.start_date.isoformat()}"
    else:
        text = "Not available"
    if unavailability.reason:
        text += f" ({unavailability.reason})"
    return text


def unavailable_reason(
    unavailabilities: Sequence[Any],
    event_start: datetime,
    tz_name: str = "UTC",
) -> Optional[str]:
    """Reason the musician is unavailable for an event starting at ``event_start`` (naive UTC), or None."""
    day = utc_to_local(event_start, tz_name).date()
    for unavailability in unavailabilities:
        if unavailability_covers(unavailability, day):
            return describe_unavailability(unavailability)
    return None


def availability_summary(db: Session, user_id: str, today: date) -> dict[str, int]:
    """Counts of a musician's current and upcoming unavailability records."""
    rows = (
        db.query(MusicianUnavailability)
        .filter(
            MusicianUnavailability.user_id == user_id,
            or_(
                MusicianUnavailability.day_of_week.isnot(None),
                MusicianUnavailability.end_date >= today,
                and_(MusicianUnavailability.end_date.is_(None), MusicianUnavailability.start_date >= today),
            ),
        )
        .all()
    )
    date_ranges = [row for row in rows if row.day_of_week is None]
    return {
        "total_unavailabilities": len(rows),
        "date_ranges": len(date_ranges),
        "recurring_days": len(rows) - len(date_ranges),
        "upcoming_unavailabilities": sum(1 for row in date_ranges if row.start_date and row.start_date > today),
    }


def cleanup_expired_unavailabilities(db: Session, today: date, church_id: Optional[str] = None) -> int:
    """Delete date-range records that ended before ``today``. Weekly rules never expire."""
    query = db.query(MusicianUnavailability)
    if church_id:
        query = query.filter(
            MusicianUnavailability.user_id.in_(select(User.user_id).where(User.church_id == church_id))
        )
    removed = (
        query.filter(
            MusicianUnavailability.day_of_week.is_(None),
            or_(
                MusicianUnavailability.end_date < today,
                and_(MusicianUnavailability.end_date.is_(None), MusicianUnavailability.start_date < today),
            ),
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("Removed %d expired unavailability records", removed)
    return removed
