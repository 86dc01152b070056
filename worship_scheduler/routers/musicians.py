"""Musician unavailability routes."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from worship_scheduler.constants import SCHEDULER_ROLES
from worship_scheduler.database import get_db
from worship_scheduler.models.unavailability import MusicianUnavailability
from worship_scheduler.models.user import User
from worship_scheduler.routers.deps import actor_timezone, get_actor, get_scheduler
from worship_scheduler.schemas.musician import AvailabilitySummaryOut, UnavailabilityCreate, UnavailabilityOut
from worship_scheduler.services.availability_service import availability_summary, cleanup_expired_unavailabilities
from worship_scheduler.services.clock import utc_to_local, utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


@router.delete("/unavailability/expired")
def purge_expired_unavailability(actor: User = Depends(get_scheduler), db: Session = Depends(get_db)):
    """Drop date-range records that have already ended."""
    today = utc_to_local(utcnow(), actor_timezone(actor)).date()
    return {"deleted": cleanup_expired_unavailabilities(db, today, church_id=actor.church_id)}


def _get_musician(db: Session, user_id: str, actor: User) -> User:
    """Musicians manage their own records; schedulers may manage anyone in their church."""
    musician = db.query(User).filter(User.user_id == user_id, User.church_id == actor.church_id).first()
    if not musician:
        raise HTTPException(status_code=404, detail="User not found")
    if actor.user_id != musician.user_id and actor.role.value not in SCHEDULER_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot manage another user's availability")
    return musician


@router.post("/{user_id}/unavailability", response_model=UnavailabilityOut, status_code=status.HTTP_201_CREATED)
def add_unavailability(
    user_id: str,
    payload: UnavailabilityCreate,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
):
    musician = _get_musician(db, user_id, actor)
    row = MusicianUnavailability(user_id=musician.user_id, **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Added unavailability %s for user %s", row.unavailability_id, user_id)
    return row


@router.get("/{user_id}/unavailability", response_model=list[UnavailabilityOut])
def list_unavailability(user_id: str, actor: User = Depends(get_actor), db: Session = Depends(get_db)):
    musician = _get_musician(db, user_id, actor)
    return (
        db.query(MusicianUnavailability)
        .filter(MusicianUnavailability.user_id == musician.user_id)
        .order_by(MusicianUnavailability.day_of_week, MusicianUnavailability.start_date)
        .all()
    )


@router.delete("/{user_id}/unavailability/{unavailability_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_unavailability(
    user_id: str,
    unavailability_id: str,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
):
    musician = _get_musician(db, user_id, actor)
    row = (
        db.query(MusicianUnavailability)
        .filter(
            MusicianUnavailability.unavailability_id == unavailability_id,
            MusicianUnavailability.user_id == musician.user_id,
        )
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Unavailability not found")
    db.delete(row)
    db.commit()
    logger.info("Removed unavailability %s for user %s", unavailability_id, user_id)


@router.get("/{user_id}/availability-summary", response_model=AvailabilitySummaryOut)
def get_availability_summary(user_id: str, actor: User = Depends(get_actor), db: Session = Depends(get_db)):
    musician = _get_musician(db, user_id, actor)
    today = utc_to_local(utcnow(), actor_timezone(musician)).date()
    return availability_summary(db, musician.user_id, today)
