"""Shared router dependencies: acting user and scheduler permission check."""
from fastapi import Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from worship_scheduler.config import settings
from worship_scheduler.constants import SCHEDULER_ROLES
from worship_scheduler.database import get_db
from worship_scheduler.models.user import User


def get_actor(
    actor_user_id: str = Query(..., description="ID of the user performing the request"),
    db: Session = Depends(get_db),
) -> User:
    actor = db.query(User).filter(User.user_id == actor_user_id).first()
    if not actor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Acting user not found")
    return actor


def get_scheduler(actor: User = Depends(get_actor)) -> User:
    """Only directors, associate directors and pastors may create, edit or staff events."""
    if actor.role.value not in SCHEDULER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only directors, associate directors, and pastors can manage events",
        )
    return actor


def actor_timezone(actor: User) -> str:
    return actor.default_timezone or settings.DEFAULT_TIMEZONE
