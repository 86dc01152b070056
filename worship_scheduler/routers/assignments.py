"""Open-role listing and auto-assignment routes."""
import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from worship_scheduler.database import get_db
from worship_scheduler.models.activity import ActivityType
from worship_scheduler.models.user import User
from worship_scheduler.routers.deps import get_actor, get_scheduler
from worship_scheduler.schemas.assignment import AutoAssignOut, AutoAssignRequest, OpenEventOut, ProposalOut
from worship_scheduler.services import assignment_matcher, event_service
from worship_scheduler.services.activity_service import log_activity

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/open", response_model=list[OpenEventOut])
def list_open_events(
    days: int = Query(30, ge=1, le=365),
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Upcoming events that still have unfilled roles."""
    return event_service.list_open_events(db, actor.church_id, days=days)


@router.post("/auto-assign", response_model=AutoAssignOut)
def auto_assign(
    payload: AutoAssignRequest,
    actor: User = Depends(get_scheduler),
    db: Session = Depends(get_db),
):
    """Propose musicians for open roles; commit them unless ``preview`` is set."""
    outcome = assignment_matcher.auto_assign(
        db,
        church_id=actor.church_id,
        event_ids=payload.event_ids,
        preview=payload.preview,
        group_filter=payload.group_filter,
    )
    if outcome["committed"]:
        log_activity(
            db,
            church_id=actor.church_id,
            user_id=actor.user_id,
            type=ActivityType.musicians_auto_assigned,
            description=outcome["description"],
            details={
                "event_ids": payload.event_ids,
                "successful_assignments": outcome["successful_assignments"],
                "total_assignments": outcome["total_assignments"],
            },
        )
    return AutoAssignOut(
        proposals=[ProposalOut.model_validate(proposal) for proposal in outcome["proposals"]],
        successful_assignments=outcome["successful_assignments"],
        total_assignments=outcome["total_assignments"],
        committed=outcome["committed"],
        preview=outcome["preview"],
    )
