"""Activity feed writes."""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from worship_scheduler.models.activity import Activity, ActivityType

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    church_id: str,
    user_id: Optional[str],
    type: ActivityType,
    description: str,
    details: Optional[dict[str, Any]] = None,
) -> Activity:
    activity = Activity(
        church_id=church_id,
        user_id=user_id,
        type=type,
        description=description,
        details=details,
    )
    db.add(activity)
    db.commit()
    logger.info("Activity %s for church %s: %s", type.value, church_id, description)
    return activity
