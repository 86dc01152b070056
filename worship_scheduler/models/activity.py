"""Activity ORM model: the church's human-readable audit feed."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, JSON, Enum as SAEnum
from sqlalchemy.sql import func
from worship_scheduler.database import Base


class ActivityType(str, enum.Enum):
    event_created = "EVENT_CREATED"
    event_updated = "EVENT_UPDATED"
    event_deleted = "EVENT_DELETED"
    musicians_auto_assigned = "MUSICIANS_AUTO_ASSIGNED"


class Activity(Base):
    __tablename__ = "activities"

    activity_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    church_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=True)
    type = Column(SAEnum(ActivityType), nullable=False)
    description = Column(String(500), nullable=False)
    details = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
