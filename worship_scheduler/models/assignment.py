"""EventAssignment ORM model: one role slot on one event."""
import uuid
import enum
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from worship_scheduler.database import Base


class AssignmentStatus(str, enum.Enum):
    pending = "PENDING"
    accepted = "ACCEPTED"
    declined = "DECLINED"


class EventAssignment(Base):
    __tablename__ = "event_assignments"

    assignment_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id"), nullable=False, index=True)
    role_name = Column(String(100), nullable=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=True, index=True)
    group_id = Column(String(36), ForeignKey("groups.group_id"), nullable=True)
    status = Column(SAEnum(AssignmentStatus), nullable=False, default=AssignmentStatus.pending)
    max_musicians = Column(Integer, nullable=True, default=1)
    is_auto_assigned = Column(Boolean, nullable=False, default=False)
    assigned_at = Column(DateTime(timezone=True), server_default=func.now())
    responded_at = Column(DateTime(timezone=True), nullable=True)

    event = relationship("Event", back_populates="assignments")

    @property
    def is_open_role(self) -> bool:
        """An unfilled individual slot. Group-level placeholders are not open roles."""
        return self.user_id is None and self.group_id is None
