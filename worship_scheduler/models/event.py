"""Event and EventType ORM models."""
import uuid
from sqlalchemy import Column, String, Text, Date, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from worship_scheduler.database import Base


class EventType(Base):
    __tablename__ = "event_types"

    event_type_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    church_id = Column(String(36), nullable=False, index=True)
    name = Column(String(100), nullable=False, default="General")
    color = Column(String(20), nullable=False, default="#3B82F6")


class Event(Base):
    __tablename__ = "events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    church_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(500), nullable=True)
    start_time = Column(DateTime, nullable=False, index=True)  # naive UTC
    end_time = Column(DateTime, nullable=True)
    event_type_id = Column(String(36), ForeignKey("event_types.event_type_id"), nullable=True)

    # Series bookkeeping
    is_root_event = Column(Boolean, nullable=False, default=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_pattern = Column(Text, nullable=True)  # JSON-serialized RecurrencePattern
    recurrence_end = Column(Date, nullable=True)
    generated_from = Column(String(36), ForeignKey("events.event_id"), nullable=True, index=True)
    is_modified = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    event_type = relationship("EventType")
    assignments = relationship("EventAssignment", back_populates="event", cascade="all, delete-orphan")
    hymns = relationship("EventHymn", back_populates="event", cascade="all, delete-orphan")
    documents = relationship("EventDocument", back_populates="event", cascade="all, delete-orphan")
