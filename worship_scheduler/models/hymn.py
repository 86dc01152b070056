"""ServicePart and EventHymn ORM models (order-of-service entries)."""
import uuid
from sqlalchemy import Column, String, Integer, Text, ForeignKey
from sqlalchemy.orm import relationship
from worship_scheduler.database import Base


class ServicePart(Base):
    __tablename__ = "service_parts"

    service_part_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    church_id = Column(String(36), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    order = Column(Integer, nullable=False, default=0)


class EventHymn(Base):
    __tablename__ = "event_hymns"

    hymn_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id"), nullable=False, index=True)
    service_part_id = Column(String(36), ForeignKey("service_parts.service_part_id"), nullable=True)
    title = Column(String(255), nullable=False, default="")
    notes = Column(Text, nullable=True)

    event = relationship("Event", back_populates="hymns")
