"""MusicianUnavailability ORM model: declared date ranges or weekly days off."""
import uuid
from sqlalchemy import Column, String, Date, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from worship_scheduler.database import Base


class MusicianUnavailability(Base):
    __tablename__ = "musician_unavailabilities"

    unavailability_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    day_of_week = Column(Integer, nullable=True)  # 0 = Sunday
    reason = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="unavailabilities")
