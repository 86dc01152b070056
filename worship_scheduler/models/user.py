"""User ORM model: directors, pastors, and musicians (assignment candidates)."""
import uuid
import enum
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from worship_scheduler.database import Base


class UserRole(str, enum.Enum):
    director = "DIRECTOR"
    associate_director = "ASSOCIATE_DIRECTOR"
    pastor = "PASTOR"
    musician = "MUSICIAN"


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    church_id = Column(String(36), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), nullable=False, unique=True)
    role = Column(SAEnum(UserRole), nullable=False, default=UserRole.musician)
    instruments = Column(JSON, nullable=False, default=list)
    is_verified = Column(Boolean, nullable=False, default=True)
    default_timezone = Column(String(50), nullable=False, default="UTC")  # IANA tz
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    unavailabilities = relationship(
        "MusicianUnavailability", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
