"""Engine, session factory, and transaction helpers."""
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from worship_scheduler.config import settings

logger = logging.getLogger(__name__)

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session, timeout_seconds: Optional[int] = None) -> Generator[Session, None, None]:
    """Run a block of writes as one transaction: commit on success, roll back on any error.

    On PostgreSQL the timeout is applied with SET LOCAL so it only lives for
    this transaction. Other dialects ignore it.
    """
    try:
        if timeout_seconds and db.get_bind().dialect.name == "postgresql":
            db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_seconds) * 1000}"))
        yield db
        db.commit()
    except Exception:
        logger.warning("Rolling back transaction", exc_info=True)
        db.rollback()
        raise
