"""Pytest fixtures — file-backed SQLite database, recreated for every test."""
import uuid
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from worship_scheduler.database import Base, get_db
from worship_scheduler.main import app

# Import all models so they register with Base.metadata
from worship_scheduler.models.user import User, UserRole            # noqa: F401
from worship_scheduler.models.group import Group, GroupMember       # noqa: F401
from worship_scheduler.models.event import Event, EventType         # noqa: F401
from worship_scheduler.models.assignment import EventAssignment     # noqa: F401
from worship_scheduler.models.hymn import EventHymn, ServicePart    # noqa: F401
from worship_scheduler.models.document import EventDocument         # noqa: F401
from worship_scheduler.models.unavailability import MusicianUnavailability  # noqa: F401
from worship_scheduler.models.activity import Activity              # noqa: F401

SQLITE_URL = "sqlite:///./test.db"

CHURCH_ID = "11111111-1111-1111-1111-111111111111"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session for direct service-level tests."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create users and groups via the API, return the JSON response dict
# ---------------------------------------------------------------------------
def create_test_user(
    client: TestClient,
    first_name: str = "Test",
    role: str = "MUSICIAN",
    instruments: list = None,
    tz: str = "UTC",
    church_id: str = CHURCH_ID,
) -> dict:
    """Helper — POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={
        "church_id": church_id,
        "first_name": first_name,
        "last_name": "User",
        "email": f"{first_name.lower()}-{uuid.uuid4().hex[:8]}@example.org",
        "role": role,
        "instruments": instruments or [],
        "default_timezone": tz,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_group(client: TestClient, name: str = "Choir", church_id: str = CHURCH_ID) -> dict:
    """Helper — POST /api/groups and return response JSON."""
    resp = client.post("/api/groups/", json={"church_id": church_id, "name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()


def add_db_user(db, first_name: str = "Test", role=None, instruments=None, tz: str = "UTC") -> User:
    """Helper — insert a verified user straight into the session."""
    user = User(
        church_id=CHURCH_ID,
        first_name=first_name,
        last_name="User",
        email=f"{first_name.lower()}-{uuid.uuid4().hex[:8]}@example.org",
        role=role or UserRole.musician,
        instruments=instruments or [],
        is_verified=True,
        default_timezone=tz,
    )
    db.add(user)
    db.commit()
    return user
