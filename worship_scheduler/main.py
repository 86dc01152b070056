"""FastAPI application entry point."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from worship_scheduler.config import settings
from worship_scheduler.database import Base, engine
from worship_scheduler.logging_config import configure_logging

# Import routers
from worship_scheduler.routers import assignments, events, groups, musicians, users

# Import all models so Base.metadata knows about them
from worship_scheduler.models.user import User                      # noqa: F401
from worship_scheduler.models.group import Group, GroupMember       # noqa: F401
from worship_scheduler.models.event import Event, EventType         # noqa: F401
from worship_scheduler.models.assignment import EventAssignment     # noqa: F401
from worship_scheduler.models.hymn import EventHymn, ServicePart    # noqa: F401
from worship_scheduler.models.document import EventDocument         # noqa: F401
from worship_scheduler.models.unavailability import MusicianUnavailability  # noqa: F401
from worship_scheduler.models.activity import Activity              # noqa: F401

configure_logging()

app = FastAPI(
    title="Worship Scheduler",
    description="Recurring worship-service scheduling and musician assignment",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(groups.router, prefix="/api/groups", tags=["Groups"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(assignments.router, prefix="/api/assignments", tags=["Assignments"])
app.include_router(musicians.router, prefix="/api/musicians", tags=["Musicians"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
