"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for the Worship Scheduler:
users, groups, group_members, event_types, service_parts, events,
event_assignments, event_hymns, event_documents,
musician_unavailabilities, activities.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLAlchemy persists Python enums by member name
user_role = sa.Enum("director", "associate_director", "pastor", "musician", name="userrole")
assignment_status = sa.Enum("pending", "accepted", "declined", name="assignmentstatus")
activity_type = sa.Enum(
    "event_created", "event_updated", "event_deleted", "musicians_auto_assigned", name="activitytype"
)


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("church_id", sa.String(36), nullable=False, index=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", user_role, nullable=False, server_default="musician"),
        sa.Column("instruments", sa.JSON, nullable=False),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("default_timezone", sa.String(50), nullable=False, server_default="UTC"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- groups ---
    op.create_table(
        "groups",
        sa.Column("group_id", sa.String(36), primary_key=True),
        sa.Column("church_id", sa.String(36), nullable=False, index=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- group_members ---
    op.create_table(
        "group_members",
        sa.Column("group_id", sa.String(36), sa.ForeignKey("groups.group_id"), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- event_types / service_parts ---
    op.create_table(
        "event_types",
        sa.Column("event_type_id", sa.String(36), primary_key=True),
        sa.Column("church_id", sa.String(36), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False, server_default="General"),
        sa.Column("color", sa.String(20), nullable=False, server_default="#3B82F6"),
    )
    op.create_table(
        "service_parts",
        sa.Column("service_part_id", sa.String(36), primary_key=True),
        sa.Column("church_id", sa.String(36), nullable=False, index=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("order", sa.Integer, nullable=False, server_default="0"),
    )

    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("church_id", sa.String(36), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("location", sa.String(500), nullable=True),
        sa.Column("start_time", sa.DateTime, nullable=False, index=True),
        sa.Column("end_time", sa.DateTime, nullable=True),
        sa.Column("event_type_id", sa.String(36), sa.ForeignKey("event_types.event_type_id"), nullable=True),
        sa.Column("is_root_event", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_recurring", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("recurrence_pattern", sa.Text, nullable=True),
        sa.Column("recurrence_end", sa.Date, nullable=True),
        sa.Column("generated_from", sa.String(36), sa.ForeignKey("events.event_id"), nullable=True, index=True),
        sa.Column("is_modified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- event_assignments ---
    op.create_table(
        "event_assignments",
        sa.Column("assignment_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False, index=True),
        sa.Column("role_name", sa.String(100), nullable=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True, index=True),
        sa.Column("group_id", sa.String(36), sa.ForeignKey("groups.group_id"), nullable=True),
        sa.Column("status", assignment_status, nullable=False, server_default="pending"),
        sa.Column("max_musicians", sa.Integer, nullable=True, server_default="1"),
        sa.Column("is_auto_assigned", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("assigned_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
    )

    # --- event_hymns ---
    op.create_table(
        "event_hymns",
        sa.Column("hymn_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False, index=True),
        sa.Column(
            "service_part_id", sa.String(36), sa.ForeignKey("service_parts.service_part_id"), nullable=True
        ),
        sa.Column("title", sa.String(255), nullable=False, server_default=""),
        sa.Column("notes", sa.Text, nullable=True),
    )

    # --- event_documents ---
    op.create_table(
        "event_documents",
        sa.Column("document_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False, index=True),
        sa.Column("original_filename", sa.String(255), nullable=False),
        sa.Column("storage_key", sa.String(500), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- musician_unavailabilities ---
    op.create_table(
        "musician_unavailabilities",
        sa.Column("unavailability_id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False, index=True),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("day_of_week", sa.Integer, nullable=True),
        sa.Column("reason", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- activities ---
    op.create_table(
        "activities",
        sa.Column("activity_id", sa.String(36), primary_key=True),
        sa.Column("church_id", sa.String(36), nullable=False, index=True),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("type", activity_type, nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("activities")
    op.drop_table("musician_unavailabilities")
    op.drop_table("event_documents")
    op.drop_table("event_hymns")
    op.drop_table("event_assignments")
    op.drop_table("events")
    op.drop_table("service_parts")
    op.drop_table("event_types")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("users")
    for enum_type in (activity_type, assignment_status, user_role):
        enum_type.drop(op.get_bind(), checkfirst=True)
