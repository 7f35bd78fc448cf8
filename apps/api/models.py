from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Float, Date, DateTime, ForeignKey, Text, Index, UniqueConstraint, JSON, Uuid, text
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from core.database import Base
import uuid
from datetime import datetime, timezone


# JSONB on Postgres, plain JSON elsewhere (SQLite in local runs and tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RoutineDocument(Base):
    """
    The free-text "my routine" document an owner edits and activates.

    Lifecycle: draft -> active -> past. Per owner, over non-deleted rows,
    there is at most one draft and at most one active row; both rules are
    enforced by partial unique indexes so a losing concurrent writer fails
    at the database instead of leaving two rows behind.

    `version` is unique per owner across the full history (soft-deleted rows
    included) so a version number is never reused.
    """
    __tablename__ = "routine_document"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, nullable=False)  # Index in __table_args__
    content = Column(Text, nullable=False, default="")
    version = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, default="draft")  # 'draft', 'active', 'past'
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)  # soft delete

    __table_args__ = (
        UniqueConstraint("owner_id", "version", name="uq_routine_document_owner_version"),
        CheckConstraint("version >= 1", name="ck_routine_document_version_positive"),
        CheckConstraint("status IN ('draft', 'active', 'past')", name="ck_routine_document_status"),
        Index("ix_routine_document_owner_id", "owner_id"),
        Index(
            "ux_routine_document_owner_active",
            "owner_id",
            unique=True,
            postgresql_where=text("status = 'active' AND deleted_at IS NULL"),
            sqlite_where=text("status = 'active' AND deleted_at IS NULL"),
        ),
        Index(
            "ux_routine_document_owner_draft",
            "owner_id",
            unique=True,
            postgresql_where=text("status = 'draft' AND deleted_at IS NULL"),
            sqlite_where=text("status = 'draft' AND deleted_at IS NULL"),
        ),
    )


class RoutineDefinition(Base):
    """
    One recurring commitment (e.g. "Weekday morning routine").

    schedule_type selects which key of schedule_config is meaningful:
    - weekly:  {"days_of_week": [0..6]}      0=Sunday
    - monthly: {"days_of_month": [1..31]}
    - yearly:  {"dates_of_year": ["MM-DD"]}
    """
    __tablename__ = "routine_definition"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, nullable=False)  # Index in __table_args__
    routine_name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    schedule_type = Column(Text, nullable=False)  # 'weekly', 'monthly', 'yearly'
    schedule_config = Column(JSONType, nullable=False, default=dict)
    time_of_day = Column(Text, nullable=True)  # 'morning', 'midday', 'night', 'workout'; NULL = anytime
    status = Column(Text, nullable=False, default="active")  # 'pending', 'active', 'archived'
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    items = relationship(
        "RoutineItem",
        back_populates="routine",
        cascade="all, delete-orphan",
        order_by="RoutineItem.item_order",
    )

    __table_args__ = (
        Index("ix_routine_definition_owner_id", "owner_id"),
        Index("ix_routine_definition_owner_time_of_day", "owner_id", "time_of_day"),
        CheckConstraint("schedule_type IN ('weekly', 'monthly', 'yearly')", name="ck_routine_definition_schedule_type"),
        CheckConstraint("status IN ('pending', 'active', 'archived')", name="ck_routine_definition_status"),
    )


class RoutineItem(Base):
    """A single, specific action inside a routine definition."""
    __tablename__ = "routine_item"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    routine_id = Column(Uuid, ForeignKey("routine_definition.id", ondelete="CASCADE"), nullable=False)
    item_name = Column(Text, nullable=False)
    item_type = Column(Text, nullable=False, default="habit")  # free-form category
    habit_classification = Column(Text, nullable=False, default="neutral")  # 'good', 'bad', 'neutral'

    # Optional numeric attributes
    duration_minutes = Column(Integer, nullable=True)
    sets = Column(Integer, nullable=True)
    reps = Column(Integer, nullable=True)
    weight_kg = Column(Float, nullable=True)
    distance_km = Column(Float, nullable=True)
    calories = Column(Integer, nullable=True)
    serving_size = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    item_order = Column(Integer, nullable=False, default=0)
    is_optional = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    routine = relationship("RoutineDefinition", back_populates="items")

    __table_args__ = (
        Index("ix_routine_item_routine_id", "routine_id"),
        CheckConstraint("habit_classification IN ('good', 'bad', 'neutral')", name="ck_routine_item_classification"),
    )


class RoutineCompletion(Base):
    """A record that an owner performed a routine item on a given day."""
    __tablename__ = "routine_completion"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    routine_item_id = Column(Uuid, ForeignKey("routine_item.id", ondelete="CASCADE"), nullable=False)
    owner_id = Column(Uuid, nullable=False)
    completion_date = Column(Date, nullable=False)
    completed_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_routine_completion_owner_date", "owner_id", "completion_date"),
        Index("ix_routine_completion_item_id", "routine_item_id"),
    )


class GuestOnboardingSession(Base):
    """
    Onboarding state for a visitor who has not registered yet.

    Routines are embedded as one JSON array keyed by session id, each entry
    already resolved to a single day of week:
        {"temp_routine_id", "routine_name", "day_of_week", "time_of_day", "items": [...]}
    """
    __tablename__ = "guest_onboarding_session"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Text, nullable=False, unique=True)
    routines = Column(JSONType, nullable=False, default=list)
    sleep_routine = Column(JSONType, nullable=True)
    migrated = Column(Boolean, nullable=False, default=False)
    migrated_to_owner_id = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
