"""SQLAlchemy ORM models for trips, itinerary versions, comments and the cache pool."""

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TripRow(Base):
    """Trip table - request parameters plus the active version pointer."""

    __tablename__ = "trip"
    __table_args__ = (Index("idx_trip_owner", "owner_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    destination: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    traveler_type: Mapped[str] = mapped_column(Text, nullable=False)
    traveler_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    pacing: Mapped[str] = mapped_column(Text, nullable=False)
    anchors: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    active_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    regenerations_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class ItineraryVersionRow(Base):
    """Itinerary version table - append-only lineage, one row per version."""

    __tablename__ = "itinerary_version"
    __table_args__ = (
        UniqueConstraint("trip_id", "version", name="uq_itinerary_version_trip_version"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("trip.id"), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    source_type: Mapped[str] = mapped_column(Text, nullable=False)
    parent_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    source_comment_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    source_versions: Mapped[list[int]] = mapped_column(JSONType, nullable=False, default=list)
    modification_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class CommentRow(Base):
    """Comment table - feedback with classified intent and conflict links."""

    __tablename__ = "comment"
    __table_args__ = (Index("idx_comment_trip_status", "trip_id", "status"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("trip.id"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    version_at_creation: Mapped[int] = mapped_column(Integer, nullable=False)
    target_type: Mapped[str] = mapped_column(Text, nullable=False)
    target_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    selected_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("comment.id"), nullable=True
    )
    intent: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    conflicts_with: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    addressed_in_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class ItineraryCacheRow(Base):
    """Itinerary cache table - pool of prior itineraries, read-only to the app."""

    __tablename__ = "itinerary_cache"
    __table_args__ = (Index("idx_itinerary_cache_dest_season", "destination", "season"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    destination: Mapped[str] = mapped_column(Text, nullable=False)
    season: Mapped[str] = mapped_column(Text, nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    pacing: Mapped[str] = mapped_column(Text, nullable=False)
    anchors: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    traveler_type: Mapped[str] = mapped_column(Text, nullable=False)
    quality_score: Mapped[float] = mapped_column(Float, nullable=False, default=50.0)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    times_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
