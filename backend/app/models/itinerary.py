"""Itinerary models - versioned day-by-day plans.

Only ``days[].day_number`` and ``days[].timeline[]`` are interpreted by the
core; every other field the generator emits is kept as-is.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.common import SourceType


class TimelineItem(BaseModel):
    """Single entry in a day's timeline."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    time: str | None = None
    end_time: str | None = None
    type: str | None = None
    duration_minutes: int | None = None


class ItineraryDay(BaseModel):
    """One day of an itinerary."""

    model_config = ConfigDict(extra="allow")

    day_number: int = Field(..., ge=1)
    timeline: list[TimelineItem] = Field(default_factory=list)


class ItineraryDocument(BaseModel):
    """Complete itinerary document stored in a version row."""

    model_config = ConfigDict(extra="allow")

    days: list[ItineraryDay]
    generated_at: datetime | None = None

    def day(self, day_number: int) -> ItineraryDay | None:
        """Return the day with the given number, if present."""
        for day in self.days:
            if day.day_number == day_number:
                return day
        return None


class ItineraryVersion(BaseModel):
    """Immutable version of a trip's itinerary."""

    id: UUID
    trip_id: UUID
    version: int = Field(..., ge=1)
    data: ItineraryDocument
    source_type: SourceType
    parent_version: int | None = None
    source_comment_ids: list[UUID] = Field(default_factory=list)
    source_versions: list[int] = Field(default_factory=list)
    modification_summary: str | None = None
    created_by: UUID | None = None
    created_at: datetime


class ContinuityWarning(BaseModel):
    """Advisory issue between two consecutive days."""

    day_number: int
    description: str
