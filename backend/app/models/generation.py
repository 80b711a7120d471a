"""Generation models - what is sent to and parsed from the AI collaborator."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from backend.app.models.cache import GenerationTask
from backend.app.models.common import (
    CommentAction,
    CommentTargetType,
    Confidence,
    Pacing,
    Season,
    TravelerType,
)
from backend.app.models.itinerary import ItineraryDocument


class TripConstraints(BaseModel):
    """Trip parameters every generated itinerary must respect."""

    destination: str
    start_date: date
    duration_days: int
    pacing: Pacing
    anchors: list[str] = Field(default_factory=list)
    traveler_type: TravelerType
    traveler_count: int


class FeedbackItem(BaseModel):
    """One pending comment as presented to the collaborator."""

    comment_id: UUID
    target_type: CommentTargetType
    target_id: str | None = None
    content: str
    action: CommentAction
    confidence: Confidence
    details: str = ""


class RegenerationRequest(BaseModel):
    """Apply feedback to the current itinerary."""

    trip_id: UUID
    constraints: TripConstraints
    current_itinerary: ItineraryDocument
    feedback: list[FeedbackItem] = Field(..., min_length=1)


class GenerationRequest(BaseModel):
    """Produce a first itinerary, optionally seeded from a cached one."""

    trip_id: UUID
    constraints: TripConstraints
    season: Season
    base_itinerary: ItineraryDocument | None = None
    tasks: list[GenerationTask] = Field(default_factory=list)


class ItineraryPayload(BaseModel):
    """Parsed collaborator response."""

    itinerary: ItineraryDocument
    changes_made: list[str] = Field(default_factory=list)

    @field_validator("changes_made", mode="before")
    @classmethod
    def coerce_changes(cls, v: object) -> object:
        """Accept a single string or null as well as a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("itinerary")
    @classmethod
    def require_days(cls, v: ItineraryDocument) -> ItineraryDocument:
        """Days must be numbered 1..N in order, with no gaps or repeats."""
        if not v.days:
            raise ValueError("itinerary must contain at least one day")
        numbers = [day.day_number for day in v.days]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError(f"day numbers must run 1..{len(numbers)} in order, got {numbers}")
        return v
