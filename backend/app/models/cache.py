"""Itinerary cache models - pooled prior itineraries and match results."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from backend.app.models.common import (
    GenerationTaskType,
    MatchType,
    Pacing,
    Season,
    TravelerType,
)
from backend.app.models.itinerary import ItineraryDocument


class CacheEntry(BaseModel):
    """Previously generated itinerary available for reuse."""

    id: UUID
    destination: str
    season: Season
    duration_days: int = Field(..., ge=1)
    pacing: Pacing
    anchors: list[str] = Field(default_factory=list)
    traveler_type: TravelerType
    quality_score: float = 50.0
    data: ItineraryDocument
    times_used: int = 0
    created_at: datetime | None = None


class GenerationTask(BaseModel):
    """Adaptation step needed before a cached itinerary fits a request."""

    type: GenerationTaskType
    details: dict[str, Any] = Field(default_factory=dict)


class CacheMatch(BaseModel):
    """Scored cache candidate."""

    entry: CacheEntry
    score: int = Field(..., ge=0, le=100)
    match_type: MatchType
    tasks: list[GenerationTask] = Field(default_factory=list)
