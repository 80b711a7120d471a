"""Trip models - request input and stored trip state."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, ValidationInfo, computed_field, field_validator

from backend.app.models.common import Pacing, TravelerType, TripStatus


class TripCreate(BaseModel):
    """Trip request as submitted by the user."""

    destination: str = Field(..., min_length=1, description="Destination slug, e.g. 'iceland'")
    start_date: date
    end_date: date
    traveler_type: TravelerType
    traveler_count: int = Field(1, ge=1, le=20)
    pacing: Pacing = Pacing.balanced
    anchors: list[str] = Field(default_factory=list)

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: date, info: ValidationInfo) -> date:
        """Ensure end >= start."""
        if "start_date" in info.data and v < info.data["start_date"]:
            raise ValueError("end_date must be >= start_date")
        return v

    @field_validator("anchors")
    @classmethod
    def dedupe_anchors(cls, v: list[str]) -> list[str]:
        """Drop duplicate anchors, keeping first-seen order."""
        return list(dict.fromkeys(a.strip() for a in v if a.strip()))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration_days(self) -> int:
        """Inclusive number of days between start and end."""
        return (self.end_date - self.start_date).days + 1


class Trip(BaseModel):
    """Stored trip with its version pointer and regeneration counter."""

    id: UUID
    owner_id: UUID
    destination: str
    start_date: date
    end_date: date
    duration_days: int = Field(..., ge=1)
    traveler_type: TravelerType
    traveler_count: int = Field(..., ge=1)
    pacing: Pacing
    anchors: list[str] = Field(default_factory=list)
    active_version: int = Field(0, ge=0, description="0 until the first version exists")
    regenerations_used: int = Field(0, ge=0)
    status: TripStatus = TripStatus.active
    created_at: datetime
