"""Comment models - feedback, classified intents and conflicts."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.common import (
    CommentAction,
    CommentStatus,
    CommentTargetType,
    Confidence,
)


class CommentIntent(BaseModel):
    """Structured interpretation of a comment."""

    model_config = ConfigDict(frozen=True)

    action: CommentAction
    confidence: Confidence
    details: str = ""
    affects_routing: bool
    estimated_time_impact_minutes: int | None
    suggested_resolution: str | None


class Comment(BaseModel):
    """Stored comment on a trip itinerary."""

    id: UUID
    trip_id: UUID
    user_id: UUID
    version_at_creation: int = Field(..., ge=0)
    target_type: CommentTargetType
    target_id: str | None = None
    content: str
    selected_text: str | None = None
    parent_id: UUID | None = None
    intent: CommentIntent | None = None
    conflicts_with: list[UUID] = Field(default_factory=list)
    status: CommentStatus = CommentStatus.pending
    addressed_in_version: int | None = None
    created_at: datetime
    updated_at: datetime


class CommentCreate(BaseModel):
    """Request body for creating a comment."""

    trip_id: UUID
    target_type: CommentTargetType
    target_id: str | None = Field(None, max_length=200)
    content: str = Field(..., min_length=1, max_length=2000)
    selected_text: str | None = Field(None, max_length=2000)
    parent_id: UUID | None = None


class CommentUpdate(BaseModel):
    """Request body for editing a comment or changing its status."""

    content: str | None = Field(None, min_length=1, max_length=2000)
    status: Literal["resolved", "deleted"] | None = None


class ClassificationContext(BaseModel):
    """Optional itinerary context for classification."""

    day_number: int | None = Field(None, ge=1)
    current_items: list[str] = Field(default_factory=list)


class ClassifyRequest(BaseModel):
    """Request body for previewing how a comment will be interpreted."""

    content: str = Field(..., min_length=1, max_length=2000)
    target_type: CommentTargetType
    target_id: str | None = None
    selected_text: str | None = None
    itinerary_context: ClassificationContext | None = None


class Conflict(BaseModel):
    """Detected disagreement between two pending comments."""

    comment1_id: UUID
    comment2_id: UUID
    reason: str
    suggestion: str


class CommentThread(BaseModel):
    """Root comment with its replies."""

    root: Comment
    replies: list[Comment] = Field(default_factory=list)
