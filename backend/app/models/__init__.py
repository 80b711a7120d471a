"""Models package - re-exports for convenience."""

from backend.app.models.cache import CacheEntry, CacheMatch, GenerationTask
from backend.app.models.comment import (
    ClassificationContext,
    ClassifyRequest,
    Comment,
    CommentCreate,
    CommentIntent,
    CommentThread,
    CommentUpdate,
    Conflict,
)
from backend.app.models.common import (
    CommentAction,
    CommentStatus,
    CommentTargetType,
    Confidence,
    GenerationTaskType,
    MatchType,
    Pacing,
    Season,
    SourceType,
    TravelerType,
    TripStatus,
)
from backend.app.models.envelope import Envelope
from backend.app.models.generation import (
    FeedbackItem,
    GenerationRequest,
    ItineraryPayload,
    RegenerationRequest,
    TripConstraints,
)
from backend.app.models.itinerary import (
    ContinuityWarning,
    ItineraryDay,
    ItineraryDocument,
    ItineraryVersion,
    TimelineItem,
)
from backend.app.models.trip import Trip, TripCreate

__all__ = [
    # Common
    "Pacing",
    "TravelerType",
    "Season",
    "TripStatus",
    "SourceType",
    "CommentTargetType",
    "CommentStatus",
    "CommentAction",
    "Confidence",
    "MatchType",
    "GenerationTaskType",
    # Trip
    "Trip",
    "TripCreate",
    # Itinerary
    "ItineraryVersion",
    "ItineraryDocument",
    "ItineraryDay",
    "TimelineItem",
    "ContinuityWarning",
    # Comments
    "Comment",
    "CommentCreate",
    "CommentUpdate",
    "CommentIntent",
    "CommentThread",
    "ClassifyRequest",
    "ClassificationContext",
    "Conflict",
    # Cache
    "CacheEntry",
    "CacheMatch",
    "GenerationTask",
    # Generation
    "TripConstraints",
    "FeedbackItem",
    "GenerationRequest",
    "RegenerationRequest",
    "ItineraryPayload",
    # Envelope
    "Envelope",
]
