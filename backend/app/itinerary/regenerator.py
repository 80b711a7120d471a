"""Regeneration orchestrator - applies pending feedback through the AI collaborator.

Gates, checked in order and short-circuiting:
    1. caller owns the trip
    2. at least one pending comment
    3. no pending comment conflicts with another (after a fresh scan)
    4. regeneration quota not exhausted

No collaborator call and no write happens unless every gate passes. On
success the new version, the pointer move, the quota increment and the
comment transitions commit together.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from backend.app.config import Settings
from backend.app.db.repositories import UnitOfWork
from backend.app.errors import (
    ConflictGateError,
    GenerationParseError,
    QuotaExceededError,
    ValidationError,
)
from backend.app.feedback.conflicts import detect_conflicts, strip_conflict_links
from backend.app.itinerary.versions import (
    append_version,
    load_active_version,
    load_owned_trip,
    record_version_created,
)
from backend.app.llm.client import ItineraryLLM, call_with_timeout
from backend.app.llm.parsing import parse_itinerary_payload
from backend.app.models.comment import Comment
from backend.app.models.common import (
    CommentAction,
    CommentStatus,
    CommentTargetType,
    Confidence,
    SourceType,
)
from backend.app.models.generation import FeedbackItem, RegenerationRequest, TripConstraints
from backend.app.models.itinerary import ItineraryVersion
from backend.app.models.trip import Trip
from backend.app.utils.metrics import metrics

logger = logging.getLogger(__name__)

SUMMARY_CONTENT_CHARS = 50


@dataclass
class RegenerationResult:
    """New version and the changes the collaborator reported."""

    version: ItineraryVersion
    changes_made: list[str]


def trip_constraints(trip: Trip) -> TripConstraints:
    """Constraints section shared by generation and regeneration requests."""
    return TripConstraints(
        destination=trip.destination,
        start_date=trip.start_date,
        duration_days=trip.duration_days,
        pacing=trip.pacing,
        anchors=trip.anchors,
        traveler_type=trip.traveler_type,
        traveler_count=trip.traveler_count,
    )


def feedback_item(comment: Comment) -> FeedbackItem:
    """Collaborator view of one comment."""
    intent = comment.intent
    return FeedbackItem(
        comment_id=comment.id,
        target_type=comment.target_type,
        target_id=comment.target_id,
        content=comment.content,
        action=intent.action if intent else CommentAction.unclear,
        confidence=intent.confidence if intent else Confidence.low,
        details=intent.details if intent else "",
    )


def summarize_comments(comments: list[Comment]) -> list[str]:
    """Fallback change list when the collaborator reports none."""
    summary: list[str] = []
    for comment in comments:
        action = comment.intent.action.value if comment.intent else "noted"
        if comment.target_type == CommentTargetType.trip:
            target = "itinerary"
        else:
            target = f"{comment.target_type.value} {comment.target_id or ''}".rstrip()
        content = comment.content[:SUMMARY_CONTENT_CHARS]
        if len(comment.content) > SUMMARY_CONTENT_CHARS:
            content += "..."
        summary.append(f"{action}: {target} - {content}")
    return summary


async def regenerate(
    uow: UnitOfWork,
    trip_id: uuid.UUID,
    actor_id: uuid.UUID,
    llm: ItineraryLLM,
    settings: Settings,
) -> RegenerationResult:
    """Regenerate a trip's itinerary from all pending comments.

    Args:
        uow: Open unit of work; committed here on success
        trip_id: Trip to regenerate
        actor_id: Acting user, must own the trip
        llm: AI collaborator
        settings: Quota, timeout and scan cap

    Returns:
        RegenerationResult with the new version

    Raises:
        AuthorizationError: Caller is not the owner
        ValidationError: No pending comments
        ConflictGateError: Pending comments conflict
        QuotaExceededError: Free regenerations used up
        GenerationFailure: Collaborator failed or returned garbage
        ConcurrentModificationError: Another writer advanced the trip first
    """
    trip = await load_owned_trip(uow, trip_id, actor_id)

    pending = await uow.comments.list_for_trip(trip_id, status=CommentStatus.pending)
    if not pending:
        raise ValidationError("No pending comments to apply")

    conflicts = await detect_conflicts(uow, trip_id, settings.conflict_scan_max_comments)
    pending = await uow.comments.list_for_trip(trip_id, status=CommentStatus.pending)
    pending_ids = {c.id for c in pending}
    # links to comments that already left pending do not block
    if conflicts or any(pending_ids.intersection(c.conflicts_with) for c in pending):
        raise ConflictGateError(
            "Pending comments have unresolved conflicts",
            conflicts=conflicts,
        )

    if trip.regenerations_used >= settings.free_regeneration_quota:
        raise QuotaExceededError(
            f"Regeneration limit reached ({settings.free_regeneration_quota})",
            details={"regenerations_used": trip.regenerations_used},
        )

    active = await load_active_version(uow, trip)
    request = RegenerationRequest(
        trip_id=trip_id,
        constraints=trip_constraints(trip),
        current_itinerary=active.data,
        feedback=[feedback_item(c) for c in pending],
    )

    text = await call_with_timeout(
        llm.regenerate(request),
        operation="regenerate",
        trip_id=trip_id,
        timeout_seconds=settings.llm_timeout_seconds,
    )
    try:
        payload = parse_itinerary_payload(text)
    except GenerationParseError:
        metrics.inc_generation_failure("regenerate", GenerationParseError.code)
        raise

    changes_made = payload.changes_made or summarize_comments(pending)
    data = payload.itinerary.model_copy(update={"generated_at": datetime.now(timezone.utc)})
    applied_ids = [c.id for c in pending]

    version = await append_version(
        uow,
        trip,
        data=data,
        source_type=SourceType.regeneration,
        created_by=actor_id,
        modification_summary="; ".join(changes_made),
        source_comment_ids=applied_ids,
        count_regeneration=True,
    )
    await uow.comments.mark_addressed(applied_ids, version.version)
    await strip_conflict_links(uow, trip_id, applied_ids)
    await uow.commit()

    record_version_created(version)
    logger.info(
        f"Regenerated trip {trip_id} to v{version.version} applying {len(applied_ids)} comment(s)"
    )
    return RegenerationResult(version=version, changes_made=changes_made)
