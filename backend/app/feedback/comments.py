"""Comment service - create, list, edit and resolve feedback on an itinerary."""

import logging
import uuid
from datetime import datetime, timezone

from backend.app.db.repositories import UnitOfWork
from backend.app.errors import AuthorizationError, NotFoundError, ValidationError
from backend.app.feedback.classifier import classify_comment
from backend.app.feedback.conflicts import clear_conflicts, detect_conflicts
from backend.app.models.comment import (
    ClassifyRequest,
    Comment,
    CommentCreate,
    CommentIntent,
    CommentThread,
    CommentUpdate,
)
from backend.app.models.common import CommentStatus
from backend.app.models.trip import Trip

logger = logging.getLogger(__name__)


async def _load_trip(uow: UnitOfWork, trip_id: uuid.UUID) -> Trip:
    trip = await uow.trips.get(trip_id)
    if trip is None:
        raise NotFoundError(f"Trip {trip_id} not found")
    return trip


async def create_comment(
    uow: UnitOfWork,
    body: CommentCreate,
    author_id: uuid.UUID,
    max_scan: int,
) -> Comment:
    """Classify and store a new pending comment, then rescan for conflicts.

    Args:
        uow: Open unit of work; committed here on success
        body: Comment request
        author_id: Commenting user
        max_scan: Conflict scan cap

    Returns:
        The stored comment including any conflicts found

    Raises:
        NotFoundError: Trip or parent comment missing
        ValidationError: Trip has no itinerary yet, or parent is on another trip
    """
    trip = await _load_trip(uow, body.trip_id)
    if trip.active_version == 0:
        raise ValidationError("Cannot comment before an itinerary has been generated")

    if body.parent_id is not None:
        parent = await uow.comments.get(body.parent_id)
        if parent is None:
            raise NotFoundError(f"Parent comment {body.parent_id} not found")
        if parent.trip_id != body.trip_id:
            raise ValidationError("Reply must belong to the same trip as its parent")

    now = datetime.now(timezone.utc)
    comment = Comment(
        id=uuid.uuid4(),
        trip_id=body.trip_id,
        user_id=author_id,
        version_at_creation=trip.active_version,
        target_type=body.target_type,
        target_id=body.target_id,
        content=body.content,
        selected_text=body.selected_text,
        parent_id=body.parent_id,
        intent=classify_comment(body.content, body.target_type, body.target_id),
        created_at=now,
        updated_at=now,
    )
    await uow.comments.add(comment)
    await detect_conflicts(uow, body.trip_id, max_scan)

    stored = await uow.comments.get(comment.id)
    if stored is None:
        raise NotFoundError(f"Comment {comment.id} not found")
    await uow.commit()
    return stored


async def list_comments(
    uow: UnitOfWork,
    trip_id: uuid.UUID,
    *,
    status: CommentStatus | None = None,
    version: int | None = None,
) -> list[Comment]:
    """Comments of a trip, oldest first, optionally filtered."""
    await _load_trip(uow, trip_id)
    return await uow.comments.list_for_trip(trip_id, status=status, version=version)


def thread_comments(comments: list[Comment]) -> list[CommentThread]:
    """Group comments into root threads.

    Replies to replies are attached to the thread of their top-most ancestor.
    A reply whose parent is not in ``comments`` becomes a root of its own.
    """
    by_id = {c.id: c for c in comments}

    def root_of(comment: Comment) -> uuid.UUID:
        seen: set[uuid.UUID] = set()
        current = comment
        while current.parent_id is not None and current.parent_id in by_id:
            if current.id in seen:
                break
            seen.add(current.id)
            current = by_id[current.parent_id]
        return current.id

    threads: dict[uuid.UUID, CommentThread] = {}
    for comment in sorted(comments, key=lambda c: c.created_at):
        root_id = root_of(comment)
        if root_id == comment.id:
            threads[root_id] = CommentThread(root=comment)
        else:
            threads.setdefault(root_id, CommentThread(root=by_id[root_id])).replies.append(comment)
    return list(threads.values())


async def update_comment(
    uow: UnitOfWork,
    comment_id: uuid.UUID,
    body: CommentUpdate,
    actor_id: uuid.UUID,
    max_scan: int,
) -> Comment:
    """Edit a pending comment's text or move it to resolved/deleted.

    Editing reclassifies the comment and rebuilds its conflicts. Leaving
    ``pending`` clears its conflicts for good.

    Raises:
        NotFoundError: Comment missing
        AuthorizationError: Actor is neither author nor trip owner
        ValidationError: Empty update, or comment no longer pending
    """
    if body.content is None and body.status is None:
        raise ValidationError("Nothing to update")

    comment = await uow.comments.get(comment_id)
    if comment is None:
        raise NotFoundError(f"Comment {comment_id} not found")

    trip = await _load_trip(uow, comment.trip_id)
    if actor_id not in (comment.user_id, trip.owner_id):
        raise AuthorizationError("Only the author or the trip owner can change this comment")
    if comment.status != CommentStatus.pending:
        raise ValidationError(f"Comment is {comment.status.value} and can no longer change")

    comment.updated_at = datetime.now(timezone.utc)
    if body.content is not None:
        comment.content = body.content
        comment.intent = classify_comment(body.content, comment.target_type, comment.target_id)
    if body.status is not None:
        comment.status = CommentStatus(body.status)

    await clear_conflicts(uow, comment)
    if comment.status == CommentStatus.pending:
        await detect_conflicts(uow, comment.trip_id, max_scan)

    stored = await uow.comments.get(comment_id)
    if stored is None:
        raise NotFoundError(f"Comment {comment_id} not found")
    await uow.commit()
    logger.info(f"Comment {comment_id} updated ({stored.status.value})")
    return stored


async def delete_comment(
    uow: UnitOfWork, comment_id: uuid.UUID, actor_id: uuid.UUID, max_scan: int
) -> Comment:
    """Soft delete: the comment stays stored with status ``deleted``."""
    return await update_comment(
        uow, comment_id, CommentUpdate(status="deleted"), actor_id, max_scan
    )


def classify_preview(body: ClassifyRequest) -> CommentIntent:
    """Classify without storing anything."""
    return classify_comment(
        body.content, body.target_type, body.target_id, body.itinerary_context
    )
