"""Conflict detection between pending feedback comments.

Every unordered pair of pending, classified comments is checked against a
small fixed rule set. Found conflicts are written into both comments'
``conflicts_with`` sets; existing entries are never removed by a scan, only by
``clear_conflicts`` when a comment leaves ``pending`` or is reclassified.
"""

import logging
from collections.abc import Collection
from uuid import UUID

from backend.app.db.repositories import UnitOfWork
from backend.app.models.comment import Comment, CommentIntent, Conflict
from backend.app.models.common import CommentAction, CommentStatus, CommentTargetType
from backend.app.utils.metrics import metrics

logger = logging.getLogger(__name__)

DEFAULT_ADD_MINUTES = 60
DAY_OVERCROWD_MINUTES = 180
LESS_DRIVING = "less driving"

# Unordered action pairs that conflict when both comments target the same item.
_SAME_TARGET_RULES: tuple[tuple[frozenset[CommentAction], str, str], ...] = (
    (
        frozenset({CommentAction.extend, CommentAction.shorten}),
        "One wants to extend time, other wants to shorten",
        "Discuss and agree on duration, then delete one comment",
    ),
    (
        frozenset({CommentAction.remove, CommentAction.extend}),
        "One wants to remove, other wants more time here",
        "Decide whether to keep or remove this stop",
    ),
    (
        frozenset({CommentAction.remove, CommentAction.add}),
        "Conflicting add/remove for the same item",
        "Clarify whether this item should be included",
    ),
    (
        frozenset({CommentAction.swap}),
        "Multiple swap suggestions for the same item",
        "Choose one alternative or find a compromise",
    ),
    (
        frozenset({CommentAction.move}),
        "Conflicting move suggestions for the same item",
        "Agree on the best time/day for this activity",
    ),
)


def _wants_less_driving(comment: Comment) -> bool:
    return comment.intent is not None and LESS_DRIVING in comment.intent.details.lower()


def find_conflict(c1: Comment, c2: Comment) -> Conflict | None:
    """Check whether two comments conflict.

    Args:
        c1: Earlier comment of the pair
        c2: Later comment of the pair

    Returns:
        Conflict describing the disagreement, or None
    """
    i1, i2 = c1.intent, c2.intent
    if i1 is None or i2 is None:
        return None

    a1 = i1.action
    a2 = i2.action

    if c1.target_id is not None and c1.target_id == c2.target_id:
        actions = frozenset({a1, a2})
        for pair, reason, suggestion in _SAME_TARGET_RULES:
            if actions == pair:
                return Conflict(
                    comment1_id=c1.id, comment2_id=c2.id, reason=reason, suggestion=suggestion
                )

    if (
        c1.target_type == CommentTargetType.day
        and c2.target_type == CommentTargetType.day
        and c1.target_id == c2.target_id
    ):
        if (a1 == CommentAction.add and _wants_less_driving(c2)) or (
            a2 == CommentAction.add and _wants_less_driving(c1)
        ):
            return Conflict(
                comment1_id=c1.id,
                comment2_id=c2.id,
                reason='Adding activity may conflict with "less driving" preference',
                suggestion="Check if addition fits within driving budget",
            )

        if a1 == CommentAction.add and a2 == CommentAction.add:
            total = _add_minutes(i1) + _add_minutes(i2)
            if total > DAY_OVERCROWD_MINUTES:
                return Conflict(
                    comment1_id=c1.id,
                    comment2_id=c2.id,
                    reason="Multiple additions may overcrowd this day",
                    suggestion="Consider spreading activities across days or prioritizing",
                )

    return None


def _add_minutes(intent: CommentIntent) -> int:
    impact = intent.estimated_time_impact_minutes
    return DEFAULT_ADD_MINUTES if impact is None else impact


def scan_conflicts(comments: list[Comment], max_comments: int) -> list[Conflict]:
    """Pairwise scan of pending, classified comments.

    Comments are ordered oldest first; when more than ``max_comments`` qualify,
    only the oldest ``max_comments`` are scanned and a warning is logged.
    """
    eligible = sorted(
        (c for c in comments if c.status == CommentStatus.pending and c.intent is not None),
        key=lambda c: c.created_at,
    )
    if len(eligible) > max_comments:
        logger.warning(
            "Conflict scan capped",
            extra={"structured": {"eligible": len(eligible), "scanned": max_comments}},
        )
        eligible = eligible[:max_comments]

    conflicts: list[Conflict] = []
    for i in range(len(eligible)):
        for j in range(i + 1, len(eligible)):
            conflict = find_conflict(eligible[i], eligible[j])
            if conflict is not None:
                conflicts.append(conflict)
    return conflicts


async def list_conflicts(uow: UnitOfWork, trip_id: UUID, max_comments: int) -> list[Conflict]:
    """Current conflicts of a trip, computed without writing anything."""
    pending = await uow.comments.list_for_trip(trip_id, status=CommentStatus.pending)
    return scan_conflicts(pending, max_comments)


async def detect_conflicts(uow: UnitOfWork, trip_id: UUID, max_comments: int) -> list[Conflict]:
    """Rescan a trip's pending comments and record conflicts symmetrically.

    Writes are staged on ``uow``; the caller commits.

    Returns:
        Every conflict found by this scan
    """
    pending = await uow.comments.list_for_trip(trip_id, status=CommentStatus.pending)
    conflicts = scan_conflicts(pending, max_comments)

    by_id = {c.id: c for c in pending}
    changed: dict[UUID, Comment] = {}
    new_links = 0
    for conflict in conflicts:
        first = by_id[conflict.comment1_id]
        second = by_id[conflict.comment2_id]
        if second.id not in first.conflicts_with:
            first.conflicts_with.append(second.id)
            changed[first.id] = first
            new_links += 1
        if first.id not in second.conflicts_with:
            second.conflicts_with.append(first.id)
            changed[second.id] = second

    for comment in changed.values():
        await uow.comments.save(comment)

    metrics.inc_conflicts(new_links)
    if conflicts:
        logger.info(f"Detected {len(conflicts)} conflict(s) on trip {trip_id}")
    return conflicts


async def strip_conflict_links(
    uow: UnitOfWork, trip_id: UUID, comment_ids: Collection[UUID]
) -> None:
    """Remove ``comment_ids`` from the conflict sets of the trip's other comments."""
    removed = set(comment_ids)
    for other in await uow.comments.list_for_trip(trip_id):
        if other.id in removed:
            continue
        kept = [cid for cid in other.conflicts_with if cid not in removed]
        if len(kept) != len(other.conflicts_with):
            other.conflicts_with = kept
            await uow.comments.save(other)


async def clear_conflicts(uow: UnitOfWork, comment: Comment) -> None:
    """Remove ``comment`` from the conflict graph.

    Strips its id from every other comment of the trip, empties its own set and
    saves ``comment`` (with whatever other changes the caller made to it).
    """
    await strip_conflict_links(uow, comment.trip_id, [comment.id])
    comment.conflicts_with = []
    await uow.comments.save(comment)
