"""Append-and-advance: the single path by which new itinerary versions are created."""

import uuid
from datetime import datetime, timezone

from backend.app.db.repositories import UnitOfWork
from backend.app.errors import AuthorizationError, NotFoundError
from backend.app.models.common import SourceType
from backend.app.models.itinerary import ItineraryDocument, ItineraryVersion
from backend.app.models.trip import Trip
from backend.app.utils.logging import StructuredVersionLogger
from backend.app.utils.metrics import metrics

_version_logger = StructuredVersionLogger()


async def load_owned_trip(uow: UnitOfWork, trip_id: uuid.UUID, actor_id: uuid.UUID) -> Trip:
    """Load a trip the actor is allowed to mutate.

    Raises:
        NotFoundError: If the trip does not exist
        AuthorizationError: If the actor is not the owner
    """
    trip = await uow.trips.get(trip_id)
    if trip is None:
        raise NotFoundError(f"Trip {trip_id} not found")
    if trip.owner_id != actor_id:
        raise AuthorizationError("Only the trip owner can change its itinerary")
    return trip


async def load_active_version(uow: UnitOfWork, trip: Trip) -> ItineraryVersion:
    """Load the version the trip currently points at.

    Raises:
        NotFoundError: If the trip has no generated itinerary yet
    """
    if trip.active_version == 0:
        raise NotFoundError(f"Trip {trip.id} has no itinerary yet")
    active = await uow.versions.get(trip.id, trip.active_version)
    if active is None:
        raise NotFoundError(f"Version {trip.active_version} of trip {trip.id} not found")
    return active


async def append_version(
    uow: UnitOfWork,
    trip: Trip,
    *,
    data: ItineraryDocument,
    source_type: SourceType,
    created_by: uuid.UUID | None,
    modification_summary: str | None = None,
    source_comment_ids: list[uuid.UUID] | None = None,
    source_versions: list[int] | None = None,
    count_regeneration: bool = False,
) -> ItineraryVersion:
    """Insert version ``active_version + 1`` and move the pointer to it.

    Both writes are staged on ``uow``; nothing is visible until the caller
    commits. The pointer move is conditional on ``trip.active_version`` still
    being current, so a concurrent writer makes this (or the commit) raise
    ConcurrentModificationError.

    Args:
        uow: Open unit of work
        trip: Trip as read inside ``uow``
        data: Document of the new version
        source_type: How the document was produced
        created_by: Acting user
        modification_summary: Human-readable description of the change
        source_comment_ids: Comments applied by a regeneration
        source_versions: Versions a cherry-pick or restore drew from
        count_regeneration: Increment regenerations_used by one

    Returns:
        The staged ItineraryVersion
    """
    new_number = trip.active_version + 1
    version = ItineraryVersion(
        id=uuid.uuid4(),
        trip_id=trip.id,
        version=new_number,
        data=data,
        source_type=source_type,
        parent_version=trip.active_version or None,
        source_comment_ids=source_comment_ids or [],
        source_versions=source_versions or [],
        modification_summary=modification_summary,
        created_by=created_by,
        created_at=datetime.now(timezone.utc),
    )

    await uow.versions.add(version)
    await uow.trips.advance_version(
        trip.id,
        expected_version=trip.active_version,
        new_version=new_number,
        regenerations_used=trip.regenerations_used + 1 if count_regeneration else None,
    )
    return version


def record_version_created(version: ItineraryVersion) -> None:
    """Log and count a version once its unit of work has committed."""
    metrics.inc_version(version.source_type.value)
    _version_logger.log_version_created(
        trip_id=version.trip_id,
        version=version.version,
        source_type=version.source_type,
        parent_version=version.parent_version,
        actor_id=version.created_by,
    )
