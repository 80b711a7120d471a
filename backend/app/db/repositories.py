"""Repository protocol interfaces for data access."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from types import TracebackType
from typing import Protocol, Self
from uuid import UUID

from backend.app.models.cache import CacheEntry
from backend.app.models.comment import Comment
from backend.app.models.common import CommentStatus, Season
from backend.app.models.itinerary import ItineraryVersion
from backend.app.models.trip import Trip


class TripRepository(Protocol):
    """Repository for trip rows."""

    async def add(self, trip: Trip) -> None:
        """Insert a new trip."""
        ...

    async def get(self, trip_id: UUID) -> Trip | None:
        """Get trip by ID.

        Args:
            trip_id: Trip ID

        Returns:
            Trip or None if not found
        """
        ...

    async def list_for_owner(self, owner_id: UUID) -> list[Trip]:
        """List trips owned by a user, newest first."""
        ...

    async def advance_version(
        self,
        trip_id: UUID,
        *,
        expected_version: int,
        new_version: int,
        regenerations_used: int | None = None,
    ) -> None:
        """Move the active version pointer, guarded by the expected current value.

        Args:
            trip_id: Trip ID
            expected_version: Value active_version must still hold
            new_version: Value to write
            regenerations_used: New regeneration count, if it changes

        Raises:
            ConcurrentModificationError: If active_version no longer equals
                expected_version
        """
        ...


class VersionRepository(Protocol):
    """Repository for the append-only itinerary version log."""

    async def add(self, version: ItineraryVersion) -> None:
        """Append a version.

        Raises:
            ConcurrentModificationError: If (trip_id, version) already exists
        """
        ...

    async def get(self, trip_id: UUID, version: int) -> ItineraryVersion | None:
        """Get one version of a trip."""
        ...

    async def get_many(
        self, trip_id: UUID, versions: Iterable[int]
    ) -> dict[int, ItineraryVersion]:
        """Get several versions keyed by version number; missing ones are absent."""
        ...

    async def list_for_trip(self, trip_id: UUID) -> list[ItineraryVersion]:
        """List every version of a trip, newest first."""
        ...


class CommentRepository(Protocol):
    """Repository for comments."""

    async def add(self, comment: Comment) -> None:
        """Insert a new comment."""
        ...

    async def get(self, comment_id: UUID) -> Comment | None:
        """Get comment by ID."""
        ...

    async def save(self, comment: Comment) -> None:
        """Persist the mutable fields of an existing comment."""
        ...

    async def list_for_trip(
        self,
        trip_id: UUID,
        *,
        status: CommentStatus | None = None,
        version: int | None = None,
    ) -> list[Comment]:
        """List comments of a trip ordered by creation time.

        Args:
            trip_id: Trip ID
            status: Optional status filter
            version: Optional version_at_creation filter
        """
        ...

    async def mark_addressed(self, comment_ids: list[UUID], version: int) -> None:
        """Move pending comments to addressed in the given version.

        Their own conflicts_with sets are emptied in the same write.

        Raises:
            ConcurrentModificationError: If any comment is no longer pending
        """
        ...


class CachePool(Protocol):
    """Read-only pool of previously generated itineraries."""

    async def candidates(
        self,
        *,
        destination: str,
        season: Season,
        min_days: int,
        max_days: int,
        limit: int,
    ) -> list[CacheEntry]:
        """Entries for destination/season with duration in [min_days, max_days].

        Ordered by quality_score descending and capped at ``limit``.
        """
        ...


class UnitOfWork(Protocol):
    """Transaction boundary around a group of repository calls.

    Usage:
        async with uow:
            ...
            await uow.commit()

    Leaving the block without commit (or with an exception) rolls back.
    """

    trips: TripRepository
    versions: VersionRepository
    comments: CommentRepository
    cache: CachePool

    async def __aenter__(self) -> Self: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...

    async def commit(self) -> None:
        """Make all staged writes durable."""
        ...

    async def rollback(self) -> None:
        """Discard all staged writes."""
        ...


@dataclass
class RetryAfter:
    """Rate limit retry-after information."""

    seconds: int


class RateLimiter(Protocol):
    """Rate limiter interface."""

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Args:
            key: Rate limit key
            now: Current timestamp

        Returns:
            RetryAfter if over quota, None if allowed
        """
        ...
