"""SQL implementations of repository interfaces.

All repositories of one ``SqlUnitOfWork`` share a single ``AsyncSession`` and
therefore a single transaction. Version-pointer moves are conditional updates
checked by rowcount; duplicate version numbers are rejected by the
``UNIQUE(trip_id, version)`` constraint.
"""

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from types import TracebackType
from typing import Self

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.db.models import CommentRow, ItineraryCacheRow, ItineraryVersionRow, TripRow
from backend.app.errors import ConcurrentModificationError
from backend.app.models.cache import CacheEntry
from backend.app.models.comment import Comment
from backend.app.models.common import CommentStatus, Season
from backend.app.models.itinerary import ItineraryVersion
from backend.app.models.trip import Trip


class SqlTripRepository:
    """SQL implementation of TripRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, trip: Trip) -> None:
        """Insert a new trip."""
        self._session.add(
            TripRow(
                id=trip.id,
                owner_id=trip.owner_id,
                destination=trip.destination,
                start_date=trip.start_date,
                end_date=trip.end_date,
                duration_days=trip.duration_days,
                traveler_type=trip.traveler_type.value,
                traveler_count=trip.traveler_count,
                pacing=trip.pacing.value,
                anchors=list(trip.anchors),
                active_version=trip.active_version,
                regenerations_used=trip.regenerations_used,
                status=trip.status.value,
                created_at=trip.created_at,
            )
        )
        await self._session.flush()

    async def get(self, trip_id: uuid.UUID) -> Trip | None:
        """Get trip by ID."""
        row = await self._session.get(TripRow, trip_id, populate_existing=True)
        if row is None:
            return None
        return Trip.model_validate(row, from_attributes=True)

    async def list_for_owner(self, owner_id: uuid.UUID) -> list[Trip]:
        """List trips owned by a user, newest first."""
        result = await self._session.execute(
            select(TripRow).where(TripRow.owner_id == owner_id).order_by(TripRow.created_at.desc())
        )
        return [Trip.model_validate(row, from_attributes=True) for row in result.scalars()]

    async def advance_version(
        self,
        trip_id: uuid.UUID,
        *,
        expected_version: int,
        new_version: int,
        regenerations_used: int | None = None,
    ) -> None:
        """Conditional UPDATE ... WHERE active_version = expected_version."""
        values: dict[str, int] = {"active_version": new_version}
        if regenerations_used is not None:
            values["regenerations_used"] = regenerations_used

        result = await self._session.execute(
            update(TripRow)
            .where(TripRow.id == trip_id, TripRow.active_version == expected_version)
            .values(**values)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError(
                f"Trip {trip_id} is no longer at version {expected_version}"
            )


class SqlVersionRepository:
    """SQL implementation of VersionRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, version: ItineraryVersion) -> None:
        """Append a version; a duplicate version number loses the race."""
        self._session.add(
            ItineraryVersionRow(
                id=version.id,
                trip_id=version.trip_id,
                version=version.version,
                data=version.data.model_dump(mode="json"),
                source_type=version.source_type.value,
                parent_version=version.parent_version,
                source_comment_ids=[str(cid) for cid in version.source_comment_ids],
                source_versions=list(version.source_versions),
                modification_summary=version.modification_summary,
                created_by=version.created_by,
                created_at=version.created_at,
            )
        )
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConcurrentModificationError(
                f"Version {version.version} of trip {version.trip_id} already exists"
            ) from e

    async def get(self, trip_id: uuid.UUID, version: int) -> ItineraryVersion | None:
        """Get one version of a trip."""
        result = await self._session.execute(
            select(ItineraryVersionRow).where(
                ItineraryVersionRow.trip_id == trip_id, ItineraryVersionRow.version == version
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return ItineraryVersion.model_validate(row, from_attributes=True)

    async def get_many(
        self, trip_id: uuid.UUID, versions: Iterable[int]
    ) -> dict[int, ItineraryVersion]:
        """Get several versions keyed by version number."""
        wanted = set(versions)
        if not wanted:
            return {}
        result = await self._session.execute(
            select(ItineraryVersionRow).where(
                ItineraryVersionRow.trip_id == trip_id,
                ItineraryVersionRow.version.in_(wanted),
            )
        )
        return {
            row.version: ItineraryVersion.model_validate(row, from_attributes=True)
            for row in result.scalars()
        }

    async def list_for_trip(self, trip_id: uuid.UUID) -> list[ItineraryVersion]:
        """List every version of a trip, newest first."""
        result = await self._session.execute(
            select(ItineraryVersionRow)
            .where(ItineraryVersionRow.trip_id == trip_id)
            .order_by(ItineraryVersionRow.version.desc())
        )
        return [ItineraryVersion.model_validate(row, from_attributes=True) for row in result.scalars()]


class SqlCommentRepository:
    """SQL implementation of CommentRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, comment: Comment) -> None:
        """Insert a new comment."""
        self._session.add(
            CommentRow(
                id=comment.id,
                trip_id=comment.trip_id,
                user_id=comment.user_id,
                version_at_creation=comment.version_at_creation,
                target_type=comment.target_type.value,
                target_id=comment.target_id,
                content=comment.content,
                selected_text=comment.selected_text,
                parent_id=comment.parent_id,
                intent=comment.intent.model_dump(mode="json") if comment.intent else None,
                conflicts_with=[str(cid) for cid in comment.conflicts_with],
                status=comment.status.value,
                addressed_in_version=comment.addressed_in_version,
                created_at=comment.created_at,
                updated_at=comment.updated_at,
            )
        )
        await self._session.flush()

    async def get(self, comment_id: uuid.UUID) -> Comment | None:
        """Get comment by ID."""
        row = await self._session.get(CommentRow, comment_id, populate_existing=True)
        if row is None:
            return None
        return Comment.model_validate(row, from_attributes=True)

    async def save(self, comment: Comment) -> None:
        """Write back the mutable fields of a comment."""
        await self._session.execute(
            update(CommentRow)
            .where(CommentRow.id == comment.id)
            .values(
                content=comment.content,
                intent=comment.intent.model_dump(mode="json") if comment.intent else None,
                conflicts_with=[str(cid) for cid in comment.conflicts_with],
                status=comment.status.value,
                addressed_in_version=comment.addressed_in_version,
                updated_at=comment.updated_at,
            )
        )

    async def list_for_trip(
        self,
        trip_id: uuid.UUID,
        *,
        status: CommentStatus | None = None,
        version: int | None = None,
    ) -> list[Comment]:
        """List comments of a trip ordered by creation time."""
        query = select(CommentRow).where(CommentRow.trip_id == trip_id)
        if status is not None:
            query = query.where(CommentRow.status == status.value)
        if version is not None:
            query = query.where(CommentRow.version_at_creation == version)

        result = await self._session.execute(
            query.order_by(CommentRow.created_at).execution_options(populate_existing=True)
        )
        return [Comment.model_validate(row, from_attributes=True) for row in result.scalars()]

    async def mark_addressed(self, comment_ids: list[uuid.UUID], version: int) -> None:
        """Conditional UPDATE ... WHERE status = 'pending' for every id.

        The addressed comments leave the conflict graph with an empty conflicts_with.
        """
        if not comment_ids:
            return
        result = await self._session.execute(
            update(CommentRow)
            .where(
                CommentRow.id.in_(comment_ids),
                CommentRow.status == CommentStatus.pending.value,
            )
            .values(
                status=CommentStatus.addressed.value,
                addressed_in_version=version,
                conflicts_with=[],
                updated_at=datetime.now(timezone.utc),
            )
        )
        if result.rowcount != len(set(comment_ids)):
            raise ConcurrentModificationError("Some comments are no longer pending")


class SqlCachePool:
    """SQL implementation of CachePool over the itinerary_cache table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def candidates(
        self,
        *,
        destination: str,
        season: Season,
        min_days: int,
        max_days: int,
        limit: int,
    ) -> list[CacheEntry]:
        """Filter by destination, season and duration window.

        Ordered by quality (best first), then oldest first, then id.
        """
        result = await self._session.execute(
            select(ItineraryCacheRow)
            .where(
                ItineraryCacheRow.destination == destination,
                ItineraryCacheRow.season == season.value,
                ItineraryCacheRow.duration_days >= min_days,
                ItineraryCacheRow.duration_days <= max_days,
            )
            .order_by(
                ItineraryCacheRow.quality_score.desc(),
                ItineraryCacheRow.created_at,
                ItineraryCacheRow.id,
            )
            .limit(limit)
        )
        return [CacheEntry.model_validate(row, from_attributes=True) for row in result.scalars()]


class SqlUnitOfWork:
    """SQL implementation of UnitOfWork: one AsyncSession, one transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: AsyncSession | None = None

    @property
    def session(self) -> AsyncSession:
        """The open session; only valid inside ``async with``."""
        if self._session is None:
            raise RuntimeError("SqlUnitOfWork used outside async with")
        return self._session

    async def __aenter__(self) -> Self:
        self._session = self._session_factory()
        self.trips = SqlTripRepository(self._session)
        self.versions = SqlVersionRepository(self._session)
        self.comments = SqlCommentRepository(self._session)
        self.cache = SqlCachePool(self._session)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        session = self.session
        try:
            await session.rollback()
        finally:
            await session.close()
            self._session = None

    async def commit(self) -> None:
        """Commit the transaction."""
        session = self.session
        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            raise ConcurrentModificationError("Commit lost a uniqueness race") from e

    async def rollback(self) -> None:
        """Roll back anything not yet committed."""
        await self.session.rollback()