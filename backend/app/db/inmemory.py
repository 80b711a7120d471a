"""In-memory implementations of repository interfaces.

Writes made through an ``InMemoryUnitOfWork`` are staged and only reach the
shared ``InMemoryStore`` on commit. Commit is an optimistic compare-and-swap
taken under the store lock: every row written must be unchanged since this
unit of work first read it, and every inserted key must still be free.
"""

import asyncio
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from types import TracebackType
from typing import Any, Self

from pydantic import BaseModel

from backend.app.db.repositories import RetryAfter
from backend.app.errors import ConcurrentModificationError
from backend.app.models.cache import CacheEntry
from backend.app.models.comment import Comment
from backend.app.models.common import CommentStatus, Season
from backend.app.models.itinerary import ItineraryVersion
from backend.app.models.trip import Trip

_TRIPS = "trips"
_VERSIONS = "versions"
_COMMENTS = "comments"

_MISSING = object()
_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


class InMemoryStore:
    """Process-local datastore shared by every unit of work created from it."""

    def __init__(self, cache_entries: Iterable[CacheEntry] = ()) -> None:
        self.tables: dict[str, dict[Any, BaseModel]] = {
            _TRIPS: {},
            _VERSIONS: {},
            _COMMENTS: {},
        }
        self.cache_entries: list[CacheEntry] = list(cache_entries)
        self.lock = asyncio.Lock()

    def unit_of_work(self) -> "InMemoryUnitOfWork":
        """Create a new unit of work bound to this store."""
        return InMemoryUnitOfWork(self)


class _Session:
    """Staged reads and writes of one unit of work."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self.bases: dict[tuple[str, Any], Any] = {}
        self.staged: dict[tuple[str, Any], BaseModel] = {}
        self.inserted: set[tuple[str, Any]] = set()

    def _remember(self, table: str, key: Any) -> None:
        if (table, key) not in self.bases:
            row = self._store.tables[table].get(key)
            self.bases[(table, key)] = (
                _MISSING if row is None else row.model_copy(deep=True)
            )

    def get(self, table: str, key: Any) -> Any:
        if (table, key) in self.staged:
            return self.staged[(table, key)].model_copy(deep=True)
        self._remember(table, key)
        row = self._store.tables[table].get(key)
        return None if row is None else row.model_copy(deep=True)

    def rows(self, table: str) -> list[Any]:
        """Every visible row of a table, staged rows overriding stored ones."""
        merged: dict[Any, BaseModel] = dict(self._store.tables[table])
        for (staged_table, key), row in self.staged.items():
            if staged_table == table:
                merged[key] = row
        for key in merged:
            if (table, key) not in self.staged:
                self._remember(table, key)
        return [row.model_copy(deep=True) for row in merged.values()]

    def exists(self, table: str, key: Any) -> bool:
        return (table, key) in self.staged or key in self._store.tables[table]

    def insert(self, table: str, key: Any, row: BaseModel) -> None:
        if self.exists(table, key):
            raise ConcurrentModificationError(f"{table} row {key} already exists")
        self.staged[(table, key)] = row.model_copy(deep=True)
        self.inserted.add((table, key))

    def update(self, table: str, key: Any, row: BaseModel) -> None:
        if (table, key) not in self.staged:
            self._remember(table, key)
        self.staged[(table, key)] = row.model_copy(deep=True)

    def clear(self) -> None:
        self.bases.clear()
        self.staged.clear()
        self.inserted.clear()


class InMemoryTripRepository:
    """In-memory implementation of TripRepository."""

    def __init__(self, session: _Session) -> None:
        self._session = session

    async def add(self, trip: Trip) -> None:
        """Insert a new trip."""
        self._session.insert(_TRIPS, trip.id, trip)

    async def get(self, trip_id: uuid.UUID) -> Trip | None:
        """Get trip by ID."""
        return self._session.get(_TRIPS, trip_id)

    async def list_for_owner(self, owner_id: uuid.UUID) -> list[Trip]:
        """List trips owned by a user, newest first."""
        trips = [t for t in self._session.rows(_TRIPS) if t.owner_id == owner_id]
        trips.sort(key=lambda t: t.created_at, reverse=True)
        return trips

    async def advance_version(
        self,
        trip_id: uuid.UUID,
        *,
        expected_version: int,
        new_version: int,
        regenerations_used: int | None = None,
    ) -> None:
        """Move the active version pointer if it still holds the expected value."""
        trip = self._session.get(_TRIPS, trip_id)
        if trip is None or trip.active_version != expected_version:
            raise ConcurrentModificationError(
                f"Trip {trip_id} is no longer at version {expected_version}"
            )
        trip.active_version = new_version
        if regenerations_used is not None:
            trip.regenerations_used = regenerations_used
        self._session.update(_TRIPS, trip_id, trip)


class InMemoryVersionRepository:
    """In-memory implementation of VersionRepository."""

    def __init__(self, session: _Session) -> None:
        self._session = session

    async def add(self, version: ItineraryVersion) -> None:
        """Append a version; the (trip_id, version) key must be free."""
        self._session.insert(_VERSIONS, (version.trip_id, version.version), version)

    async def get(self, trip_id: uuid.UUID, version: int) -> ItineraryVersion | None:
        """Get one version of a trip."""
        return self._session.get(_VERSIONS, (trip_id, version))

    async def get_many(
        self, trip_id: uuid.UUID, versions: Iterable[int]
    ) -> dict[int, ItineraryVersion]:
        """Get several versions keyed by version number."""
        found: dict[int, ItineraryVersion] = {}
        for number in set(versions):
            row = self._session.get(_VERSIONS, (trip_id, number))
            if row is not None:
                found[number] = row
        return found

    async def list_for_trip(self, trip_id: uuid.UUID) -> list[ItineraryVersion]:
        """List every version of a trip, newest first."""
        rows = [v for v in self._session.rows(_VERSIONS) if v.trip_id == trip_id]
        rows.sort(key=lambda v: v.version, reverse=True)
        return rows


class InMemoryCommentRepository:
    """In-memory implementation of CommentRepository."""

    def __init__(self, session: _Session) -> None:
        self._session = session

    async def add(self, comment: Comment) -> None:
        """Insert a new comment."""
        self._session.insert(_COMMENTS, comment.id, comment)

    async def get(self, comment_id: uuid.UUID) -> Comment | None:
        """Get comment by ID."""
        return self._session.get(_COMMENTS, comment_id)

    async def save(self, comment: Comment) -> None:
        """Stage the current state of an existing comment."""
        self._session.update(_COMMENTS, comment.id, comment)

    async def list_for_trip(
        self,
        trip_id: uuid.UUID,
        *,
        status: CommentStatus | None = None,
        version: int | None = None,
    ) -> list[Comment]:
        """List comments of a trip ordered by creation time."""
        rows = [
            c
            for c in self._session.rows(_COMMENTS)
            if c.trip_id == trip_id
            and (status is None or c.status == status)
            and (version is None or c.version_at_creation == version)
        ]
        rows.sort(key=lambda c: c.created_at)
        return rows

    async def mark_addressed(self, comment_ids: list[uuid.UUID], version: int) -> None:
        """Move pending comments to addressed and drop their conflict links.

        Fails if any comment already left pending.
        """
        now = datetime.now(timezone.utc)
        for comment_id in comment_ids:
            comment = self._session.get(_COMMENTS, comment_id)
            if comment is None or comment.status != CommentStatus.pending:
                raise ConcurrentModificationError(f"Comment {comment_id} is no longer pending")
            comment.status = CommentStatus.addressed
            comment.addressed_in_version = version
            comment.conflicts_with = []
            comment.updated_at = now
            self._session.update(_COMMENTS, comment_id, comment)


class InMemoryCachePool:
    """In-memory implementation of CachePool over a fixed list of entries."""

    def __init__(self, entries: list[CacheEntry]) -> None:
        self._entries = entries

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

        Same ordering as the SQL pool: quality desc, created_at, id.
        """
        matching = [
            e
            for e in self._entries
            if e.destination == destination
            and e.season == season
            and min_days <= e.duration_days <= max_days
        ]
        matching.sort(key=lambda e: (-e.quality_score, e.created_at or _UNDATED, e.id))
        return [e.model_copy(deep=True) for e in matching[:limit]]


class InMemoryUnitOfWork:
    """In-memory implementation of UnitOfWork."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._session = _Session(store)
        self.trips = InMemoryTripRepository(self._session)
        self.versions = InMemoryVersionRepository(self._session)
        self.comments = InMemoryCommentRepository(self._session)
        self.cache = InMemoryCachePool(store.cache_entries)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.rollback()

    async def commit(self) -> None:
        """Apply staged writes if none of the touched rows changed underneath us."""
        session = self._session
        async with self._store.lock:
            for table, key in session.staged:
                current = self._store.tables[table].get(key)
                if (table, key) in session.inserted:
                    if current is not None:
                        raise ConcurrentModificationError(f"{table} row {key} already exists")
                    continue
                base = session.bases.get((table, key), _MISSING)
                if (current is None) != (base is _MISSING) or (
                    current is not None and current != base
                ):
                    raise ConcurrentModificationError(
                        f"{table} row {key} was modified by another writer"
                    )

            for (table, key), row in session.staged.items():
                self._store.tables[table][key] = row
        session.clear()

    async def rollback(self) -> None:
        """Discard staged writes."""
        self._session.clear()


class InMemoryRateLimiter:
    """In-memory implementation of RateLimiter using fixed window."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._windows: dict[str, tuple[datetime, int]] = {}

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available."""
        if key not in self._windows:
            self._windows[key] = (now, 1)
            return None

        window_start, count = self._windows[key]
        window_end = window_start + timedelta(seconds=self._window_seconds)

        if now >= window_end:
            self._windows[key] = (now, 1)
            return None

        if count >= self._max_requests:
            return RetryAfter(seconds=max(1, int((window_end - now).total_seconds())))

        self._windows[key] = (window_start, count + 1)
        return None
