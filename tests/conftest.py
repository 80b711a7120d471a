"""Shared pytest fixtures for all test suites."""

import os
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable, Iterable
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from backend.app.api.auth import DEV_USER_ID
from backend.app.config import Settings
from backend.app.db.inmemory import InMemoryStore
from backend.app.db.models import Base
from backend.app.feedback.classifier import classify_comment
from backend.app.models.comment import Comment
from backend.app.models.common import (
    CommentStatus,
    CommentTargetType,
    Pacing,
    SourceType,
    TravelerType,
)
from backend.app.models.itinerary import (
    ItineraryDay,
    ItineraryDocument,
    ItineraryVersion,
    TimelineItem,
)
from backend.app.models.trip import Trip

OWNER_ID = DEV_USER_ID
OTHER_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000009")
BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def owner_id() -> uuid.UUID:
    """Owner of every trip built by the factories (the stub-auth dev user)."""
    return OWNER_ID


@pytest.fixture
def other_user_id() -> uuid.UUID:
    """A user who owns nothing."""
    return OTHER_USER_ID


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of the environment."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        storage_backend="memory",
        openai_api_key=None,
        redis_url=None,
        llm_timeout_seconds=5.0,
    )


@pytest.fixture
def make_document() -> Callable[..., ItineraryDocument]:
    """Build an itinerary with one timeline item per day, ids ``<label>_day<n>``."""

    def _make(days: int, label: str = "v1", *, start: str = "09:00", end: str = "17:00") -> ItineraryDocument:
        return ItineraryDocument(
            days=[
                ItineraryDay(
                    day_number=n,
                    timeline=[
                        TimelineItem(
                            id=f"{label}_day{n}", time=start, end_time=end, type="spot"
                        )
                    ],
                )
                for n in range(1, days + 1)
            ]
        )

    return _make


@pytest.fixture
def make_trip() -> Callable[..., Trip]:
    """Build a 7-day summer Iceland trip owned by OWNER_ID."""

    def _make(**overrides: Any) -> Trip:
        values: dict[str, Any] = {
            "id": uuid.uuid4(),
            "owner_id": OWNER_ID,
            "destination": "iceland",
            "start_date": date(2026, 7, 1),
            "end_date": date(2026, 7, 7),
            "duration_days": 7,
            "traveler_type": TravelerType.couple,
            "traveler_count": 2,
            "pacing": Pacing.balanced,
            "anchors": ["waterfalls", "glaciers"],
            "created_at": BASE_TIME,
        }
        values.update(overrides)
        return Trip(**values)

    return _make


@pytest.fixture
def make_comment() -> Callable[..., Comment]:
    """Build a classified comment; ``minutes`` orders comments by creation time."""

    def _make(
        trip_id: uuid.UUID,
        content: str,
        *,
        target_type: CommentTargetType = CommentTargetType.day,
        target_id: str | None = "1",
        minutes: int = 0,
        user_id: uuid.UUID = OWNER_ID,
        status: CommentStatus = CommentStatus.pending,
        version: int = 1,
    ) -> Comment:
        created = BASE_TIME + timedelta(minutes=minutes)
        return Comment(
            id=uuid.uuid4(),
            trip_id=trip_id,
            user_id=user_id,
            version_at_creation=version,
            target_type=target_type,
            target_id=target_id,
            content=content,
            intent=classify_comment(content, target_type, target_id),
            status=status,
            created_at=created,
            updated_at=created,
        )

    return _make


@pytest.fixture
def store() -> InMemoryStore:
    """Empty in-memory datastore."""
    return InMemoryStore()


SeedFn = Callable[..., Awaitable[Trip]]


@pytest.fixture
def seed(store: InMemoryStore) -> SeedFn:
    """Write a trip, its versions (1..n in order) and comments into ``store``.

    Returns the stored trip with ``active_version`` pointing at the last version.
    """

    async def _seed(
        trip: Trip,
        documents: Iterable[ItineraryDocument] = (),
        comments: Iterable[Comment] = (),
        *,
        regenerations_used: int = 0,
    ) -> Trip:
        documents = list(documents)
        stored = trip.model_copy(
            update={
                "active_version": len(documents),
                "regenerations_used": regenerations_used,
            }
        )
        async with store.unit_of_work() as uow:
            await uow.trips.add(stored)
            for number, document in enumerate(documents, start=1):
                await uow.versions.add(
                    ItineraryVersion(
                        id=uuid.uuid4(),
                        trip_id=trip.id,
                        version=number,
                        data=document,
                        source_type=SourceType.base if number == 1 else SourceType.regeneration,
                        parent_version=number - 1 or None,
                        created_by=trip.owner_id,
                        created_at=BASE_TIME + timedelta(hours=number),
                    )
                )
            for comment in comments:
                await uow.comments.add(comment)
            await uow.commit()
        return stored

    return _seed


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'trip_revisions.db'}",
        poolclass=NullPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def postgres_session(postgres_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Async session for PostgreSQL integration tests."""
    async with AsyncSession(postgres_engine) as session:
        yield session
        await session.rollback()
