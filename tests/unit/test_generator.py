"""Unit tests for first-version generation."""

import uuid
from collections.abc import Callable
from typing import Any

import pytest

from backend.app.config import Settings
from backend.app.db.inmemory import InMemoryStore
from backend.app.errors import AuthorizationError, ValidationError
from backend.app.itinerary.generator import generate, personalize
from backend.app.llm.client import DeterministicStubClient
from backend.app.models.cache import CacheEntry
from backend.app.models.common import (
    GenerationTaskType,
    MatchType,
    Pacing,
    Season,
    SourceType,
    TravelerType,
)
from backend.app.models.generation import GenerationRequest, RegenerationRequest
from backend.app.models.itinerary import ItineraryDocument
from backend.app.models.trip import Trip


class RecordingStub(DeterministicStubClient):
    """Stub collaborator that remembers generation requests."""

    def __init__(self) -> None:
        self.requests: list[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        return await super().generate(request)

    async def regenerate(self, request: RegenerationRequest) -> str:
        raise AssertionError("regenerate should not be called")


def _entry(document: ItineraryDocument, **overrides: Any) -> CacheEntry:
    values: dict[str, Any] = {
        "id": uuid.uuid4(),
        "destination": "iceland",
        "season": Season.summer,
        "duration_days": len(document.days),
        "pacing": Pacing.balanced,
        "anchors": ["waterfalls", "glaciers"],
        "traveler_type": TravelerType.couple,
        "data": document,
    }
    values.update(overrides)
    return CacheEntry(**values)


def test_personalize_stamps_dates_and_trims(
    make_trip: Callable[..., Trip], make_document: Callable[..., ItineraryDocument]
) -> None:
    """Days get calendar dates; days beyond the trip are dropped."""
    document = personalize(make_document(9, "cache"), make_trip())

    assert len(document.days) == 7
    first = document.days[0].model_dump()
    assert first["date"] == "2026-07-01"
    assert first["day_of_week"] == "Wednesday"
    assert document.generated_at is not None


@pytest.mark.asyncio
async def test_exact_cache_match_is_reused_without_ai_call(
    store: InMemoryStore,
    seed: Callable,
    make_trip: Callable[..., Trip],
    make_document: Callable[..., ItineraryDocument],
    owner_id: uuid.UUID,
    settings: Settings,
) -> None:
    """A 9-day exact match becomes a 7-day base version."""
    cached = _entry(make_document(9, "cache"))
    store.cache_entries = [cached]
    trip = await seed(make_trip())
    llm = RecordingStub()

    async with store.unit_of_work() as uow:
        result = await generate(uow, trip.id, owner_id, llm, settings)

    assert llm.requests == []
    assert result.match is not None and result.match.match_type == MatchType.exact
    assert result.version.version == 1
    assert result.version.parent_version is None
    assert result.version.source_type == SourceType.base
    assert result.changes_made == [f"Reused cached itinerary {cached.id}"]
    assert [d.timeline[0].id for d in result.version.data.days] == [
        f"cache_day{n}" for n in range(1, 8)
    ]


@pytest.mark.asyncio
async def test_shorter_match_is_sent_as_differential(
    store: InMemoryStore,
    seed: Callable,
    make_trip: Callable[..., Trip],
    make_document: Callable[..., ItineraryDocument],
    owner_id: uuid.UUID,
    settings: Settings,
) -> None:
    """A shorter match seeds the collaborator together with its tasks."""
    store.cache_entries = [_entry(make_document(5, "cache"))]
    trip = await seed(make_trip())
    llm = RecordingStub()

    async with store.unit_of_work() as uow:
        result = await generate(uow, trip.id, owner_id, llm, settings)

    request = llm.requests[0]
    assert request.base_itinerary is not None
    assert [t.type for t in request.tasks] == [GenerationTaskType.extend_days]
    assert result.version.source_type == SourceType.differential
    assert len(result.version.data.days) == 7

    async with store.unit_of_work() as uow:
        stored = await uow.trips.get(trip.id)

    assert stored is not None and stored.active_version == 1


@pytest.mark.asyncio
async def test_no_match_generates_from_scratch(
    store: InMemoryStore,
    seed: Callable,
    make_trip: Callable[..., Trip],
    owner_id: uuid.UUID,
    settings: Settings,
) -> None:
    """Empty pool: full generation as a base version."""
    trip = await seed(make_trip())
    llm = RecordingStub()

    async with store.unit_of_work() as uow:
        result = await generate(uow, trip.id, owner_id, llm, settings)

    assert result.match is None
    assert llm.requests[0].base_itinerary is None
    assert result.version.source_type == SourceType.base
    assert [d.day_number for d in result.version.data.days] == list(range(1, 8))


@pytest.mark.asyncio
async def test_generate_twice_is_rejected(
    store: InMemoryStore,
    seed: Callable,
    make_trip: Callable[..., Trip],
    make_document: Callable[..., ItineraryDocument],
    owner_id: uuid.UUID,
    settings: Settings,
) -> None:
    """Version 1 can only be produced once."""
    trip = await seed(make_trip(), [make_document(7)])

    async with store.unit_of_work() as uow:
        with pytest.raises(ValidationError):
            await generate(uow, trip.id, owner_id, RecordingStub(), settings)


@pytest.mark.asyncio
async def test_generate_by_non_owner_is_forbidden(
    store: InMemoryStore,
    seed: Callable,
    make_trip: Callable[..., Trip],
    other_user_id: uuid.UUID,
    settings: Settings,
) -> None:
    """Only the owner may generate."""
    trip = await seed(make_trip())

    async with store.unit_of_work() as uow:
        with pytest.raises(AuthorizationError):
            await generate(uow, trip.id, other_user_id, RecordingStub(), settings)
