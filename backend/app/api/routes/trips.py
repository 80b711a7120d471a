"""Trip endpoints - POST /trips, GET /trips, GET /trips/{trip_id}."""

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, status
from pydantic import BaseModel

from backend.app.api.deps import CurrentContext, UnitOfWorkDep
from backend.app.errors import NotFoundError
from backend.app.models.envelope import Envelope, ok
from backend.app.models.itinerary import ItineraryVersion
from backend.app.models.trip import Trip, TripCreate

router = APIRouter(prefix="/trips", tags=["trips"])


class TripDetail(BaseModel):
    """Trip with its active itinerary version, if one exists."""

    trip: Trip
    itinerary: ItineraryVersion | None = None


@router.post("", response_model=Envelope[Trip], status_code=status.HTTP_201_CREATED)
async def create_trip(
    body: TripCreate, ctx: CurrentContext, uow: UnitOfWorkDep
) -> Envelope[Trip]:
    """Create a trip owned by the caller. No itinerary exists until generate is called."""
    trip = Trip(
        id=uuid.uuid4(),
        owner_id=ctx.user_id,
        destination=body.destination,
        start_date=body.start_date,
        end_date=body.end_date,
        duration_days=body.duration_days,
        traveler_type=body.traveler_type,
        traveler_count=body.traveler_count,
        pacing=body.pacing,
        anchors=body.anchors,
        created_at=datetime.now(timezone.utc),
    )
    async with uow:
        await uow.trips.add(trip)
        await uow.commit()
    return ok(trip)


@router.get("", response_model=Envelope[list[Trip]])
async def list_trips(ctx: CurrentContext, uow: UnitOfWorkDep) -> Envelope[list[Trip]]:
    """List the caller's trips, newest first."""
    async with uow:
        trips = await uow.trips.list_for_owner(ctx.user_id)
    return ok(trips)


@router.get("/{trip_id}", response_model=Envelope[TripDetail])
async def get_trip(trip_id: uuid.UUID, uow: UnitOfWorkDep) -> Envelope[TripDetail]:
    """Get a trip and its active itinerary."""
    async with uow:
        trip = await uow.trips.get(trip_id)
        if trip is None:
            raise NotFoundError(f"Trip {trip_id} not found")
        itinerary = None
        if trip.active_version:
            itinerary = await uow.versions.get(trip_id, trip.active_version)
    return ok(TripDetail(trip=trip, itinerary=itinerary))
