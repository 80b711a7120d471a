"""Version endpoints - GET /versions (history), POST /versions (cherry-pick or restore)."""

import uuid
from typing import Literal

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from backend.app.api.deps import CurrentContext, UnitOfWorkDep
from backend.app.errors import NotFoundError, ValidationError
from backend.app.itinerary.merger import cherry_pick, restore_version
from backend.app.models.envelope import Envelope, ok
from backend.app.models.itinerary import ContinuityWarning, ItineraryVersion

router = APIRouter(prefix="/versions", tags=["versions"])


class VersionAction(BaseModel):
    """Request body for POST /versions."""

    trip_id: uuid.UUID
    action: Literal["cherry_pick", "restore"]
    day_selections: dict[int, int] | None = Field(
        None, description="day_number -> source version, for cherry_pick"
    )
    restore_from_version: int | None = Field(None, ge=1, description="Version to restore")


class VersionActionResponse(BaseModel):
    """New version and advisory continuity warnings."""

    version: ItineraryVersion
    warnings: list[ContinuityWarning]


@router.get("", response_model=Envelope[list[ItineraryVersion]])
async def list_versions(trip_id: uuid.UUID, uow: UnitOfWorkDep) -> Envelope[list[ItineraryVersion]]:
    """Full version history of a trip, newest first."""
    async with uow:
        if await uow.trips.get(trip_id) is None:
            raise NotFoundError(f"Trip {trip_id} not found")
        versions = await uow.versions.list_for_trip(trip_id)
    return ok(versions)


@router.post("", response_model=Envelope[VersionActionResponse], status_code=status.HTTP_201_CREATED)
async def post_version(
    body: VersionAction, ctx: CurrentContext, uow: UnitOfWorkDep
) -> Envelope[VersionActionResponse]:
    """Create a new version by cherry-picking days or restoring an old version."""
    async with uow:
        if body.action == "cherry_pick":
            if not body.day_selections:
                raise ValidationError("day_selections is required for cherry_pick")
            result = await cherry_pick(uow, body.trip_id, body.day_selections, ctx.user_id)
        else:
            if body.restore_from_version is None:
                raise ValidationError("restore_from_version is required for restore")
            result = await restore_version(
                uow, body.trip_id, body.restore_from_version, ctx.user_id
            )
    return ok(VersionActionResponse(version=result.version, warnings=result.warnings))
