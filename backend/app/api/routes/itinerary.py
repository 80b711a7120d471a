"""Itinerary generation endpoints - POST /itinerary/generate, POST /itinerary/regenerate."""

import uuid

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from backend.app.api.deps import (
    CurrentContext,
    LLMDep,
    SettingsDep,
    UnitOfWorkDep,
    enforce_ai_rate_limit,
)
from backend.app.itinerary.generator import generate
from backend.app.itinerary.regenerator import regenerate
from backend.app.models.common import MatchType
from backend.app.models.envelope import Envelope, ok
from backend.app.models.itinerary import ItineraryVersion

router = APIRouter(
    prefix="/itinerary",
    tags=["itinerary"],
    dependencies=[Depends(enforce_ai_rate_limit)],
)


class TripRef(BaseModel):
    """Request body naming the trip to act on."""

    trip_id: uuid.UUID


class GenerateResponse(BaseModel):
    """Result of POST /itinerary/generate."""

    version: ItineraryVersion
    match_type: MatchType | None = None
    match_score: int | None = None
    changes_made: list[str]


class RegenerateResponse(BaseModel):
    """Result of POST /itinerary/regenerate."""

    version: ItineraryVersion
    changes_made: list[str]


@router.post(
    "/generate", response_model=Envelope[GenerateResponse], status_code=status.HTTP_201_CREATED
)
async def post_generate(
    body: TripRef,
    ctx: CurrentContext,
    uow: UnitOfWorkDep,
    llm: LLMDep,
    settings: SettingsDep,
) -> Envelope[GenerateResponse]:
    """Generate version 1, reusing a cached itinerary where one fits."""
    async with uow:
        result = await generate(uow, body.trip_id, ctx.user_id, llm, settings)
    return ok(
        GenerateResponse(
            version=result.version,
            match_type=result.match.match_type if result.match else None,
            match_score=result.match.score if result.match else None,
            changes_made=result.changes_made,
        )
    )


@router.post(
    "/regenerate",
    response_model=Envelope[RegenerateResponse],
    status_code=status.HTTP_201_CREATED,
)
async def post_regenerate(
    body: TripRef,
    ctx: CurrentContext,
    uow: UnitOfWorkDep,
    llm: LLMDep,
    settings: SettingsDep,
) -> Envelope[RegenerateResponse]:
    """Apply every pending comment in a new version."""
    async with uow:
        result = await regenerate(uow, body.trip_id, ctx.user_id, llm, settings)
    return ok(RegenerateResponse(version=result.version, changes_made=result.changes_made))
