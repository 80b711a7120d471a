"""Initial generator - produces version 1 of a trip's itinerary."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from backend.app.config import Settings
from backend.app.db.repositories import UnitOfWork
from backend.app.errors import GenerationParseError, ValidationError
from backend.app.itinerary.cache_matcher import find_best_match, season_for
from backend.app.itinerary.regenerator import trip_constraints
from backend.app.itinerary.versions import append_version, load_owned_trip, record_version_created
from backend.app.llm.client import ItineraryLLM, call_with_timeout
from backend.app.llm.parsing import parse_itinerary_payload
from backend.app.models.cache import CacheMatch
from backend.app.models.common import MatchType, SourceType
from backend.app.models.generation import GenerationRequest
from backend.app.models.itinerary import ItineraryDay, ItineraryDocument, ItineraryVersion
from backend.app.models.trip import Trip
from backend.app.utils.metrics import metrics

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """First version plus how it was produced."""

    version: ItineraryVersion
    match: CacheMatch | None = None
    changes_made: list[str] = field(default_factory=list)


def personalize(document: ItineraryDocument, trip: Trip) -> ItineraryDocument:
    """Stamp each day with the trip's calendar date and drop days past the trip end."""
    days: list[ItineraryDay] = []
    for day in document.days:
        if day.day_number > trip.duration_days:
            continue
        on = trip.start_date + timedelta(days=day.day_number - 1)
        days.append(
            ItineraryDay.model_validate(
                {
                    **day.model_dump(),
                    "date": on.isoformat(),
                    "day_of_week": on.strftime("%A"),
                }
            )
        )
    return document.model_copy(
        update={"days": days, "generated_at": datetime.now(timezone.utc)}
    )


async def generate(
    uow: UnitOfWork,
    trip_id: uuid.UUID,
    actor_id: uuid.UUID,
    llm: ItineraryLLM,
    settings: Settings,
) -> GenerationResult:
    """Create version 1 for a trip that has no itinerary yet.

    An exact cache match is reused directly. Otherwise the collaborator writes
    the itinerary, seeded with the best cache match when there is one.

    Args:
        uow: Open unit of work; committed here on success
        trip_id: Trip to generate for
        actor_id: Acting user, must own the trip
        llm: AI collaborator
        settings: Cache thresholds and timeout

    Raises:
        ValidationError: If the trip already has an itinerary
    """
    trip = await load_owned_trip(uow, trip_id, actor_id)
    if trip.active_version != 0:
        raise ValidationError(
            f"Trip {trip_id} already has an itinerary (version {trip.active_version})"
        )

    match = await find_best_match(
        uow.cache,
        trip,
        pool_limit=settings.cache_pool_limit,
        min_score=settings.cache_min_match_score,
    )

    if match is not None and match.match_type == MatchType.exact:
        document = match.entry.data
        source_type = SourceType.base
        changes_made = [f"Reused cached itinerary {match.entry.id}"]
    else:
        request = GenerationRequest(
            trip_id=trip_id,
            constraints=trip_constraints(trip),
            season=season_for(trip.start_date),
            base_itinerary=match.entry.data if match else None,
            tasks=match.tasks if match else [],
        )
        text = await call_with_timeout(
            llm.generate(request),
            operation="generate",
            trip_id=trip_id,
            timeout_seconds=settings.llm_timeout_seconds,
        )
        try:
            payload = parse_itinerary_payload(text)
        except GenerationParseError:
            metrics.inc_generation_failure("generate", GenerationParseError.code)
            raise
        document = payload.itinerary
        source_type = SourceType.differential if match else SourceType.base
        changes_made = payload.changes_made

    version = await append_version(
        uow,
        trip,
        data=personalize(document, trip),
        source_type=source_type,
        created_by=actor_id,
        modification_summary="; ".join(changes_made) or None,
    )
    await uow.commit()

    record_version_created(version)
    logger.info(f"Generated trip {trip_id} v1 ({source_type.value})")
    return GenerationResult(version=version, match=match, changes_made=changes_made)
