"""Version merger - cherry-pick days across versions, or restore an old version.

Both operations create a new ``cherry_pick`` version on top of the current
active one; existing versions are never modified.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from backend.app.db.repositories import UnitOfWork
from backend.app.errors import NotFoundError, ValidationError
from backend.app.itinerary.versions import (
    append_version,
    load_active_version,
    load_owned_trip,
    record_version_created,
)
from backend.app.models.common import SourceType
from backend.app.models.itinerary import ContinuityWarning, ItineraryDay, ItineraryVersion

logger = logging.getLogger(__name__)

LATE_END_MINUTES = 22 * 60
EARLY_START_MINUTES = 7 * 60

_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})")


@dataclass
class MergeResult:
    """New version plus advisory continuity warnings."""

    version: ItineraryVersion
    warnings: list[ContinuityWarning] = field(default_factory=list)


def parse_minutes(value: str | None) -> int | None:
    """Minutes since midnight for an ``HH:MM`` string; None if unparseable."""
    if not value:
        return None
    match = _TIME_RE.search(value)
    if match is None:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def check_continuity(days: list[ItineraryDay]) -> list[ContinuityWarning]:
    """Flag consecutive days where a late finish is followed by an early start.

    Days with an empty timeline or unparseable times are skipped.
    """
    warnings: list[ContinuityWarning] = []
    for current, following in zip(days, days[1:]):
        if not current.timeline or not following.timeline:
            continue
        end = parse_minutes(current.timeline[-1].end_time)
        start = parse_minutes(following.timeline[0].time)
        if end is None or start is None:
            continue
        if end > LATE_END_MINUTES and start < EARLY_START_MINUTES:
            warnings.append(
                ContinuityWarning(
                    day_number=following.day_number,
                    description=(
                        f"Day {current.day_number} ends late but "
                        f"Day {following.day_number} starts early"
                    ),
                )
            )
    return warnings


def resolve_days(
    active: ItineraryVersion,
    selections: dict[int, int],
    sources: dict[int, ItineraryVersion],
) -> list[ItineraryDay]:
    """Build the merged day list in the active version's day order.

    Args:
        active: Current active version; supplies every unselected day
        selections: day_number -> source version number
        sources: Loaded source versions keyed by version number

    Raises:
        ValidationError: If a selection names a day the active version lacks,
            or a source version lacks the selected day
        NotFoundError: If a selected source version does not exist
    """
    active_days = {day.day_number for day in active.data.days}
    unknown = sorted(set(selections) - active_days)
    if unknown:
        raise ValidationError(
            f"Day(s) {', '.join(map(str, unknown))} not in the current itinerary",
            details={"days": unknown},
        )

    days: list[ItineraryDay] = []
    for day in active.data.days:
        source_number = selections.get(day.day_number)
        if source_number is None:
            days.append(day.model_copy(deep=True))
            continue

        source = sources.get(source_number)
        if source is None:
            raise NotFoundError(f"Version {source_number} not found")
        picked = source.data.day(day.day_number)
        if picked is None:
            raise ValidationError(
                f"Day {day.day_number} not found in version {source_number}",
                details={"day_number": day.day_number, "version": source_number},
            )
        days.append(picked.model_copy(deep=True))
    return days


def cherry_pick_summary(selections: dict[int, int]) -> str:
    """``Cherry-picked: Day 1 from v2, Day 3 from v3`` in ascending day order."""
    parts = [f"Day {day} from v{selections[day]}" for day in sorted(selections)]
    return "Cherry-picked: " + ", ".join(parts)


async def cherry_pick(
    uow: UnitOfWork,
    trip_id: uuid.UUID,
    selections: dict[int, int],
    actor_id: uuid.UUID,
) -> MergeResult:
    """Compose a new version from per-day selections across versions.

    Every day of the active version is kept unless a selection replaces it.
    If any selection cannot be resolved nothing is written.

    Args:
        uow: Open unit of work; committed here on success
        trip_id: Trip to modify
        selections: day_number -> source version number
        actor_id: Acting user, must own the trip

    Returns:
        MergeResult with the new version and continuity warnings
    """
    if not selections:
        raise ValidationError("At least one day selection is required")

    trip = await load_owned_trip(uow, trip_id, actor_id)
    active = await load_active_version(uow, trip)
    sources = await uow.versions.get_many(trip_id, selections.values())

    days = resolve_days(active, selections, sources)
    warnings = check_continuity(days)
    for warning in warnings:
        logger.warning(
            f"Continuity warning on trip {trip_id}: {warning.description}",
            extra={"structured": {"trip_id": str(trip_id), "day_number": warning.day_number}},
        )

    data = active.data.model_copy(
        update={"days": days, "generated_at": datetime.now(timezone.utc)}
    )
    version = await append_version(
        uow,
        trip,
        data=data,
        source_type=SourceType.cherry_pick,
        created_by=actor_id,
        modification_summary=cherry_pick_summary(selections),
        source_versions=sorted(set(selections.values())),
    )
    await uow.commit()
    record_version_created(version)
    return MergeResult(version=version, warnings=warnings)


async def restore_version(
    uow: UnitOfWork,
    trip_id: uuid.UUID,
    version_number: int,
    actor_id: uuid.UUID,
) -> MergeResult:
    """Create a new version whose content is an earlier version's document.

    Args:
        uow: Open unit of work; committed here on success
        trip_id: Trip to modify
        version_number: Version to restore
        actor_id: Acting user, must own the trip
    """
    trip = await load_owned_trip(uow, trip_id, actor_id)
    if trip.active_version == 0:
        raise NotFoundError(f"Trip {trip_id} has no itinerary yet")

    restored = await uow.versions.get(trip_id, version_number)
    if restored is None:
        raise NotFoundError(f"Version {version_number} not found")

    data = restored.data.model_copy(
        deep=True, update={"generated_at": datetime.now(timezone.utc)}
    )
    version = await append_version(
        uow,
        trip,
        data=data,
        source_type=SourceType.cherry_pick,
        created_by=actor_id,
        modification_summary=f"Restored from Version {version_number}",
        source_versions=[version_number],
    )
    await uow.commit()
    record_version_created(version)
    return MergeResult(version=version, warnings=check_continuity(data.days))
