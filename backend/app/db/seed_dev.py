"""Dev seeding helper - loads sample itineraries into the cache pool."""

import asyncio
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.engine import get_async_engine
from backend.app.db.models import ItineraryCacheRow
from backend.app.models.cache import CacheEntry
from backend.app.models.common import Pacing, Season, TravelerType
from backend.app.models.itinerary import ItineraryDay, ItineraryDocument, TimelineItem

# Fixed IDs so seeding is idempotent
ICELAND_SUMMER_ID = uuid.UUID("10000000-0000-0000-0000-000000000001")
ICELAND_WINTER_ID = uuid.UUID("10000000-0000-0000-0000-000000000002")

_SUMMER_STOPS = [
    ("thingvellir", "geysir", "gullfoss"),
    ("seljalandsfoss", "skogafoss", "reynisfjara"),
    ("skaftafell", "svinafellsjokull", "jokulsarlon"),
    ("diamond_beach", "hofn", "stokksnes"),
    ("djupivogur", "seydisfjordur", "egilsstadir"),
    ("dettifoss", "myvatn", "namaskard"),
    ("godafoss", "akureyri", "hvitserkur"),
]

_WINTER_STOPS = [
    ("blue_lagoon", "reykjavik_old_harbour"),
    ("thingvellir", "secret_lagoon"),
    ("seljalandsfoss", "vik"),
    ("reynisfjara", "northern_lights_vik"),
    ("kerid", "reykjavik_sky_lagoon"),
]


def _day(number: int, stops: tuple[str, ...]) -> ItineraryDay:
    timeline: list[TimelineItem] = []
    hour = 9
    for index, spot_id in enumerate(stops, start=1):
        timeline.append(
            TimelineItem(
                id=f"day{number}_item{index}",
                time=f"{hour:02d}:00",
                end_time=f"{hour + 2:02d}:00",
                type="spot",
                spot_id=spot_id,
                duration_minutes=120,
            )
        )
        hour += 3
    return ItineraryDay(day_number=number, timeline=timeline, title=f"Day {number}")


def sample_cache_entries() -> list[CacheEntry]:
    """Sample cached itineraries for local development."""
    return [
        CacheEntry(
            id=ICELAND_SUMMER_ID,
            destination="iceland",
            season=Season.summer,
            duration_days=len(_SUMMER_STOPS),
            pacing=Pacing.balanced,
            anchors=["waterfalls", "glaciers"],
            traveler_type=TravelerType.couple,
            quality_score=80.0,
            data=ItineraryDocument(
                days=[_day(n, stops) for n, stops in enumerate(_SUMMER_STOPS, start=1)]
            ),
        ),
        CacheEntry(
            id=ICELAND_WINTER_ID,
            destination="iceland",
            season=Season.winter,
            duration_days=len(_WINTER_STOPS),
            pacing=Pacing.relaxed,
            anchors=["northern_lights", "hot_springs"],
            traveler_type=TravelerType.friends,
            quality_score=70.0,
            data=ItineraryDocument(
                days=[_day(n, stops) for n, stops in enumerate(_WINTER_STOPS, start=1)]
            ),
        ),
    ]


async def seed_dev_cache() -> int:
    """Insert the sample cache entries that are not there yet.

    This function is idempotent - safe to run multiple times.

    Returns:
        Number of entries inserted
    """
    inserted = 0
    async with AsyncSession(get_async_engine()) as session:
        for entry in sample_cache_entries():
            existing = await session.execute(
                select(ItineraryCacheRow).where(ItineraryCacheRow.id == entry.id)
            )
            if existing.scalar_one_or_none() is not None:
                print(f"Cache entry already exists: {entry.destination}/{entry.season.value}")
                continue

            print(f"Creating cache entry {entry.destination}/{entry.season.value}...")
            session.add(
                ItineraryCacheRow(
                    id=entry.id,
                    destination=entry.destination,
                    season=entry.season.value,
                    duration_days=entry.duration_days,
                    pacing=entry.pacing.value,
                    anchors=entry.anchors,
                    traveler_type=entry.traveler_type.value,
                    quality_score=entry.quality_score,
                    data=entry.data.model_dump(mode="json"),
                    times_used=entry.times_used,
                )
            )
            inserted += 1

        await session.commit()
    print("Dev seeding complete")
    return inserted


if __name__ == "__main__":
    asyncio.run(seed_dev_cache())
