"""Cache matcher - scores pooled prior itineraries against a trip request.

Scoring (max 100):
    pacing        exact 30, one step up from candidate to request 15
    anchors       Jaccard(candidate, request) * 40, rounded half-up
    duration      exact 20, within 2 days 15, within 5 days 10
    traveler type exact 10
"""

import logging
import math
from datetime import date

from backend.app.db.repositories import CachePool
from backend.app.models.cache import CacheEntry, CacheMatch, GenerationTask
from backend.app.models.common import GenerationTaskType, MatchType, Pacing, Season
from backend.app.models.trip import Trip, TripCreate
from backend.app.utils.metrics import metrics

logger = logging.getLogger(__name__)

DURATION_WINDOW_BELOW = 7
DURATION_WINDOW_ABOVE = 3
EXACT_MATCH_MIN_SCORE = 90

# (candidate pacing, requested pacing) pairs that earn partial credit.
# Directional: a relaxed candidate helps a balanced request but not the reverse.
ADJACENT_PACING: frozenset[tuple[Pacing, Pacing]] = frozenset(
    {
        (Pacing.relaxed, Pacing.balanced),
        (Pacing.balanced, Pacing.packed),
    }
)

MatchRequest = Trip | TripCreate


def season_for(start: date) -> Season:
    """Season bucket of a trip start date: Jun-Aug summer, Nov-Mar winter."""
    if 6 <= start.month <= 8:
        return Season.summer
    if start.month >= 11 or start.month <= 3:
        return Season.winter
    return Season.shoulder


def anchor_jaccard(a: list[str], b: list[str]) -> float:
    """Jaccard similarity of two anchor lists. Two empty lists are identical."""
    set_a = set(a)
    set_b = set(b)
    union = set_a | set_b
    if not union:
        return 1.0
    return len(set_a & set_b) / len(union)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _duration_points(candidate_days: int, requested_days: int) -> int:
    diff = abs(candidate_days - requested_days)
    if diff == 0:
        return 20
    if diff <= 2:
        return 15
    if diff <= 5:
        return 10
    return 0


def score_candidate(entry: CacheEntry, request: MatchRequest) -> CacheMatch:
    """Score one cached itinerary and list the work needed to adapt it.

    Tasks are emitted in the order pacing, anchors, duration.
    """
    score = 0
    tasks: list[GenerationTask] = []

    if entry.pacing == request.pacing:
        score += 30
    elif (entry.pacing, request.pacing) in ADJACENT_PACING:
        score += 15
        tasks.append(
            GenerationTask(
                type=GenerationTaskType.adjust_pacing,
                details={
                    "current_pacing": entry.pacing.value,
                    "target_pacing": request.pacing.value,
                },
            )
        )

    score += _round_half_up(anchor_jaccard(entry.anchors, request.anchors) * 40)
    missing = [a for a in request.anchors if a not in entry.anchors]
    if missing:
        tasks.append(
            GenerationTask(type=GenerationTaskType.add_anchor, details={"missing_anchors": missing})
        )

    requested_days = request.duration_days
    score += _duration_points(entry.duration_days, requested_days)
    if entry.duration_days < requested_days:
        tasks.append(
            GenerationTask(
                type=GenerationTaskType.extend_days,
                details={
                    "current_days": entry.duration_days,
                    "target_days": requested_days,
                    "add_days": requested_days - entry.duration_days,
                },
            )
        )

    if entry.traveler_type == request.traveler_type:
        score += 10

    return CacheMatch(
        entry=entry, score=score, match_type=_match_type(score, tasks), tasks=tasks
    )


def _match_type(score: int, tasks: list[GenerationTask]) -> MatchType:
    task_types = {t.type for t in tasks}
    if score >= EXACT_MATCH_MIN_SCORE and not tasks:
        return MatchType.exact
    if GenerationTaskType.extend_days in task_types:
        return MatchType.extend
    if GenerationTaskType.add_anchor in task_types:
        return MatchType.anchor_diff
    return MatchType.partial


def select_best(
    candidates: list[CacheEntry], request: MatchRequest, min_score: int
) -> CacheMatch | None:
    """Highest-scoring candidate; the earliest one wins a tie.

    Returns None if the pool is empty or the best score is below ``min_score``.
    """
    best: CacheMatch | None = None
    for entry in candidates:
        match = score_candidate(entry, request)
        if best is None or match.score > best.score:
            best = match

    if best is None or best.score < min_score:
        return None
    return best


async def find_best_match(
    pool: CachePool,
    request: MatchRequest,
    *,
    pool_limit: int,
    min_score: int,
) -> CacheMatch | None:
    """Query the cache pool for a request and return the best usable match.

    Args:
        pool: Cache pool to query (read-only)
        request: Trip or trip request being planned
        pool_limit: Maximum number of candidates to score
        min_score: Matches scoring below this are discarded

    Returns:
        Best CacheMatch, or None when nothing scores high enough
    """
    requested_days = request.duration_days
    candidates = await pool.candidates(
        destination=request.destination,
        season=season_for(request.start_date),
        min_days=max(1, requested_days - DURATION_WINDOW_BELOW),
        max_days=requested_days + DURATION_WINDOW_ABOVE,
        limit=pool_limit,
    )

    match = select_best(candidates, request, min_score)
    metrics.inc_cache_match(match.match_type.value if match else "none")

    if match is None:
        logger.info(f"No cache match for {request.destination} ({len(candidates)} candidates)")
    else:
        logger.info(
            f"Cache match for {request.destination}: {match.match_type.value} ({match.score})",
            extra={"structured": {"cache_id": str(match.entry.id), "score": match.score}},
        )
    return match
