"""Unit tests for pairwise conflict detection."""

import uuid
from collections.abc import Callable

import pytest

from backend.app.db.inmemory import InMemoryStore
from backend.app.feedback.conflicts import (
    clear_conflicts,
    detect_conflicts,
    find_conflict,
    list_conflicts,
    scan_conflicts,
)
from backend.app.models.comment import Comment, CommentIntent
from backend.app.models.common import (
    CommentAction,
    CommentStatus,
    CommentTargetType,
    Confidence,
)
from backend.app.models.itinerary import ItineraryDocument
from backend.app.models.trip import Trip

TRIP_ID = uuid.UUID("20000000-0000-0000-0000-000000000001")


def _with_add_impact(comment: Comment, minutes: int | None) -> Comment:
    intent = CommentIntent(
        action=CommentAction.add,
        confidence=Confidence.medium,
        details=comment.content,
        affects_routing=True,
        estimated_time_impact_minutes=minutes,
        suggested_resolution=None,
    )
    return comment.model_copy(update={"intent": intent})


class TestFindConflict:
    """Rule table for a single pair."""

    def test_extend_vs_shorten_same_target(self, make_comment: Callable[..., Comment]) -> None:
        """Extend and shorten on one spot conflict, in either order."""
        c1 = make_comment(TRIP_ID, "stay longer at geysir", target_type=CommentTargetType.spot, target_id="geysir")
        c2 = make_comment(TRIP_ID, "make this a quick stop", target_type=CommentTargetType.spot, target_id="geysir", minutes=1)

        conflict = find_conflict(c1, c2)
        reverse = find_conflict(c2, c1)

        assert conflict is not None
        assert conflict.reason == "One wants to extend time, other wants to shorten"
        assert conflict.comment1_id == c1.id
        assert conflict.comment2_id == c2.id
        assert reverse is not None
        assert reverse.reason == conflict.reason

    def test_remove_vs_add_same_target(self, make_comment: Callable[..., Comment]) -> None:
        """Add and remove on the same item conflict."""
        c1 = make_comment(TRIP_ID, "remove this", target_type=CommentTargetType.spot, target_id="kerid")
        c2 = make_comment(TRIP_ID, "add more here", target_type=CommentTargetType.spot, target_id="kerid")

        conflict = find_conflict(c1, c2)

        assert conflict is not None
        assert conflict.reason == "Conflicting add/remove for the same item"
        assert conflict.suggestion == "Clarify whether this item should be included"

    def test_two_swaps_same_target(self, make_comment: Callable[..., Comment]) -> None:
        """Two swap suggestions on one item conflict."""
        c1 = make_comment(TRIP_ID, "swap for the lava caves", target_type=CommentTargetType.spot, target_id="vik")
        c2 = make_comment(TRIP_ID, "replace with a puffin tour", target_type=CommentTargetType.spot, target_id="vik")

        conflict = find_conflict(c1, c2)

        assert conflict is not None
        assert conflict.reason == "Multiple swap suggestions for the same item"

    def test_different_targets_do_not_conflict(self, make_comment: Callable[..., Comment]) -> None:
        """Same rule, different items: no conflict."""
        c1 = make_comment(TRIP_ID, "stay longer", target_type=CommentTargetType.spot, target_id="geysir")
        c2 = make_comment(TRIP_ID, "quick stop", target_type=CommentTargetType.spot, target_id="gullfoss")

        assert find_conflict(c1, c2) is None

    def test_missing_target_ids_never_match(self, make_comment: Callable[..., Comment]) -> None:
        """Two untargeted swaps are not about the same item."""
        c1 = make_comment(TRIP_ID, "swap something", target_type=CommentTargetType.spot, target_id=None)
        c2 = make_comment(TRIP_ID, "replace something", target_type=CommentTargetType.spot, target_id=None)

        assert find_conflict(c1, c2) is None

    def test_unclassified_comment_never_conflicts(self, make_comment: Callable[..., Comment]) -> None:
        """Comments without an intent are skipped."""
        c1 = make_comment(TRIP_ID, "stay longer", target_type=CommentTargetType.spot, target_id="geysir")
        c2 = make_comment(TRIP_ID, "quick stop", target_type=CommentTargetType.spot, target_id="geysir")
        c2 = c2.model_copy(update={"intent": None})

        assert find_conflict(c1, c2) is None

    @pytest.mark.parametrize("add_first", [True, False])
    def test_add_vs_less_driving_on_same_day(
        self, make_comment: Callable[..., Comment], add_first: bool
    ) -> None:
        """An addition on a day someone wants less driving on conflicts."""
        add = make_comment(TRIP_ID, "add a waterfall stop", target_id="2")
        less = make_comment(TRIP_ID, "Less driving on this day please", target_id="2")
        pair = (add, less) if add_first else (less, add)

        conflict = find_conflict(*pair)

        assert conflict is not None
        assert conflict.reason == 'Adding activity may conflict with "less driving" preference'

    def test_less_driving_on_other_day_does_not_conflict(
        self, make_comment: Callable[..., Comment]
    ) -> None:
        """Day rules need the same day."""
        add = make_comment(TRIP_ID, "add a waterfall stop", target_id="2")
        less = make_comment(TRIP_ID, "less driving please", target_id="3")

        assert find_conflict(add, less) is None

    def test_two_large_additions_overcrowd_a_day(
        self, make_comment: Callable[..., Comment]
    ) -> None:
        """Additions totalling over three hours on one day conflict."""
        c1 = _with_add_impact(make_comment(TRIP_ID, "add a boat tour", target_id="4"), 120)
        c2 = _with_add_impact(make_comment(TRIP_ID, "add a horse ride", target_id="4"), 90)

        conflict = find_conflict(c1, c2)

        assert conflict is not None
        assert conflict.reason == "Multiple additions may overcrowd this day"

    def test_missing_add_impact_counts_as_an_hour(
        self, make_comment: Callable[..., Comment]
    ) -> None:
        """None impact defaults to 60 minutes: 60 + 120 is not over 180."""
        c1 = _with_add_impact(make_comment(TRIP_ID, "add a boat tour", target_id="4"), None)
        c2 = _with_add_impact(make_comment(TRIP_ID, "add a horse ride", target_id="4"), 120)

        assert find_conflict(c1, c2) is None

    def test_two_classified_additions_fit_a_day(
        self, make_comment: Callable[..., Comment]
    ) -> None:
        """Two plain additions (60 + 60) do not overcrowd."""
        c1 = make_comment(TRIP_ID, "add a boat tour", target_id="4")
        c2 = make_comment(TRIP_ID, "add a horse ride", target_id="4")

        assert find_conflict(c1, c2) is None

    @pytest.mark.parametrize(
        ("first", "second", "reason"),
        [
            ("skip this one", "stay longer here", "One wants to remove, other wants more time here"),
            ("stay longer here", "skip this one", "One wants to remove, other wants more time here"),
            ("move this earlier", "do this on a different day", "Conflicting move suggestions for the same item"),
        ],
        ids=["remove_then_extend", "extend_then_remove", "two_moves"],
    )
    def test_same_target_pairs(
        self, make_comment: Callable[..., Comment], first: str, second: str, reason: str
    ) -> None:
        """Remaining same-target rules fire in either order."""
        c1 = make_comment(TRIP_ID, first, target_type=CommentTargetType.spot, target_id="kerid")
        c2 = make_comment(TRIP_ID, second, target_type=CommentTargetType.spot, target_id="kerid", minutes=1)

        conflict = find_conflict(c1, c2)

        assert conflict is not None
        assert conflict.reason == reason

    @pytest.mark.parametrize(
        ("first", "second"),
        [
            ("swap for the lava caves", "move this earlier"),
            ("stay longer here", "add more here"),
            ("skip this one", "make it a quick stop"),
            ("I love this place", "skip this one"),
        ],
        ids=["swap_vs_move", "extend_vs_add", "remove_vs_shorten", "preference_vs_remove"],
    )
    def test_other_action_pairs_do_not_conflict(
        self, make_comment: Callable[..., Comment], first: str, second: str
    ) -> None:
        """Only the listed action pairs conflict on a shared target."""
        c1 = make_comment(TRIP_ID, first, target_type=CommentTargetType.spot, target_id="kerid")
        c2 = make_comment(TRIP_ID, second, target_type=CommentTargetType.spot, target_id="kerid", minutes=1)

        assert find_conflict(c1, c2) is None

    def test_large_additions_on_a_spot_do_not_overcrowd(
        self, make_comment: Callable[..., Comment]
    ) -> None:
        """The overcrowding rule only applies to day targets."""
        c1 = _with_add_impact(
            make_comment(TRIP_ID, "add a boat tour", target_type=CommentTargetType.spot, target_id="vik"),
            120,
        )
        c2 = _with_add_impact(
            make_comment(TRIP_ID, "add a horse ride", target_type=CommentTargetType.spot, target_id="vik"),
            90,
        )

        assert find_conflict(c1, c2) is None


class TestScanConflicts:
    """Pairwise scan over a comment list."""

    def test_only_pending_comments_are_scanned(self, make_comment: Callable[..., Comment]) -> None:
        """A resolved comment does not conflict with anything."""
        c1 = make_comment(TRIP_ID, "stay longer", target_type=CommentTargetType.spot, target_id="geysir")
        c2 = make_comment(
            TRIP_ID,
            "quick stop",
            target_type=CommentTargetType.spot,
            target_id="geysir",
            status=CommentStatus.resolved,
        )

        assert scan_conflicts([c1, c2], max_comments=200) == []

    def test_pairs_are_ordered_oldest_first(self, make_comment: Callable[..., Comment]) -> None:
        """comment1 is always the older comment of the pair."""
        older = make_comment(TRIP_ID, "stay longer", target_type=CommentTargetType.spot, target_id="geysir", minutes=1)
        newer = make_comment(TRIP_ID, "quick stop", target_type=CommentTargetType.spot, target_id="geysir", minutes=5)

        conflicts = scan_conflicts([newer, older], max_comments=200)

        assert len(conflicts) == 1
        assert conflicts[0].comment1_id == older.id
        assert conflicts[0].comment2_id == newer.id

    def test_scan_is_capped_to_oldest_comments(self, make_comment: Callable[..., Comment]) -> None:
        """Beyond the cap, newer comments are not scanned."""
        first = make_comment(TRIP_ID, "stay longer", target_type=CommentTargetType.spot, target_id="a", minutes=0)
        second = make_comment(TRIP_ID, "hmm", target_type=CommentTargetType.spot, target_id="b", minutes=1)
        third = make_comment(TRIP_ID, "quick stop", target_type=CommentTargetType.spot, target_id="a", minutes=2)

        assert len(scan_conflicts([first, second, third], max_comments=3)) == 1
        assert scan_conflicts([first, second, third], max_comments=2) == []


class TestDetectAndClear:
    """Recorded conflict sets on stored comments."""

    @pytest.mark.asyncio
    async def test_detect_records_conflicts_symmetrically(
        self,
        store: InMemoryStore,
        seed: Callable,
        make_trip: Callable[..., Trip],
        make_document: Callable[..., ItineraryDocument],
        make_comment: Callable[..., Comment],
    ) -> None:
        """Both comments list each other after a scan."""
        trip = make_trip(id=TRIP_ID)
        c1 = make_comment(TRIP_ID, "stay longer", target_type=CommentTargetType.spot, target_id="geysir")
        c2 = make_comment(TRIP_ID, "quick stop", target_type=CommentTargetType.spot, target_id="geysir", minutes=1)
        await seed(trip, [make_document(7)], [c1, c2])

        async with store.unit_of_work() as uow:
            conflicts = await detect_conflicts(uow, TRIP_ID, 200)
            await uow.commit()

        async with store.unit_of_work() as uow:
            stored1 = await uow.comments.get(c1.id)
            stored2 = await uow.comments.get(c2.id)

        assert len(conflicts) == 1
        assert stored1 is not None and stored2 is not None
        assert stored1.conflicts_with == [c2.id]
        assert stored2.conflicts_with == [c1.id]

    @pytest.mark.asyncio
    async def test_detect_is_idempotent(
        self,
        store: InMemoryStore,
        seed: Callable,
        make_trip: Callable[..., Trip],
        make_document: Callable[..., ItineraryDocument],
        make_comment: Callable[..., Comment],
    ) -> None:
        """Running the scan twice does not duplicate entries."""
        trip = make_trip(id=TRIP_ID)
        c1 = make_comment(TRIP_ID, "remove it", target_type=CommentTargetType.spot, target_id="kerid")
        c2 = make_comment(TRIP_ID, "add it", target_type=CommentTargetType.spot, target_id="kerid", minutes=1)
        await seed(trip, [make_document(7)], [c1, c2])

        for _ in range(2):
            async with store.unit_of_work() as uow:
                await detect_conflicts(uow, TRIP_ID, 200)
                await uow.commit()

        async with store.unit_of_work() as uow:
            stored = await uow.comments.get(c1.id)

        assert stored is not None
        assert stored.conflicts_with == [c2.id]

    @pytest.mark.asyncio
    async def test_clear_removes_comment_from_both_sides(
        self,
        store: InMemoryStore,
        seed: Callable,
        make_trip: Callable[..., Trip],
        make_document: Callable[..., ItineraryDocument],
        make_comment: Callable[..., Comment],
    ) -> None:
        """Clearing one comment empties its set and strips it from the other."""
        trip = make_trip(id=TRIP_ID)
        c1 = make_comment(TRIP_ID, "stay longer", target_type=CommentTargetType.spot, target_id="geysir")
        c2 = make_comment(TRIP_ID, "quick stop", target_type=CommentTargetType.spot, target_id="geysir", minutes=1)
        await seed(trip, [make_document(7)], [c1, c2])

        async with store.unit_of_work() as uow:
            await detect_conflicts(uow, TRIP_ID, 200)
            await uow.commit()

        async with store.unit_of_work() as uow:
            comment = await uow.comments.get(c2.id)
            assert comment is not None
            comment.status = CommentStatus.resolved
            await clear_conflicts(uow, comment)
            await uow.commit()

        async with store.unit_of_work() as uow:
            stored1 = await uow.comments.get(c1.id)
            stored2 = await uow.comments.get(c2.id)
            remaining = await list_conflicts(uow, TRIP_ID, 200)

        assert stored1 is not None and stored2 is not None
        assert stored1.conflicts_with == []
        assert stored2.conflicts_with == []
        assert stored2.status == CommentStatus.resolved
        assert remaining == []
