"""Tests for the AI collaborator clients and response parsing.

All tests are deterministic and do not make real network calls.
"""

import asyncio
import json
import uuid
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from openai import OpenAIError

from backend.app.config import Settings
from backend.app.errors import GenerationParseError, GenerationUnavailableError
from backend.app.llm.client import (
    DeterministicStubClient,
    OpenAIClient,
    call_with_timeout,
    get_llm_client,
)
from backend.app.llm.parsing import extract_json_payload, parse_itinerary_payload
from backend.app.llm.prompts import build_generation_prompt, build_regeneration_prompt
from backend.app.models.cache import GenerationTask
from backend.app.models.common import (
    CommentAction,
    CommentTargetType,
    Confidence,
    GenerationTaskType,
    Pacing,
    Season,
    TravelerType,
)
from backend.app.models.generation import (
    FeedbackItem,
    GenerationRequest,
    RegenerationRequest,
    TripConstraints,
)
from backend.app.models.itinerary import ItineraryDocument


@pytest.fixture
def constraints() -> TripConstraints:
    """Five-day balanced trip."""
    return TripConstraints(
        destination="iceland",
        start_date=date(2026, 7, 1),
        duration_days=5,
        pacing=Pacing.balanced,
        anchors=["waterfalls"],
        traveler_type=TravelerType.couple,
        traveler_count=2,
    )


@pytest.fixture
def regeneration_request(constraints: TripConstraints, make_document) -> RegenerationRequest:
    """One remove comment against a five-day itinerary."""
    return RegenerationRequest(
        trip_id=uuid.uuid4(),
        constraints=constraints,
        current_itinerary=make_document(5),
        feedback=[
            FeedbackItem(
                comment_id=uuid.uuid4(),
                target_type=CommentTargetType.spot,
                target_id="kerid",
                content="skip the crater",
                action=CommentAction.remove,
                confidence=Confidence.high,
                details="skip the crater",
            )
        ],
    )


class TestParsing:
    """Extraction of the JSON payload from free-form replies."""

    def test_fenced_block_is_preferred(self) -> None:
        """A fenced block wins over earlier stray braces."""
        text = 'Notes {not json}\n```json\n{"itinerary": {"days": [{"day_number": 1}]}}\n```'

        assert extract_json_payload(text) == {"itinerary": {"days": [{"day_number": 1}]}}

    def test_first_balanced_object_in_prose(self) -> None:
        """Without a fence, the first balanced object is used, braces in strings ignored."""
        text = 'Sure! {"changes_made": ["a } b"], "itinerary": {"days": [{"day_number": 1}, {"day_number": 2}]}} Enjoy.'

        payload = parse_itinerary_payload(text)

        assert payload.changes_made == ["a } b"]
        assert [d.day_number for d in payload.itinerary.days] == [1, 2]

    def test_no_object_is_a_parse_error(self) -> None:
        """Plain prose cannot be parsed."""
        with pytest.raises(GenerationParseError):
            extract_json_payload("I could not build an itinerary.")

    def test_invalid_json_is_a_parse_error(self) -> None:
        """A brace-delimited but malformed object is a parse error."""
        with pytest.raises(GenerationParseError):
            extract_json_payload("{'itinerary': nope}")

    def test_wrong_shape_is_a_parse_error(self) -> None:
        """An object without days is rejected with validation details."""
        with pytest.raises(GenerationParseError) as exc_info:
            parse_itinerary_payload('{"itinerary": {"days": []}}')

        assert exc_info.value.details["errors"]

    @pytest.mark.parametrize(
        "numbers",
        [[1, 1, 9], [2, 3], [1, 3], [2, 1]],
        ids=["duplicate", "starts_late", "gap", "out_of_order"],
    )
    def test_day_numbers_must_run_in_sequence(self, numbers: list[int]) -> None:
        """Days must be numbered 1..N in order."""
        days = [{"day_number": n, "timeline": []} for n in numbers]

        with pytest.raises(GenerationParseError):
            parse_itinerary_payload(json.dumps({"itinerary": {"days": days}}))

    def test_single_change_string_is_coerced(self) -> None:
        """changes_made may be a bare string."""
        payload = parse_itinerary_payload(
            '{"itinerary": {"days": [{"day_number": 1}]}, "changes_made": "Added a stop"}'
        )

        assert payload.changes_made == ["Added a stop"]

    def test_unknown_fields_are_kept(self) -> None:
        """Fields the core does not interpret survive parsing."""
        payload = parse_itinerary_payload(
            '{"itinerary": {"days": [{"day_number": 1, "title": "Golden Circle"}], "route": "ring"}}'
        )

        dumped = payload.itinerary.model_dump()
        assert dumped["route"] == "ring"
        assert dumped["days"][0]["title"] == "Golden Circle"


class TestStubClient:
    """Deterministic stub behaviour."""

    @pytest.mark.asyncio
    async def test_regenerate_echoes_itinerary(
        self, regeneration_request: RegenerationRequest
    ) -> None:
        """The stub returns the current itinerary and one change per comment."""
        text = await DeterministicStubClient().regenerate(regeneration_request)
        payload = parse_itinerary_payload(text)

        assert len(payload.itinerary.days) == 5
        assert payload.changes_made == ["remove: spot kerid (stub)"]

    @pytest.mark.asyncio
    async def test_generate_pads_base_to_duration(
        self, constraints: TripConstraints, make_document
    ) -> None:
        """A three-day base becomes a five-day itinerary."""
        request = GenerationRequest(
            trip_id=uuid.uuid4(),
            constraints=constraints,
            season=Season.summer,
            base_itinerary=make_document(3, "cache"),
        )

        payload = parse_itinerary_payload(await DeterministicStubClient().generate(request))

        assert [d.day_number for d in payload.itinerary.days] == [1, 2, 3, 4, 5]
        assert payload.itinerary.days[0].timeline[0].id == "cache_day1"


class TestOpenAIClient:
    """OpenAI client with a mocked transport."""

    @pytest.mark.asyncio
    async def test_returns_message_content(
        self, regeneration_request: RegenerationRequest
    ) -> None:
        """The raw completion text is returned unparsed."""
        client = OpenAIClient(api_key="sk-test", model="gpt-4o-mini")
        response = MagicMock()
        response.choices = [MagicMock(message=MagicMock(content="{}"))]
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(return_value=response)

        text = await client.regenerate(regeneration_request)

        assert text == "{}"
        kwargs = client.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert "skip the crater" in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_provider_error_is_unavailable(
        self, regeneration_request: RegenerationRequest
    ) -> None:
        """Provider errors surface as GenerationUnavailableError, with no stub fallback."""
        client = OpenAIClient(api_key="sk-test")
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(side_effect=OpenAIError("boom"))

        with pytest.raises(GenerationUnavailableError):
            await client.regenerate(regeneration_request)


class TestFactory:
    """Client selection from settings."""

    @pytest.mark.asyncio
    async def test_stub_without_api_key(self) -> None:
        """No key configured: deterministic stub."""
        with patch(
            "backend.app.llm.client.get_settings",
            return_value=Settings(_env_file=None, openai_api_key=None),  # type: ignore[call-arg]
        ):
            client = await get_llm_client()

        assert isinstance(client, DeterministicStubClient)

    @pytest.mark.asyncio
    async def test_openai_with_api_key(self) -> None:
        """Key configured: OpenAI client with the configured model."""
        with patch(
            "backend.app.llm.client.get_settings",
            return_value=Settings(_env_file=None, openai_api_key="sk-test", openai_model="gpt-4o"),  # type: ignore[call-arg]
        ):
            client = await get_llm_client()

        assert isinstance(client, OpenAIClient)
        assert client.model == "gpt-4o"


class TestCallWithTimeout:
    """Timeout handling around a collaborator call."""

    @pytest.mark.asyncio
    async def test_returns_text(self) -> None:
        """Fast calls pass through."""

        async def reply() -> str:
            return "ok"

        text = await call_with_timeout(
            reply(), operation="regenerate", trip_id=uuid.uuid4(), timeout_seconds=1.0
        )

        assert text == "ok"

    @pytest.mark.asyncio
    async def test_timeout_raises_unavailable(self) -> None:
        """Timeouts are reported like any other availability failure."""

        async def slow() -> str:
            await asyncio.sleep(1.0)
            return "late"

        with pytest.raises(GenerationUnavailableError, match="timed out"):
            await call_with_timeout(
                slow(), operation="generate", trip_id=uuid.uuid4(), timeout_seconds=0.01
            )


class TestPrompts:
    """Prompt construction."""

    def test_regeneration_prompt_lists_feedback(
        self, regeneration_request: RegenerationRequest
    ) -> None:
        """Every comment and the constraints appear in the prompt."""
        prompt = build_regeneration_prompt(regeneration_request)

        assert "skip the crater" in prompt
        assert "kerid" in prompt
        assert "balanced" in prompt

    def test_generation_prompt_includes_tasks(self, constraints: TripConstraints) -> None:
        """Adaptation tasks for a cached base are spelled out."""
        request = GenerationRequest(
            trip_id=uuid.uuid4(),
            constraints=constraints,
            season=Season.summer,
            base_itinerary=ItineraryDocument(days=[{"day_number": 1}]),  # type: ignore[list-item]
            tasks=[
                GenerationTask(
                    type=GenerationTaskType.add_anchor,
                    details={"missing_anchors": ["glaciers"]},
                )
            ],
        )

        prompt = build_generation_prompt(request)

        assert "glaciers" in prompt
        assert "iceland" in prompt
