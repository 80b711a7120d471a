"""LLM client for itinerary generation with OpenAI integration.

Security: Reads API key from settings only, never hardcoded.
Provides a deterministic stub when no key is configured, for offline use and
tests. When the real client fails the error is surfaced; there is no silent
fallback to the stub.
"""

import asyncio
import json
import logging
import time
from collections.abc import Awaitable
from typing import Protocol
from uuid import UUID

from openai import AsyncOpenAI, OpenAIError

from backend.app.config import get_settings
from backend.app.errors import GenerationFailure, GenerationUnavailableError
from backend.app.llm.prompts import SYSTEM_PROMPT, build_generation_prompt, build_regeneration_prompt
from backend.app.models.generation import GenerationRequest, RegenerationRequest
from backend.app.models.itinerary import ItineraryDay, ItineraryDocument, TimelineItem
from backend.app.utils.logging import StructuredVersionLogger
from backend.app.utils.metrics import metrics

logger = logging.getLogger(__name__)

_generation_logger = StructuredVersionLogger()


class ItineraryLLM(Protocol):
    """Protocol for AI collaborator implementations.

    Both methods return the raw response text; parsing happens in the caller.
    """

    async def generate(self, request: GenerationRequest) -> str:
        """Produce a first itinerary for a trip.

        Args:
            request: Trip constraints, season and optional cached base itinerary

        Returns:
            Raw model output expected to contain ``{itinerary, changes_made}``
        """
        ...

    async def regenerate(self, request: RegenerationRequest) -> str:
        """Apply pending feedback to the current itinerary.

        Args:
            request: Current itinerary, feedback items and trip constraints

        Returns:
            Raw model output expected to contain ``{itinerary, changes_made}``
        """
        ...


def _fenced(payload: dict[str, object]) -> str:
    return "```json\n" + json.dumps(payload, indent=2) + "\n```"


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required)."""

    async def generate(self, request: GenerationRequest) -> str:
        """Echo the base itinerary, padded to the requested length."""
        duration = request.constraints.duration_days
        days: list[ItineraryDay] = []
        if request.base_itinerary is not None:
            days = [d.model_copy(deep=True) for d in request.base_itinerary.days[:duration]]

        for number in range(len(days) + 1, duration + 1):
            days.append(
                ItineraryDay(
                    day_number=number,
                    timeline=[
                        TimelineItem(
                            id=f"day{number}_item1",
                            time="09:00",
                            end_time="17:00",
                            type="activity",
                            duration_minutes=480,
                            notes=f"Explore {request.constraints.destination}",
                        )
                    ],
                )
            )

        changes = [f"Planned {duration} days in {request.constraints.destination} (stub)"]
        document = ItineraryDocument(days=days)
        return _fenced(
            {"itinerary": document.model_dump(mode="json"), "changes_made": changes}
        )

    async def regenerate(self, request: RegenerationRequest) -> str:
        """Return the current itinerary unchanged with one note per feedback item."""
        changes = [
            f"{item.action.value}: {item.target_type.value} {item.target_id or ''}".rstrip()
            + " (stub)"
            for item in request.feedback
        ]
        return _fenced(
            {
                "itinerary": request.current_itinerary.model_dump(mode="json"),
                "changes_made": changes,
            }
        )


class OpenAIClient:
    """OpenAI-backed LLM client."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", max_tokens: int = 12000):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from settings)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
            max_tokens: Completion token cap; full itineraries are long
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens

    async def generate(self, request: GenerationRequest) -> str:
        """Generate a first itinerary using the OpenAI API."""
        return await self._complete(build_generation_prompt(request))

    async def regenerate(self, request: RegenerationRequest) -> str:
        """Regenerate an itinerary using the OpenAI API."""
        return await self._complete(build_regeneration_prompt(request))

    async def _complete(self, prompt: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.4,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI API call failed: {e}")
            raise GenerationUnavailableError(f"OpenAI API call failed: {e}") from e

        return response.choices[0].message.content or ""


async def get_llm_client() -> ItineraryLLM:
    """Factory function to get appropriate LLM client based on config.

    Returns:
        OpenAIClient if API key is configured, DeterministicStubClient otherwise
    """
    settings = get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client for itinerary generation")
        return OpenAIClient(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
            max_tokens=settings.llm_max_tokens,
        )
    else:
        logger.warning("No OpenAI API key configured, using deterministic stub client")
        return DeterministicStubClient()


async def call_with_timeout(
    call: Awaitable[str],
    *,
    operation: str,
    trip_id: UUID,
    timeout_seconds: float,
) -> str:
    """Await one collaborator call under a timeout, recording latency and failures.

    Raises:
        GenerationUnavailableError: On timeout or transport failure
    """
    start = time.perf_counter()
    try:
        text = await asyncio.wait_for(call, timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        _record_failure(operation, trip_id, start, "timeout")
        raise GenerationUnavailableError(
            f"Generation timed out after {timeout_seconds:g}s"
        ) from e
    except GenerationFailure as e:
        _record_failure(operation, trip_id, start, e.code)
        raise

    latency_ms = (time.perf_counter() - start) * 1000
    metrics.record_llm_latency(operation, "success", latency_ms)
    _generation_logger.log_generation_attempt(trip_id, operation, "success", latency_ms)
    return text


def _record_failure(operation: str, trip_id: UUID, start: float, reason: str) -> None:
    latency_ms = (time.perf_counter() - start) * 1000
    metrics.record_llm_latency(operation, "error", latency_ms)
    metrics.inc_generation_failure(operation, reason)
    _generation_logger.log_generation_attempt(
        trip_id, operation, "error", latency_ms, error_reason=reason
    )
