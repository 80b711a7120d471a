"""Extraction of the JSON payload from free-form collaborator output.

The model is asked for bare JSON but may wrap it in a fenced code block or
surround it with prose. A fenced block is tried first, then the first
balanced top-level ``{...}`` object in the text.
"""

import json
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from backend.app.errors import GenerationParseError
from backend.app.models.generation import ItineraryPayload

_FENCED_RE = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL)


def _first_balanced_object(text: str) -> str | None:
    """Substring spanning the first balanced ``{...}``, ignoring braces in strings."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def extract_json_payload(text: str) -> dict[str, Any]:
    """Pull the JSON object out of a response.

    Raises:
        GenerationParseError: If no JSON object can be found or decoded
    """
    for match in _FENCED_RE.finditer(text):
        try:
            parsed = json.loads(match.group(1))
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    candidate = _first_balanced_object(text)
    if candidate is None:
        raise GenerationParseError("No JSON object found in generation response")
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise GenerationParseError(f"Generation response is not valid JSON: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise GenerationParseError("Generation response is not a JSON object")
    return parsed


def parse_itinerary_payload(text: str) -> ItineraryPayload:
    """Parse ``{itinerary, changes_made}`` or a bare itinerary document.

    Raises:
        GenerationParseError: If extraction or shape validation fails
    """
    raw = extract_json_payload(text)
    if "itinerary" not in raw and "days" in raw:
        raw = {"itinerary": raw, "changes_made": []}

    try:
        return ItineraryPayload.model_validate(raw)
    except PydanticValidationError as e:
        raise GenerationParseError(
            "Generation response has an invalid shape",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e
