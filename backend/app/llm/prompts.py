"""Prompt builders for itinerary generation and regeneration."""

import json

from backend.app.models.cache import GenerationTask
from backend.app.models.common import GenerationTaskType
from backend.app.models.generation import (
    GenerationRequest,
    RegenerationRequest,
    TripConstraints,
)

SYSTEM_PROMPT = """You are a travel itinerary planner. You edit and produce day-by-day
itineraries as JSON documents.

Every document has a "days" array. Each day has a "day_number" (starting at 1) and a
"timeline" array of items with "id", "time" and "end_time" (HH:MM, 24h), "type"
(spot, drive, meal, activity) and "duration_minutes". Keep any other fields you are given.

Respond with JSON only."""

OUTPUT_FORMAT = """Return a JSON object with:
```json
{
  "itinerary": { ... the complete itinerary using the same schema ... },
  "changes_made": [
    "Removed X from Day Y",
    "Added Z to Day W at 14:00"
  ]
}
```
Return ONLY the JSON, no additional text."""

ACTION_GUIDE = """1. Apply each piece of feedback to the itinerary:
   - "remove": Remove the specified item/activity
   - "add": Add the requested item, finding an appropriate slot
   - "extend": Increase time allocated for the item
   - "shorten": Decrease time allocated for the item
   - "swap": Replace with an alternative while maintaining flow
   - "move": Relocate to a different time/day
   - "preference": Note the preference and honour it where it fits
   - "question": Adjust only if a clear action is implied"""


def _constraint_lines(constraints: TripConstraints) -> list[str]:
    return [
        f"- Destination: {constraints.destination}",
        f"- Start date: {constraints.start_date.isoformat()}",
        f"- Duration: {constraints.duration_days} days",
        f"- Travelers: {constraints.traveler_count} ({constraints.traveler_type.value})",
        f"- Pacing: {constraints.pacing.value}",
        f"- Anchors: {', '.join(constraints.anchors) or 'None specified'}",
    ]


def describe_task(task: GenerationTask) -> str:
    """One-line instruction for a cache adaptation task."""
    details = task.details
    if task.type == GenerationTaskType.extend_days:
        return (
            f"EXTEND: Add {details.get('add_days')} more days "
            f"(days {int(details.get('current_days', 0)) + 1} to {details.get('target_days')})"
        )
    if task.type == GenerationTaskType.add_anchor:
        return f"ADD ANCHORS: Include experiences for: {', '.join(details.get('missing_anchors', []))}"
    return (
        f"ADJUST PACING: Modify from {details.get('current_pacing')} "
        f"to {details.get('target_pacing')} pace"
    )


def build_regeneration_prompt(request: RegenerationRequest) -> str:
    """User prompt asking the model to apply feedback to the current itinerary."""
    lines = ["# Task: Regenerate travel itinerary based on user feedback", ""]

    lines.append("## Current Itinerary")
    lines.append("```json")
    lines.append(json.dumps(request.current_itinerary.model_dump(mode="json"), indent=2))
    lines.append("```")
    lines.append("")

    lines.append("## User Feedback to Apply")
    for item in request.feedback:
        target = item.target_type.value + (f"/{item.target_id}" if item.target_id else "")
        lines.append(f"- Target: {target}")
        lines.append(f'  Comment: "{item.content}"')
        lines.append(f"  Intent: {item.action.value} ({item.confidence.value} confidence)")
        if item.details:
            lines.append(f"  Details: {item.details}")
    lines.append("")

    lines.append("## Trip Context")
    lines.extend(_constraint_lines(request.constraints))
    lines.append("")

    lines.append("## Instructions")
    lines.append(ACTION_GUIDE)
    lines.append("")
    lines.append("2. Maintain these constraints:")
    lines.append("   - No backtracking (route should flow logically)")
    lines.append(f"   - Keep within {request.constraints.pacing.value} pacing limits")
    lines.append("   - Preserve anchor fulfillment where possible")
    lines.append("   - Maintain meal times at appropriate hours")
    lines.append("")
    lines.append("3. For each change made, note what was modified")
    lines.append("")

    lines.append("## Output Format")
    lines.append(OUTPUT_FORMAT)
    return "\n".join(lines)


def build_generation_prompt(request: GenerationRequest) -> str:
    """User prompt for a first itinerary; differential when a base itinerary is given."""
    constraints = request.constraints
    lines: list[str] = []

    if request.base_itinerary is None:
        lines.append(
            f"# Task: Generate a complete {constraints.duration_days}-day "
            f"{constraints.destination} itinerary"
        )
        lines.append("")
    else:
        lines.append(f"# Task: Modify an existing {constraints.destination} itinerary")
        lines.append("")
        lines.append("## Base Itinerary (DO NOT regenerate this - modify it)")
        lines.append("```json")
        lines.append(json.dumps(request.base_itinerary.model_dump(mode="json"), indent=2))
        lines.append("```")
        lines.append("")
        lines.append("## Required Modifications")
        lines.extend(describe_task(task) for task in request.tasks)
        lines.append("")

    lines.append("## Trip Parameters")
    lines.extend(_constraint_lines(constraints))
    lines.append(f"- Season: {request.season.value}")
    lines.append("")

    lines.append("## Important")
    lines.append('1. Generate a unique "id" for each timeline item ("day1_item1", "day1_item2", ...)')
    lines.append("2. Times must be realistic and account for driving between locations")
    lines.append("3. First day should account for arrival, last day for departure")
    lines.append(f"4. The itinerary must have exactly {constraints.duration_days} days")
    lines.append("")

    lines.append("## Output Format")
    lines.append(OUTPUT_FORMAT)
    return "\n".join(lines)
