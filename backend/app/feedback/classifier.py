"""Rule-based intent classifier for itinerary feedback.

Categories are checked in a fixed order and the first match wins. A comment
such as "remove the hike and add a hot spring instead" mentions remove, add and
swap keywords; it is classified as ``remove`` because remove comes first.
Keyword counts and positions are never considered.
"""

from dataclasses import dataclass

from backend.app.models.comment import ClassificationContext, CommentIntent
from backend.app.models.common import CommentAction, CommentTargetType, Confidence

MAX_DETAILS_CHARS = 500


@dataclass(frozen=True)
class IntentRule:
    """Keyword category with its fixed classification outcome."""

    action: CommentAction
    keywords: tuple[str, ...]
    confidence: Confidence
    affects_routing: bool
    time_impact_minutes: int | None
    resolution_template: str | None


# Order is load-bearing.
INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        action=CommentAction.remove,
        keywords=("remove", "skip", "don't want", "take out", "delete"),
        confidence=Confidence.high,
        affects_routing=True,
        time_impact_minutes=-60,
        resolution_template="Remove {target} from the itinerary",
    ),
    IntentRule(
        action=CommentAction.add,
        keywords=("add", "include", "want to see", "can we go to"),
        confidence=Confidence.medium,
        affects_routing=True,
        time_impact_minutes=60,
        resolution_template="Add the requested stop to {target}",
    ),
    IntentRule(
        action=CommentAction.extend,
        keywords=("more time", "longer", "extend", "stay longer"),
        confidence=Confidence.high,
        affects_routing=False,
        time_impact_minutes=30,
        resolution_template="Allow more time at {target}",
    ),
    IntentRule(
        action=CommentAction.shorten,
        keywords=("less time", "shorter", "quick stop", "don't need that long"),
        confidence=Confidence.high,
        affects_routing=False,
        time_impact_minutes=-30,
        resolution_template="Reduce time at {target}",
    ),
    IntentRule(
        action=CommentAction.swap,
        keywords=("instead", "rather", "swap", "replace"),
        confidence=Confidence.medium,
        affects_routing=True,
        time_impact_minutes=0,
        resolution_template="Replace {target} with an alternative",
    ),
    IntentRule(
        action=CommentAction.move,
        keywords=("move", "earlier", "later", "different day"),
        confidence=Confidence.medium,
        affects_routing=True,
        time_impact_minutes=0,
        resolution_template="Move {target} to a different time or day",
    ),
    IntentRule(
        action=CommentAction.question,
        keywords=("?",),
        confidence=Confidence.high,
        affects_routing=False,
        time_impact_minutes=None,
        resolution_template=None,
    ),
    IntentRule(
        action=CommentAction.preference,
        keywords=("prefer", "like", "love", "excited"),
        confidence=Confidence.low,
        affects_routing=False,
        time_impact_minutes=None,
        resolution_template=None,
    ),
)

UNCLEAR_RULE = IntentRule(
    action=CommentAction.unclear,
    keywords=(),
    confidence=Confidence.low,
    affects_routing=False,
    time_impact_minutes=None,
    resolution_template="Ask for clarification about {target}",
)


def describe_target(
    target_type: CommentTargetType,
    target_id: str | None = None,
    context: ClassificationContext | None = None,
) -> str:
    """Human-readable label for the thing a comment points at."""
    if target_id:
        return f"{target_type.value} {target_id}"
    if context is not None and context.day_number is not None:
        return f"day {context.day_number}"
    if target_type == CommentTargetType.trip:
        return "the trip"
    return f"this {target_type.value}"


def match_rule(text: str) -> IntentRule:
    """Return the first rule whose keywords occur in ``text`` (case-insensitive)."""
    lowered = text.lower()
    for rule in INTENT_RULES:
        if any(keyword in lowered for keyword in rule.keywords):
            return rule
    return UNCLEAR_RULE


def classify_comment(
    content: str,
    target_type: CommentTargetType,
    target_id: str | None = None,
    context: ClassificationContext | None = None,
) -> CommentIntent:
    """Classify a feedback comment into a structured intent.

    Pure and deterministic: the same inputs always give the same intent.

    Args:
        content: Free-text comment
        target_type: Kind of itinerary element the comment targets
        target_id: Identifier of the targeted element, if any
        context: Optional day/items context used for the resolution text

    Returns:
        CommentIntent with the fixed confidence, routing flag and time impact
        of the winning category. ``details`` holds the normalized comment text.
    """
    normalized = " ".join(content.split())
    rule = match_rule(normalized)

    suggested_resolution = None
    if rule.resolution_template is not None:
        suggested_resolution = rule.resolution_template.format(
            target=describe_target(target_type, target_id, context)
        )

    return CommentIntent(
        action=rule.action,
        confidence=rule.confidence,
        details=normalized[:MAX_DETAILS_CHARS],
        affects_routing=rule.affects_routing,
        estimated_time_impact_minutes=rule.time_impact_minutes,
        suggested_resolution=suggested_resolution,
    )
