"""Common types and enums shared across all models."""

from enum import Enum


class Pacing(str, Enum):
    """Itinerary density setting."""

    relaxed = "relaxed"
    balanced = "balanced"
    packed = "packed"


class TravelerType(str, Enum):
    """Who is travelling."""

    solo = "solo"
    couple = "couple"
    friends = "friends"
    family = "family"
    multi_gen = "multi_gen"


class Season(str, Enum):
    """Coarse season bucket derived from the trip start month."""

    summer = "summer"
    winter = "winter"
    shoulder = "shoulder"


class TripStatus(str, Enum):
    """Trip lifecycle status."""

    active = "active"
    completed = "completed"
    archived = "archived"


class SourceType(str, Enum):
    """How an itinerary version was produced."""

    base = "base"
    similar = "similar"
    differential = "differential"
    regeneration = "regeneration"
    cherry_pick = "cherry_pick"


class CommentTargetType(str, Enum):
    """What part of the itinerary a comment points at."""

    day = "day"
    spot = "spot"
    drive = "drive"
    meal = "meal"
    activity = "activity"
    trip = "trip"


class CommentStatus(str, Enum):
    """Comment lifecycle status."""

    pending = "pending"
    addressed = "addressed"
    resolved = "resolved"
    deleted = "deleted"


class CommentAction(str, Enum):
    """Closed set of feedback intents."""

    remove = "remove"
    add = "add"
    extend = "extend"
    shorten = "shorten"
    swap = "swap"
    move = "move"
    question = "question"
    preference = "preference"
    unclear = "unclear"


class Confidence(str, Enum):
    """Classifier confidence."""

    high = "high"
    medium = "medium"
    low = "low"


class MatchType(str, Enum):
    """How closely a cached itinerary fits a request."""

    exact = "exact"
    extend = "extend"
    anchor_diff = "anchor_diff"
    partial = "partial"


class GenerationTaskType(str, Enum):
    """Adaptation work needed to turn a cached itinerary into the requested one."""

    adjust_pacing = "adjust_pacing"
    add_anchor = "add_anchor"
    extend_days = "extend_days"
