"""Domain error taxonomy.

Every error carries an HTTP status and a stable code so the API layer can
translate it into a ``{data, error}`` envelope without inspecting messages.
"""

from typing import Any


class TripRevisionError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(TripRevisionError):
    """Malformed or missing input. Caller-recoverable."""

    status_code = 400
    code = "validation_error"


class NotFoundError(TripRevisionError):
    """Trip, version or comment does not exist."""

    status_code = 404
    code = "not_found"


class AuthorizationError(TripRevisionError):
    """Caller may not perform this mutation."""

    status_code = 403
    code = "forbidden"


class ConflictGateError(TripRevisionError):
    """Pending comments still conflict with each other.

    Carries the conflict list so the caller can drive resolution.
    """

    status_code = 409
    code = "unresolved_conflicts"

    def __init__(self, message: str, *, conflicts: list[Any]) -> None:
        super().__init__(message, details={"conflict_count": len(conflicts)})
        self.conflicts = conflicts


class QuotaExceededError(TripRevisionError):
    """Regeneration limit reached for the trip."""

    status_code = 403
    code = "quota_exceeded"


class ConcurrentModificationError(TripRevisionError):
    """An optimistic precondition failed because another writer got there first."""

    status_code = 409
    code = "concurrent_modification"


class GenerationFailure(TripRevisionError):
    """AI collaborator failed. Safe to retry; nothing was committed."""

    status_code = 502
    code = "generation_failed"


class GenerationUnavailableError(GenerationFailure):
    """Transport error, provider error or timeout."""

    code = "generation_unavailable"


class GenerationParseError(GenerationFailure):
    """The collaborator answered but the payload could not be extracted or validated."""

    code = "generation_unparseable"
