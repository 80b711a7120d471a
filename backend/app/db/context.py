"""Request context carrying the caller identity."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class RequestContext:
    """Identity of the user making the request.

    Ownership checks in the services compare against ``user_id``.
    """

    user_id: UUID
