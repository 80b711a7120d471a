"""Structured logging for version transitions and generation attempts."""

import logging
from typing import Any
from uuid import UUID

from backend.app.models.common import SourceType

logger = logging.getLogger(__name__)


class StructuredVersionLogger:
    """Structured logger for itinerary lineage events."""

    def log_version_created(
        self,
        trip_id: UUID,
        version: int,
        source_type: SourceType,
        parent_version: int | None,
        actor_id: UUID | None,
    ) -> None:
        """Log a new version and the pointer advance that went with it."""
        log_data: dict[str, Any] = {
            "trip_id": str(trip_id),
            "version": version,
            "source_type": source_type.value,
            "parent_version": parent_version,
            "actor_id": str(actor_id) if actor_id else None,
        }
        logger.info(
            f"Version created: trip {trip_id} v{version} ({source_type.value})",
            extra={"structured": log_data},
        )

    def log_generation_attempt(
        self,
        trip_id: UUID,
        operation: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log one call to the AI collaborator."""
        log_data: dict[str, Any] = {
            "trip_id": str(trip_id),
            "operation": operation,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Generation {operation}: {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
