"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - versions_created_total{source_type}
    - conflicts_detected_total
    - cache_matches_total{match_type}
    - generation_failures_total{operation, reason}
    - llm_latency_ms{operation, outcome}
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
