"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - itinerary_transactions_total{operation, outcome}
    - itinerary_transaction_conflicts_total{operation}
    - itinerary_transaction_latency_ms{operation, outcome}
    - journey_recompute_total{outcome}
    - journey_recompute_skipped_trips_total
    """
    metrics_output = generate_latest()
    return Response(content=metrics_output, media_type=CONTENT_TYPE_LATEST)
