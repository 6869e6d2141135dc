"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - plan_latency_ms{outcome}
    - unscheduled_rides_total{reason}
    - estimated_curves_total
    - invariant_violations_total{kind}
    - snapshot_latency_ms{resource, outcome}
    - snapshot_errors_total{resource, reason}
    """
    metrics_output = generate_latest()
    return Response(content=metrics_output, media_type=CONTENT_TYPE_LATEST)
