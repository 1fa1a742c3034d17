"""Prometheus metrics endpoint router.

Exposes /metrics endpoint for Prometheus scraping.
"""

import structlog
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from duckdb_inspector.dependencies import ServiceDep
from duckdb_inspector.metrics import HISTORY_SIZE, SUBSCRIBERS_ACTIVE

logger = structlog.get_logger()

router = APIRouter(tags=["metrics"])


@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Prometheus metrics endpoint",
    description="Returns metrics in Prometheus text format for scraping.",
)
async def get_metrics(service: ServiceDep):
    """
    Expose Prometheus metrics.

    Gauges owned by the service (history size, open subscribers) are
    refreshed before rendering.
    """
    HISTORY_SIZE.set(len(service.history))
    SUBSCRIBERS_ACTIVE.set(service.channel.subscriber_count)

    return PlainTextResponse(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
