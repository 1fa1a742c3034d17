"""Service endpoints: root descriptor and health check."""

import structlog
from fastapi import APIRouter, HTTPException, status
from starlette.concurrency import run_in_threadpool

from duckdb_inspector.config import settings
from duckdb_inspector.dependencies import ServiceDep
from duckdb_inspector.errors import EngineError
from duckdb_inspector.models.responses import ErrorResponse, HealthResponse

logger = structlog.get_logger()
router = APIRouter(tags=["backend"])


@router.get("/", include_in_schema=False)
async def root(service: ServiceDep) -> dict:
    """Service descriptor for clients probing the base URL."""
    return {
        "service": settings.api_title,
        "version": settings.api_version,
        "database": service.gateway.path,
        "websocket": "/ws" if settings.enable_websocket else None,
        "docs": "/docs" if settings.debug else None,
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Health check",
    description="Check that the service is up and the database answers queries.",
)
async def health_check(service: ServiceDep) -> HealthResponse:
    try:
        await run_in_threadpool(service.gateway.engine_version)
    except EngineError as e:
        logger.warning("health_check", status="unhealthy", error=e.message)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database unavailable: {e.message}",
        ) from e

    return HealthResponse(
        status="healthy",
        version=settings.api_version,
        database=service.gateway.path,
    )
