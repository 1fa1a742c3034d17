"""Database-level endpoints: info, maintenance and table export."""

import re
from typing import Any

import structlog
from fastapi import APIRouter, Query
from fastapi.responses import Response

from duckdb_inspector.dependencies import ServiceDep
from duckdb_inspector.export import to_csv, to_json
from duckdb_inspector.metrics import EXPORT_COUNT
from duckdb_inspector.models.responses import (
    DatabaseInfoResponse,
    ErrorResponse,
    SuccessResponse,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["database"])

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def export_filename(table: str, extension: str) -> str:
    """Attachment file name with header-unsafe characters replaced by `_`."""
    return f"{_UNSAFE_FILENAME_CHARS.sub('_', table)}.{extension}"


@router.get(
    "/database/info",
    response_model=DatabaseInfoResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Database info",
    description="File size, engine version and per-table statistics, recomputed per request.",
)
def get_database_info(service: ServiceDep) -> dict[str, Any]:
    return service.metadata.database_info()


@router.post(
    "/database/optimize",
    response_model=SuccessResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Optimize database",
    description="Run VACUUM and CHECKPOINT on the database file.",
)
def optimize_database(service: ServiceDep) -> SuccessResponse:
    service.optimize()
    return SuccessResponse()


@router.get(
    "/export/{table}",
    responses={
        200: {"content": {"application/json": {}, "text/csv": {}}},
        500: {"model": ErrorResponse},
    },
    summary="Export table",
    description="Every row of a table as JSON (default) or as a CSV attachment.",
)
def export_table(
    table: str,
    service: ServiceDep,
    format: str = Query(default="json", description="json or csv"),
) -> Response:
    rows = service.export_rows(table)

    if format == "csv":
        EXPORT_COUNT.labels(format="csv").inc()
        logger.info("table_exported", table=table, format="csv", row_count=len(rows))
        return Response(
            content=to_csv(rows),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{export_filename(table, "csv")}"'
            },
        )

    # Unknown formats fall back to JSON
    EXPORT_COUNT.labels(format="json").inc()
    logger.info("table_exported", table=table, format="json", row_count=len(rows))
    return Response(content=to_json(rows), media_type="application/json")
