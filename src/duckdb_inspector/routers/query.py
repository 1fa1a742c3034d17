"""Ad-hoc query endpoints and the query history."""

from typing import Any

from fastapi import APIRouter, Query

from duckdb_inspector.dependencies import ServiceDep
from duckdb_inspector.errors import ClientInputError
from duckdb_inspector.models.responses import (
    ErrorResponse,
    ExplainResponse,
    HistoryEntryResponse,
    QueryRequest,
    QueryResponse,
    SuccessResponse,
)

router = APIRouter(prefix="/api", tags=["query"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


@router.get(
    "/query",
    response_model=QueryResponse,
    responses=ERROR_RESPONSES,
    summary="Execute query (GET)",
)
def execute_query_get(
    service: ServiceDep,
    sql: str | None = Query(default=None, description="SQL statement to execute"),
) -> dict[str, Any]:
    return service.execute_query(sql)


@router.post(
    "/query",
    response_model=QueryResponse,
    responses=ERROR_RESPONSES,
    summary="Execute query",
    description="""
    Execute one SQL statement and return its rows.

    Successful statements are recorded in the query history with their row
    count and execution time.
    """,
)
def execute_query_post(request: QueryRequest, service: ServiceDep) -> dict[str, Any]:
    return service.execute_query(request.sql)


@router.get(
    "/query/explain",
    response_model=ExplainResponse,
    responses=ERROR_RESPONSES,
    summary="Explain query",
)
def explain_query(
    service: ServiceDep,
    sql: str | None = Query(default=None, description="SQL statement to explain"),
) -> ExplainResponse:
    if sql is None:
        raise ClientInputError("SQL query is required")
    return ExplainResponse(plan=service.explain_query(sql))


@router.get(
    "/history",
    response_model=list[HistoryEntryResponse],
    summary="Query history",
    description="Executed statements, newest first.",
)
def get_history(service: ServiceDep) -> list[dict[str, Any]]:
    return [entry.to_dict() for entry in service.history.entries()]


@router.delete(
    "/history",
    response_model=SuccessResponse,
    summary="Clear query history",
)
def clear_history(service: ServiceDep) -> SuccessResponse:
    service.history.clear()
    return SuccessResponse()
