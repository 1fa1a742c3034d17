"""Table endpoints: listing, schema, aggregated info and row mutations.

Row mutations take their filter from ``?where=``, e.g.
``PUT /api/tables/users/data?where=id=5``. See ``duckdb_inspector.filters``
for the accepted grammar. Successful mutations notify realtime table
subscribers after the response is sent.
"""

from typing import Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Body, Query, Request

from duckdb_inspector.dependencies import ServiceDep
from duckdb_inspector.errors import ClientInputError
from duckdb_inspector.models.responses import (
    ColumnInfo,
    ErrorResponse,
    InsertResponse,
    MutationResponse,
    TableInfoResponse,
    TableSummary,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/api/tables", tags=["tables"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

WHERE_DESCRIPTION = (
    "Filter such as `id=5` or `status='active' AND age>=18`. "
    "Without it the operation applies to every row."
)


def _check_filter_params(request: Request) -> None:
    """
    Reject query strings that carry anything besides a single `where`.

    An unencoded `&` inside a filter splits it into extra parameters;
    applying only the part before it would widen the mutation.
    """
    unexpected = sorted(set(request.query_params) - {"where"})
    if unexpected:
        raise ClientInputError(
            f"Unexpected query parameters: {', '.join(unexpected)}. "
            "Join filter conditions with AND and URL-encode the filter"
        )
    if len(request.query_params.getlist("where")) > 1:
        raise ClientInputError("Only one where parameter is allowed")


@router.get(
    "",
    response_model=list[TableSummary],
    responses=ERROR_RESPONSES,
    summary="List tables",
)
def list_tables(service: ServiceDep) -> list[dict[str, Any]]:
    """Table names from the catalog with best-effort row counts."""
    return service.metadata.tables()


@router.get(
    "/{table}/schema",
    response_model=list[ColumnInfo],
    responses=ERROR_RESPONSES,
    summary="Table schema",
)
def get_table_schema(table: str, service: ServiceDep) -> list[dict[str, Any]]:
    return service.metadata.schema(table)


@router.get(
    "/{table}/info",
    response_model=TableInfoResponse,
    responses=ERROR_RESPONSES,
    summary="Table info",
    description="""
    Row count, schema, indexes and a sample of rows.

    Each section is fetched independently: if one fails, it is left empty
    and its failure is reported in `error`.
    """,
)
def get_table_info(table: str, service: ServiceDep) -> dict[str, Any]:
    return service.metadata.table_info(table)


@router.post(
    "/{table}/data",
    response_model=InsertResponse,
    responses=ERROR_RESPONSES,
    summary="Insert row",
)
def insert_row(
    table: str,
    service: ServiceDep,
    background_tasks: BackgroundTasks,
    data: dict[str, Any] = Body(..., description="Column values of the new row"),
) -> InsertResponse:
    result = service.execute_mutation(table, "insert", data)
    background_tasks.add_task(service.channel.broadcast_tables)
    return InsertResponse(inserted_id=result["inserted_id"])


@router.put(
    "/{table}/data",
    response_model=MutationResponse,
    responses=ERROR_RESPONSES,
    summary="Update rows",
    description="Update rows matching `where`. The `id` column is never rewritten.",
)
def update_rows(
    table: str,
    service: ServiceDep,
    request: Request,
    background_tasks: BackgroundTasks,
    data: dict[str, Any] = Body(..., description="Column values to set"),
    where: str | None = Query(default=None, description=WHERE_DESCRIPTION),
) -> MutationResponse:
    _check_filter_params(request)
    result = service.execute_mutation(table, "update", data, where)
    background_tasks.add_task(service.channel.broadcast_tables)
    return MutationResponse(
        affected_rows=result["affected_rows"], warning=result["warning"]
    )


@router.delete(
    "/{table}/data",
    response_model=MutationResponse,
    responses=ERROR_RESPONSES,
    summary="Delete rows",
)
def delete_rows(
    table: str,
    service: ServiceDep,
    request: Request,
    background_tasks: BackgroundTasks,
    where: str | None = Query(default=None, description=WHERE_DESCRIPTION),
) -> MutationResponse:
    _check_filter_params(request)
    result = service.execute_mutation(table, "delete", where=where)
    background_tasks.add_task(service.channel.broadcast_tables)
    return MutationResponse(
        affected_rows=result["affected_rows"], warning=result["warning"]
    )
