"""Request and response models for API endpoints.

Wire keys are camelCase (``rowCount``, ``executionTime``) as the browser
console expects; Python attributes stay snake_case.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: str = Field(description="Error message")
    success: bool = Field(default=False, description="Always false for errors")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status: 'healthy' or 'unhealthy'")
    version: str = Field(description="API version")
    database: str = Field(description="Path of the database file")


# ============================================
# Table models
# ============================================


class TableSummary(CamelModel):
    """Entry of the table listing."""

    name: str = Field(description="Table name")
    row_count: int = Field(default=0, description="Best-effort row count")
    type: Literal["table"] = "table"


class ColumnInfo(CamelModel):
    """One column of a table schema."""

    name: str = Field(description="Column name")
    type: str = Field(description="Declared type as reported by the engine")
    nullable: bool = Field(default=True, description="Whether NULL is allowed")
    primary_key: bool = Field(default=False, description="Part of the primary key")
    default_value: str | None = Field(default=None, description="Default expression")


class TableInfoResponse(CamelModel):
    """Aggregated table metadata; ``error`` lists failed sub-fetches."""

    name: str
    row_count: int = 0
    columns: int = Field(default=0, description="Number of columns")
    schema_: list[ColumnInfo] = Field(default_factory=list, alias="schema")
    indexes: list[dict[str, Any]] = Field(default_factory=list)
    sample_data: list[dict[str, Any]] = Field(default_factory=list)
    error: str | None = None


class TableStats(CamelModel):
    """Per-table summary inside the database info."""

    name: str
    row_count: int = 0
    column_count: int = 0


class DatabaseInfoResponse(CamelModel):
    """Whole-database descriptive statistics."""

    name: str
    path: str
    size_bytes: int = 0
    human_size: str = "0 B"
    table_count: int = 0
    engine_version: str = "unknown"
    table_stats: list[TableStats] = Field(default_factory=list)
    error: str | None = None


# ============================================
# Query models
# ============================================


class QueryRequest(BaseModel):
    """Body of POST /api/query."""

    sql: str | None = Field(default=None, description="SQL statement to execute")


class QueryResponse(CamelModel):
    """Result of an ad-hoc query."""

    data: list[dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0
    execution_time: int = Field(default=0, description="Execution time in milliseconds")
    columns: list[str] = Field(default_factory=list)
    success: bool = True


class ExplainResponse(BaseModel):
    """Engine plan for a statement."""

    plan: list[dict[str, Any]] = Field(default_factory=list)
    success: bool = True


class HistoryEntryResponse(CamelModel):
    """One executed statement."""

    sql: str
    row_count: int
    execution_time: int
    timestamp: str


# ============================================
# Mutation models
# ============================================


class InsertResponse(CamelModel):
    """Result of a row insert."""

    success: bool = True
    inserted_id: Any = None


class MutationResponse(CamelModel):
    """Result of an update or delete."""

    success: bool = True
    affected_rows: int = 0
    warning: str | None = None


class SuccessResponse(BaseModel):
    """Plain acknowledgement."""

    success: bool = True
