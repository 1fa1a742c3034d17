"""Table and database metadata aggregation.

Aggregates are assembled from several independent sub-fetches. Each
sub-fetch is wrapped in a ``Fetch`` (value or error), so one failing section
leaves its default in place and is reported in the aggregate's ``error``
field instead of failing the whole response.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

import structlog

from duckdb_inspector.database import DatabaseGateway
from duckdb_inspector.errors import EngineError

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class Fetch(Generic[T]):
    """Outcome of one sub-fetch: a value, or the error that replaced it."""

    value: T
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def run(cls, func: Callable[[], T], default: T, section: str) -> "Fetch[T]":
        try:
            return cls(value=func())
        except EngineError as e:
            return cls(value=default, error=f"{section}: {e.message}")


def format_bytes(size: int) -> str:
    """Format a byte count as a human-readable string (1024 base)."""
    if size <= 0:
        return "0 B"
    suffixes = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(suffixes) - 1:
        value /= 1024
        index += 1
    return f"{value:.2f} {suffixes[index]}"


def _join_errors(*fetches: Fetch) -> str | None:
    errors = [f.error for f in fetches if f.error]
    return "; ".join(errors) if errors else None


class MetadataAggregator:
    """Builds table listings, per-table info and database info from a gateway."""

    def __init__(self, gateway: DatabaseGateway, sample_size: int = 5):
        self.gateway = gateway
        self.sample_size = sample_size

    def _row_count(self, table: str) -> int:
        """Row count, or 0 when the count fails."""
        fetch = Fetch.run(lambda: self.gateway.row_count(table), 0, "rowCount")
        if not fetch.ok:
            logger.warning("row_count_failed", table=table, error=fetch.error)
        return fetch.value

    def tables(self) -> list[dict[str, Any]]:
        """Catalog table names decorated with best-effort row counts."""
        return [
            {"name": name, "row_count": self._row_count(name), "type": "table"}
            for name in self.gateway.table_names()
        ]

    def schema(self, table: str) -> list[dict[str, Any]]:
        return self.gateway.schema_info(table)

    def table_info(self, table: str) -> dict[str, Any]:
        """Row count, schema, indexes and a row sample, each fetched independently."""
        row_count = Fetch.run(lambda: self.gateway.row_count(table), 0, "rowCount")
        schema = Fetch.run(lambda: self.gateway.schema_info(table), [], "schema")
        indexes = Fetch.run(lambda: self.gateway.index_list(table), [], "indexes")
        sample = Fetch.run(
            lambda: self.gateway.sample_rows(table, self.sample_size), [], "sampleData"
        )

        error = _join_errors(row_count, schema, indexes, sample)
        if error:
            logger.warning("table_info_partial", table=table, error=error)

        return {
            "name": table,
            "row_count": row_count.value,
            "columns": len(schema.value),
            "schema": schema.value,
            "indexes": indexes.value,
            "sample_data": sample.value,
            "error": error,
        }

    def database_info(self) -> dict[str, Any]:
        """Whole-database statistics; per-table failures are logged and zeroed."""
        info: dict[str, Any] = {
            "name": self.gateway.name,
            "path": self.gateway.path,
            "size_bytes": 0,
            "human_size": format_bytes(0),
            "table_count": 0,
            "engine_version": "unknown",
            "table_stats": [],
            "error": None,
        }

        names = Fetch.run(self.gateway.table_names, [], "tables")
        size = Fetch.run(self.gateway.file_size, 0, "size")
        version = Fetch.run(self.gateway.engine_version, "unknown", "engineVersion")

        table_stats = []
        for name in names.value:
            column_count = Fetch.run(
                lambda: len(self.gateway.schema_info(name)), 0, "columnCount"
            )
            if not column_count.ok:
                logger.warning("column_count_failed", table=name, error=column_count.error)
            table_stats.append(
                {
                    "name": name,
                    "row_count": self._row_count(name),
                    "column_count": column_count.value,
                }
            )

        info.update(
            size_bytes=size.value,
            human_size=format_bytes(size.value),
            table_count=len(names.value),
            engine_version=version.value,
            table_stats=table_stats,
            error=_join_errors(names, size, version),
        )
        if info["error"]:
            logger.warning("database_info_partial", error=info["error"])
        return info
