"""Inspector service: the object that owns the gateway, history and subscribers.

Handlers receive the service through ``request.app.state.service`` (see
``dependencies.get_service``); nothing here is process-global.
"""

import time
from typing import Any, Literal

import structlog

from duckdb_inspector.config import Settings
from duckdb_inspector.database import DatabaseGateway, quote_identifier
from duckdb_inspector.errors import ClientInputError, EngineError, QueryTimeoutError
from duckdb_inspector.filters import parse_filter
from duckdb_inspector.history import QueryHistory
from duckdb_inspector.metadata import MetadataAggregator
from duckdb_inspector.metrics import MUTATION_COUNT, QUERY_COUNT, QUERY_DURATION
from duckdb_inspector.realtime import RealtimeChannel

logger = structlog.get_logger()

MutationKind = Literal["insert", "update", "delete"]
MUTATION_KINDS = ("insert", "update", "delete")


class InspectorService:
    """
    Query and mutation orchestration over one database.

    Owns:
    - the database gateway (shared engine handle)
    - the query history ledger
    - the metadata aggregator
    - the realtime channel (subscriber registry)
    """

    def __init__(
        self,
        gateway: DatabaseGateway,
        history: QueryHistory | None = None,
        sample_size: int = 5,
        strict_filters: bool = True,
    ):
        self.gateway = gateway
        self.history = history if history is not None else QueryHistory()
        self.metadata = MetadataAggregator(gateway, sample_size=sample_size)
        self.strict_filters = strict_filters
        self.channel = RealtimeChannel(self)

    @classmethod
    def from_settings(cls, settings: Settings) -> "InspectorService":
        gateway = DatabaseGateway(
            settings.database_path, query_timeout=settings.query_timeout
        )
        return cls(
            gateway,
            history=QueryHistory(settings.history_capacity),
            sample_size=settings.sample_size,
            strict_filters=settings.strict_filters,
        )

    def execute_query(self, sql: str | None, source: str = "http") -> dict[str, Any]:
        """
        Run an ad-hoc statement, time it and record it in the history.

        Failed statements propagate their error and are not recorded.
        """
        if sql is None or not sql.strip():
            raise ClientInputError("SQL query is required")

        start_time = time.perf_counter()
        try:
            rows = self.gateway.raw_query(sql)
        except QueryTimeoutError:
            QUERY_COUNT.labels(source=source, status="timeout").inc()
            raise
        except EngineError as e:
            QUERY_COUNT.labels(source=source, status="error").inc()
            logger.warning("query_failed", source=source, error=e.message)
            raise

        duration = time.perf_counter() - start_time
        execution_time = int(round(duration * 1000))
        QUERY_COUNT.labels(source=source, status="success").inc()
        QUERY_DURATION.observe(duration)

        self.history.append(sql, len(rows), execution_time)
        logger.info(
            "query_executed",
            source=source,
            row_count=len(rows),
            execution_time_ms=execution_time,
        )

        return {
            "data": rows,
            "row_count": len(rows),
            "execution_time": execution_time,
            "columns": list(rows[0].keys()) if rows else [],
            "success": True,
        }

    def explain_query(self, sql: str | None) -> list[dict[str, Any]]:
        if sql is None or not sql.strip():
            raise ClientInputError("SQL query is required")
        return self.gateway.explain(sql)

    def execute_mutation(
        self,
        table: str,
        kind: MutationKind,
        data: dict[str, Any] | None = None,
        where: str | None = None,
    ) -> dict[str, Any]:
        """
        Insert, update or delete rows in one table.

        Updates never rewrite the ``id`` column. Update and delete take their
        predicate from ``where``; without one they apply to the whole table
        and the result carries a warning. A malformed ``where`` is rejected
        unless ``strict_filters`` is off, in which case it is treated like a
        missing filter.
        """
        if kind not in MUTATION_KINDS:
            raise ClientInputError(f"Unknown mutation kind: {kind}")

        data = dict(data or {})
        try:
            if kind == "insert":
                inserted_id = self.gateway.insert(table, data)
                MUTATION_COUNT.labels(kind=kind, status="success").inc()
                logger.info("row_inserted", table=table, inserted_id=inserted_id)
                return {"inserted_id": inserted_id}

            predicate = parse_filter(where)
            if predicate.malformed:
                if self.strict_filters:
                    logger.info("mutation_filter_rejected", table=table, where=where)
                    raise ClientInputError(predicate.warning)
                logger.warning("mutation_filter_ignored", table=table, where=where)
            elif predicate.is_empty:
                logger.warning("mutation_without_filter", table=table, kind=kind)

            if kind == "update":
                values = {k: v for k, v in data.items() if k != "id"}
                if not values:
                    raise ClientInputError("No columns to update")
                affected_rows = self.gateway.update(table, values, predicate)
            else:
                affected_rows = self.gateway.delete(table, predicate)
        except EngineError:
            MUTATION_COUNT.labels(kind=kind, status="error").inc()
            raise

        MUTATION_COUNT.labels(kind=kind, status="success").inc()
        logger.info(
            "rows_mutated",
            table=table,
            kind=kind,
            affected_rows=affected_rows,
            filtered=not predicate.is_empty,
        )
        return {"affected_rows": affected_rows, "warning": predicate.warning}

    def export_rows(self, table: str) -> list[dict[str, Any]]:
        """Every row of a table, for export."""
        return self.gateway.raw_query(f"SELECT * FROM {quote_identifier(table)}")

    def optimize(self) -> None:
        self.gateway.optimize()
        logger.info("database_optimized", path=self.gateway.path)
