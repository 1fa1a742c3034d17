"""DuckDB gateway - the one place that talks to the engine.

A single shared connection is opened lazily and every call runs on its own
cursor, so calls issued from different worker threads can interleave safely.
The gateway does not serialize calls beyond what DuckDB itself guarantees:
callers must not assume transactional isolation across separate requests.

Every engine failure surfaces as ``EngineError``. When ``query_timeout`` is
set, a timer interrupts the call's own cursor and the call raises
``QueryTimeoutError``; other in-flight calls are not affected.
"""

import datetime
import threading
import uuid
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Any, Generator

import duckdb
import structlog

from duckdb_inspector.errors import EngineError, QueryTimeoutError
from duckdb_inspector.filters import Predicate

logger = structlog.get_logger()

MEMORY_DATABASE = ":memory:"

_INTEGER_TYPES = {
    "TINYINT", "SMALLINT", "INTEGER", "BIGINT", "HUGEINT",
    "UTINYINT", "USMALLINT", "UINTEGER", "UBIGINT", "UHUGEINT",
}
_REAL_TYPES = ("DOUBLE", "FLOAT", "REAL", "DECIMAL", "NUMERIC")


def quote_identifier(name: str) -> str:
    """Quote a table or column name for use in SQL text."""
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Quote a string literal (only for PRAGMA arguments, which take no parameters)."""
    return "'" + value.replace("'", "''") + "'"


def _to_scalar(value: Any) -> Any:
    """Normalize engine values to JSON-friendly scalars."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return str(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return value


def _coerce(value: str, declared_type: str | None) -> Any:
    """Coerce a textual filter value to the column's declared type."""
    if declared_type is None:
        return value

    upper = declared_type.upper()
    try:
        if upper == "BOOLEAN":
            lowered = value.lower()
            if lowered in ("true", "1"):
                return True
            if lowered in ("false", "0"):
                return False
            return value
        if upper.startswith(_REAL_TYPES):
            return float(value)
        if upper in _INTEGER_TYPES:
            return int(value)
    except ValueError:
        return value
    return value


def _fetch_dicts(cursor: duckdb.DuckDBPyConnection) -> list[dict[str, Any]]:
    if cursor.description is None:
        return []
    columns = [column[0] for column in cursor.description]
    return [
        {column: _to_scalar(value) for column, value in zip(columns, row)}
        for row in cursor.fetchall()
    ]


class DatabaseGateway:
    """
    Thin façade over one DuckDB database file.

    Usage:
        gateway = DatabaseGateway("data/app.duckdb", query_timeout=30)
        rows = gateway.raw_query("SELECT * FROM users WHERE id = ?", [1])
    """

    def __init__(self, path: str | Path, query_timeout: float | None = None):
        self.path = str(path)
        self.query_timeout = query_timeout
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._conn_lock = threading.Lock()

    @property
    def is_memory(self) -> bool:
        return self.path == MEMORY_DATABASE

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def name(self) -> str:
        if self.is_memory:
            return "memory"
        return Path(self.path).name

    def open(self) -> duckdb.DuckDBPyConnection:
        """Open the database, or return the already open handle."""
        with self._conn_lock:
            if self._conn is None:
                try:
                    if not self.is_memory:
                        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
                    self._conn = duckdb.connect(self.path)
                except (duckdb.Error, OSError) as e:
                    logger.error("database_open_failed", path=self.path, error=str(e))
                    raise EngineError(str(e)) from e
                logger.info("database_opened", path=self.path)
            return self._conn

    def close(self) -> None:
        """Close the shared handle. Safe to call more than once."""
        with self._conn_lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("database_closed", path=self.path)

    @contextmanager
    def _cursor(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """Cursor for one call, interrupted if it outlives the timeout."""
        conn = self.open()
        with self._conn_lock:
            cursor = conn.cursor()

        timer = None
        if self.query_timeout:
            timer = threading.Timer(self.query_timeout, cursor.interrupt)
            timer.daemon = True
            timer.start()

        try:
            yield cursor
        except duckdb.InterruptException as e:
            logger.warning("query_timeout", timeout_seconds=self.query_timeout)
            raise QueryTimeoutError(
                f"Query exceeded the {self.query_timeout:g}s timeout"
            ) from e
        except duckdb.Error as e:
            raise EngineError(str(e)) from e
        finally:
            if timer is not None:
                timer.cancel()
            cursor.close()

    # ========================================
    # Raw access
    # ========================================

    def raw_query(self, sql: str, params: list | None = None) -> list[dict[str, Any]]:
        """Execute any statement and return its rows as dicts."""
        with self._cursor() as cursor:
            if params:
                cursor.execute(sql, params)
            else:
                cursor.execute(sql)
            return _fetch_dicts(cursor)

    def explain(self, sql: str) -> list[dict[str, Any]]:
        """Return the engine's plan for a statement."""
        return self.raw_query(f"EXPLAIN {sql}")

    def optimize(self) -> None:
        """Reclaim space and flush the WAL into the database file."""
        with self._cursor() as cursor:
            cursor.execute("VACUUM")
            cursor.execute("CHECKPOINT")

    # ========================================
    # Mutations
    # ========================================

    def _where_sql(
        self, cursor: duckdb.DuckDBPyConnection, table: str, predicate: Predicate
    ) -> tuple[str, list[Any]]:
        if predicate.is_empty:
            return "", []

        cursor.execute(f"PRAGMA table_info({quote_literal(table)})")
        declared = {row[1]: row[2] for row in cursor.fetchall()}

        clause = " AND ".join(
            f"{quote_identifier(c.column)} {c.operator} ?" for c in predicate.conditions
        )
        params = [_coerce(c.value, declared.get(c.column)) for c in predicate.conditions]
        return f" WHERE {clause}", params

    def insert(self, table: str, data: dict[str, Any]) -> Any:
        """Insert one row and return its id (the ``id`` column, else the first column)."""
        with self._cursor() as cursor:
            if data:
                columns = ", ".join(quote_identifier(c) for c in data)
                slots = ", ".join("?" for _ in data)
                cursor.execute(
                    f"INSERT INTO {quote_identifier(table)} ({columns}) "
                    f"VALUES ({slots}) RETURNING *",
                    list(data.values()),
                )
            else:
                cursor.execute(
                    f"INSERT INTO {quote_identifier(table)} DEFAULT VALUES RETURNING *"
                )
            rows = _fetch_dicts(cursor)

        if not rows:
            return None
        row = rows[0]
        if "id" in row:
            return row["id"]
        return next(iter(row.values()), None)

    def update(self, table: str, data: dict[str, Any], predicate: Predicate) -> int:
        """Update matching rows and return the affected row count."""
        with self._cursor() as cursor:
            assignments = ", ".join(f"{quote_identifier(c)} = ?" for c in data)
            where, where_params = self._where_sql(cursor, table, predicate)
            cursor.execute(
                f"UPDATE {quote_identifier(table)} SET {assignments}{where}",
                list(data.values()) + where_params,
            )
            result = cursor.fetchone()
        return int(result[0]) if result else 0

    def delete(self, table: str, predicate: Predicate) -> int:
        """Delete matching rows and return the affected row count."""
        with self._cursor() as cursor:
            where, where_params = self._where_sql(cursor, table, predicate)
            cursor.execute(f"DELETE FROM {quote_identifier(table)}{where}", where_params)
            result = cursor.fetchone()
        return int(result[0]) if result else 0

    # ========================================
    # Introspection
    # ========================================

    def table_names(self) -> list[str]:
        """Base tables of the current schema, by name."""
        rows = self.raw_query(
            """
            SELECT table_name FROM information_schema.tables
            WHERE table_catalog = current_database()
              AND table_schema = current_schema()
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
            """
        )
        return [row["table_name"] for row in rows]

    def row_count(self, table: str) -> int:
        rows = self.raw_query(f"SELECT COUNT(*) AS count FROM {quote_identifier(table)}")
        return int(rows[0]["count"])

    def schema_info(self, table: str) -> list[dict[str, Any]]:
        """Column descriptors in declaration order."""
        rows = self.raw_query(f"PRAGMA table_info({quote_literal(table)})")
        return [
            {
                "name": row["name"],
                "type": row["type"],
                "nullable": not row["notnull"],
                "primary_key": bool(row["pk"]),
                "default_value": None if row["dflt_value"] is None else str(row["dflt_value"]),
            }
            for row in rows
        ]

    def index_list(self, table: str) -> list[dict[str, Any]]:
        """Explicit indexes defined on a table."""
        return self.raw_query(
            """
            SELECT index_name AS name, is_unique AS "unique", is_primary AS "primary", sql
            FROM duckdb_indexes()
            WHERE table_name = ? AND schema_name = current_schema()
            ORDER BY index_name
            """,
            [table],
        )

    def sample_rows(self, table: str, limit: int = 5) -> list[dict[str, Any]]:
        return self.raw_query(
            f"SELECT * FROM {quote_identifier(table)} LIMIT {int(limit)}"
        )

    def engine_version(self) -> str:
        rows = self.raw_query("SELECT version() AS version")
        return str(rows[0]["version"])

    def file_size(self) -> int:
        """Size of the database file in bytes (0 for in-memory or missing files)."""
        if self.is_memory:
            return 0
        path = Path(self.path)
        try:
            return path.stat().st_size if path.exists() else 0
        except OSError as e:
            raise EngineError(str(e)) from e
