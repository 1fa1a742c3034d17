"""Tests for the DuckDB gateway."""

import pytest

from duckdb_inspector.database import DatabaseGateway, _coerce, quote_identifier
from duckdb_inspector.errors import EngineError, QueryTimeoutError
from duckdb_inspector.filters import parse_filter


class TestGatewayLifecycle:

    def test_open_is_lazy_and_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "app.duckdb"
        gateway = DatabaseGateway(path)

        assert not gateway.is_open
        gateway.raw_query("SELECT 1")
        assert gateway.is_open
        assert path.parent.exists()
        gateway.close()

    def test_close_is_idempotent(self, gateway):
        gateway.open()
        gateway.close()
        gateway.close()

        assert not gateway.is_open

    def test_memory_database(self):
        gateway = DatabaseGateway(":memory:")

        assert gateway.is_memory
        assert gateway.name == "memory"
        assert gateway.file_size() == 0
        gateway.close()

    def test_name_is_file_name(self, gateway):
        assert gateway.name == "test.duckdb"

    def test_unopenable_path_raises_engine_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        gateway = DatabaseGateway(blocker / "app.duckdb")

        with pytest.raises(EngineError):
            gateway.open()


class TestRawQuery:

    def test_rows_as_dicts(self, seeded_gateway):
        rows = seeded_gateway.raw_query("SELECT id, name FROM users ORDER BY id")

        assert rows[0] == {"id": 1, "name": "alice"}
        assert len(rows) == 3

    def test_parameters(self, seeded_gateway):
        rows = seeded_gateway.raw_query("SELECT name FROM users WHERE id = ?", [2])

        assert rows == [{"name": "bob"}]

    def test_values_are_json_friendly(self, gateway):
        rows = gateway.raw_query(
            "SELECT 1.5::DECIMAL(4,2) AS d, DATE '2024-01-31' AS day, NULL AS n"
        )

        assert rows == [{"d": 1.5, "day": "2024-01-31", "n": None}]

    def test_engine_failure_is_engine_error(self, gateway):
        with pytest.raises(EngineError) as exc_info:
            gateway.raw_query("SELECT * FROM missing_table")

        assert "missing_table" in exc_info.value.message

    def test_timeout_interrupts_the_call(self, tmp_path):
        gateway = DatabaseGateway(tmp_path / "slow.duckdb", query_timeout=0.2)

        with pytest.raises(QueryTimeoutError) as exc_info:
            gateway.raw_query("SELECT count(*) FROM range(1000000000000)")

        assert exc_info.value.status_code == 504
        # The shared handle survives the interrupt
        assert gateway.raw_query("SELECT 1 AS x") == [{"x": 1}]
        gateway.close()


class TestMutations:

    def test_insert_returns_id_column(self, seeded_gateway):
        inserted_id = seeded_gateway.insert("users", {"id": 10, "name": "dave"})

        assert inserted_id == 10

    def test_insert_without_id_column_returns_first_column(self, gateway):
        gateway.raw_query("CREATE TABLE tags (label VARCHAR, weight INTEGER)")

        assert gateway.insert("tags", {"label": "red", "weight": 2}) == "red"

    def test_update_with_predicate(self, seeded_gateway):
        affected = seeded_gateway.update("users", {"age": 31}, parse_filter("name='alice'"))

        assert affected == 1
        assert seeded_gateway.raw_query("SELECT age FROM users WHERE id = 1") == [{"age": 31}]

    def test_filter_values_are_coerced_to_column_type(self, seeded_gateway):
        affected = seeded_gateway.delete("users", parse_filter("age>=18 AND active=true"))

        assert affected == 2
        assert seeded_gateway.row_count("users") == 1

    def test_delete_without_predicate_hits_every_row(self, seeded_gateway):
        assert seeded_gateway.delete("users", parse_filter(None)) == 3

    def test_filter_value_is_never_sql(self, seeded_gateway):
        affected = seeded_gateway.delete("users", parse_filter("name='x'' OR 1=1 --'"))

        assert affected == 0
        assert seeded_gateway.row_count("users") == 3


class TestIntrospection:

    def test_table_names(self, seeded_gateway):
        seeded_gateway.raw_query("CREATE VIEW adults AS SELECT * FROM users WHERE age >= 18")

        assert seeded_gateway.table_names() == ["users"]

    def test_schema_info(self, seeded_gateway):
        columns = {c["name"]: c for c in seeded_gateway.schema_info("users")}

        assert list(columns) == ["id", "name", "age", "active"]
        assert columns["id"]["primary_key"] is True
        assert columns["id"]["type"] == "INTEGER"
        assert columns["name"]["nullable"] is False
        assert columns["age"]["nullable"] is True
        assert columns["active"]["default_value"] is not None

    def test_index_list(self, seeded_gateway):
        seeded_gateway.raw_query("CREATE INDEX users_age_idx ON users (age)")

        indexes = seeded_gateway.index_list("users")
        assert [i["name"] for i in indexes] == ["users_age_idx"]
        assert indexes[0]["unique"] is False

    def test_sample_rows_respects_limit(self, seeded_gateway):
        assert len(seeded_gateway.sample_rows("users", 2)) == 2

    def test_engine_version(self, gateway):
        assert gateway.engine_version().startswith("v")

    def test_file_size(self, seeded_gateway):
        seeded_gateway.raw_query("CHECKPOINT")

        assert seeded_gateway.file_size() > 0

    def test_optimize(self, seeded_gateway):
        seeded_gateway.optimize()

        assert seeded_gateway.row_count("users") == 3


class TestHelpers:

    def test_quote_identifier(self):
        assert quote_identifier('we"ird') == '"we""ird"'

    @pytest.mark.parametrize(
        ("value", "declared", "expected"),
        [
            ("5", "INTEGER", 5),
            ("5", "BIGINT", 5),
            ("1.5", "DOUBLE", 1.5),
            ("1.5", "DECIMAL(4,2)", 1.5),
            ("true", "BOOLEAN", True),
            ("0", "BOOLEAN", False),
            ("abc", "INTEGER", "abc"),
            ("5", "VARCHAR", "5"),
            ("5", None, "5"),
        ],
    )
    def test_coerce(self, value, declared, expected):
        assert _coerce(value, declared) == expected
