"""Tests for the ?where= filter parser."""

import pytest

from duckdb_inspector.filters import (
    NO_FILTER_WARNING,
    Condition,
    parse_filter,
)


class TestParseFilter:
    """Tests for parse_filter()."""

    def test_missing_filter_is_empty_with_warning(self):
        predicate = parse_filter(None)

        assert predicate.is_empty
        assert not predicate.malformed
        assert predicate.warning == NO_FILTER_WARNING

    def test_single_equality(self):
        predicate = parse_filter("id=5")

        assert predicate.conditions == (Condition("id", "=", "5"),)
        assert predicate.clause == "id = ?"
        assert predicate.params == ["5"]
        assert predicate.warning is None

    def test_conditions_joined_by_and(self):
        predicate = parse_filter("status='active' AND age>=18")

        assert predicate.clause == "status = ? AND age >= ?"
        assert predicate.params == ["active", "18"]

    def test_conditions_joined_by_and_keyword(self):
        predicate = parse_filter("name = 'bob' and id <> 3")

        assert [c.operator for c in predicate.conditions] == ["=", "<>"]
        assert predicate.params == ["bob", "3"]

    @pytest.mark.parametrize("operator", ["<=", ">=", "!=", "<>", "=", "<", ">"])
    def test_every_operator(self, operator):
        predicate = parse_filter(f"age{operator}21")

        assert predicate.conditions == (Condition("age", operator, "21"),)

    def test_double_quotes_are_stripped(self):
        assert parse_filter('name="alice"').params == ["alice"]

    def test_quoted_value_may_contain_operators_and_separators(self):
        predicate = parse_filter("note='a=b & c' AND id=1")

        assert predicate.params == ["a=b & c", "1"]

    def test_only_one_layer_of_quotes_is_stripped(self):
        assert parse_filter("name=\"'x'\"").params == ["'x'"]

    def test_injection_attempt_stays_a_value(self):
        predicate = parse_filter("name='x; DROP TABLE users; --'")

        assert predicate.clause == "name = ?"
        assert predicate.params == ["x; DROP TABLE users; --"]

    @pytest.mark.parametrize(
        "where",
        [
            "",
            "id",
            "5=id",
            "id=5 AND ",
            "id=5 & age>=40",
            "id=5&age=40",
            "name=a&b",
            "id==5",
            "id=5=6",
            "name is null",
            "users.id=1",
        ],
    )
    def test_malformed_filters(self, where):
        predicate = parse_filter(where)

        assert predicate.malformed
        assert predicate.is_empty
        assert repr(where) in predicate.warning
