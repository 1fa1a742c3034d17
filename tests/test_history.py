"""Tests for the bounded query history."""

import threading

import pytest

from duckdb_inspector.history import QueryHistory


class TestQueryHistory:

    def test_entries_newest_first(self):
        history = QueryHistory(10)
        history.append("SELECT 1", 1, 2)
        history.append("SELECT 2", 1, 3)

        entries = history.entries()
        assert [e.sql for e in entries] == ["SELECT 2", "SELECT 1"]
        assert entries[0].row_count == 1
        assert entries[0].execution_time == 3
        assert entries[0].timestamp

    def test_capacity_evicts_oldest(self):
        """101 appends into a 100-entry ledger drop exactly the first one."""
        history = QueryHistory(100)
        for i in range(101):
            history.append(f"SELECT {i}", i, 0)

        entries = history.entries()
        assert len(history) == 100
        assert entries[0].sql == "SELECT 100"
        assert entries[-1].sql == "SELECT 1"

    def test_concurrent_appends_respect_capacity(self):
        history = QueryHistory(50)

        def worker(n):
            for i in range(100):
                history.append(f"SELECT {n}, {i}", 0, 0)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(history) == 50

    def test_clear(self):
        history = QueryHistory(5)
        history.append("SELECT 1", 1, 0)
        history.clear()

        assert len(history) == 0
        assert history.entries() == []

    def test_to_dict(self):
        history = QueryHistory(5)
        entry = history.append("SELECT 1", 1, 4)

        assert entry.to_dict() == {
            "sql": "SELECT 1",
            "row_count": 1,
            "execution_time": 4,
            "timestamp": entry.timestamp,
        }

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            QueryHistory(0)
