"""Bounded ledger of executed queries."""

import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from duckdb_inspector.metrics import HISTORY_SIZE

DEFAULT_CAPACITY = 100


@dataclass(frozen=True)
class HistoryEntry:
    sql: str
    row_count: int
    execution_time: int  # milliseconds
    timestamp: str  # ISO-8601

    def to_dict(self) -> dict:
        return asdict(self)


class QueryHistory:
    """
    Insertion-ordered, capacity-bounded query history.

    When the ledger is full the oldest entry is evicted on append. Append and
    eviction happen under one lock, so concurrent request handlers never see
    the ledger above capacity.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self._entries: deque[HistoryEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, sql: str, row_count: int, execution_time: int) -> HistoryEntry:
        entry = HistoryEntry(
            sql=sql,
            row_count=row_count,
            execution_time=execution_time,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        with self._lock:
            self._entries.append(entry)
            HISTORY_SIZE.set(len(self._entries))
        return entry

    def entries(self) -> list[HistoryEntry]:
        """Entries newest first."""
        with self._lock:
            return list(reversed(self._entries))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            HISTORY_SIZE.set(0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
