"""Publish/subscribe channel for realtime WebSocket clients.

Inbound messages (JSON text):
    {"action": "subscribe_tables"}
    {"action": "execute_query", "sql": "SELECT ..."}

Outbound messages:
    {"type": "tables_updated", "tables": [...], "timestamp": "..."}
    {"type": "query_result", "data": [...], "rowCount": n}
    {"error": "..."}

Query results and errors go to the originating subscriber only; table
updates go to every subscriber that asked for them.
"""

import asyncio
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from starlette.concurrency import run_in_threadpool

from duckdb_inspector.errors import InspectorError
from duckdb_inspector.metrics import REALTIME_MESSAGES, SUBSCRIBERS_ACTIVE

if TYPE_CHECKING:
    from duckdb_inspector.service import InspectorService

logger = structlog.get_logger()

ACTIONS = ("subscribe_tables", "execute_query")


@dataclass
class Subscriber:
    """One open realtime connection."""

    handle: str
    endpoint: Any  # anything with async send_text() / close(), e.g. a WebSocket
    subscribed_tables: bool = False
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class RealtimeChannel:
    """Registry of subscribers keyed by handle, plus message dispatch."""

    def __init__(self, service: "InspectorService"):
        self.service = service
        self._subscribers: dict[str, Subscriber] = {}
        self._lock = asyncio.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def connect(self, endpoint: Any) -> str:
        handle = uuid.uuid4().hex
        async with self._lock:
            self._subscribers[handle] = Subscriber(handle=handle, endpoint=endpoint)
            SUBSCRIBERS_ACTIVE.set(len(self._subscribers))
        logger.info("subscriber_connected", handle=handle)
        return handle

    async def disconnect(self, handle: str) -> None:
        async with self._lock:
            removed = self._subscribers.pop(handle, None)
            SUBSCRIBERS_ACTIVE.set(len(self._subscribers))
        if removed is not None:
            logger.info("subscriber_disconnected", handle=handle)

    async def send(self, handle: str, message: dict[str, Any]) -> bool:
        """Send to one subscriber; a failed send drops that subscriber."""
        subscriber = self._subscribers.get(handle)
        if subscriber is None:
            return False

        try:
            async with subscriber.send_lock:
                await subscriber.endpoint.send_text(json.dumps(message, default=str))
        except Exception as e:
            logger.warning("subscriber_send_failed", handle=handle, error=str(e))
            await self.disconnect(handle)
            return False

        REALTIME_MESSAGES.labels(
            direction="outbound", type=message.get("type", "error")
        ).inc()
        return True

    async def _send_error(self, handle: str, message: str) -> None:
        await self.send(handle, {"error": message})

    async def _tables_message(self) -> dict[str, Any]:
        tables = await run_in_threadpool(self.service.gateway.table_names)
        return {
            "type": "tables_updated",
            "tables": tables,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def broadcast_tables(self) -> int:
        """Push the current table list to every table subscriber."""
        async with self._lock:
            targets = [s.handle for s in self._subscribers.values() if s.subscribed_tables]
        if not targets:
            return 0

        try:
            message = await self._tables_message()
        except InspectorError as e:
            logger.warning("tables_broadcast_failed", error=e.message)
            return 0

        results = await asyncio.gather(*(self.send(handle, message) for handle in targets))
        delivered = sum(1 for ok in results if ok)
        logger.debug("tables_broadcast", subscribers=len(targets), delivered=delivered)
        return delivered

    async def handle_message(self, handle: str, text: str) -> None:
        """Dispatch one inbound message; any problem is replied as ``{error}``."""
        try:
            payload = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            REALTIME_MESSAGES.labels(direction="inbound", type="malformed").inc()
            await self._send_error(handle, f"Invalid JSON message: {e}")
            return

        if not isinstance(payload, dict):
            REALTIME_MESSAGES.labels(direction="inbound", type="malformed").inc()
            await self._send_error(handle, "Message must be a JSON object")
            return

        action = payload.get("action")
        REALTIME_MESSAGES.labels(
            direction="inbound", type=action if action in ACTIONS else "unknown"
        ).inc()

        if action == "subscribe_tables":
            subscriber = self._subscribers.get(handle)
            if subscriber is None:
                return
            subscriber.subscribed_tables = True
            try:
                message = await self._tables_message()
            except InspectorError as e:
                await self._send_error(handle, e.message)
                return
            await self.send(handle, message)

        elif action == "execute_query":
            sql = payload.get("sql")
            if not isinstance(sql, str):
                await self._send_error(handle, "SQL query is required")
                return
            try:
                result = await run_in_threadpool(
                    self.service.execute_query, sql, "websocket"
                )
            except InspectorError as e:
                await self._send_error(handle, e.message)
                return
            await self.send(
                handle,
                {
                    "type": "query_result",
                    "data": result["data"],
                    "rowCount": result["row_count"],
                },
            )

        else:
            await self._send_error(handle, f"Unknown action: {action!r}")

    async def close_all(self) -> None:
        """Close and release every subscriber."""
        async with self._lock:
            subscribers = list(self._subscribers.values())
            self._subscribers.clear()
            SUBSCRIBERS_ACTIVE.set(0)

        for subscriber in subscribers:
            try:
                await subscriber.endpoint.close(code=1001)
            except Exception as e:
                logger.debug("subscriber_close_failed", handle=subscriber.handle, error=str(e))
        if subscribers:
            logger.info("subscribers_released", count=len(subscribers))
