"""Tests for the realtime channel and its WebSocket endpoint."""

import asyncio
import json

import pytest
from prometheus_client import REGISTRY


class FakeEndpoint:
    """Collects what the channel sends; can be told to fail."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail
        self.closed_with = None

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code


class TestRealtimeChannel:

    def test_connect_and_disconnect(self, service):
        channel = service.channel

        async def scenario():
            handle = await channel.connect(FakeEndpoint())
            assert channel.subscriber_count == 1
            await channel.disconnect(handle)
            await channel.disconnect(handle)
            return handle

        handle = asyncio.run(scenario())
        assert handle
        assert channel.subscriber_count == 0

    def test_malformed_message_gets_one_error_reply(self, service):
        channel = service.channel
        sender, bystander = FakeEndpoint(), FakeEndpoint()

        async def scenario():
            sender_handle = await channel.connect(sender)
            bystander_handle = await channel.connect(bystander)
            await channel.handle_message(bystander_handle, '{"action": "subscribe_tables"}')
            bystander.sent.clear()
            await channel.handle_message(sender_handle, "{not json")

        asyncio.run(scenario())

        assert len(sender.sent) == 1
        assert "error" in sender.sent[0]
        assert bystander.sent == []
        assert channel.subscriber_count == 2

    @pytest.mark.parametrize(
        "text",
        ['["a list"]', '{"action": "drop_everything"}', '{"action": "execute_query"}'],
    )
    def test_invalid_requests_are_answered_with_error(self, service, text):
        channel = service.channel
        endpoint = FakeEndpoint()

        async def scenario():
            handle = await channel.connect(endpoint)
            await channel.handle_message(handle, text)

        asyncio.run(scenario())

        assert len(endpoint.sent) == 1
        assert set(endpoint.sent[0]) == {"error"}

    def test_execute_query_replies_to_sender(self, service):
        channel = service.channel
        endpoint = FakeEndpoint()

        async def scenario():
            handle = await channel.connect(endpoint)
            await channel.handle_message(
                handle, json.dumps({"action": "execute_query", "sql": "SELECT 1 AS x"})
            )

        asyncio.run(scenario())

        assert endpoint.sent == [{"type": "query_result", "data": [{"x": 1}], "rowCount": 1}]
        assert service.history.entries()[0].sql == "SELECT 1 AS x"

    def test_query_error_is_reported(self, service):
        channel = service.channel
        endpoint = FakeEndpoint()

        async def scenario():
            handle = await channel.connect(endpoint)
            await channel.handle_message(
                handle, json.dumps({"action": "execute_query", "sql": "SELECT * FROM nope"})
            )

        asyncio.run(scenario())

        assert len(endpoint.sent) == 1
        assert "nope" in endpoint.sent[0]["error"]

    def test_subscribe_tables_sends_snapshot(self, service):
        channel = service.channel
        endpoint = FakeEndpoint()

        async def scenario():
            handle = await channel.connect(endpoint)
            await channel.handle_message(handle, json.dumps({"action": "subscribe_tables"}))

        asyncio.run(scenario())

        message = endpoint.sent[0]
        assert message["type"] == "tables_updated"
        assert message["tables"] == ["users"]
        assert message["timestamp"]

    def test_broadcast_reaches_only_table_subscribers(self, service):
        channel = service.channel
        subscribed, unsubscribed = FakeEndpoint(), FakeEndpoint()

        async def scenario():
            handle = await channel.connect(subscribed)
            await channel.connect(unsubscribed)
            await channel.handle_message(handle, json.dumps({"action": "subscribe_tables"}))
            return await channel.broadcast_tables()

        delivered = asyncio.run(scenario())

        assert delivered == 1
        assert len(subscribed.sent) == 2
        assert unsubscribed.sent == []

    def test_failed_send_drops_only_that_subscriber(self, service):
        channel = service.channel
        healthy, broken = FakeEndpoint(), FakeEndpoint()

        async def scenario():
            healthy_handle = await channel.connect(healthy)
            broken_handle = await channel.connect(broken)
            for handle in (healthy_handle, broken_handle):
                await channel.handle_message(handle, json.dumps({"action": "subscribe_tables"}))
            broken.fail = True
            return await channel.broadcast_tables()

        delivered = asyncio.run(scenario())

        assert delivered == 1
        assert channel.subscriber_count == 1
        assert len(healthy.sent) == 2

    def test_close_all(self, service):
        channel = service.channel
        endpoints = [FakeEndpoint(), FakeEndpoint()]

        async def scenario():
            for endpoint in endpoints:
                await channel.connect(endpoint)
            await channel.close_all()

        asyncio.run(scenario())

        assert channel.subscriber_count == 0
        assert [e.closed_with for e in endpoints] == [1001, 1001]

    def test_unknown_actions_share_one_metric_series(self, service):
        channel = service.channel
        endpoint = FakeEndpoint()
        labels = {"direction": "inbound", "type": "unknown"}
        before = REGISTRY.get_sample_value("inspector_realtime_messages_total", labels) or 0

        async def scenario():
            handle = await channel.connect(endpoint)
            for n in range(3):
                await channel.handle_message(handle, json.dumps({"action": f"junk-{n}"}))

        asyncio.run(scenario())

        after = REGISTRY.get_sample_value("inspector_realtime_messages_total", labels)
        assert after - before == 3
        assert REGISTRY.get_sample_value(
            "inspector_realtime_messages_total", {"direction": "inbound", "type": "junk-0"}
        ) is None
        assert len(endpoint.sent) == 3


class TestWebSocketEndpoint:

    def test_execute_query(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text(json.dumps({"action": "execute_query", "sql": "SELECT 2 AS y"}))
            message = websocket.receive_json()

        assert message == {"type": "query_result", "data": [{"y": 2}], "rowCount": 1}

    def test_malformed_message_keeps_connection_open(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("{broken")
            assert "error" in websocket.receive_json()

            websocket.send_text(json.dumps({"action": "execute_query", "sql": "SELECT 1 AS x"}))
            assert websocket.receive_json()["type"] == "query_result"

    def test_mutation_notifies_table_subscribers(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text(json.dumps({"action": "subscribe_tables"}))
            assert websocket.receive_json()["type"] == "tables_updated"

            client.post("/api/query", json={"sql": "CREATE TABLE orders (id INTEGER)"})
            client.post("/api/tables/orders/data", json={"id": 1})

            update = websocket.receive_json()

        assert update["type"] == "tables_updated"
        assert update["tables"] == ["orders", "users"]

    def test_disconnect_releases_subscriber(self, client, service):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text(json.dumps({"action": "execute_query", "sql": "SELECT 1"}))
            websocket.receive_json()
            assert service.channel.subscriber_count == 1

        client.get("/health")
        assert service.channel.subscriber_count == 0
