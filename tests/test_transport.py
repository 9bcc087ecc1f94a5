"""
Tests for transport adapters.

Tests:
- WebSocket hub rooms
- Fan-out isolation
- Redis publisher
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from sportsfeed.transport.base import FanoutTransport
from sportsfeed.transport.redis_publisher import RedisPublisher
from sportsfeed.transport.websocket_hub import WebSocketHub


class FakeSocket:
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(data)


class TestWebSocketHub:
    def test_publish_reaches_room_members_only(self):
        hub = WebSocketHub()
        a, b = FakeSocket(), FakeSocket()
        hub.connect("a", a)
        hub.connect("b", b)
        hub.join("football", "a")
        hub.join("basketball", "b")

        asyncio.run(hub.publish("football", {"event": "football-update"}))

        assert a.sent == [{"event": "football-update"}]
        assert b.sent == []

    def test_failed_send_drops_connection(self):
        hub = WebSocketHub()
        hub.connect("a", FakeSocket(fail=True))
        hub.join("football", "a")

        asyncio.run(hub.publish("football", {"event": "x"}))

        assert hub.connection_count == 0
        assert hub.members("football") == frozenset()

    def test_leave_and_drop(self):
        hub = WebSocketHub()
        hub.connect("a", FakeSocket())
        hub.join("football", "a")
        hub.join("football:1", "a")

        hub.leave("football", "a")
        assert hub.members("football") == frozenset()
        assert hub.members("football:1") == {"a"}

        hub.drop("a")
        assert hub.members("football:1") == frozenset()
        assert hub.connection_count == 0

    def test_send_to_unknown_subscriber(self):
        assert asyncio.run(WebSocketHub().send("nobody", {})) is False


class TestFanoutTransport:
    def test_failing_transport_does_not_block_others(self):
        broken, healthy = AsyncMock(), AsyncMock()
        broken.publish.side_effect = ConnectionError("redis down")
        fanout = FanoutTransport([broken, healthy])

        asyncio.run(fanout.publish("football", {"event": "football-update"}))

        healthy.publish.assert_awaited_once_with("football", {"event": "football-update"})

    def test_close_closes_all(self):
        first, second = AsyncMock(), AsyncMock()

        asyncio.run(FanoutTransport([first, second]).close())

        first.close.assert_awaited_once()
        second.close.assert_awaited_once()


class TestRedisPublisher:
    def test_requires_url_or_client(self):
        with pytest.raises(ValueError):
            RedisPublisher()

    def test_publishes_json_on_prefixed_channel(self):
        client = AsyncMock()
        client.publish.return_value = 2
        publisher = RedisPublisher(client=client, prefix="feed")

        asyncio.run(publisher.publish("football:1", {"event": "football:1-update", "data": []}))

        channel, payload = client.publish.await_args.args
        assert channel == "feed:football:1"
        assert json.loads(payload) == {"event": "football:1-update", "data": []}

    def test_close(self):
        client = AsyncMock()

        asyncio.run(RedisPublisher(client=client).close())

        client.aclose.assert_awaited_once()
