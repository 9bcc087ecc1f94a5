"""
In-process WebSocket rooms.

Each connection is registered under its subscriber id and joins one room per
topic channel, the same way socket.io rooms work. ``publish`` sends the JSON
message to every connection in the room.
"""

from collections import defaultdict
from typing import Protocol

from sportsfeed.logging import get_logger
from sportsfeed.transport.base import Message

logger = get_logger("transport.websocket")


class JsonSocket(Protocol):
    async def send_json(self, data: Message) -> None: ...


class WebSocketHub:
    def __init__(self):
        self._connections: dict[str, JsonSocket] = {}
        self._rooms: dict[str, set[str]] = defaultdict(set)

    def connect(self, subscriber_id: str, socket: JsonSocket) -> None:
        self._connections[subscriber_id] = socket

    def join(self, channel: str, subscriber_id: str) -> None:
        self._rooms[channel].add(subscriber_id)

    def leave(self, channel: str, subscriber_id: str) -> None:
        members = self._rooms.get(channel)
        if members is None:
            return
        members.discard(subscriber_id)
        if not members:
            del self._rooms[channel]

    def drop(self, subscriber_id: str) -> None:
        """Forget a connection and remove it from every room."""
        self._connections.pop(subscriber_id, None)
        for channel in [c for c, members in self._rooms.items() if subscriber_id in members]:
            self.leave(channel, subscriber_id)

    def members(self, channel: str) -> frozenset[str]:
        return frozenset(self._rooms.get(channel, ()))

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def send(self, subscriber_id: str, message: Message) -> bool:
        socket = self._connections.get(subscriber_id)
        if socket is None:
            return False
        try:
            await socket.send_json(message)
            return True
        except Exception as e:
            logger.warning("websocket_send_failed", subscriber=subscriber_id, error=str(e))
            self.drop(subscriber_id)
            return False

    async def publish(self, channel: str, message: Message) -> None:
        for subscriber_id in sorted(self.members(channel)):
            await self.send(subscriber_id, message)

    async def close(self) -> None:
        self._connections.clear()
        self._rooms.clear()
