"""
Redis pub/sub publisher.

Re-publishes every update on ``{prefix}:{channel}`` so other processes
(additional socket servers, workers) can fan it out.
"""

import json
from typing import Optional

import redis.asyncio as redis

from sportsfeed.logging import get_logger
from sportsfeed.transport.base import Message

logger = get_logger("transport.redis")


class RedisPublisher:
    def __init__(
        self,
        redis_url: Optional[str] = None,
        prefix: str = "sportsfeed",
        client: Optional[redis.Redis] = None,
    ):
        if client is None and redis_url is None:
            raise ValueError("redis_url or client required")
        self.prefix = prefix
        self._client = client or redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )

    def channel_name(self, channel: str) -> str:
        return f"{self.prefix}:{channel}"

    async def publish(self, channel: str, message: Message) -> None:
        receivers = await self._client.publish(
            self.channel_name(channel), json.dumps(message, default=str)
        )
        logger.debug("redis_published", channel=channel, receivers=receivers)

    async def close(self) -> None:
        await self._client.aclose()
