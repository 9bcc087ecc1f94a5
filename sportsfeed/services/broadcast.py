"""
Broadcast dispatch.

Hands each successfully fetched dataset to the transport once, and fans
per-item detail out to subscribers of item topics whose ids appear in it.
"""

import time
from datetime import datetime, timezone
from typing import Callable, Sequence

from sportsfeed.cache import Record
from sportsfeed.exceptions import FeedError
from sportsfeed.logging import get_logger
from sportsfeed.services.fetch_coordinator import FetchCoordinator
from sportsfeed.subscriptions.registry import SubscriptionRegistry
from sportsfeed.topics import Topic
from sportsfeed.transport.base import Message, Transport
from sportsfeed.upstream.parsing import record_id

logger = get_logger("services.broadcast")


def update_message(topic: Topic, payload: Sequence[Record], timestamp: float) -> Message:
    """Wire shape of a topic update."""
    return {
        "event": f"{topic.key}-update",
        "topic": topic.key,
        "meta": {
            "lastUpdated": datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat(),
        },
        "data": list(payload),
    }


class BroadcastDispatcher:
    def __init__(
        self,
        transport: Transport,
        registry: SubscriptionRegistry,
        coordinator: FetchCoordinator,
        clock: Callable[[], float] = time.time,
    ):
        self.transport = transport
        self.registry = registry
        self.coordinator = coordinator
        self._clock = clock

    async def publish(self, topic: Topic, payload: Sequence[Record]) -> None:
        await self.transport.publish(topic.key, update_message(topic, payload, self._clock()))
        logger.debug("published", topic=topic.key, records=len(payload))

    async def publish_items(self, domain: str, records: Sequence[Record]) -> int:
        """
        One targeted publish per subscribed item present in ``records``.

        Each carries the item's own detail, fetched (and cached) separately.
        Returns the number of items published.
        """
        present = {record_id(r) for r in records} - {None}
        published = 0

        for topic in self.registry.subscribed_items(domain):
            if topic.item_id not in present:
                continue
            try:
                detail = await self.coordinator.resolve_detail(topic)
            except FeedError as e:
                logger.warning("item_detail_failed", topic=topic.key, error=str(e))
                continue
            await self.publish(topic, detail)
            published += 1

        return published
