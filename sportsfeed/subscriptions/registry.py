"""
Subscription registry.

Tracks which subscribers care about which topics and when a topic last had
any. Set membership is the only record of "who currently cares": the
scheduler and the inactivity sweep read nothing else for that question.

Item topics (``football:123``) count toward their domain's interest, since
their updates ride on the domain's refresh.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from sportsfeed.exceptions import InvalidTopic
from sportsfeed.logging import get_logger
from sportsfeed.topics import Topic

logger = get_logger("subscriptions.registry")


@dataclass
class SubscriptionState:
    subscriber_ids: set[str] = field(default_factory=set)
    timer_handle: Optional[Any] = None
    last_active_at: Optional[float] = None
    is_active: bool = False


class SubscriptionRegistry:
    """
    Topic -> SubscriptionState map.

    One state per known domain exists from construction; item states are
    created on first reference and pruned by the sweep once empty.
    """

    def __init__(self, domains: Iterable[str], clock: Callable[[], float] = time.time):
        self._clock = clock
        self._domains = tuple(d.lower() for d in domains)
        self._states: dict[Topic, SubscriptionState] = {
            Topic(domain): SubscriptionState() for domain in self._domains
        }

    @property
    def domains(self) -> tuple[str, ...]:
        return self._domains

    def validate(self, topic: Topic) -> Topic:
        if topic.domain not in self._domains:
            raise InvalidTopic(topic.domain)
        return topic

    def state(self, topic: Topic) -> SubscriptionState:
        """State of a topic, creating item states lazily."""
        self.validate(topic)
        state = self._states.get(topic)
        if state is None:
            state = self._states[topic] = SubscriptionState()
        return state

    # =========================================================================
    # Membership
    # =========================================================================

    def subscribe(self, topic: Topic, subscriber_id: str) -> None:
        self.state(topic).subscriber_ids.add(subscriber_id)
        logger.info(
            "subscribed",
            topic=topic.key,
            subscriber=subscriber_id,
            subscribers=len(self._states[topic].subscriber_ids),
        )

    def unsubscribe(self, topic: Topic, subscriber_id: str) -> None:
        state = self._states.get(self.validate(topic))
        if state is None or subscriber_id not in state.subscriber_ids:
            return
        state.subscriber_ids.discard(subscriber_id)
        logger.info("unsubscribed", topic=topic.key, subscriber=subscriber_id)
        self._after_removal(topic)

    def on_disconnect(self, subscriber_id: str) -> list[Topic]:
        """Remove a subscriber from every topic; returns the topics it left."""
        left = [t for t, s in self._states.items() if subscriber_id in s.subscriber_ids]
        for topic in left:
            self._states[topic].subscriber_ids.discard(subscriber_id)
        for topic in left:
            self._after_removal(topic)
        if left:
            logger.info("subscriber_disconnected", subscriber=subscriber_id, topics=[t.key for t in left])
        return left

    def _after_removal(self, topic: Topic) -> None:
        if self.is_empty(topic):
            self.mark_inactive_now(topic)
        if topic.is_item and self.live_count(topic.domain) == 0:
            self.mark_inactive_now(topic.root)

    # =========================================================================
    # Queries
    # =========================================================================

    def is_empty(self, topic: Topic) -> bool:
        state = self._states.get(topic)
        return state is None or not state.subscriber_ids

    def live_count(self, domain: str) -> int:
        """Subscribers of a domain plus those of its item topics."""
        return sum(len(s.subscriber_ids) for t, s in self._states.items() if t.domain == domain)

    def subscribed_items(self, domain: str) -> list[Topic]:
        return [
            t for t, s in self._states.items()
            if t.domain == domain and t.is_item and s.subscriber_ids
        ]

    def mark_inactive_now(self, topic: Topic) -> None:
        self.state(topic).last_active_at = self._clock()

    def prune_items(self) -> list[Topic]:
        """Drop item states with no subscribers."""
        empty = [t for t, s in self._states.items() if t.is_item and not s.subscriber_ids]
        for topic in empty:
            del self._states[topic]
        return empty

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return {
            topic.key: {
                "subscribers": len(state.subscriber_ids),
                "is_active": state.is_active,
                "last_active_at": state.last_active_at,
            }
            for topic, state in self._states.items()
        }
