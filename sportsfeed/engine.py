"""
Feed engine context.

One ``FeedEngine`` owns the cache, registry, scheduler, coordinator and
dispatcher for a process. Handlers talk to the engine; nothing in the
package keeps module-level state, so tests build isolated engines.

Usage:
    engine = build_engine(get_settings(), transport=hub)
    engine.start()
    activated = await engine.subscribe(engine.topic("football"), subscriber_id)
"""

import time
from typing import Any, Callable, Mapping, Optional

from sportsfeed.cache import CacheEntry, FeedCache, Record
from sportsfeed.config import Settings
from sportsfeed.exceptions import FeedError
from sportsfeed.logging import get_logger
from sportsfeed.services.broadcast import BroadcastDispatcher
from sportsfeed.services.fetch_coordinator import FetchCoordinator, UpstreamClient
from sportsfeed.subscriptions.registry import SubscriptionRegistry
from sportsfeed.subscriptions.scheduler import RefreshScheduler
from sportsfeed.subscriptions.timers import APSchedulerTimers, TimerFactory
from sportsfeed.topics import Topic
from sportsfeed.transport.base import Transport
from sportsfeed.upstream.client import RateLimiter, RetryPolicy, SportsApiClient

logger = get_logger("engine")


class FeedEngine:
    def __init__(
        self,
        settings: Settings,
        upstream: UpstreamClient,
        transport: Transport,
        *,
        timers: Optional[TimerFactory] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.upstream = upstream
        self.transport = transport
        self.clock = clock

        self.cache = FeedCache(clock=clock)
        self.registry = SubscriptionRegistry(settings.sport_list, clock=clock)
        self.coordinator = FetchCoordinator(
            upstream,
            self.cache,
            ttl=settings.cache_ttl_seconds,
            max_limit=settings.max_limit,
            days_range=settings.days_range,
            clock=clock,
        )
        self.dispatcher = BroadcastDispatcher(transport, self.registry, self.coordinator, clock=clock)
        self.scheduler = RefreshScheduler(
            self.registry,
            self.refresh,
            timers or APSchedulerTimers(),
            update_interval=settings.update_interval_seconds,
            inactivity_timeout=settings.inactivity_timeout_seconds,
            sweep_interval=settings.sweep_interval_seconds,
            clock=clock,
        )

    @property
    def sports(self) -> tuple[str, ...]:
        return self.registry.domains

    def topic(self, domain: str, item_id: Optional[Any] = None) -> Topic:
        """Build and validate a topic; raises InvalidTopic for unknown sports."""
        return self.registry.validate(Topic.of(domain, item_id))

    # =========================================================================
    # Subscription hooks
    # =========================================================================

    async def subscribe(self, topic: Topic, subscriber_id: str) -> bool:
        """
        Register interest and make sure the topic's domain is refreshing.

        Returns True when this call moved the domain from IDLE to ACTIVE (the
        subscriber already received the first broadcast).
        """
        self.registry.subscribe(topic, subscriber_id)
        return await self.scheduler.activate(topic.domain)

    def unsubscribe(self, topic: Topic, subscriber_id: str) -> None:
        self.registry.unsubscribe(topic, subscriber_id)

    def on_disconnect(self, subscriber_id: str) -> list[Topic]:
        return self.registry.on_disconnect(subscriber_id)

    # =========================================================================
    # Reads
    # =========================================================================

    async def resolve(self, topic: Topic, params: Optional[Mapping[str, Any]] = None) -> list[Record]:
        return await self.coordinator.resolve(topic, params)

    def get_snapshot(self, topic: Topic) -> Optional[CacheEntry]:
        return self.coordinator.get_snapshot(topic)

    async def refresh(self, domain: str) -> None:
        """Fetch a domain and broadcast it, then its subscribed items."""
        topic = Topic(domain)
        try:
            records = await self.coordinator.resolve(topic)
        except FeedError as e:
            logger.warning("refresh_skipped", topic=domain, error=str(e), error_type=type(e).__name__)
            return
        await self.dispatcher.publish(topic, records)
        await self.dispatcher.publish_items(domain, records)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        self.scheduler.start()
        logger.info("engine_started", sports=list(self.sports))

    async def shutdown(self) -> None:
        self.scheduler.shutdown()
        close = getattr(self.upstream, "close", None)
        if close is not None:
            await close()
        await self.transport.close()
        logger.info("engine_stopped")

    def status(self) -> dict[str, Any]:
        return {
            "topics": self.registry.snapshot(),
            "scheduler": self.scheduler.get_stats(),
            "cache": self.cache.stats(),
            "timers": self.scheduler.timers.jobs(),
        }


def build_upstream(settings: Settings) -> SportsApiClient:
    return SportsApiClient(
        api_key=settings.api_key,
        base_url=settings.upstream_base_url,
        timeout=settings.upstream_timeout_seconds,
        retry=RetryPolicy(
            max_attempts=settings.upstream_max_attempts,
            backoff_seconds=settings.upstream_backoff_seconds,
        ),
        rate_limiter=RateLimiter(requests_per_hour=settings.upstream_requests_per_hour),
    )


def build_engine(settings: Settings, transport: Transport) -> FeedEngine:
    """Production wiring: aiohttp provider client and APScheduler timers."""
    return FeedEngine(settings, build_upstream(settings), transport)
