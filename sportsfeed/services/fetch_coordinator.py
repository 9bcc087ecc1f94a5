"""
Fetch coordination.

Orchestrates cache check -> upstream fetch -> fallback-by-date -> cache store
for every topic. Callers always get a list of records or an exception.

Fallback-by-date exists because the provider's list endpoint silently caps
result counts at ``limit``; it does support date-scoped queries, and the
dates of the window are disjoint and cover it exhaustively.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol

from sportsfeed.cache import CacheEntry, CacheKeys, FeedCache, Record, normalize_params
from sportsfeed.constants import DATE_FORMAT
from sportsfeed.exceptions import MalformedResponse, UpstreamError, UpstreamRejected
from sportsfeed.logging import get_logger
from sportsfeed.topics import Topic
from sportsfeed.upstream.parsing import Malformed, parse_records

logger = get_logger("services.fetch")

Params = Mapping[str, Any]


class UpstreamClient(Protocol):
    async def fetch(self, domain: str, params: Optional[Params] = None) -> Any: ...

    async def fetch_detail(self, domain: str, item_id: str) -> Any: ...

    async def request(self, path: str, params: Optional[Params] = None) -> Any: ...


class FetchCoordinator:
    """
    Resolves topics to record lists through the cache.

    Usage:
        coordinator = FetchCoordinator(client, FeedCache())
        records = await coordinator.resolve(Topic("football"), {"season": "2024"})
    """

    def __init__(
        self,
        upstream: UpstreamClient,
        cache: FeedCache,
        *,
        ttl: float = 60.0,
        max_limit: int = 100,
        days_range: int = 7,
        clock: Callable[[], float] = time.time,
    ):
        self.upstream = upstream
        self.cache = cache
        self.ttl = ttl
        self.max_limit = max_limit
        self.days_range = days_range
        self._clock = clock

    # =========================================================================
    # Read-only access
    # =========================================================================

    def get_snapshot(self, topic: Topic) -> Optional[CacheEntry]:
        """Canonical cached entry of a topic, fresh or not. Never fetches."""
        if topic.is_item:
            return self.cache.get(CacheKeys.item(topic.domain, topic.item_id))
        return self.cache.get(CacheKeys.matches(topic.domain))

    def date_range(self) -> list[str]:
        """``days_range`` consecutive dates centered on today (UTC)."""
        today = datetime.fromtimestamp(self._clock(), tz=timezone.utc).date()
        start = today - timedelta(days=self.days_range // 2)
        return [(start + timedelta(days=i)).strftime(DATE_FORMAT) for i in range(self.days_range)]

    # =========================================================================
    # Resolution
    # =========================================================================

    async def resolve(self, topic: Topic, params: Optional[Params] = None) -> list[Record]:
        """
        Records for a topic, from cache while fresh, otherwise from upstream.

        A result that reaches ``max_limit`` is assumed truncated and re-fetched
        one date at a time. A bad-request or provider error also retries by
        date; any other failure serves the stale entry when there is one.
        """
        if topic.is_item:
            return await self.resolve_detail(topic)

        params = normalize_params(params)
        key = CacheKeys.matches(topic.domain, params)

        cached = self._fresh(key)
        if cached is not None:
            return cached

        def fetch(query: Params) -> Awaitable[Any]:
            return self.upstream.fetch(topic.domain, query)

        try:
            records = await self._collect(fetch({**params, "limit": self.max_limit}), key)
        except UpstreamRejected as e:
            if not e.is_data_error:
                return self._stale_or_raise(key, e)
            logger.warning("fetch_rejected_using_date_fallback", key=key, status=e.status)
            try:
                return await self._fetch_by_date(fetch, {**params, "limit": self.max_limit}, key)
            except UpstreamError as date_error:
                raise date_error from e
        except UpstreamError as e:
            return self._stale_or_raise(key, e)

        if len(records) >= self.max_limit:
            logger.info("max_limit_reached_using_date_fallback", key=key, count=len(records))
            return await self._fetch_by_date(fetch, {**params, "limit": self.max_limit}, key)

        self.cache.put(key, records)
        return records

    async def resolve_detail(self, topic: Topic) -> list[Record]:
        """Full detail of one item, keyed by its record id."""
        if not topic.is_item:
            raise ValueError(f"{topic} is not an item topic")
        return await self._cached_call(
            CacheKeys.item(topic.domain, topic.item_id),
            lambda: self.upstream.fetch_detail(topic.domain, topic.item_id),
        )

    async def resolve_resource(self, path: str, params: Optional[Params] = None) -> list[Record]:
        """Auxiliary endpoint (standings, head-to-head, highlight detail)."""
        params = normalize_params(params)
        return await self._cached_call(
            CacheKeys.resource(path, params),
            lambda: self.upstream.request(path, params),
        )

    async def resolve_window(self, path: str, params: Optional[Params] = None) -> list[Record]:
        """Records of ``path`` aggregated over the date window, one call per date."""
        params = normalize_params(params)
        key = CacheKeys.resource(path, params)

        cached = self._fresh(key)
        if cached is not None:
            return cached

        return await self._fetch_by_date(lambda query: self.upstream.request(path, query), params, key)

    # =========================================================================
    # Internals
    # =========================================================================

    def _fresh(self, key: str) -> Optional[list[Record]]:
        entry = self.cache.get(key)
        if entry is not None and self.cache.is_fresh(entry, self.ttl):
            logger.debug("cache_hit", key=key)
            return entry.records
        return None

    def _stale_or_raise(self, key: str, error: UpstreamError) -> list[Record]:
        entry = self.cache.get(key)
        if entry is None:
            logger.error("fetch_failed", key=key, error=str(error), error_type=type(error).__name__)
            raise error
        logger.warning(
            "serving_stale_cache",
            key=key,
            age_seconds=round(entry.age(self._clock()), 3),
            error=str(error),
        )
        return entry.records

    async def _collect(self, pending: Awaitable[Any], key: str) -> list[Record]:
        """Await an upstream call and parse its body; malformed bodies become []."""
        try:
            body = await pending
        except MalformedResponse as e:
            logger.warning("malformed_response", key=key, reason=str(e))
            return []

        result = parse_records(body)
        if isinstance(result, Malformed):
            logger.warning("malformed_response", key=key, reason=result.reason)
            return []
        return result.items

    async def _cached_call(self, key: str, call: Callable[[], Awaitable[Any]]) -> list[Record]:
        cached = self._fresh(key)
        if cached is not None:
            return cached

        try:
            records = await self._collect(call(), key)
        except UpstreamError as e:
            return self._stale_or_raise(key, e)

        self.cache.put(key, records)
        return records

    async def _fetch_by_date(
        self,
        fetch: Callable[[Params], Awaitable[Any]],
        params: Params,
        key: str,
    ) -> list[Record]:
        """
        One sequential call per date in the window, results concatenated.

        Failed dates are logged and left out. If every date fails the last
        failure is surfaced (after trying the stale entry).
        """
        dates = self.date_range()
        records: list[Record] = []
        failures: list[UpstreamError] = []

        for date in dates:
            try:
                records.extend(await self._collect(fetch({**params, "date": date}), key))
            except UpstreamError as e:
                failures.append(e)
                logger.warning("date_fetch_failed", key=key, date=date, error=str(e))

        if failures and len(failures) == len(dates):
            return self._stale_or_raise(key, failures[-1])

        if failures:
            logger.info("date_fallback_partial", key=key, failed=len(failures), total=len(dates))

        self.cache.put(key, records)
        return records
