"""
Refresh scheduler.

Per-domain state machine:

    IDLE --subscribe--> ACTIVE       immediate refresh, then recurring timer
    ACTIVE --tick--> ACTIVE          refresh while anyone is subscribed
    ACTIVE --tick, nobody--> IDLE    self-detected idle, no fetch
    ACTIVE --sweep--> IDLE           empty for >= inactivity timeout

At most one timer exists per domain; activating an ACTIVE domain is a no-op.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from sportsfeed.logging import get_logger, log_context
from sportsfeed.subscriptions.registry import SubscriptionRegistry
from sportsfeed.subscriptions.timers import TimerFactory, TimerHandle
from sportsfeed.topics import Topic

logger = get_logger("subscriptions.scheduler")

SWEEP_TIMER = "sweep"


class TopicPhase(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class RefreshScheduler:
    """
    Owns one recurring refresh timer per active domain plus the sweep timer.

    The ``refresh`` callback performs fetch-and-broadcast for a domain.
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        refresh: Callable[[str], Awaitable[None]],
        timers: TimerFactory,
        *,
        update_interval: float = 60.0,
        inactivity_timeout: float = 300.0,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self.registry = registry
        self.timers = timers
        self.update_interval = update_interval
        self.inactivity_timeout = inactivity_timeout
        self.sweep_interval = sweep_interval
        self._refresh = refresh
        self._clock = clock
        self._sweep_handle: Optional[TimerHandle] = None
        self.stats: dict[str, dict[str, Any]] = {
            domain: {"last_run": None, "runs": 0, "errors": 0} for domain in registry.domains
        }

    def phase(self, domain: str) -> TopicPhase:
        state = self.registry.state(Topic(domain))
        return TopicPhase.ACTIVE if state.is_active else TopicPhase.IDLE

    # =========================================================================
    # Transitions
    # =========================================================================

    async def activate(self, domain: str) -> bool:
        """
        IDLE -> ACTIVE: one immediate refresh, then arm the recurring timer.

        Returns False (and does nothing) when the domain is already ACTIVE.
        """
        state = self.registry.state(Topic(domain))
        if state.is_active:
            return False

        state.is_active = True
        logger.info("topic_activated", topic=domain, interval_seconds=self.update_interval)
        await self._run_refresh(domain, trigger="activate")

        # A tick or sweep may have demoted the domain while the refresh was in flight
        if state.is_active and state.timer_handle is None:
            state.timer_handle = self.timers.every(
                f"refresh:{domain}", self.update_interval, partial(self.tick, domain)
            )
        return True

    async def tick(self, domain: str) -> None:
        """Timer callback: refresh, or go IDLE if nobody is subscribed."""
        if self.registry.live_count(domain) == 0:
            logger.info("tick_without_subscribers", topic=domain)
            self.deactivate(domain)
            return
        await self._run_refresh(domain, trigger="tick")

    def deactivate(self, domain: str) -> None:
        """ACTIVE -> IDLE: disarm the timer."""
        state = self.registry.state(Topic(domain))
        if state.timer_handle is not None:
            state.timer_handle.cancel()
            state.timer_handle = None
        if state.is_active:
            state.is_active = False
            logger.info("topic_deactivated", topic=domain)

    def sweep(self) -> list[str]:
        """
        Demote domains whose subscriber sets have been empty for at least the
        inactivity timeout, and drop empty item states.
        """
        now = self._clock()
        stopped = []

        for domain in self.registry.domains:
            state = self.registry.state(Topic(domain))
            if not state.is_active or self.registry.live_count(domain) > 0:
                continue
            if state.last_active_at is None:
                self.registry.mark_inactive_now(Topic(domain))
                continue
            if now - state.last_active_at >= self.inactivity_timeout:
                self.deactivate(domain)
                stopped.append(domain)

        pruned = self.registry.prune_items()
        if stopped or pruned:
            logger.info("sweep_complete", stopped=stopped, pruned=[t.key for t in pruned])
        return stopped

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        if self._sweep_handle is None:
            self._sweep_handle = self.timers.every(SWEEP_TIMER, self.sweep_interval, self._sweep_job)
        self.timers.start()
        logger.info("scheduler_started", sweep_interval_seconds=self.sweep_interval)

    def shutdown(self) -> None:
        for domain in self.registry.domains:
            self.deactivate(domain)
        if self._sweep_handle is not None:
            self._sweep_handle.cancel()
            self._sweep_handle = None
        self.timers.shutdown()
        logger.info("scheduler_stopped")

    def get_stats(self) -> dict[str, Any]:
        return {
            domain: {**stats, "phase": self.phase(domain).value}
            for domain, stats in self.stats.items()
        }

    async def _sweep_job(self) -> None:
        self.sweep()

    async def _run_refresh(self, domain: str, trigger: str) -> None:
        stats = self.stats.setdefault(domain, {"last_run": None, "runs": 0, "errors": 0})
        with log_context(topic=domain, trigger=trigger):
            try:
                await self._refresh(domain)
                stats["runs"] += 1
                stats["last_run"] = datetime.now(timezone.utc).isoformat()
            except Exception as e:
                stats["errors"] += 1
                logger.exception("refresh_failed", error=str(e))
