"""
Recurring timer abstraction.

The scheduler only needs "call this coroutine every N seconds until
cancelled". Production backs that with APScheduler interval jobs; tests
substitute a manual factory they can fast-forward.
"""

from typing import Awaitable, Callable, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from sportsfeed.logging import get_logger

logger = get_logger("subscriptions.timers")

Callback = Callable[[], Awaitable[None]]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerFactory(Protocol):
    def every(self, name: str, interval: float, callback: Callback) -> TimerHandle: ...

    def start(self) -> None: ...

    def shutdown(self) -> None: ...

    def jobs(self) -> list[dict]: ...


class _JobHandle:
    def __init__(self, scheduler: AsyncIOScheduler, job_id: str):
        self._scheduler = scheduler
        self.job_id = job_id

    def cancel(self) -> None:
        try:
            self._scheduler.remove_job(self.job_id)
        except JobLookupError:
            logger.debug("timer_already_removed", job_id=self.job_id)


class APSchedulerTimers:
    """
    Interval jobs on an AsyncIOScheduler.

    Each timer is one job with ``max_instances=1`` and ``coalesce=True`` so a
    slow refresh never overlaps the next tick of the same topic.
    """

    def __init__(self, scheduler: AsyncIOScheduler | None = None):
        self._scheduler = scheduler
        self._running = False

    @property
    def scheduler(self) -> AsyncIOScheduler:
        # Created on first use so it binds to the loop the app runs on
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(timezone="UTC")
        return self._scheduler

    def every(self, name: str, interval: float, callback: Callback) -> TimerHandle:
        self.scheduler.add_job(
            callback,
            trigger=IntervalTrigger(seconds=interval),
            id=name,
            name=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.debug("timer_armed", name=name, interval_seconds=interval)
        return _JobHandle(self.scheduler, name)

    def start(self) -> None:
        if self._running:
            return
        self.scheduler.start()
        self._running = True
        logger.info("timers_started")

    def shutdown(self) -> None:
        if not self._running:
            return
        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("timers_stopped")

    def jobs(self) -> list[dict]:
        """Armed timers with their next run time (ISO, UTC), for status reporting."""
        return [
            {"id": job.id, "next_run": _next_run(job)}
            for job in self.scheduler.get_jobs()
        ]


def _next_run(job) -> str | None:
    # Pending jobs (scheduler not started yet) have no next_run_time attribute
    next_run = getattr(job, "next_run_time", None)
    return next_run.isoformat() if next_run else None
