"""Test doubles shared across the suite: fake clock, manual timers, settings."""

from datetime import datetime, timezone

from sportsfeed.config import Settings

# 2024-12-10T12:00:00Z
START_TIME = 1733832000.0


class FakeClock:
    def __init__(self, start: float = START_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualTimer:
    def __init__(self, timers, name, interval, callback, due):
        self._timers = timers
        self.name = name
        self.interval = interval
        self.callback = callback
        self.due = due
        self.cancelled = False
        self.fired = 0

    def cancel(self) -> None:
        self.cancelled = True
        if self._timers.timers.get(self.name) is self:
            del self._timers.timers[self.name]


class ManualTimers:
    """TimerFactory whose timers fire only inside ``advance``."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.timers: dict[str, ManualTimer] = {}
        self.started = False

    def every(self, name, interval, callback):
        timer = ManualTimer(self, name, interval, callback, self.clock() + interval)
        self.timers[name] = timer
        return timer

    def start(self) -> None:
        self.started = True

    def shutdown(self) -> None:
        self.started = False

    def jobs(self) -> list[dict]:
        return [
            {"id": t.name, "next_run": datetime.fromtimestamp(t.due, timezone.utc).isoformat()}
            for t in self.timers.values()
        ]

    def is_armed(self, name: str) -> bool:
        return name in self.timers

    async def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in time order."""
        end = self.clock() + seconds
        while True:
            due = [t for t in self.timers.values() if t.due <= end]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.clock.now = timer.due
            timer.due += timer.interval
            timer.fired += 1
            await timer.callback()
        self.clock.now = end


def make_settings(**overrides) -> Settings:
    """Settings built from env-style names, isolated from any local .env."""
    values = {
        "API_KEY": "test-key",
        "SPORTS": "football,basketball,cricket",
        "UPDATE_INTERVAL_SECONDS": 60,
        "CACHE_TTL_SECONDS": 60,
        "MAX_LIMIT": 100,
        "DAYS_RANGE": 7,
        "INACTIVITY_TIMEOUT_SECONDS": 300,
        "SWEEP_INTERVAL_SECONDS": 60,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_records(count: int, start: int = 1) -> list[dict]:
    return [{"id": i, "homeTeam": f"home-{i}", "awayTeam": f"away-{i}"} for i in range(start, start + count)]


