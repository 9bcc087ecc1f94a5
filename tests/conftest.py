"""
Pytest fixtures for sports feed engine tests.

Time never passes on its own: a ``FakeClock`` drives the cache, registry and
scheduler, and ``ManualTimers`` fires interval callbacks only when a test
advances it.
"""

import os
import sys
from unittest.mock import AsyncMock

import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.append(PROJECT_ROOT)

from helpers import FakeClock, ManualTimers, make_records, make_settings  # noqa: E402
from sportsfeed.config import Settings  # noqa: E402
from sportsfeed.engine import FeedEngine  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers(clock) -> ManualTimers:
    return ManualTimers(clock)


@pytest.fixture
def upstream() -> AsyncMock:
    client = AsyncMock()
    client.fetch.return_value = make_records(3)
    client.fetch_detail.return_value = {"id": 1, "state": "live"}
    client.request.return_value = {"data": []}
    return client


@pytest.fixture
def transport() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def engine(settings, upstream, transport, timers, clock) -> FeedEngine:
    return FeedEngine(settings, upstream, transport, timers=timers, clock=clock)
