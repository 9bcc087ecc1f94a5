"""
Engine services.

- ``FetchCoordinator``: cache check, upstream fetch, fallback-by-date, store
- ``BroadcastDispatcher``: publish fetched datasets to topic channels
"""

from sportsfeed.services.broadcast import BroadcastDispatcher, update_message
from sportsfeed.services.fetch_coordinator import FetchCoordinator, UpstreamClient

__all__ = [
    "BroadcastDispatcher",
    "FetchCoordinator",
    "UpstreamClient",
    "update_message",
]
