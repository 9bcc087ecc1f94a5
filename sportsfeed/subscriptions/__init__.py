"""
Subscription tracking and demand-driven refresh scheduling.

Usage:
    from sportsfeed.subscriptions import SubscriptionRegistry, RefreshScheduler
"""

from sportsfeed.subscriptions.registry import SubscriptionRegistry, SubscriptionState
from sportsfeed.subscriptions.scheduler import RefreshScheduler, TopicPhase
from sportsfeed.subscriptions.timers import APSchedulerTimers, TimerFactory, TimerHandle

__all__ = [
    "APSchedulerTimers",
    "RefreshScheduler",
    "SubscriptionRegistry",
    "SubscriptionState",
    "TimerFactory",
    "TimerHandle",
    "TopicPhase",
]
