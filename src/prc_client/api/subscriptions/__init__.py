"""Polling subscriptions and snapshot diffing."""

from .diff import KeyedSnapshot, LogSnapshot, build_snapshot, diff, diff_keyed, diff_log
from .events import EntityType, EventType, SubscriptionEvent
from .subscription import Subscription, SubscriptionConfig, SubscriptionState

__all__ = [
    "EntityType",
    "EventType",
    "KeyedSnapshot",
    "LogSnapshot",
    "Subscription",
    "SubscriptionConfig",
    "SubscriptionEvent",
    "SubscriptionState",
    "build_snapshot",
    "diff",
    "diff_keyed",
    "diff_log",
]
