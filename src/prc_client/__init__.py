"""Resilient async client for the PRC private server API."""

from .api import (
    EntityType,
    EventType,
    PRCAPIError,
    PRCClient,
    PRCClientError,
    RequestOptions,
    SubscriptionConfig,
    SubscriptionEvent,
)

__version__ = "0.1.0"

__all__ = [
    "EntityType",
    "EventType",
    "PRCAPIError",
    "PRCClient",
    "PRCClientError",
    "RequestOptions",
    "SubscriptionConfig",
    "SubscriptionEvent",
    "__version__",
]
