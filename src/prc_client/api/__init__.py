"""PRC API access layer.

This module provides:
- PRCClient: Async PRC API client with caching, rate limiting and retries
- Request pipeline: RequestExecutor, RequestOptions, RequestQueue, RetryPolicy
- Rate limit tracking: RateLimiter, BucketState, RateLimitStatus
- Cache stores: MemoryCacheStore, CacheStore protocol
- Subscriptions: Subscription, SubscriptionConfig, EventType, EntityType
"""

from .cache import CacheEntry, CacheLookup, CacheStore, MemoryCacheStore, create_cache_store
from .client import PRCClient
from .exceptions import (
    ErrorCode,
    PRCAPIError,
    PRCAuthenticationError,
    PRCClientError,
    PRCCommandError,
    PRCConfigurationError,
    PRCNetworkError,
    PRCRateLimitError,
    PRCServerError,
    QueueFullError,
    RequestContext,
    SubscriptionClosedError,
)
from .executor import CacheStats, RequestExecutor, RequestOptions, cache_key
from .pacing import RequestQueue, RetryPolicy, TaskState
from .rate_limit import GLOBAL_BUCKET, BucketState, RateLimiter, RateLimitStatus
from .subscriptions import (
    EntityType,
    EventType,
    Subscription,
    SubscriptionConfig,
    SubscriptionEvent,
    SubscriptionState,
)

__all__ = [
    # Client
    "PRCClient",
    # Exceptions
    "ErrorCode",
    "PRCAPIError",
    "PRCAuthenticationError",
    "PRCClientError",
    "PRCCommandError",
    "PRCConfigurationError",
    "PRCNetworkError",
    "PRCRateLimitError",
    "PRCServerError",
    "QueueFullError",
    "RequestContext",
    "SubscriptionClosedError",
    # Request pipeline
    "CacheStats",
    "RequestExecutor",
    "RequestOptions",
    "RequestQueue",
    "RetryPolicy",
    "TaskState",
    "cache_key",
    # Rate limit tracking
    "GLOBAL_BUCKET",
    "BucketState",
    "RateLimitStatus",
    "RateLimiter",
    # Cache
    "CacheEntry",
    "CacheLookup",
    "CacheStore",
    "MemoryCacheStore",
    "create_cache_store",
    # Subscriptions
    "EntityType",
    "EventType",
    "Subscription",
    "SubscriptionConfig",
    "SubscriptionEvent",
    "SubscriptionState",
]
