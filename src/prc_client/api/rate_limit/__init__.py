"""Rate limit tracking for the PRC API.

This module tracks per-bucket quota from response headers and gates
outgoing requests while a bucket is exhausted.
"""

from .limiter import RateLimiter
from .schemas import GLOBAL_BUCKET, BucketState, RateLimitStatus

__all__ = [
    "GLOBAL_BUCKET",
    "BucketState",
    "RateLimitStatus",
    "RateLimiter",
]
