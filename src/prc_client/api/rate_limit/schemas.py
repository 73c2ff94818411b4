"""Pydantic schemas for PRC API rate limit state.

These schemas represent rate limit information from the
``X-RateLimit-*`` response headers the API attaches to every reply:

- X-RateLimit-Bucket (bucket name, e.g. "global")
- X-RateLimit-Limit
- X-RateLimit-Remaining
- X-RateLimit-Reset (epoch seconds)
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Self

from pydantic import BaseModel, Field, computed_field

GLOBAL_BUCKET = "global"

HEADER_BUCKET = "x-ratelimit-bucket"
HEADER_LIMIT = "x-ratelimit-limit"
HEADER_REMAINING = "x-ratelimit-remaining"
HEADER_RESET = "x-ratelimit-reset"


class RateLimitStatus(StrEnum):
    """Rate limit health status for one bucket.

    - HEALTHY: > 50% remaining
    - WARNING: 20-50% remaining
    - CRITICAL: below 20% remaining
    - EXHAUSTED: 0 remaining and the window has not reset yet
    """

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    EXHAUSTED = "exhausted"


class BucketState(BaseModel):
    """Quota state for a single rate limit bucket."""

    bucket: str = Field(description="Bucket name (global or per-route)")
    limit: int = Field(ge=0, description="Requests allowed per window")
    remaining: int = Field(ge=0, description="Requests remaining in current window")
    reset_at: datetime = Field(description="UTC datetime when the window resets")
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When this state was last observed",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining_percent(self) -> float:
        """Percentage of the window remaining (0.0 to 100.0)."""
        if self.limit == 0:
            return 0.0
        return min(100.0, (self.remaining / self.limit) * 100)

    def seconds_until_reset(self, now: datetime | None = None) -> float:
        """Seconds until the window resets (0 if already past)."""
        delta = self.reset_at - (now or datetime.now(UTC))
        return max(0.0, delta.total_seconds())

    def is_blocked(self, now: datetime | None = None) -> bool:
        """True when the bucket is empty and its window is still open."""
        return self.remaining == 0 and self.seconds_until_reset(now) > 0

    def get_status(self, now: datetime | None = None) -> RateLimitStatus:
        if self.is_blocked(now):
            return RateLimitStatus.EXHAUSTED
        if self.remaining == 0 or self.remaining_percent >= 50.0:
            # An empty bucket past its reset is effectively refilled
            return RateLimitStatus.HEALTHY
        if self.remaining_percent >= 20.0:
            return RateLimitStatus.WARNING
        return RateLimitStatus.CRITICAL

    @classmethod
    def from_response_headers(
        cls,
        headers: Mapping[str, str],
        default_bucket: str = GLOBAL_BUCKET,
    ) -> Self | None:
        """Parse bucket state from HTTP response headers.

        Returns None when the response carries no usable rate limit headers.

        Args:
            headers: Response headers (case-insensitive mapping or lower-cased dict)
            default_bucket: Bucket name if the bucket header is missing
        """
        lowered = {k.lower(): v for k, v in headers.items()}
        if HEADER_REMAINING not in lowered:
            return None

        try:
            remaining = max(0, int(lowered[HEADER_REMAINING]))
            limit = int(lowered.get(HEADER_LIMIT, remaining))
            reset_raw = float(lowered.get(HEADER_RESET, "0"))
            reset_at = (
                datetime.fromtimestamp(reset_raw, tz=UTC) if reset_raw > 0 else datetime.now(UTC)
            )
        except (ValueError, OverflowError, OSError):
            # Out-of-range resets (e.g. a milliseconds epoch) are unusable
            return None

        return cls(
            bucket=lowered.get(HEADER_BUCKET) or default_bucket,
            limit=max(limit, 0),
            remaining=remaining,
            reset_at=reset_at,
        )
