"""Configuration settings for the PRC API client."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.policeroleplay.community/v1"


class RequestQueueConfig(BaseModel):
    """Configuration for the outbound request queue.

    When disabled, every network attempt runs inline in the caller's task.
    """

    enabled: bool = Field(
        default=False,
        description="Route network attempts through the worker pool",
    )
    workers: int = Field(
        default=1,
        ge=1,
        le=100,
        description="Number of concurrent queue workers",
    )
    interval_ms: int = Field(
        default=0,
        ge=0,
        description="Minimum milliseconds between task starts (across all workers)",
    )
    max_size: int | None = Field(
        default=None,
        ge=1,
        description="Optional queue depth bound (None = unbounded)",
    )


class CacheConfig(BaseModel):
    """Configuration for response caching.

    The in-memory backend is used unless ``redis_url`` is set.
    """

    enabled: bool = Field(default=True, description="Cache GET responses")
    ttl_ms: int = Field(
        default=5000,
        ge=0,
        description="Default time-to-live for cached responses",
    )
    stale_if_error: bool = Field(
        default=False,
        description="Serve expired entries when a live refresh fails",
    )
    stale_window_ms: int = Field(
        default=60000,
        ge=0,
        description="Grace window after expiry during which stale values may be served",
    )
    max_items: int = Field(
        default=1000,
        ge=1,
        description="Maximum in-memory entries before oldest-first eviction",
    )
    prefix: str = Field(default="prc:", description="Namespace prefix for cache keys")
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL (selects the Redis backend)",
    )
    redis_key_prefix: str = Field(
        default="prc-client:",
        description="Additional key prefix applied inside Redis",
    )

    @property
    def stale_ms(self) -> int:
        """Effective stale window (0 unless stale-if-error is enabled)."""
        return self.stale_window_ms if self.stale_if_error else 0


class RetryConfig(BaseModel):
    """Configuration for retry and exponential backoff."""

    max_attempts: int = Field(
        default=4,
        ge=1,
        le=20,
        description="Total attempts per request (1 initial + retries)",
    )
    base_delay_ms: int = Field(default=500, ge=0, description="Backoff base unit")
    max_delay_ms: int = Field(default=30000, ge=0, description="Backoff ceiling")
    multiplier: float = Field(default=2.0, ge=1.0, description="Exponential growth factor")
    jitter_factor: float = Field(
        default=0.25,
        ge=0.0,
        le=1.0,
        description="Random jitter as a fraction of the delay (0.25 = +/-25%)",
    )


class RateLimitConfig(BaseModel):
    """Configuration for rate limit tracking."""

    default_backoff_ms: int = Field(
        default=5000,
        ge=0,
        description="Wait applied after a 429 that carries no retry hint",
    )
    jitter_ms: int = Field(
        default=250,
        ge=0,
        description="Upper bound of random jitter added to limiter waits",
    )
    track_from_headers: bool = Field(
        default=True,
        description="Passively track limits from response headers",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Client settings loaded from ``PRC_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PRC_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # PRC API
    # --------------------------------------------------------------------------
    server_key: str = Field(default="", description="Private server API key")
    global_key: str | None = Field(
        default=None,
        description="Optional global API key (sent as Authorization)",
    )
    base_url: str = Field(default=DEFAULT_BASE_URL, description="API base URL")
    timeout_ms: int = Field(
        default=10000,
        ge=1,
        description="Per-attempt network timeout",
    )
    keep_alive: bool = Field(default=True, description="Reuse HTTP connections")

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Request Pipeline
    # --------------------------------------------------------------------------
    request_queue: RequestQueueConfig = Field(
        default_factory=RequestQueueConfig,
        description="Request queue configuration",
    )
    cache: CacheConfig = Field(
        default_factory=CacheConfig,
        description="Response cache configuration",
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Retry/backoff configuration",
    )
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig,
        description="Rate limit tracking configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )

    @model_validator(mode="after")
    def _strip_base_url(self) -> "Settings":
        self.base_url = self.base_url.rstrip("/")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
