"""Retry decisions and jittered exponential backoff.

Formula:
    delay = base_delay * multiplier ** (attempt - 1)
    delay = delay * uniform(1 - jitter_factor, 1 + jitter_factor)
    delay = min(delay, max_delay)
"""

from __future__ import annotations

import random

import httpx

from prc_client.config import RetryConfig

from ..exceptions import PRCAPIError


class RetryPolicy:
    """Decides whether a failed attempt is retried and how long to back off.

    Retryable: network failures (connection errors, timeouts), HTTP 5xx,
    and the rate-limit class. Rate-limited attempts are retried after the
    rate limiter's wait rather than ``delay_for``; the caller decides which
    wait applies. Every other 4xx is terminal.

    Usage:
        policy = RetryPolicy(RetryConfig(max_attempts=4))
        attempt = 1
        while True:
            try:
                return await do_request()
            except PRCAPIError as e:
                if not policy.should_retry(attempt, e):
                    raise
                await asyncio.sleep(policy.delay_for(attempt))
                attempt += 1
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the retry policy.

        Args:
            config: Retry configuration (defaults if not provided)
            rng: Optional seeded Random for deterministic jitter
        """
        self._config = config or RetryConfig()
        self._rng = rng or random.Random()

    @property
    def max_attempts(self) -> int:
        return self._config.max_attempts

    @staticmethod
    def is_retryable(error: BaseException) -> bool:
        """Whether the failure class is retryable at all."""
        if isinstance(error, PRCAPIError):
            return error.is_retryable
        return isinstance(error, (httpx.TransportError, TimeoutError, ConnectionError))

    def should_retry(self, attempt: int, error: BaseException) -> bool:
        """Decide whether to make another attempt.

        Args:
            attempt: Number of the attempt that just failed (1-based)
            error: The failure it produced

        Returns:
            True if another attempt is allowed and worthwhile
        """
        if attempt >= self._config.max_attempts:
            return False
        return self.is_retryable(error)

    def delay_for(self, attempt: int) -> float:
        """Backoff delay in seconds after the given failed attempt (1-based)."""
        if attempt <= 0:
            return 0.0
        delay_ms = self._config.base_delay_ms * (self._config.multiplier ** (attempt - 1))
        jitter = self._config.jitter_factor
        if jitter > 0:
            delay_ms *= self._rng.uniform(1.0 - jitter, 1.0 + jitter)
        return min(delay_ms, self._config.max_delay_ms) / 1000
