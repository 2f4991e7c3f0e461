"""
Rate Limiting (Token Bucket)

This module decides, per client identity, whether a request may proceed.
Rate limiting prevents abuse and ensures fair usage.

Algorithm:
- Every client identity owns a bucket holding up to `burst` tokens
- Tokens refill continuously at `rate` tokens per second
- Each admitted request consumes one token; with less than one token the
  request is denied and nothing is consumed
- The first request from an identity creates its bucket at `burst - 1`
  tokens (the first request is charged immediately)

Design Decisions:
- In-memory, single process: state is not shared between workers and is
  lost on restart
- Tokens are floats so fractional refills accumulate between requests
- One threading.Lock guards the whole bucket map; it is held only for the
  refill/decrement arithmetic, so it is safe to call from the event loop
  and from threadpool workers alike
- Buckets are kept for the process lifetime unless an idle TTL is set
- Requests without any identity share the "" bucket
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from shrink.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class Bucket:
    """Token state for one client identity."""
    tokens: float
    last_refill: float


class TokenBucketLimiter:
    """
    Per-identity token bucket rate limiter.

    Example:
        limiter = TokenBucketLimiter(rate=2.0, burst=3)
        limiter.allow("203.0.113.7")  # True
    """

    def __init__(
        self,
        rate: float,
        burst: int,
        idle_ttl: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the limiter.

        Args:
            rate: Tokens added per second (must be > 0)
            burst: Bucket capacity (must be >= 1)
            idle_ttl: Evict buckets idle longer than this many seconds.
                0 disables eviction. Must be at least burst / rate so an
                evicted bucket would have been full anyway.
            clock: Monotonic time source in seconds (injectable for tests)

        Raises:
            ConfigurationError: If rate, burst or idle_ttl are out of range
        """
        if not rate > 0:
            raise ConfigurationError("rate", f"must be positive, got {rate}")
        if burst < 1:
            raise ConfigurationError("burst", f"must be at least 1, got {burst}")
        if idle_ttl < 0:
            raise ConfigurationError("idle_ttl", f"must not be negative, got {idle_ttl}")
        if idle_ttl and idle_ttl < burst / rate:
            raise ConfigurationError(
                "idle_ttl",
                f"must be at least burst / rate ({burst / rate:.3f}s), got {idle_ttl}"
            )

        self.rate = float(rate)
        self.burst = burst
        self.idle_ttl = float(idle_ttl)

        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: Dict[str, Bucket] = {}
        self._last_sweep = clock()

    def allow(self, identity: str) -> bool:
        """
        Check whether a request from `identity` may proceed.

        Refills the identity's bucket for the time elapsed since the last
        check, then consumes one token if at least one is available.

        Args:
            identity: Client identity (usually the client IP)

        Returns:
            True if the request is admitted, False if it is rate limited
        """
        with self._lock:
            now = self._clock()

            if self.idle_ttl and now - self._last_sweep >= self.idle_ttl:
                self._evict_idle_locked(now, self.idle_ttl)

            bucket = self._buckets.get(identity)
            if bucket is None:
                self._buckets[identity] = Bucket(tokens=self.burst - 1.0, last_refill=now)
                return True

            elapsed = max(0.0, now - bucket.last_refill)
            bucket.tokens = min(float(self.burst), bucket.tokens + elapsed * self.rate)
            bucket.last_refill = now

            if bucket.tokens < 1.0:
                return False

            bucket.tokens -= 1.0
            return True

    def retry_after(self) -> int:
        """Whole seconds an emptied bucket needs to earn one token."""
        return max(1, math.ceil(1.0 / self.rate))

    def evict_idle(self, max_idle: float) -> int:
        """
        Drop buckets that have not been touched for `max_idle` seconds.

        Returns:
            Number of buckets removed
        """
        with self._lock:
            return self._evict_idle_locked(self._clock(), max_idle)

    def _evict_idle_locked(self, now: float, max_idle: float) -> int:
        stale = [
            identity for identity, bucket in self._buckets.items()
            if now - bucket.last_refill > max_idle
        ]
        for identity in stale:
            del self._buckets[identity]
        self._last_sweep = now

        if stale:
            logger.debug(f"Evicted {len(stale)} idle rate limit buckets")
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)
