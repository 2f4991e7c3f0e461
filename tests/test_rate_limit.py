"""
Tests for the token bucket rate limiter.

Most tests drive the limiter with a FakeClock so refills are exact.
"""

import threading
import time

import pytest
from pydantic import ValidationError

from shrink.core.exceptions import ConfigurationError
from shrink.core.rate_limit import TokenBucketLimiter
from shrink.core.setting import Settings


class TestTokenBucket:
    """Admission decisions for a single identity."""

    def test_allows_burst_then_denies(self, clock):
        """Exactly `burst` immediate requests are admitted."""
        limiter = TokenBucketLimiter(rate=10, burst=5, clock=clock)

        for i in range(5):
            assert limiter.allow("192.168.1.1"), f"request {i + 1} should be allowed within burst"

        assert not limiter.allow("192.168.1.1")

    def test_one_token_per_interval(self, clock):
        """After waiting 1/rate seconds exactly one more request is admitted."""
        limiter = TokenBucketLimiter(rate=4, burst=3, clock=clock)
        for _ in range(3):
            limiter.allow("client")
        assert not limiter.allow("client")

        clock.advance(0.25)

        assert limiter.allow("client")
        assert not limiter.allow("client")

    def test_example_scenario(self, clock):
        """rate=2/s, burst=3: three pass, fourth fails, one more after 0.5s."""
        limiter = TokenBucketLimiter(rate=2, burst=3, clock=clock)

        assert [limiter.allow("c") for _ in range(3)] == [True, True, True]
        assert not limiter.allow("c")

        clock.advance(0.5)
        assert limiter.allow("c")
        assert not limiter.allow("c")

    def test_fractional_tokens_accumulate(self, clock):
        """Partial refills are kept between checks, not floored."""
        limiter = TokenBucketLimiter(rate=2, burst=1, clock=clock)
        assert limiter.allow("c")

        clock.advance(0.25)
        assert not limiter.allow("c")  # 0.5 tokens
        clock.advance(0.25)
        assert limiter.allow("c")  # 1.0 token

    def test_denied_request_consumes_nothing(self, clock):
        limiter = TokenBucketLimiter(rate=1, burst=1, clock=clock)
        limiter.allow("c")

        for _ in range(10):
            assert not limiter.allow("c")

        clock.advance(1.0)
        assert limiter.allow("c")

    def test_refill_capped_at_burst(self, clock):
        """A long idle period never yields more than `burst` tokens."""
        limiter = TokenBucketLimiter(rate=100, burst=5, clock=clock)
        for _ in range(3):
            limiter.allow("c")

        clock.advance(60)

        count = 0
        while limiter.allow("c"):
            count += 1
            assert count <= 10, "rate limiter not respecting burst cap"
        assert count == 5

    def test_refill_with_real_clock(self):
        limiter = TokenBucketLimiter(rate=10, burst=5)
        for _ in range(5):
            limiter.allow("192.168.1.1")
        assert not limiter.allow("192.168.1.1")

        time.sleep(0.15)

        assert limiter.allow("192.168.1.1")


class TestIdentities:
    """Buckets are independent per identity."""

    def test_identities_do_not_share_tokens(self, clock):
        limiter = TokenBucketLimiter(rate=10, burst=2, clock=clock)
        limiter.allow("192.168.1.1")
        limiter.allow("192.168.1.1")

        assert not limiter.allow("192.168.1.1")
        assert limiter.allow("192.168.1.2")

    def test_empty_identity_is_a_shared_bucket(self, clock):
        limiter = TokenBucketLimiter(rate=1, burst=1, clock=clock)

        assert limiter.allow("")
        assert not limiter.allow("")
        assert limiter.allow("10.0.0.1")

    def test_one_bucket_per_identity(self, clock):
        limiter = TokenBucketLimiter(rate=1, burst=3, clock=clock)
        for identity in ["a", "b", "a", "c", "b"]:
            limiter.allow(identity)

        assert len(limiter) == 3


class TestConcurrency:
    """Concurrent checks never over-admit."""

    @pytest.mark.parametrize("workers,burst", [(50, 10), (8, 20), (32, 32)])
    def test_no_double_spend(self, clock, workers, burst):
        limiter = TokenBucketLimiter(rate=1, burst=burst, clock=clock)
        barrier = threading.Barrier(workers)
        results = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            allowed = limiter.allow("shared-client")
            with results_lock:
                results.append(allowed)

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == workers
        assert sum(results) == min(workers, burst)
        assert len(limiter) == 1


class TestIdleEviction:
    """Optional eviction of idle buckets."""

    def test_disabled_by_default(self, clock):
        limiter = TokenBucketLimiter(rate=1, burst=1, clock=clock)
        limiter.allow("a")
        clock.advance(10_000)
        limiter.allow("b")

        assert len(limiter) == 2

    def test_idle_buckets_are_swept(self, clock):
        limiter = TokenBucketLimiter(rate=1, burst=2, idle_ttl=10, clock=clock)
        limiter.allow("a")
        clock.advance(11)
        limiter.allow("b")

        assert len(limiter) == 1

    def test_eviction_does_not_change_decisions(self, clock):
        """An evicted bucket would have been full, so a returning client sees burst tokens."""
        limiter = TokenBucketLimiter(rate=1, burst=2, idle_ttl=5, clock=clock)
        limiter.allow("a")
        limiter.allow("a")
        assert not limiter.allow("a")

        clock.advance(6)
        limiter.allow("b")  # triggers the sweep

        assert limiter.allow("a")
        assert limiter.allow("a")
        assert not limiter.allow("a")

    def test_evict_idle_returns_count(self, clock):
        limiter = TokenBucketLimiter(rate=1, burst=1, clock=clock)
        limiter.allow("a")
        limiter.allow("b")
        clock.advance(30)
        limiter.allow("c")

        assert limiter.evict_idle(20) == 2
        assert len(limiter) == 1


class TestConfiguration:
    """Invalid limiter settings fail at construction time."""

    @pytest.mark.parametrize("rate", [0, -1, -0.5])
    def test_non_positive_rate(self, rate):
        with pytest.raises(ConfigurationError):
            TokenBucketLimiter(rate=rate, burst=5)

    @pytest.mark.parametrize("burst", [0, -3])
    def test_burst_below_one(self, burst):
        with pytest.raises(ConfigurationError):
            TokenBucketLimiter(rate=1, burst=burst)

    def test_idle_ttl_shorter_than_refill_time(self):
        with pytest.raises(ConfigurationError):
            TokenBucketLimiter(rate=1, burst=10, idle_ttl=5)

    def test_retry_after(self):
        assert TokenBucketLimiter(rate=10, burst=1).retry_after() == 1
        assert TokenBucketLimiter(rate=0.25, burst=1).retry_after() == 4

    def test_settings_reject_invalid_rate_limit(self):
        with pytest.raises(ValidationError):
            Settings(RATE_LIMIT=0)
        with pytest.raises(ValidationError):
            Settings(RATE_BURST=0)
