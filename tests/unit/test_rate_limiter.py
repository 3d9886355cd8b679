"""
Unit tests for the sliding-window rate limiter.
"""

import pytest
import time


class TestRateLimiterCore:
    """Tests for SlidingWindowRateLimiter core functionality."""

    def test_rate_limiter_init(self):
        """Test limiter initialization."""
        from trenddit.intelligence.aggregation import SlidingWindowRateLimiter

        limiter = SlidingWindowRateLimiter()
        assert limiter.window_seconds == 3600
        assert limiter._requests is not None
        assert limiter._lock is not None

    def test_rejects_call_over_limit(self):
        """rate + 1 calls in one window: only the last is rejected."""
        from trenddit.intelligence.aggregation import SlidingWindowRateLimiter

        limiter = SlidingWindowRateLimiter()
        results = [limiter.try_acquire("hn", 3) for _ in range(4)]

        assert results == [True, True, True, False]

    def test_keys_are_independent(self):
        from trenddit.intelligence.aggregation import SlidingWindowRateLimiter

        limiter = SlidingWindowRateLimiter()
        assert limiter.try_acquire("a", 1)
        assert not limiter.try_acquire("a", 1)
        assert limiter.try_acquire("b", 1)

    def test_zero_limit_always_rejects(self):
        from trenddit.intelligence.aggregation import SlidingWindowRateLimiter

        limiter = SlidingWindowRateLimiter()
        assert not limiter.try_acquire("disabled", 0)

    def test_clean_old_requests(self):
        """Test cleaning old requests from sliding window."""
        from trenddit.intelligence.aggregation import SlidingWindowRateLimiter

        limiter = SlidingWindowRateLimiter(window_seconds=60)

        old_time = time.time() - 120
        limiter._requests["test_key"] = [old_time, old_time + 1, time.time()]

        limiter._clean_old_requests("test_key")

        assert len(limiter._requests["test_key"]) == 1

    def test_window_slides(self):
        """Calls older than the window free up capacity."""
        from trenddit.intelligence.aggregation import SlidingWindowRateLimiter

        limiter = SlidingWindowRateLimiter(window_seconds=60)
        limiter._requests["src"] = [time.time() - 61]

        assert limiter.try_acquire("src", 1)

    def test_remaining(self):
        from trenddit.intelligence.aggregation import SlidingWindowRateLimiter

        limiter = SlidingWindowRateLimiter()
        limiter.try_acquire("src", 5)
        limiter.try_acquire("src", 5)

        assert limiter.remaining("src", 5) == 3
        assert limiter.remaining("other", 5) == 5

    def test_retry_after(self):
        from trenddit.intelligence.aggregation import SlidingWindowRateLimiter

        limiter = SlidingWindowRateLimiter(window_seconds=60)
        assert limiter.retry_after("src") == 0.0

        limiter.try_acquire("src", 1)
        assert 0 < limiter.retry_after("src") <= 60

    def test_reset(self):
        from trenddit.intelligence.aggregation import SlidingWindowRateLimiter

        limiter = SlidingWindowRateLimiter()
        limiter.try_acquire("a", 1)
        limiter.try_acquire("b", 1)

        limiter.reset("a")
        assert limiter.try_acquire("a", 1)
        assert not limiter.try_acquire("b", 1)

        limiter.reset()
        assert limiter.try_acquire("b", 1)

    def test_get_stats(self):
        """Test getting rate limit stats."""
        from trenddit.intelligence.aggregation import SlidingWindowRateLimiter

        limiter = SlidingWindowRateLimiter()
        limiter._requests["test_key"] = [time.time(), time.time()]

        stats = limiter.get_stats("test_key")
        assert stats['key'] == "test_key"
        assert stats['request_count'] == 2
        assert stats['window_seconds'] == 3600
