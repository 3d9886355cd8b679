"""
Sliding-window rate limiter for upstream sources.

Keeps the timestamps of recent calls per key. A source at capacity is
skipped by the caller; nothing here blocks or sleeps.
"""

import time
import logging
from collections import defaultdict
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    In-memory rate limiter with a sliding window.

    One instance is shared by all sources of a fetcher; keys are source ids.
    """

    def __init__(self, window_seconds: float = 3600):
        self.window_seconds = window_seconds
        self._requests = defaultdict(list)
        self._lock = Lock()

    def _clean_old_requests(self, key: str, window_seconds: Optional[float] = None):
        """Remove requests outside the current window."""
        window = self.window_seconds if window_seconds is None else window_seconds
        cutoff = time.time() - window
        self._requests[key] = [t for t in self._requests[key] if t > cutoff]

    def try_acquire(self, key: str, max_requests: int) -> bool:
        """
        Record a call for ``key`` if the window has room.

        Returns:
            True if the call may proceed, False if the key is at capacity
        """
        with self._lock:
            self._clean_old_requests(key)

            if len(self._requests[key]) >= max_requests:
                return False

            self._requests[key].append(time.time())
            return True

    def remaining(self, key: str, max_requests: int) -> int:
        """Calls still available in the current window."""
        with self._lock:
            self._clean_old_requests(key)
            return max(0, max_requests - len(self._requests[key]))

    def retry_after(self, key: str) -> float:
        """Seconds until the oldest call in the window expires."""
        with self._lock:
            self._clean_old_requests(key)
            if not self._requests[key]:
                return 0.0
            oldest = min(self._requests[key])
            return max(0.0, oldest + self.window_seconds - time.time())

    def reset(self, key: Optional[str] = None):
        """Forget recorded calls for one key, or all keys."""
        with self._lock:
            if key is None:
                self._requests.clear()
            else:
                self._requests.pop(key, None)

    def get_stats(self, key: str) -> dict:
        """Get current rate limit stats for a key."""
        with self._lock:
            return {
                'key': key,
                'request_count': len(self._requests.get(key, [])),
                'window_seconds': self.window_seconds,
            }
