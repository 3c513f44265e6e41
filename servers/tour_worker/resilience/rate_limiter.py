"""Per-host token bucket gating outbound fetches."""

from dataclasses import dataclass
import threading
import time
from typing import Any, Callable
from urllib.parse import urlparse

import structlog

logger = structlog.get_logger()

REFILL_INTERVAL_SECONDS = 60.0


@dataclass
class HostBucket:
    """Token state for one hostname."""

    tokens: int
    last_refill_at: float


class RateLimiter:
    """Coarse per-host rate limiter.

    Each host gets `capacity` tokens. Once at least a minute has passed
    since the last refill the bucket is reset to full; missed minutes do
    not accumulate. This is a per-minute reset, not a sliding window, so a
    burst straddling a refill can see up to twice the capacity in 60s.
    """

    def __init__(
        self,
        capacity: int = 6,
        clock: Callable[[], float] = time.monotonic,
        refill_interval: float = REFILL_INTERVAL_SECONDS,
    ):
        """Initialize rate limiter.

        Args:
            capacity: Requests allowed per host per refill interval
            clock: Returns the current time in seconds (injectable for tests)
            refill_interval: Seconds between refills
        """
        self.capacity = capacity
        self.clock = clock
        self.refill_interval = refill_interval
        self._buckets: dict[str, HostBucket] = {}
        self._host_locks: dict[str, threading.Lock] = {}
        self._map_lock = threading.Lock()

    def allow(self, url: str) -> bool:
        """Consume one token for the URL's host.

        Args:
            url: URL about to be fetched

        Returns:
            True if the fetch may proceed; False when the bucket is empty
            or the URL has no parseable hostname
        """
        host = self._host_of(url)
        if not host:
            logger.warning("rate_limit_unparseable_url", url=url)
            return False

        with self._lock_for(host):
            now = self.clock()
            bucket = self._buckets.get(host)
            if bucket is None:
                bucket = HostBucket(tokens=self.capacity, last_refill_at=now)
                self._buckets[host] = bucket

            if now - bucket.last_refill_at >= self.refill_interval:
                bucket.tokens = self.capacity
                bucket.last_refill_at = now

            if bucket.tokens > 0:
                bucket.tokens -= 1
                return True

        logger.info("rate_limited", host=host, capacity=self.capacity)
        return False

    def _lock_for(self, host: str) -> threading.Lock:
        with self._map_lock:
            lock = self._host_locks.get(host)
            if lock is None:
                lock = threading.Lock()
                self._host_locks[host] = lock
            return lock

    @staticmethod
    def _host_of(url: str) -> str:
        try:
            return (urlparse(url).hostname or "").lower()
        except ValueError:
            return ""

    def tokens_left(self, url: str) -> int:
        """Tokens currently available for the URL's host (no refill applied)."""
        bucket = self._buckets.get(self._host_of(url))
        return self.capacity if bucket is None else bucket.tokens

    def reset(self, host: str | None = None) -> None:
        """Forget bucket state.

        Args:
            host: Specific host to reset, or None to reset all
        """
        if host:
            hosts = [host.lower()]
        else:
            with self._map_lock:
                hosts = list(self._host_locks)

        for name in hosts:
            with self._lock_for(name):
                self._buckets.pop(name, None)

    def get_status(self) -> dict[str, Any]:
        """Get current bucket state per host."""
        return {
            "capacity": self.capacity,
            "refill_interval": self.refill_interval,
            "hosts": {
                host: {"tokens": b.tokens, "last_refill_at": b.last_refill_at}
                for host, b in self._buckets.items()
            },
        }
