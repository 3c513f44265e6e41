"""Polite-crawling controls: per-host rate limiting and robots.txt."""

from .rate_limiter import HostBucket, RateLimiter
from .robots import RobotsGate

__all__ = [
    "HostBucket",
    "RateLimiter",
    "RobotsGate",
]
