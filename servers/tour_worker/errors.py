"""
Error taxonomy for crawl runs.

Terminal for a run (surfaced verbatim in HTTP responses):
- CooldownActive, RateLimitExceeded, RobotsDisallowed, RenderFailure

Recovered locally (visible only in logs/counters):
- StrategyFailure, PersistenceFailure, ConfigurationMissing
"""

import math


class CrawlError(Exception):
    """Base class for crawl pipeline errors."""

    pass


class CooldownActive(CrawlError):
    """Raised when a source was crawled too recently."""

    def __init__(self, source_url: str, remaining_seconds: float):
        self.source_url = source_url
        self.remaining_seconds = max(0, math.ceil(remaining_seconds))
        super().__init__(f"Cooldown: wait {self.remaining_seconds}s")


class RateLimitExceeded(CrawlError):
    """Raised when the per-host token bucket is empty."""

    def __init__(self, host: str):
        self.host = host
        super().__init__("Rate limit exceeded for this host")


class RobotsDisallowed(CrawlError):
    """Raised when robots.txt explicitly disallows the URL."""

    def __init__(self, url: str):
        self.url = url
        super().__init__("robots.txt disallow")


class RenderFailure(CrawlError):
    """Raised when the page could not be rendered (including timeouts)."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Render failed: {reason}")


class StrategyFailure(CrawlError):
    """One extraction strategy crashed; treated as 'produced nothing'."""

    def __init__(self, strategy: str, cause: Exception):
        self.strategy = strategy
        self.cause = cause
        super().__init__(f"Strategy '{strategy}' failed: {cause}")


class PersistenceFailure(CrawlError):
    """A single record could not be upserted."""

    def __init__(self, key: str, cause: Exception):
        self.key = key
        self.cause = cause
        super().__init__(f"Upsert failed for '{key}': {cause}")


class ConfigurationMissing(CrawlError):
    """An optional capability is not configured (e.g. no AI credential)."""

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(f"{setting} not set")
