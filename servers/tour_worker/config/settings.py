"""
Environment-driven worker settings.

All knobs are optional; unset or malformed values fall back to defaults
and are reported by validate_settings().
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field

from .heuristics import ExtractionHeuristics, load_heuristics

logger = structlog.get_logger()

DEFAULT_USER_AGENT = "TourCrawlerBot/1.0"

TRUE_VALUES = {"true", "1", "yes", "on"}
FALSE_VALUES = {"false", "0", "no", "off"}


class Settings(BaseModel):
    """Validated worker configuration."""

    crawl_cooldown_seconds: float = 10
    max_requests_per_host_per_min: int = 6
    request_timeout_ms: int = 45000
    respect_robots_txt: bool = True
    user_agent: str = DEFAULT_USER_AGENT

    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    ai_text_budget: int = 10000

    renderer: str = "browser"  # browser, http
    headless: bool = True
    render_settle_ms: int = 3000

    database_path: Optional[str] = None
    heuristics_file: Optional[str] = None
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    host: str = "0.0.0.0"
    port: int = 8080

    # Raw values that could not be parsed, for validate_settings()
    invalid: dict[str, str] = Field(default_factory=dict, exclude=True)

    @property
    def request_timeout(self) -> float:
        """Request timeout in seconds."""
        return self.request_timeout_ms / 1000

    @property
    def ai_configured(self) -> bool:
        return bool(self.gemini_api_key)

    def load_heuristics(self) -> ExtractionHeuristics:
        """Heuristic token lists, from HEURISTICS_FILE when set."""
        path = Path(self.heuristics_file) if self.heuristics_file else None
        return load_heuristics(path)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Settings with defaults for anything unset or malformed
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        invalid: dict[str, str] = {}

        def number(name: str, default: Any, cast: type) -> Any:
            raw = env.get(name)
            if raw is None or raw.strip() == "":
                return default
            try:
                return cast(raw)
            except ValueError:
                invalid[name] = raw
                return default

        def flag(name: str, default: bool) -> bool:
            raw = env.get(name)
            if raw is None or raw.strip() == "":
                return default
            value = raw.strip().lower()
            if value in TRUE_VALUES:
                return True
            if value in FALSE_VALUES:
                return False
            invalid[name] = raw
            return default

        def text(name: str, default: Optional[str]) -> Optional[str]:
            raw = env.get(name)
            if raw is None or raw.strip() == "":
                return default
            return raw.strip()

        origins = text("CORS_ORIGINS", None)

        settings = cls(
            crawl_cooldown_seconds=number(
                "CRAWL_COOLDOWN_SECONDS", defaults.crawl_cooldown_seconds, float
            ),
            max_requests_per_host_per_min=number(
                "MAX_REQUESTS_PER_HOST_PER_MIN", defaults.max_requests_per_host_per_min, int
            ),
            request_timeout_ms=number("REQUEST_TIMEOUT_MS", defaults.request_timeout_ms, int),
            respect_robots_txt=flag("RESPECT_ROBOTS_TXT", defaults.respect_robots_txt),
            user_agent=text("USER_AGENT", defaults.user_agent),
            gemini_api_key=text("GEMINI_API_KEY", None),
            gemini_model=text("GEMINI_MODEL", defaults.gemini_model),
            ai_text_budget=number("AI_TEXT_BUDGET", defaults.ai_text_budget, int),
            renderer=(text("RENDERER", defaults.renderer) or defaults.renderer).lower(),
            headless=flag("HEADLESS", defaults.headless),
            render_settle_ms=number("RENDER_SETTLE_MS", defaults.render_settle_ms, int),
            database_path=text("DATABASE_PATH", None),
            heuristics_file=text("HEURISTICS_FILE", None),
            cors_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins else defaults.cors_origins
            ),
            host=text("HOST", defaults.host),
            port=number("PORT", defaults.port, int),
            invalid=invalid,
        )

        for name, raw in invalid.items():
            logger.warning("invalid_setting", name=name, value=raw)

        return settings


def validate_settings(settings: Settings) -> list[str]:
    """
    Validate settings and return list of errors.

    Returns:
        List of error messages (empty if valid)
    """
    errors: list[str] = []

    for name, raw in settings.invalid.items():
        errors.append(f"Invalid value for {name}: {raw!r} (using default)")

    if settings.crawl_cooldown_seconds < 0:
        errors.append(
            f"Invalid crawl cooldown: {settings.crawl_cooldown_seconds} (must be >= 0)"
        )

    if settings.max_requests_per_host_per_min < 1:
        errors.append(
            "Invalid max requests per host per minute: "
            f"{settings.max_requests_per_host_per_min} (must be >= 1)"
        )

    if settings.request_timeout_ms <= 0:
        errors.append(f"Invalid request timeout: {settings.request_timeout_ms}ms")

    if settings.renderer not in ("browser", "http"):
        errors.append(f"Unknown renderer: {settings.renderer} (expected browser or http)")

    if settings.ai_text_budget <= 0:
        errors.append(f"Invalid AI text budget: {settings.ai_text_budget}")

    if settings.heuristics_file and not Path(settings.heuristics_file).is_file():
        errors.append(f"Heuristics file not found: {settings.heuristics_file}")

    return errors


def get_default_settings() -> Settings:
    """Return default settings, ignoring the environment."""
    return Settings()
