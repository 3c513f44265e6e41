"""
Page renderers.

Each renderer implements:
- async render(url) -> RenderedPage(html, final_url)
- raises RenderFailure on any error, including timeouts
"""

from typing import Protocol

from ..config.settings import Settings
from ..models import RenderedPage
from .web_scraper import HttpRenderer


class Renderer(Protocol):
    async def render(self, url: str) -> RenderedPage: ...


def build_renderer(settings: Settings) -> Renderer:
    """Create the renderer selected by RENDERER."""
    if settings.renderer == "http":
        return HttpRenderer(settings.user_agent, timeout=settings.request_timeout)

    from .browser import BrowserRenderer

    return BrowserRenderer(
        settings.user_agent,
        timeout=settings.request_timeout,
        headless=settings.headless,
        settle_ms=settings.render_settle_ms,
    )


__all__ = [
    "HttpRenderer",
    "Renderer",
    "build_renderer",
]
