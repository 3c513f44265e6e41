"""
Headless Chromium renderer.

Cost: one browser launch per page
Use Case: Tour pages that build their schedule with JavaScript

Returns the DOM after DOMContentLoaded plus a short settle wait, and the
final URL after redirects.
"""

import asyncio

from playwright.async_api import async_playwright
import structlog

from ..errors import RenderFailure
from ..models import RenderedPage

logger = structlog.get_logger()

# Browser launch and teardown on top of navigation and settle time
LAUNCH_SLACK_SECONDS = 15


class BrowserRenderer:
    """Render pages with Playwright Chromium."""

    def __init__(
        self,
        user_agent: str,
        timeout: float = 45.0,
        headless: bool = True,
        settle_ms: int = 3000,
    ):
        """Initialize browser renderer.

        Args:
            user_agent: Identifying user agent for the page
            timeout: Seconds allowed for navigation
            headless: Run Chromium without a window
            settle_ms: Extra wait after DOMContentLoaded for late scripts
        """
        self.user_agent = user_agent
        self.timeout = timeout
        self.headless = headless
        self.settle_ms = settle_ms

    async def render(self, url: str) -> RenderedPage:
        """Render a URL and return its HTML.

        Raises:
            RenderFailure: On navigation errors or when the overall
                timeout (navigation + settle + launch slack) elapses
        """
        budget = self.timeout + self.settle_ms / 1000 + LAUNCH_SLACK_SECONDS
        try:
            return await asyncio.wait_for(self._render(url), timeout=budget)
        except asyncio.TimeoutError:
            logger.warning("render_timeout", url=url, timeout=budget)
            raise RenderFailure(url, f"timed out after {budget:.0f}s")
        except Exception as e:
            logger.warning("render_failed", url=url, error=str(e))
            raise RenderFailure(url, str(e)) from e

    async def _render(self, url: str) -> RenderedPage:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=self.headless)
            try:
                page = await browser.new_page(user_agent=self.user_agent)
                await page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=self.timeout * 1000,
                )
                if self.settle_ms:
                    await page.wait_for_timeout(self.settle_ms)
                html = await page.content()
                final_url = page.url
            finally:
                await browser.close()

        logger.debug("page_rendered", url=url, final_url=final_url, size=len(html))
        return RenderedPage(html=html, final_url=final_url)
