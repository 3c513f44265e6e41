"""
Plain HTTP renderer for static schedule pages.

Cost: Free (uses httpx, no browser)
Use Case: Server-rendered pages, ICS calendars and RSS/Atom feeds

Used when RENDERER=http, or in tests with a mock transport.
"""

from typing import Optional

import httpx
import structlog

from ..errors import RenderFailure
from ..models import RenderedPage

logger = structlog.get_logger()


class HttpRenderer:
    """Fetch raw page bodies with httpx."""

    def __init__(
        self,
        user_agent: str,
        timeout: float = 45.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self.transport = transport

    async def render(self, url: str) -> RenderedPage:
        """
        Fetch a URL, following redirects.

        Args:
            url: Page URL

        Returns:
            RenderedPage with the response body and final URL

        Raises:
            RenderFailure: On HTTP errors, timeouts or connection failures
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(
                    url, headers={"User-Agent": self.user_agent}
                )
                response.raise_for_status()

        except httpx.HTTPStatusError as e:
            raise RenderFailure(url, f"HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise RenderFailure(url, f"timed out after {self.timeout:.0f}s") from e
        except httpx.HTTPError as e:
            raise RenderFailure(url, f"Request failed: {e}") from e

        logger.debug("page_fetched", url=url, final_url=str(response.url))
        return RenderedPage(html=response.text, final_url=str(response.url))
