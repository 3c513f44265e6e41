"""robots.txt compliance for outbound fetches."""

from typing import Optional
from urllib.parse import urlparse

import httpx
from protego import Protego
import structlog

logger = structlog.get_logger()


class RobotsGate:
    """Evaluate a host's robots.txt before crawling.

    Fails open: a missing, unreachable or unparsable robots.txt allows the
    fetch. Only an explicit disallow for our user agent blocks it.
    """

    def __init__(
        self,
        user_agent: str,
        timeout: float = 45.0,
        respect_robots: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize robots gate.

        Args:
            user_agent: Identifying user agent sent and matched against rules
            timeout: Seconds before the robots.txt fetch is abandoned
            respect_robots: When False every URL is allowed without a fetch
            transport: Optional httpx transport (tests)
        """
        self.user_agent = user_agent
        self.timeout = timeout
        self.respect_robots = respect_robots
        self.transport = transport

    @property
    def product_token(self) -> str:
        """User-agent name matched against robots.txt groups, without version."""
        return self.user_agent.split("/", 1)[0].strip()

    async def can_fetch(self, url: str) -> bool:
        """Check whether robots.txt allows fetching the URL.

        Args:
            url: Page URL about to be rendered

        Returns:
            False only when the policy explicitly disallows the URL
        """
        if not self.respect_robots:
            return True

        try:
            parsed = urlparse(url)
            if not parsed.scheme or not parsed.netloc:
                return True
            robots_url = f"{parsed.scheme}://{parsed.netloc}/robots.txt"

            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(
                    robots_url, headers={"User-Agent": self.user_agent}
                )

            if response.status_code >= 400:
                logger.debug(
                    "robots_unavailable",
                    robots_url=robots_url,
                    status=response.status_code,
                )
                return True

            policy = Protego.parse(response.text)
            allowed = policy.can_fetch(url, self.product_token)

        except Exception as e:
            logger.warning("robots_check_failed", url=url, error=str(e))
            return True

        if not allowed:
            logger.info("robots_disallowed", url=url, user_agent=self.user_agent)
        return allowed
