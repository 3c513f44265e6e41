"""
AI-fallback strategy using a Gemini model.

Cost: Gemini API (free tier ~1500 requests/day for flash models)
Use Case: Pages none of the text heuristics understand

The page is reduced to visible text, truncated to a character budget and
sent with a strict JSON-array contract. Every failure (missing key,
network error, unparsable answer) degrades to an empty result.
"""

import asyncio
import json
import re
from typing import Awaitable, Callable, Optional

from bs4 import BeautifulSoup
import structlog

from ..errors import ConfigurationMissing
from ..models import Candidate
from ..template_engine import TemplateEngine
from .base import ExtractionStrategy

logger = structlog.get_logger()

PROMPT_TEMPLATE = "extract_events.j2"

JSON_ARRAY = re.compile(r"\[[\s\S]*\]")

# Takes a prompt, returns the model's raw text answer
Generator = Callable[[str], Awaitable[str]]


def page_text(html: str, budget: int) -> str:
    """Visible text of a page, whitespace-collapsed and truncated."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = re.sub(r"\s+", " ", soup.get_text(" ")).strip()
    return text[:budget]


def parse_ai_response(text: str) -> list[Candidate]:
    """
    Parse the first bracket-delimited JSON array in a model answer.

    Tolerates markdown code fences and prose around the array. Items
    that are not JSON objects are dropped.

    Raises:
        ValueError: If no JSON array can be decoded
    """
    match = JSON_ARRAY.search(text or "")
    if not match:
        raise ValueError("no JSON array in response")

    data = json.loads(match.group(0))
    if not isinstance(data, list):
        raise ValueError("response is not a JSON array")

    return [Candidate.model_validate(item) for item in data if isinstance(item, dict)]


class GeminiStrategy(ExtractionStrategy):
    """Ask a generative model to list the events on a page."""

    name = "ai"
    uses_ai = True

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.5-flash",
        text_budget: int = 10000,
        timeout: float = 45.0,
        generate: Optional[Generator] = None,
        templates: Optional[TemplateEngine] = None,
    ):
        """Initialize the AI strategy.

        Args:
            api_key: Gemini API key; None disables the strategy
            model: Gemini model name
            text_budget: Max characters of page text in the prompt
            timeout: Seconds allowed for the model call
            generate: Optional prompt -> text callable replacing the Gemini client
            templates: Optional template engine for the prompt
        """
        self.api_key = api_key
        self.model = model
        self.text_budget = text_budget
        self.timeout = timeout
        self._generate = generate
        self.templates = templates or TemplateEngine()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key) or self._generate is not None

    async def _gemini(self, prompt: str) -> str:
        if not self.api_key:
            raise ConfigurationMissing("GEMINI_API_KEY")

        from google import genai

        client = genai.Client(api_key=self.api_key)
        response = await client.aio.models.generate_content(
            model=self.model, contents=prompt
        )
        return response.text or ""

    def build_prompt(self, html: str) -> str:
        return self.templates.render(
            PROMPT_TEMPLATE, {"page_text": page_text(html, self.text_budget)}
        )

    async def extract(self, html: str) -> list[Candidate]:
        generate = self._generate or self._gemini

        try:
            prompt = self.build_prompt(html)
            answer = await asyncio.wait_for(generate(prompt), timeout=self.timeout)
            candidates = parse_ai_response(answer)
        except ConfigurationMissing as e:
            logger.warning("configuration_missing", setting=e.setting, strategy=self.name)
            return []
        except asyncio.TimeoutError:
            logger.warning("ai_extraction_timeout", timeout=self.timeout)
            return []
        except Exception as e:
            logger.warning("ai_extraction_failed", error=str(e))
            return []

        logger.info("ai_extracted", count=len(candidates), model=self.model)
        return candidates
