"""Language-model scoring of filtered token records."""

import re
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..core.errors import RequestFailed, ScoringUnavailable
from ..core.models import TokenRecord
from ..data.fetch_client import FetchClient

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^[+-]?\d+")

ANALYSIS_UNAVAILABLE = "LLM analysis not available - configure an OpenAI API key"


def parse_score(text: Any) -> int:
    """Parse the leading integer of a completion and clamp it into [0, 100].

    Anything without a leading integer scores 0.
    """
    if not isinstance(text, str):
        return 0
    match = _LEADING_INT.match(text.strip())
    if not match:
        return 0
    return max(0, min(100, int(match.group())))


class LLMScorer:
    """Scores tokens for pump potential through a chat-completions API.

    Without an API key the scorer runs in degraded mode: every record
    scores 0 and no request is made. Request or parsing failures also
    score 0; they are logged and never raised.
    """

    def __init__(self, fetch_client: FetchClient, config: Optional[Dict[str, Any]] = None):
        """Initialize LLM scorer."""
        self.config = config or {}
        self.fetch_client = fetch_client
        self.enabled = self.config.get('enabled', True)
        self.api_key = self.config.get('api_key') or ''
        self.model = self.config.get('model', 'gpt-3.5-turbo')
        self.base_url = self.config.get('base_url', 'https://api.openai.com/v1').rstrip('/')
        self.max_retries = self.config.get('max_retries', 1)
        self.cache_ttl_ms = self.config.get('cache_ttl_ms', 0)
        logger.info(f"LLM scorer initialized (available: {self.available})")

    @property
    def available(self) -> bool:
        return bool(self.enabled and self.api_key)

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def score(self, record: TokenRecord) -> int:
        """Score one record in [0, 100]; 0 when unavailable or on failure."""
        if not self.available:
            return 0

        try:
            content = await self._complete(
                self._build_prompt(record), max_tokens=10, temperature=0.1
            )
        except (RequestFailed, KeyError, IndexError, TypeError) as e:
            logger.warning(f"LLM scoring failed for {record.symbol}: {e}")
            return 0

        score = parse_score(content)
        logger.debug(f"LLM score for {record.symbol}: {score} (raw: {content!r})")
        return score

    async def score_all(self, records: Sequence[TokenRecord]) -> List[TokenRecord]:
        """Score records one after another, assigning ``record.score``."""
        if not self.available:
            logger.debug("Scoring unavailable, leaving records unscored")
            return list(records)

        for record in records:
            record.score = await self.score(record)
        return list(records)

    async def detailed_analysis(self, token_details: Dict[str, Any]) -> str:
        """Free-text analysis of one token; raises ScoringUnavailable without a key."""
        if not self.available:
            raise ScoringUnavailable("No OpenAI API key configured")

        try:
            return await self._complete(
                self._build_analysis_prompt(token_details), max_tokens=500, temperature=0.3
            )
        except (RequestFailed, KeyError, IndexError, TypeError) as e:
            logger.warning(f"LLM detailed analysis failed: {e}")
            return f"LLM Analysis Error: {e}"

    async def test_connection(self) -> bool:
        if not self.available:
            return False
        try:
            await self.fetch_client.fetch_json(
                f"{self.base_url}/models",
                headers=self._headers,
                max_retries=self.max_retries,
                cache_ttl_ms=0,
            )
            return True
        except RequestFailed as e:
            logger.warning(f"OpenAI connection test failed: {e}")
            return False

    async def _complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        """Single chat completion; returns the message content."""
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        data = await self.fetch_client.fetch_json(
            f"{self.base_url}/chat/completions",
            method="POST",
            headers=self._headers,
            json=payload,
            max_retries=self.max_retries,
            cache_ttl_ms=self.cache_ttl_ms,
        )
        content = data["choices"][0]["message"]["content"]
        if not isinstance(content, str):
            raise TypeError(f"completion content is {type(content).__name__}, expected str")
        return content

    def _build_prompt(self, record: TokenRecord) -> str:
        return (
            f"Analyze this cryptocurrency token for pump potential on a scale of 1-100:\n"
            f"Symbol: {record.symbol}\n"
            f"Price: ${record.price}\n"
            f"24h Change: {record.price_change_24h}%\n"
            f"Volume: ${record.volume_24h}\n"
            f"Liquidity: ${record.liquidity}\n"
            f"Market Cap: ${record.market_cap}\n\n"
            f"Consider factors like volume/mcap ratio, price momentum, and liquidity. "
            f"Respond with only a number 1-100."
        )

    def _build_analysis_prompt(self, details: Dict[str, Any]) -> str:
        def field(key: str, *fallbacks: str) -> Any:
            for k in (key,) + fallbacks:
                if details.get(k) not in (None, ""):
                    return details[k]
            return "Unknown"

        return (
            f"Provide a detailed analysis of this cryptocurrency token:\n\n"
            f"Name: {field('name')}\n"
            f"Symbol: {field('symbol')}\n"
            f"Price: ${field('price')}\n"
            f"Market Cap: ${field('marketCap', 'mc')}\n"
            f"Volume 24h: ${field('volume24h', 'v24hUSD')}\n"
            f"Liquidity: ${field('liquidity')}\n\n"
            f"Please analyze:\n"
            f"1. Pump potential (1-100 score)\n"
            f"2. Risk factors\n"
            f"3. Technical indicators\n"
            f"4. Recommended action (Buy/Hold/Avoid)\n"
            f"5. Target price levels\n\n"
            f"Keep the response concise but informative."
        )
