"""Scan pipeline: adapters -> aggregation -> scoring."""

import logging
from typing import Dict, List, Optional, Sequence

from ..core.enums import Provider
from ..core.errors import RequestFailed, ScoringUnavailable
from ..core.models import TokenAnalysis, TokenRecord
from ..data.providers import BirdeyeAdapter, ProviderAdapter
from ..monitoring.monitor import MonitoringEngine
from ..scoring.llm_scorer import ANALYSIS_UNAVAILABLE, LLMScorer
from .aggregator import Aggregator

logger = logging.getLogger(__name__)


class TokenScanner:
    """Runs one scan cycle across every configured provider.

    Adapters are queried sequentially in the order given; that order also
    decides which provider's record wins when two report the same address.
    """

    def __init__(
        self,
        adapters: Sequence[ProviderAdapter],
        aggregator: Aggregator,
        scorer: Optional[LLMScorer] = None,
        monitor: Optional[MonitoringEngine] = None,
    ):
        self.adapters = list(adapters)
        self.aggregator = aggregator
        self.scorer = scorer
        self.monitor = monitor or MonitoringEngine()

    async def scan(self) -> List[TokenRecord]:
        """Fetch, aggregate and score; returns the cycle's scan result."""
        raw_lists = []
        providers = []
        for adapter in self.adapters:
            try:
                raw = await adapter.fetch_tokens()
            except Exception as e:
                logger.error(f"Adapter {adapter.name} raised during scan: {e}")
                raw = []
            logger.debug(f"{adapter.name} returned {len(raw)} raw records")
            raw_lists.append(raw)
            providers.append(adapter.name)

        records = self.aggregator.aggregate(raw_lists, providers)

        if self.scorer is not None:
            records = await self.scorer.score_all(records)

        return records

    async def check_connections(self) -> Dict[str, bool]:
        """Run every connection test and update the monitor's status map."""
        for adapter in self.adapters:
            connected = await self._test(adapter.name, adapter.test_connection)
            self.monitor.set_connection_status(adapter.name, connected)

        if self.scorer is not None:
            connected = await self._test(Provider.OPENAI.value, self.scorer.test_connection)
            self.monitor.set_connection_status(Provider.OPENAI.value, connected)

        status = self.monitor.connection_status
        logger.info(f"Connection status: {status}")
        return status

    @staticmethod
    async def _test(name: str, probe) -> bool:
        try:
            return bool(await probe())
        except RequestFailed as e:
            logger.warning(f"{name} connection test failed: {e}")
            return False

    @property
    def connection_status(self) -> Dict[str, bool]:
        return self.monitor.connection_status

    async def analyze_token(self, address: str) -> TokenAnalysis:
        """Detailed view of one token: provider overview plus LLM analysis."""
        details: Dict = {}
        for adapter in self.adapters:
            if isinstance(adapter, BirdeyeAdapter):
                details.update(await adapter.get_token_overview(address))

        if self.scorer is None:
            text = ANALYSIS_UNAVAILABLE
        else:
            try:
                text = await self.scorer.detailed_analysis(details)
            except ScoringUnavailable:
                text = ANALYSIS_UNAVAILABLE

        return TokenAnalysis(address=address, details=details, analysis=text)
