"""Aggregation and filter engine for raw provider token lists."""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

from ..core.models import TokenRecord
from ..data.normalize import get_normalizer

logger = logging.getLogger(__name__)

# Small/micro-cap focus; not configurable
MAX_MARKET_CAP = 1_000_000


class Aggregator:
    """
    Merges raw token lists from every provider, deduplicates by address
    (first writer wins), and keeps low-cap tokens whose 24h volume is
    large relative to their size.
    """

    def __init__(self, config: Optional[Dict] = None):
        defaults = self._default_config()
        if config:
            defaults.update(config)
        self.config = defaults
        self._last_rejections: Counter = Counter()

    @staticmethod
    def _default_config() -> Dict:
        return {
            "min_liquidity": 50_000,
            "volume_mcap_ratio": 0.5,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def aggregate(
        self,
        raw_lists: Sequence[Sequence[Any]],
        providers: Optional[Sequence[Optional[str]]] = None,
    ) -> List[TokenRecord]:
        """
        Build one scan result from the adapters' raw lists.

        *providers*, when given, names the origin of each list (same order)
        and selects the provider-specific normalizer; otherwise the generic
        normalizer is used. TokenRecord instances pass through unchanged,
        so aggregating an earlier result again returns the same records.
        """
        if providers is not None and len(providers) != len(raw_lists):
            raise ValueError("providers must name every raw list")

        records: List[TokenRecord] = []
        for index, raw_list in enumerate(raw_lists):
            normalize = get_normalizer(providers[index] if providers is not None else None)
            for raw in raw_list or []:
                records.append(normalize(raw))

        unique = self.deduplicate(records)
        result = self.filter_records(unique)

        logger.info(
            f"Aggregated {len(records)} records -> {len(unique)} unique -> {len(result)} passed filters"
        )
        return result

    def deduplicate(self, records: Sequence[TokenRecord]) -> List[TokenRecord]:
        """Keep the first record per address; drop records without an address."""
        seen = set()
        unique: List[TokenRecord] = []
        for record in records:
            if not record.address or record.address in seen:
                continue
            seen.add(record.address)
            unique.append(record)
        return unique

    def filter_records(self, records: Sequence[TokenRecord]) -> List[TokenRecord]:
        """Apply the threshold filters, preserving input order."""
        self._last_rejections = Counter()
        passed: List[TokenRecord] = []
        for record in records:
            reason = self.rejection_reason(record)
            if reason is None:
                passed.append(record)
            else:
                self._last_rejections[reason] += 1
                logger.debug(f"Rejected {record.symbol} ({record.address}): {reason}")

        if self._last_rejections:
            logger.debug(f"Filter rejections: {dict(self._last_rejections)}")
        return passed

    def rejection_reason(self, record: TokenRecord) -> Optional[str]:
        """First failing condition for *record*, or None if it passes."""
        if not record.address:
            return "missing_address"
        if record.liquidity < self.config["min_liquidity"]:
            return "low_liquidity"
        if record.market_cap > MAX_MARKET_CAP:
            return "market_cap_ceiling"
        if record.volume_24h == 0:
            return "no_volume"
        # Unknown market cap always fails the ratio check
        if record.market_cap <= 0 or record.volume_mcap_ratio < self.config["volume_mcap_ratio"]:
            return "low_volume_mcap_ratio"
        return None

    def passes_filters(self, record: TokenRecord) -> bool:
        return self.rejection_reason(record) is None

    @staticmethod
    def rank(records: Sequence[TokenRecord]) -> List[TokenRecord]:
        """Copy of *records* sorted by score, then volume/mcap ratio, descending."""
        return sorted(records, key=lambda r: (r.score, r.volume_mcap_ratio), reverse=True)

    def get_last_rejections(self) -> Dict[str, int]:
        return dict(self._last_rejections)
