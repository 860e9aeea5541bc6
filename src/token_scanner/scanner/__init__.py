"""Market scanner: aggregation, scheduling and the scan pipeline."""

from .aggregator import Aggregator, MAX_MARKET_CAP
from .scheduler import ScanScheduler
from .service import TokenScanner

__all__ = ["Aggregator", "MAX_MARKET_CAP", "ScanScheduler", "TokenScanner"]
