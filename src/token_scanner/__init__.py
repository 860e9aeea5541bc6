"""
Token Scanner

Multi-provider crypto token scanner: fetches trending and high-volume tokens
from several market-data providers, keeps low-cap tokens with abnormal volume
relative to their size, and optionally scores them with a language model.
"""

__version__ = "0.1.0"
__author__ = "Token Scanner Team"

from .core.models import TokenRecord, PaperPosition
from .core.enums import ScannerState, Provider
from .core.errors import RequestFailed, PreconditionUnmet, UpstreamError, ScoringUnavailable
from .data.fetch_client import FetchClient
from .scanner.aggregator import Aggregator
from .scanner.scheduler import ScanScheduler
from .scanner.service import TokenScanner

__all__ = [
    "TokenRecord",
    "PaperPosition",
    "ScannerState",
    "Provider",
    "RequestFailed",
    "PreconditionUnmet",
    "UpstreamError",
    "ScoringUnavailable",
    "FetchClient",
    "Aggregator",
    "ScanScheduler",
    "TokenScanner",
]
