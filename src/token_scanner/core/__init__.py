"""Core module for the token scanner."""

from .models import TokenRecord, PaperPosition, TokenAnalysis
from .enums import ScannerState, Provider, PositionStatus, RequestOutcome
from .errors import (
    ScannerError, RequestFailed, UpstreamError, PreconditionUnmet, ScoringUnavailable
)

__all__ = [
    "TokenRecord",
    "PaperPosition",
    "TokenAnalysis",
    "ScannerState",
    "Provider",
    "PositionStatus",
    "RequestOutcome",
    "ScannerError",
    "RequestFailed",
    "UpstreamError",
    "PreconditionUnmet",
    "ScoringUnavailable",
]
