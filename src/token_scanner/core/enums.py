"""Core enumerations for the token scanner."""

from enum import Enum


class ScannerState(str, Enum):
    """Scan scheduler states."""
    IDLE = "idle"
    RUNNING = "running"


class Provider(str, Enum):
    """External data providers."""
    DEXSCREENER = "dexscreener"
    BIRDEYE = "birdeye"
    HELIUS = "helius"
    OPENAI = "openai"


class PositionStatus(str, Enum):
    """Paper position statuses."""
    OPEN = "open"
    CLOSED = "closed"


class RequestOutcome(str, Enum):
    """Outcome of a single outbound request attempt."""
    FAILED_ATTEMPT = "failed_attempt"
    EXHAUSTED = "exhausted"
