"""Exception types raised across the scanning pipeline."""

from typing import Any, Iterable, Optional


class ScannerError(Exception):
    """Base class for token scanner errors."""


class RequestFailed(ScannerError):
    """All attempts of one HTTP call failed."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Request failed after {attempts} attempt(s): {last_error}")


class UpstreamError(ScannerError):
    """A well-formed response carried a provider-level error payload."""

    def __init__(self, provider: str, payload: Any):
        self.provider = provider
        self.payload = payload
        super().__init__(f"{provider} returned an error: {payload}")


class PreconditionUnmet(ScannerError):
    """Scheduler start requested without the required provider connections."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(f"Required providers not connected: {', '.join(self.missing)}")


class ScoringUnavailable(ScannerError):
    """No scoring credential configured."""
