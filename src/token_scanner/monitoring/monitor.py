"""Monitoring engine for provider connectivity and failed outbound requests."""

import re
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..core.enums import RequestOutcome

logger = logging.getLogger(__name__)

_SECRET_PARAM = re.compile(r"(api[-_]?key=)[^&]+", re.IGNORECASE)


def redact_url(url: str) -> str:
    """Mask credential query parameters so URLs are safe to log."""
    return _SECRET_PARAM.sub(r"\1***", url)


@dataclass
class ProviderHealthStatus:
    """Connection health of one provider."""
    connected: bool = False
    consecutive_failures: int = 0
    last_check: Optional[datetime] = None


@dataclass
class RequestEvent:
    """Record of a failed request attempt or an exhausted retry loop."""
    url: str
    outcome: RequestOutcome
    attempt: int
    error: str
    timestamp: datetime = field(default_factory=datetime.now)


class MonitoringEngine:
    """Tracks provider connection status and failed outbound requests.

    The fetch client reports every failed attempt and every exhausted
    retry loop here; connection tests report per-provider status.
    """

    def __init__(self, event_history_size: int = 200):
        self._events: deque = deque(maxlen=event_history_size)
        self._health: Dict[str, ProviderHealthStatus] = {}
        self._exhausted_count = 0

        logger.info("Monitoring engine initialized")

    # ------------------------------------------------------------------
    # Request events
    # ------------------------------------------------------------------

    def record_request_failure(self, url: str, attempt: int, error: BaseException) -> RequestEvent:
        """Record one failed attempt."""
        event = RequestEvent(
            url=redact_url(url),
            outcome=RequestOutcome.FAILED_ATTEMPT,
            attempt=attempt,
            error=str(error) or type(error).__name__,
        )
        self._events.append(event)
        logger.warning(f"Request attempt {attempt} failed for {event.url}: {event.error}")
        return event

    def record_request_exhausted(
        self, url: str, attempts: int, error: Optional[BaseException]
    ) -> RequestEvent:
        """Record a request whose retries were all used up."""
        event = RequestEvent(
            url=redact_url(url),
            outcome=RequestOutcome.EXHAUSTED,
            attempt=attempts,
            error=str(error) if error else "",
        )
        self._events.append(event)
        self._exhausted_count += 1
        logger.error(f"Request to {event.url} failed after {attempts} attempt(s): {event.error}")
        return event

    def get_request_events(self, outcome: Optional[RequestOutcome] = None) -> List[RequestEvent]:
        events = list(self._events)
        if outcome is not None:
            events = [e for e in events if e.outcome == outcome]
        return events

    @property
    def exhausted_count(self) -> int:
        return self._exhausted_count

    # ------------------------------------------------------------------
    # Connection status
    # ------------------------------------------------------------------

    def set_connection_status(self, provider: str, connected: bool) -> ProviderHealthStatus:
        """Update the connection status of a provider after a connection test."""
        health = self._health.setdefault(provider, ProviderHealthStatus())
        health.connected = connected
        health.last_check = datetime.now()
        if connected:
            health.consecutive_failures = 0
        else:
            health.consecutive_failures += 1
            logger.warning(
                f"{provider} connection test failed ({health.consecutive_failures})"
            )
        return health

    @property
    def connection_status(self) -> Dict[str, bool]:
        """Provider name -> connected flag."""
        return {name: h.connected for name, h in self._health.items()}

    def all_connected(self, providers: Iterable[str]) -> bool:
        status = self.connection_status
        return all(status.get(p, False) for p in providers)

    def get_provider_health(self, provider: str) -> ProviderHealthStatus:
        return self._health.get(provider, ProviderHealthStatus())
