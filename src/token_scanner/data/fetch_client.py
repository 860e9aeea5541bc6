"""HTTP fetch client with per-request timeout, retry and response caching."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import aiohttp

from ..core.errors import RequestFailed, ScannerError
from ..monitoring.monitor import MonitoringEngine, redact_url

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_MAX_RETRIES = 2
DEFAULT_CACHE_TTL_MS = 60_000


class UnexpectedStatus(ScannerError):
    """Non-success HTTP status on a single attempt."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        super().__init__(f"HTTP {status}: {body[:200]}")


@dataclass
class CacheEntry:
    """Cached parsed response keyed by request URL."""
    key: str
    value: Any
    stored_at: float  # milliseconds, monotonic clock


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class FetchClient:
    """Issues JSON requests with a fixed timeout, immediate retries and a URL-keyed cache.

    The cache key is the URL alone; request options are not part of it, so
    callers must vary the URL (or pass ``cache_ttl_ms=0``) when semantics differ.
    Entries are never deleted, only superseded or treated as stale on lookup.
    """

    def __init__(
        self,
        monitor: Optional[MonitoringEngine] = None,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        self.monitor = monitor
        self.timeout = timeout
        self._clock = clock
        self._session = session
        self._owns_session = session is None
        self._cache: Dict[str, CacheEntry] = {}
        logger.info(f"Fetch client initialized (timeout={timeout}s)")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def _cache_lookup(self, url: str, cache_ttl_ms: float) -> Optional[CacheEntry]:
        entry = self._cache.get(url)
        if entry is None:
            return None
        if self._clock() - entry.stored_at < cache_ttl_ms:
            return entry
        return None

    def _cache_store(self, url: str, value: Any):
        self._cache[url] = CacheEntry(key=url, value=value, stored_at=self._clock())

    def cache_size(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def fetch_json(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        json: Optional[Any] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        cache_ttl_ms: float = DEFAULT_CACHE_TTL_MS,
    ) -> Any:
        """Fetch and parse a JSON response.

        Returns a cached value when one younger than *cache_ttl_ms* exists.
        Otherwise makes up to ``max_retries + 1`` attempts with no delay
        between them and raises :class:`RequestFailed` when all fail.
        """
        cached = self._cache_lookup(url, cache_ttl_ms)
        if cached is not None:
            logger.debug(f"Cache hit for {redact_url(url)}")
            return cached.value

        session = await self._get_session()
        attempts = max_retries + 1
        last_error: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            try:
                data = await self._attempt(session, method, url, headers, json)
            except (aiohttp.ClientError, asyncio.TimeoutError, UnexpectedStatus, ValueError) as e:
                last_error = e
                if self.monitor:
                    self.monitor.record_request_failure(url, attempt, e)
                else:
                    logger.warning(f"Request attempt {attempt} failed for {redact_url(url)}: {e}")
                continue

            self._cache_store(url, data)
            return data

        if self.monitor:
            self.monitor.record_request_exhausted(url, attempts, last_error)
        else:
            logger.error(f"Request to {redact_url(url)} failed after {attempts} attempt(s): {last_error}")
        raise RequestFailed(redact_url(url), attempts, last_error)

    async def _attempt(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]],
        payload: Optional[Any],
    ) -> Any:
        """Single request attempt bounded by the fixed timeout."""
        kwargs: Dict[str, Any] = {
            "headers": headers,
            "timeout": aiohttp.ClientTimeout(total=self.timeout),
        }
        if payload is not None:
            kwargs["json"] = payload

        async with session.request(method, url, **kwargs) as response:
            if not 200 <= response.status < 300:
                body = await response.text()
                raise UnexpectedStatus(response.status, body)
            return await response.json(content_type=None)
