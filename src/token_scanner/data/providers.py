"""Provider adapters: one per external market-data source."""

import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..core.enums import Provider
from ..core.errors import RequestFailed, UpstreamError
from ..core.models import TokenRecord
from .fetch_client import FetchClient, DEFAULT_CACHE_TTL_MS, DEFAULT_MAX_RETRIES
from .normalize import normalize_birdeye, normalize_dexscreener, normalize_helius

logger = logging.getLogger(__name__)

BIRDEYE_PAGE_SIZE = 50
SPL_TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
DEFAULT_OWNER_ADDRESS = "So11111111111111111111111111111111111111112"


class ProviderAdapter(ABC):
    """Produces zero or more raw token records from one provider.

    Adapters never raise out of :meth:`fetch_tokens`: request failures,
    provider error payloads and missing credentials all yield ``[]``.
    """

    name: str = ""
    requires_credential: bool = False

    def __init__(self, fetch_client: FetchClient, config: Optional[Dict] = None):
        defaults = self._default_config()
        if config:
            defaults.update({k: v for k, v in config.items() if v is not None})
        self.config = defaults
        self.fetch_client = fetch_client
        self.base_url = self.config["base_url"].rstrip("/")
        self.api_key = self.config.get("api_key") or ""

    @staticmethod
    def _default_config() -> Dict:
        return {
            "base_url": "",
            "api_key": "",
            "max_retries": DEFAULT_MAX_RETRIES,
            "cache_ttl_ms": DEFAULT_CACHE_TTL_MS,
        }

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    async def fetch_tokens(self) -> List[Dict]:
        """Fetch raw token records."""
        pass

    @abstractmethod
    def normalize(self, raw: Any) -> TokenRecord:
        """Normalize one raw record from this provider."""
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """Probe the provider; True when it answers successfully."""
        pass

    async def _get(self, url: str, headers: Optional[Dict[str, str]] = None,
                   cache_ttl_ms: Optional[float] = None) -> Any:
        return await self.fetch_client.fetch_json(
            url,
            headers=headers,
            max_retries=self.config["max_retries"],
            cache_ttl_ms=self.config["cache_ttl_ms"] if cache_ttl_ms is None else cache_ttl_ms,
        )


class DexScreenerAdapter(ProviderAdapter):
    """Unauthenticated screener: trending pairs and free-text search."""

    name = Provider.DEXSCREENER.value

    @staticmethod
    def _default_config() -> Dict:
        config = ProviderAdapter._default_config()
        config["base_url"] = "https://api.dexscreener.com/latest"
        return config

    async def fetch_tokens(self) -> List[Dict]:
        url = f"{self.base_url}/dex/tokens/trending"
        try:
            data = await self._get(url)
        except RequestFailed as e:
            logger.warning(f"DexScreener scan failed: {e}")
            return []
        return self._extract_pairs(data)

    @staticmethod
    def _extract_pairs(data: Any) -> List[Dict]:
        # Without a schema marker the payload is not a pairs response
        if not isinstance(data, dict) or not data.get("schemaVersion"):
            logger.debug("DexScreener response without schemaVersion, treating as empty")
            return []
        pairs = data.get("pairs") or []
        if not isinstance(pairs, list):
            return []
        return [p for p in pairs if isinstance(p, dict)]

    async def search(self, query: str) -> List[TokenRecord]:
        """Search pairs by free text and return them normalized."""
        url = f"{self.base_url}/dex/search?q={quote(query)}"
        try:
            data = await self._get(url)
        except RequestFailed as e:
            logger.warning(f"DexScreener search for '{query}' failed: {e}")
            return []
        return [self.normalize(p) for p in self._extract_pairs(data)]

    def normalize(self, raw: Any) -> TokenRecord:
        return normalize_dexscreener(raw)

    async def test_connection(self) -> bool:
        try:
            await self._get(f"{self.base_url}/dex/search?q=SOL", cache_ttl_ms=0)
            return True
        except RequestFailed as e:
            logger.warning(f"DexScreener connection test failed: {e}")
            return False


class BirdeyeAdapter(ProviderAdapter):
    """Liquidity aggregator token list, sorted by 24h volume."""

    name = Provider.BIRDEYE.value
    requires_credential = True

    @staticmethod
    def _default_config() -> Dict:
        config = ProviderAdapter._default_config()
        config["base_url"] = "https://public-api.birdeye.so/defi"
        return config

    @property
    def _headers(self) -> Dict[str, str]:
        return {"X-API-KEY": self.api_key, "Accept": "application/json"}

    @property
    def token_list_url(self) -> str:
        return (
            f"{self.base_url}/tokenlist?sort_by=v24hUSD&sort_type=desc"
            f"&offset=0&limit={BIRDEYE_PAGE_SIZE}"
        )

    def _unwrap(self, data: Any) -> Any:
        if isinstance(data, dict) and data.get("success") is False:
            raise UpstreamError(self.name, data.get("message") or data)
        return data.get("data") if isinstance(data, dict) else None

    async def fetch_tokens(self) -> List[Dict]:
        if not self.has_credential:
            logger.debug("Birdeye API key not configured, skipping")
            return []
        try:
            payload = self._unwrap(await self._get(self.token_list_url, headers=self._headers))
        except (RequestFailed, UpstreamError) as e:
            logger.warning(f"Birdeye scan failed: {e}")
            return []

        tokens = payload.get("tokens") if isinstance(payload, dict) else None
        if not isinstance(tokens, list):
            return []
        return [t for t in tokens if isinstance(t, dict)]

    async def get_token_overview(self, address: str) -> Dict[str, Any]:
        """Detailed overview for one token, or ``{}`` when unavailable."""
        if not self.has_credential:
            return {}
        url = f"{self.base_url}/token_overview?address={quote(address)}"
        try:
            payload = self._unwrap(await self._get(url, headers=self._headers))
        except (RequestFailed, UpstreamError) as e:
            logger.warning(f"Birdeye token overview for {address} failed: {e}")
            return {}
        return payload if isinstance(payload, dict) else {}

    def normalize(self, raw: Any) -> TokenRecord:
        return normalize_birdeye(raw)

    async def test_connection(self) -> bool:
        if not self.has_credential:
            return False
        try:
            self._unwrap(await self._get(self.token_list_url, headers=self._headers, cache_ttl_ms=0))
            return True
        except (RequestFailed, UpstreamError) as e:
            logger.warning(f"Birdeye connection test failed: {e}")
            return False


class HeliusAdapter(ProviderAdapter):
    """Chain RPC: token accounts held by a fixed owner address.

    All RPC methods share one URL, so RPC responses are never served from cache.
    """

    name = Provider.HELIUS.value
    requires_credential = True

    def __init__(self, fetch_client: FetchClient, config: Optional[Dict] = None):
        super().__init__(fetch_client, config)
        self.owner_address = self.config["owner_address"]
        self._request_ids = itertools.count(1)

    @staticmethod
    def _default_config() -> Dict:
        config = ProviderAdapter._default_config()
        config["base_url"] = "https://mainnet.helius-rpc.com"
        config["owner_address"] = DEFAULT_OWNER_ADDRESS
        return config

    @property
    def rpc_url(self) -> str:
        return f"{self.base_url}/?api-key={self.api_key}"

    async def _rpc(self, method: str, params: Optional[List] = None) -> Any:
        """Issue one JSON-RPC call; raise UpstreamError on an error payload."""
        envelope = {"jsonrpc": "2.0", "id": next(self._request_ids), "method": method}
        if params is not None:
            envelope["params"] = params

        data = await self.fetch_client.fetch_json(
            self.rpc_url,
            method="POST",
            headers={"Content-Type": "application/json"},
            json=envelope,
            max_retries=self.config["max_retries"],
            cache_ttl_ms=0,
        )
        if not isinstance(data, dict):
            raise UpstreamError(self.name, f"malformed RPC response for {method}")
        if data.get("error"):
            raise UpstreamError(self.name, data["error"])
        return data.get("result")

    async def fetch_tokens(self) -> List[Dict]:
        if not self.has_credential:
            logger.debug("Helius API key not configured, skipping")
            return []
        try:
            result = await self._rpc(
                "getTokenAccountsByOwner",
                [
                    self.owner_address,
                    {"programId": SPL_TOKEN_PROGRAM_ID},
                    {"encoding": "jsonParsed"},
                ],
            )
        except (RequestFailed, UpstreamError) as e:
            logger.warning(f"Helius token account scan failed: {e}")
            return []

        accounts = result.get("value") if isinstance(result, dict) else None
        records: List[Dict] = []
        for account in accounts or []:
            info = self._parsed_info(account)
            if info is None:
                continue
            token_amount = info.get("tokenAmount")
            records.append({
                "address": info.get("mint") or "",
                "balance": token_amount.get("uiAmountString") if isinstance(token_amount, dict) else None,
                "symbol": None,
            })
        logger.debug(f"Helius returned {len(records)} token accounts")
        return records

    @staticmethod
    def _parsed_info(account: Any) -> Optional[Dict]:
        node = account
        for key in ("account", "data", "parsed", "info"):
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node if isinstance(node, dict) else None

    async def get_slot(self) -> Optional[int]:
        """Current slot, or None when the RPC is unreachable."""
        if not self.has_credential:
            return None
        try:
            slot = await self._rpc("getSlot")
        except (RequestFailed, UpstreamError) as e:
            logger.warning(f"Helius getSlot failed: {e}")
            return None
        return slot if isinstance(slot, int) else None

    def normalize(self, raw: Any) -> TokenRecord:
        return normalize_helius(raw)

    async def test_connection(self) -> bool:
        if not self.has_credential:
            return False
        try:
            return await self._rpc("getHealth") == "ok"
        except (RequestFailed, UpstreamError) as e:
            logger.warning(f"Helius connection test failed: {e}")
            return False
