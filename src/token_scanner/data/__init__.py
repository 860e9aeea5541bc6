"""Market data module."""

from .fetch_client import FetchClient, CacheEntry
from .providers import ProviderAdapter, DexScreenerAdapter, BirdeyeAdapter, HeliusAdapter

__all__ = [
    "FetchClient",
    "CacheEntry",
    "ProviderAdapter",
    "DexScreenerAdapter",
    "BirdeyeAdapter",
    "HeliusAdapter",
]
