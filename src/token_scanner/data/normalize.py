"""Per-provider normalization of raw token payloads into TokenRecord.

Every field is resolved from an ordered tuple of dotted paths; the first
path holding a usable value wins. Missing or non-numeric values fall back
to 0, and every numeric field except the 24h price change is clamped at 0.
"""

import math
from typing import Any, Callable, Dict, Optional, Sequence

from ..core.enums import Provider
from ..core.models import TokenRecord

_MISSING = object()

# Generic fallbacks, used when the originating provider is unknown
ADDRESS_PATHS = ("address", "baseToken.address", "mint")
SYMBOL_PATHS = ("symbol", "baseToken.symbol")
NAME_PATHS = ("name", "baseToken.name")
PRICE_PATHS = ("priceUsd", "price")
PRICE_CHANGE_PATHS = ("priceChange.h24", "price24hChange", "v24hChangePercent", "price_change_24h")
VOLUME_PATHS = ("volume.h24", "v24hUSD", "volume_24h")
LIQUIDITY_PATHS = ("liquidity.usd", "liquidityUSD", "liquidity")
MARKET_CAP_PATHS = ("marketCap", "mc", "market_cap")

# DexScreener pair objects
DEX_ADDRESS_PATHS = ("baseToken.address", "address")
DEX_SYMBOL_PATHS = ("baseToken.symbol", "symbol")
DEX_NAME_PATHS = ("baseToken.name", "name")
DEX_PRICE_PATHS = ("priceUsd", "price")
DEX_PRICE_CHANGE_PATHS = ("priceChange.h24",)
DEX_VOLUME_PATHS = ("volume.h24",)
DEX_LIQUIDITY_PATHS = ("liquidity.usd",)
DEX_MARKET_CAP_PATHS = ("marketCap", "fdv")

# Birdeye token list entries
BIRDEYE_PRICE_CHANGE_PATHS = ("v24hChangePercent", "price24hChange")
BIRDEYE_VOLUME_PATHS = ("v24hUSD",)
BIRDEYE_LIQUIDITY_PATHS = ("liquidity.usd", "liquidityUSD", "liquidity")
BIRDEYE_MARKET_CAP_PATHS = ("mc", "marketCap")

# Helius token accounts (already flattened by the adapter)
HELIUS_ADDRESS_PATHS = ("address", "mint")
HELIUS_BALANCE_PATHS = ("balance",)


def lookup(raw: Any, path: str) -> Any:
    """Resolve a dotted path inside nested dicts, or return a sentinel."""
    node = raw
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


def to_number(value: Any) -> Optional[float]:
    """Coerce a JSON value to a finite float, or None if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def first_number(raw: Any, paths: Sequence[str], default: float = 0.0) -> float:
    for path in paths:
        number = to_number(lookup(raw, path))
        if number is not None:
            return number
    return default


def first_text(raw: Any, paths: Sequence[str], default: str = "") -> str:
    for path in paths:
        value = lookup(raw, path)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return default


def _non_negative(value: float) -> float:
    return max(0.0, value)


def _build(
    raw: Any,
    source: str,
    address_paths: Sequence[str],
    symbol_paths: Sequence[str],
    name_paths: Sequence[str],
    price_paths: Sequence[str],
    price_change_paths: Sequence[str],
    volume_paths: Sequence[str],
    liquidity_paths: Sequence[str],
    market_cap_paths: Sequence[str],
) -> TokenRecord:
    return TokenRecord(
        symbol=first_text(raw, symbol_paths) or None,
        name=first_text(raw, name_paths) or None,
        address=first_text(raw, address_paths),
        price=_non_negative(first_number(raw, price_paths)),
        price_change_24h=first_number(raw, price_change_paths),
        volume_24h=_non_negative(first_number(raw, volume_paths)),
        liquidity=_non_negative(first_number(raw, liquidity_paths)),
        market_cap=_non_negative(first_number(raw, market_cap_paths)),
        source=source,
    )


def normalize_generic(raw: Any) -> TokenRecord:
    """Normalize a record of unknown origin using the union of all fallbacks."""
    if isinstance(raw, TokenRecord):
        return raw
    return _build(
        raw, first_text(raw, ("source",)),
        ADDRESS_PATHS, SYMBOL_PATHS, NAME_PATHS, PRICE_PATHS,
        PRICE_CHANGE_PATHS, VOLUME_PATHS, LIQUIDITY_PATHS, MARKET_CAP_PATHS,
    )


def normalize_dexscreener(raw: Any) -> TokenRecord:
    if isinstance(raw, TokenRecord):
        return raw
    return _build(
        raw, Provider.DEXSCREENER.value,
        DEX_ADDRESS_PATHS, DEX_SYMBOL_PATHS, DEX_NAME_PATHS, DEX_PRICE_PATHS,
        DEX_PRICE_CHANGE_PATHS, DEX_VOLUME_PATHS, DEX_LIQUIDITY_PATHS, DEX_MARKET_CAP_PATHS,
    )


def normalize_birdeye(raw: Any) -> TokenRecord:
    if isinstance(raw, TokenRecord):
        return raw
    return _build(
        raw, Provider.BIRDEYE.value,
        ("address",), ("symbol",), ("name",), ("price",),
        BIRDEYE_PRICE_CHANGE_PATHS, BIRDEYE_VOLUME_PATHS,
        BIRDEYE_LIQUIDITY_PATHS, BIRDEYE_MARKET_CAP_PATHS,
    )


def normalize_helius(raw: Any) -> TokenRecord:
    """Token accounts carry only a mint and a balance; market fields stay 0."""
    if isinstance(raw, TokenRecord):
        return raw
    return TokenRecord(
        address=first_text(raw, HELIUS_ADDRESS_PATHS),
        balance=_non_negative(first_number(raw, HELIUS_BALANCE_PATHS)),
        source=Provider.HELIUS.value,
    )


NORMALIZERS: Dict[str, Callable[[Any], TokenRecord]] = {
    Provider.DEXSCREENER.value: normalize_dexscreener,
    Provider.BIRDEYE.value: normalize_birdeye,
    Provider.HELIUS.value: normalize_helius,
}


def get_normalizer(provider: Optional[str]) -> Callable[[Any], TokenRecord]:
    """Normalizer for *provider*, or the generic one when unknown."""
    if provider is None:
        return normalize_generic
    return NORMALIZERS.get(getattr(provider, "value", provider), normalize_generic)
