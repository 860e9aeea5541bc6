"""Unit tests for provider normalization."""

import pytest

from token_scanner.core.models import TokenRecord, UNKNOWN_SYMBOL, UNKNOWN_NAME
from token_scanner.data.normalize import (
    get_normalizer,
    normalize_birdeye,
    normalize_dexscreener,
    normalize_generic,
    normalize_helius,
    to_number,
)


class TestToNumber:
    def test_numeric_string(self):
        assert to_number("0.00123") == pytest.approx(0.00123)

    def test_rejects_garbage(self):
        assert to_number("n/a") is None
        assert to_number(None) is None
        assert to_number({"usd": 1}) is None
        assert to_number(True) is None
        assert to_number(float("nan")) is None


class TestGeneric:
    def test_prefers_nested_liquidity(self):
        record = normalize_generic({"address": "A", "liquidity": {"usd": 60_000}, "liquidityUSD": 5})
        assert record.liquidity == 60_000

    def test_falls_back_to_flat_liquidity(self):
        record = normalize_generic({"address": "A", "liquidityUSD": 42_000})
        assert record.liquidity == 42_000

    def test_missing_fields_default_to_zero(self):
        record = normalize_generic({"address": "A"})
        assert record.liquidity == 0
        assert record.volume_24h == 0
        assert record.market_cap == 0
        assert record.price == 0
        assert record.score == 0
        assert record.symbol == UNKNOWN_SYMBOL
        assert record.name == UNKNOWN_NAME

    def test_non_numeric_coerced_to_zero(self):
        record = normalize_generic({"address": "A", "marketCap": "lots", "volume": {"h24": None}})
        assert record.market_cap == 0
        assert record.volume_24h == 0

    def test_negative_clamped_except_price_change(self):
        record = normalize_generic({
            "address": "A", "price": -1, "mc": -5, "priceChange": {"h24": -30.5},
        })
        assert record.price == 0
        assert record.market_cap == 0
        assert record.price_change_24h == -30.5

    def test_base_token_identity(self):
        record = normalize_generic({"baseToken": {"address": "X", "symbol": "XX", "name": "Ex"}})
        assert (record.address, record.symbol, record.name) == ("X", "XX", "Ex")

    def test_token_record_passes_through(self, passing_record):
        assert normalize_generic(passing_record) is passing_record

    def test_non_dict_gives_empty_address(self):
        assert normalize_generic("garbage").address == ""


class TestProviderNormalizers:
    def test_dexscreener_pair(self, dexscreener_pair):
        record = normalize_dexscreener(dexscreener_pair)
        assert record.address == "DEX111"
        assert record.symbol == "DEXT"
        assert record.price == pytest.approx(0.00123)
        assert record.price_change_24h == -12.5
        assert record.volume_24h == 600_000
        assert record.liquidity == 100_000
        assert record.market_cap == 200_000
        assert record.source == "dexscreener"

    def test_dexscreener_falls_back_to_fdv(self, dexscreener_pair):
        del dexscreener_pair["marketCap"]
        dexscreener_pair["fdv"] = 300_000
        assert normalize_dexscreener(dexscreener_pair).market_cap == 300_000

    def test_birdeye_token(self, birdeye_token):
        record = normalize_birdeye(birdeye_token)
        assert record.address == "BIRD222"
        assert record.price_change_24h == 35.0
        assert record.volume_24h == 900_000
        assert record.liquidity == 75_000
        assert record.market_cap == 800_000
        assert record.source == "birdeye"

    def test_birdeye_prefers_nested_liquidity(self, birdeye_token):
        birdeye_token["liquidity"] = {"usd": 120_000}
        birdeye_token["liquidityUSD"] = 5
        assert normalize_birdeye(birdeye_token).liquidity == 120_000

    def test_birdeye_liquidity_usd_before_flat(self, birdeye_token):
        del birdeye_token["liquidity"]
        birdeye_token["liquidityUSD"] = 64_000
        assert normalize_birdeye(birdeye_token).liquidity == 64_000

    def test_helius_account(self):
        record = normalize_helius({"address": "MINT", "balance": "12.5", "symbol": None})
        assert record.address == "MINT"
        assert record.balance == 12.5
        assert record.symbol == UNKNOWN_SYMBOL
        assert record.liquidity == 0

    def test_get_normalizer_accepts_enum_and_unknown(self):
        from token_scanner.core.enums import Provider
        assert get_normalizer(Provider.BIRDEYE) is normalize_birdeye
        assert get_normalizer("dexscreener") is normalize_dexscreener
        assert get_normalizer("other") is normalize_generic
        assert get_normalizer(None) is normalize_generic


def test_volume_mcap_ratio():
    assert TokenRecord(address="A", volume_24h=600_000, market_cap=200_000).volume_mcap_ratio == 3.0
    assert TokenRecord(address="A", volume_24h=600_000, market_cap=0).volume_mcap_ratio == 0.0
