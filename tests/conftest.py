"""Pytest configuration and fixtures."""

import pytest

from fakes import FakeClock, FakeSession

from token_scanner.core.models import TokenRecord
from token_scanner.data.fetch_client import FetchClient
from token_scanner.monitoring.monitor import MonitoringEngine


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def monitor():
    return MonitoringEngine()


@pytest.fixture
def fetch_client(fake_session, fake_clock, monitor):
    return FetchClient(monitor=monitor, session=fake_session, clock=fake_clock)


@pytest.fixture
def dexscreener_pair():
    """A DexScreener pair that passes every default filter."""
    return {
        "chainId": "solana",
        "baseToken": {"address": "DEX111", "name": "Dex Token", "symbol": "DEXT"},
        "priceUsd": "0.00123",
        "priceChange": {"h24": -12.5},
        "volume": {"h24": 600_000},
        "liquidity": {"usd": 100_000},
        "marketCap": 200_000,
    }


@pytest.fixture
def birdeye_token():
    """A Birdeye token-list entry that passes every default filter."""
    return {
        "address": "BIRD222",
        "symbol": "BIRD",
        "name": "Bird Token",
        "price": 0.5,
        "v24hChangePercent": 35.0,
        "v24hUSD": 900_000,
        "liquidity": 75_000,
        "mc": 800_000,
    }


@pytest.fixture
def passing_record():
    return TokenRecord(
        symbol="PASS",
        name="Passing Token",
        address="PASS333",
        price=0.01,
        price_change_24h=5.0,
        volume_24h=600_000,
        liquidity=100_000,
        market_cap=200_000,
    )
