"""Unit tests for FetchClient caching and retry."""

import asyncio

import aiohttp
import pytest

from token_scanner.core.enums import RequestOutcome
from token_scanner.core.errors import RequestFailed
from token_scanner.data.fetch_client import FetchClient

from fakes import FakeResponse, FakeSession

URL = "https://api.example.com/tokens"


class TestCache:
    @pytest.mark.asyncio
    async def test_second_call_within_ttl_uses_cache(self, fetch_client, fake_session, fake_clock):
        fake_session.add("/tokens", FakeResponse(payload={"n": 1}))

        first = await fetch_client.fetch_json(URL, cache_ttl_ms=60_000)
        fake_clock.advance(59_999)
        second = await fetch_client.fetch_json(URL, cache_ttl_ms=60_000)

        assert first == second == {"n": 1}
        assert len(fake_session.calls) == 1

    @pytest.mark.asyncio
    async def test_stale_entry_is_refetched_and_superseded(self, fetch_client, fake_session, fake_clock):
        fake_session.add("/tokens", FakeResponse(payload={"n": 1}), FakeResponse(payload={"n": 2}))

        await fetch_client.fetch_json(URL, cache_ttl_ms=1000)
        fake_clock.advance(1000)
        result = await fetch_client.fetch_json(URL, cache_ttl_ms=1000)

        assert result == {"n": 2}
        assert len(fake_session.calls) == 2
        assert fetch_client.cache_size() == 1

    @pytest.mark.asyncio
    async def test_zero_ttl_never_hits_cache(self, fetch_client, fake_session):
        fake_session.add("/tokens", FakeResponse(payload={"n": 1}))

        await fetch_client.fetch_json(URL, cache_ttl_ms=0)
        await fetch_client.fetch_json(URL, cache_ttl_ms=0)

        assert len(fake_session.calls) == 2

    @pytest.mark.asyncio
    async def test_options_are_not_part_of_cache_key(self, fetch_client, fake_session):
        fake_session.add("/tokens", FakeResponse(payload={"n": 1}))

        await fetch_client.fetch_json(URL, headers={"X-API-KEY": "a"})
        result = await fetch_client.fetch_json(URL, headers={"X-API-KEY": "b"})

        assert result == {"n": 1}
        assert len(fake_session.calls) == 1


class TestRetry:
    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self, fetch_client, fake_session):
        fake_session.add(
            "/tokens",
            FakeResponse(status=500, payload="boom"),
            FakeResponse(exc=aiohttp.ClientConnectionError("reset")),
            FakeResponse(payload={"ok": True}),
        )

        result = await fetch_client.fetch_json(URL, max_retries=2)

        assert result == {"ok": True}
        assert len(fake_session.calls) == 3

    @pytest.mark.asyncio
    async def test_success_stops_retrying(self, fetch_client, fake_session):
        fake_session.add("/tokens", FakeResponse(payload=[1, 2]))

        await fetch_client.fetch_json(URL, max_retries=5)

        assert len(fake_session.calls) == 1

    @pytest.mark.asyncio
    async def test_all_attempts_fail_raises_request_failed(self, fetch_client, fake_session, monitor):
        fake_session.add("/tokens", FakeResponse(status=503, payload="unavailable"))

        with pytest.raises(RequestFailed) as exc_info:
            await fetch_client.fetch_json(URL, max_retries=2)

        assert exc_info.value.attempts == 3
        assert len(fake_session.calls) == 3
        assert len(monitor.get_request_events(RequestOutcome.FAILED_ATTEMPT)) == 3
        assert len(monitor.get_request_events(RequestOutcome.EXHAUSTED)) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_a_failed_attempt(self, fetch_client, fake_session):
        fake_session.add(
            "/tokens",
            FakeResponse(exc=asyncio.TimeoutError()),
            FakeResponse(payload={"ok": True}),
        )

        result = await fetch_client.fetch_json(URL, max_retries=1)

        assert result == {"ok": True}
        assert len(fake_session.calls) == 2

    @pytest.mark.asyncio
    async def test_unparseable_body_is_a_failed_attempt(self, fetch_client, fake_session):
        fake_session.add("/tokens", FakeResponse(payload=ValueError("bad json")))

        with pytest.raises(RequestFailed):
            await fetch_client.fetch_json(URL, max_retries=0)

        assert len(fake_session.calls) == 1

    @pytest.mark.asyncio
    async def test_failure_leaves_no_cache_entry(self, fetch_client, fake_session):
        fake_session.add("/tokens", FakeResponse(status=500, payload="x"))

        with pytest.raises(RequestFailed):
            await fetch_client.fetch_json(URL, max_retries=0)

        assert fetch_client.cache_size() == 0

    @pytest.mark.asyncio
    async def test_api_key_redacted_in_error(self, fetch_client, fake_session):
        fake_session.add("rpc", FakeResponse(status=401, payload="denied"))

        with pytest.raises(RequestFailed) as exc_info:
            await fetch_client.fetch_json("https://rpc.example.com/?api-key=SECRET", max_retries=0)

        assert "SECRET" not in exc_info.value.url


class TestSessionLifecycle:
    @pytest.mark.asyncio
    async def test_injected_session_not_closed(self):
        session = FakeSession()
        client = FetchClient(session=session)
        await client.close()
        assert session.closed is False

    @pytest.mark.asyncio
    async def test_request_carries_timeout_and_payload(self, fetch_client, fake_session):
        fake_session.add("/tokens", FakeResponse(payload={}))

        await fetch_client.fetch_json(URL, method="POST", json={"a": 1}, cache_ttl_ms=0)

        method, _, kwargs = fake_session.calls[0]
        assert method == "POST"
        assert kwargs["json"] == {"a": 1}
        assert kwargs["timeout"].total == 10
