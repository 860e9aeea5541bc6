"""Unit tests for MonitoringEngine."""

from token_scanner.core.enums import RequestOutcome
from token_scanner.monitoring.monitor import MonitoringEngine, redact_url


class TestMonitoringEngine:
    def setup_method(self):
        self.engine = MonitoringEngine(event_history_size=3)

    # --- Request events ---

    def test_failed_attempt_recorded(self):
        event = self.engine.record_request_failure("https://x/y", 1, ConnectionError("reset"))
        assert event.outcome == RequestOutcome.FAILED_ATTEMPT
        assert event.error == "reset"
        assert self.engine.get_request_events() == [event]

    def test_error_without_message_uses_type_name(self):
        event = self.engine.record_request_failure("https://x/y", 1, TimeoutError())
        assert event.error == "TimeoutError"

    def test_exhausted_counted(self):
        self.engine.record_request_failure("https://x/y", 1, ValueError("a"))
        self.engine.record_request_exhausted("https://x/y", 1, ValueError("a"))
        assert self.engine.exhausted_count == 1
        assert len(self.engine.get_request_events(RequestOutcome.EXHAUSTED)) == 1
        assert len(self.engine.get_request_events(RequestOutcome.FAILED_ATTEMPT)) == 1

    def test_event_history_bounded(self):
        for i in range(5):
            self.engine.record_request_failure(f"https://x/{i}", 1, ValueError("e"))
        urls = [e.url for e in self.engine.get_request_events()]
        assert urls == ["https://x/2", "https://x/3", "https://x/4"]

    def test_recorded_urls_are_redacted(self):
        event = self.engine.record_request_failure(
            "https://rpc.example.com/?api-key=SECRET&x=1", 1, ValueError("e")
        )
        assert "SECRET" not in event.url
        assert event.url.endswith("&x=1")

    # --- Connection status ---

    def test_connection_status(self):
        self.engine.set_connection_status("dexscreener", True)
        self.engine.set_connection_status("birdeye", False)

        assert self.engine.connection_status == {"dexscreener": True, "birdeye": False}
        assert self.engine.all_connected(["dexscreener"])
        assert not self.engine.all_connected(["dexscreener", "birdeye"])
        assert not self.engine.all_connected(["helius"])

    def test_consecutive_failures_reset_on_success(self):
        self.engine.set_connection_status("birdeye", False)
        self.engine.set_connection_status("birdeye", False)
        assert self.engine.get_provider_health("birdeye").consecutive_failures == 2

        self.engine.set_connection_status("birdeye", True)
        health = self.engine.get_provider_health("birdeye")
        assert health.connected
        assert health.consecutive_failures == 0
        assert health.last_check is not None

    def test_unknown_provider_health(self):
        health = self.engine.get_provider_health("helius")
        assert not health.connected
        assert health.last_check is None

    def test_status_is_a_copy(self):
        self.engine.set_connection_status("dexscreener", True)
        self.engine.connection_status["dexscreener"] = False
        assert self.engine.connection_status["dexscreener"] is True


def test_redact_url_variants():
    assert redact_url("https://a/?apikey=k") == "https://a/?apikey=***"
    assert redact_url("https://a/?API_KEY=k&b=2") == "https://a/?API_KEY=***&b=2"
    assert redact_url("https://a/plain") == "https://a/plain"
