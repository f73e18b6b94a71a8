"""Tests for settings and URL helpers."""

import pytest

from src.utils.config import Settings, to_websocket_url


class TestSettings:
    """Tests for the Settings model."""

    def test_defaults(self, monkeypatch):
        """Test the reference timing defaults."""
        for name in ("API_BASE_URL", "POLL_INTERVAL", "ACTION_REFRESH_DELAY", "API_KEY"):
            monkeypatch.delenv(f"DEPLOY_MONITOR_{name}", raising=False)

        settings = Settings(_env_file=None)

        assert settings.api_base_url == "http://localhost:8080"
        assert settings.api_key is None
        assert settings.poll_interval == 2.0
        assert settings.action_refresh_delay == 1.0
        assert settings.line_ending == "\r\n"

    def test_env_prefix(self, monkeypatch):
        """Test values are read from prefixed environment variables."""
        monkeypatch.setenv("DEPLOY_MONITOR_API_BASE_URL", "https://deploy.example.com")
        monkeypatch.setenv("DEPLOY_MONITOR_API_KEY", "token-123")
        monkeypatch.setenv("DEPLOY_MONITOR_POLL_INTERVAL", "5")

        settings = Settings(_env_file=None)

        assert settings.api_base_url == "https://deploy.example.com"
        assert settings.api_key == "token-123"
        assert settings.poll_interval == 5.0

    def test_stream_base_derived(self):
        """Test the stream base follows the API base by default."""
        settings = Settings(_env_file=None, api_base_url="https://deploy.example.com/")
        assert settings.resolve_stream_base_url() == "wss://deploy.example.com"

    def test_stream_base_override(self):
        """Test an explicit stream base is used as-is."""
        settings = Settings(_env_file=None, stream_base_url="ws://logs.internal:9000/")
        assert settings.resolve_stream_base_url() == "ws://logs.internal:9000"


class TestToWebsocketUrl:
    """Tests for to_websocket_url function."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("http://localhost:8080", "ws://localhost:8080"),
            ("https://deploy.example.com/", "wss://deploy.example.com"),
            ("ws://already.ws", "ws://already.ws"),
        ],
    )
    def test_scheme_swap(self, url, expected):
        """Test http schemes map to websocket schemes."""
        assert to_websocket_url(url) == expected
