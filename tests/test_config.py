"""Tests for ClientSettings."""

import pytest

from rocketchat_realtime.config import ClientSettings
from rocketchat_realtime.errors import ConfigurationError


def _settings(url):
    return ClientSettings(url=url, username="bot", password="pw")


class TestWebsocketUri:
    def test_https_base_url(self):
        assert _settings("https://chat.example.com").websocket_uri == "wss://chat.example.com/websocket"

    def test_http_with_path(self):
        assert _settings("http://host:3000/chat/").websocket_uri == "ws://host:3000/chat/websocket"

    def test_websocket_url_passthrough(self):
        uri = "wss://chat.example.com/websocket"
        assert _settings(uri).websocket_uri == uri

    def test_unsupported_scheme(self):
        with pytest.raises(ConfigurationError):
            _settings("ftp://chat.example.com").websocket_uri

    def test_password_not_in_repr(self):
        assert "pw" not in repr(_settings("https://x"))


class TestFromEnv:
    def test_reads_values(self):
        env = {
            "ROCKETCHAT_URL": "https://chat.example.com",
            "ROCKETCHAT_USER": "bot",
            "ROCKETCHAT_PASSWORD": "secret",
            "ROCKETCHAT_MAX_WORKERS": "3",
        }
        settings = ClientSettings.from_env(environ=env)
        assert settings.username == "bot"
        assert settings.password == "secret"
        assert settings.max_workers == 3
        assert settings.max_retries == 5

    def test_custom_prefix(self):
        env = {"BOT_URL": "ws://h/websocket", "BOT_USER": "b", "BOT_PASSWORD": "p"}
        assert ClientSettings.from_env("BOT_", environ=env).url == "ws://h/websocket"

    def test_missing_values(self):
        with pytest.raises(ConfigurationError, match="ROCKETCHAT_PASSWORD"):
            ClientSettings.from_env(environ={"ROCKETCHAT_URL": "https://x", "ROCKETCHAT_USER": "b"})

    def test_bad_integer(self):
        env = {
            "ROCKETCHAT_URL": "https://x",
            "ROCKETCHAT_USER": "b",
            "ROCKETCHAT_PASSWORD": "p",
            "ROCKETCHAT_MAX_RETRIES": "many",
        }
        with pytest.raises(ConfigurationError):
            ClientSettings.from_env(environ=env)
