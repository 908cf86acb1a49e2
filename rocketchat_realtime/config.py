# =============================================================================
# Rocket.Chat Realtime Client -- Settings
# =============================================================================

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import urlsplit, urlunsplit

from .constants import DEFAULT_MAX_WORKERS, MAX_CONNECT_RETRIES
from .errors import ConfigurationError

_SCHEMES = {"http": "ws", "https": "wss", "ws": "ws", "wss": "wss"}


@dataclass
class ClientSettings:
    """Connection and login settings for a realtime session.

    Attributes:
        url: Server base URL (``https://chat.example.com``) or a full
            websocket URL (``wss://chat.example.com/websocket``).
        username: Login name of the bot account.
        password: Password, sent as a SHA-256 digest.
        max_workers: Concurrent inbound handlers per connection.
        max_retries: Reconnects allowed before giving up.
    """

    url: str
    username: str
    password: str = field(repr=False)
    max_workers: int = DEFAULT_MAX_WORKERS
    max_retries: int = MAX_CONNECT_RETRIES

    @property
    def websocket_uri(self) -> str:
        """Realtime endpoint derived from :attr:`url`."""
        parts = urlsplit(self.url)
        scheme = _SCHEMES.get(parts.scheme.lower())
        if scheme is None or not parts.netloc:
            raise ConfigurationError(f"Unsupported server URL: {self.url!r}")

        path = parts.path.rstrip("/")
        if parts.scheme.lower() in ("http", "https"):
            path = f"{path}/websocket"
        return urlunsplit((scheme, parts.netloc, path or "/", parts.query, ""))

    @classmethod
    def from_env(
        cls,
        prefix: str = "ROCKETCHAT_",
        environ: Mapping[str, str] | None = None,
    ) -> ClientSettings:
        """Build settings from ``<prefix>URL``, ``USER``, ``PASSWORD`` and
        optional ``MAX_WORKERS`` / ``MAX_RETRIES``.
        """
        env = os.environ if environ is None else environ

        missing = [
            f"{prefix}{name}"
            for name in ("URL", "USER", "PASSWORD")
            if not env.get(f"{prefix}{name}")
        ]
        if missing:
            raise ConfigurationError(f"Missing settings: {', '.join(missing)}")

        return cls(
            url=env[f"{prefix}URL"],
            username=env[f"{prefix}USER"],
            password=env[f"{prefix}PASSWORD"],
            max_workers=_int_setting(env, f"{prefix}MAX_WORKERS", DEFAULT_MAX_WORKERS),
            max_retries=_int_setting(env, f"{prefix}MAX_RETRIES", MAX_CONNECT_RETRIES),
        )


def _int_setting(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from None
