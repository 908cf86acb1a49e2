"""Rocket.Chat realtime (DDP) client session for bots.

Usage::

    from rocketchat_realtime import ClientSettings, RealtimeSession

    async def on_event(event):
        print(event)

    session = RealtimeSession(ClientSettings.from_env(), sink=on_event)
    await session.start()
    await session.wait_ready()
    await session.subscribe_my_messages()

Optional extras::

    pip install rocketchat-realtime[fast]   # orjson codec
"""

from ._version import __version__
from .config import ClientSettings
from .connection import WebSocketTransport
from .errors import (
    AuthError,
    ConfigurationError,
    LoginError,
    MethodError,
    RealtimeConnectionError,
    RealtimeError,
    RealtimeProtocolError,
    RealtimeTimeoutError,
    RetriesExhaustedError,
)
from .events import (
    DomainEvent,
    MessageEvent,
    NotificationEvent,
    SessionReady,
    User,
    classify,
)
from .messages import Connect, Login, Method, Pong, Subscribe, Unsubscribe
from .protocol import MessageCodec
from .session import RealtimeSession
from .types import ConnectionState, SecurityContext

__all__ = [
    "__version__",
    "RealtimeSession",
    "ClientSettings",
    "WebSocketTransport",
    "MessageCodec",
    "ConnectionState",
    "SecurityContext",
    "DomainEvent",
    "SessionReady",
    "MessageEvent",
    "NotificationEvent",
    "User",
    "classify",
    "Connect",
    "Login",
    "Method",
    "Pong",
    "Subscribe",
    "Unsubscribe",
    "RealtimeError",
    "RealtimeConnectionError",
    "AuthError",
    "LoginError",
    "MethodError",
    "RealtimeProtocolError",
    "RealtimeTimeoutError",
    "RetriesExhaustedError",
    "ConfigurationError",
]
