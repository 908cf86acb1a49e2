# =============================================================================
# Rocket.Chat Realtime Client -- Type Definitions
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .protocol import get_date, get_text


class ConnectionState(str, Enum):
    """Session lifecycle state.

    Typical flow: DISCONNECTED -> CONNECTING -> CONNECTED -> READY.
    CLOSED is terminal (retries exhausted or explicit stop).
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    READY = "ready"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class SecurityContext:
    """Authenticated user attributes from a successful login.

    Replaced wholesale on every login, never mutated, so any task may read
    the current snapshot without locking.

    Attributes:
        user_id: Rocket.Chat user id.
        auth_token: Resume token for the session.
        token_expires: Token expiry in UTC, ``None`` if the server sent none.
    """

    user_id: str | None
    auth_token: str | None
    token_expires: datetime | None = None

    @classmethod
    def from_login_response(cls, message: dict[str, Any]) -> SecurityContext:
        result = message.get("result") or {}
        return cls(
            user_id=get_text(result, "id"),
            auth_token=get_text(result, "token"),
            token_expires=get_date(result, "tokenExpires"),
        )
