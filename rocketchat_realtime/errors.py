# =============================================================================
# Rocket.Chat Realtime Client -- Error Types
# =============================================================================

from __future__ import annotations

from typing import Any


class RealtimeError(Exception):
    """Base exception for all realtime client errors."""


class RealtimeConnectionError(RealtimeError):
    """Connection-related errors (failed to connect, lost connection)."""


class AuthError(RealtimeError):
    """Authentication errors."""


class LoginError(AuthError):
    """The server rejected the login request.

    Fatal for session startup: the login is not retried on its own, and the
    error is not a disconnect, so the reconnect policy is not involved.
    """

    def __init__(self, message: str | None, error: dict[str, Any] | None = None) -> None:
        self.error = error or {}
        super().__init__(f"Login rejected: {message or 'unknown error'}")


class MethodError(RealtimeError):
    """A method call returned an ``error`` field."""

    def __init__(self, method: str, error: dict[str, Any]) -> None:
        self.method = method
        self.error = error
        reason = error.get("reason") or error.get("message") or error.get("error")
        super().__init__(f"Method '{method}' failed: {reason}")


class RealtimeProtocolError(RealtimeError):
    """Wire protocol errors (malformed frames, unknown commands)."""


class RealtimeTimeoutError(RealtimeError):
    """Operation timed out."""


class RetriesExhaustedError(RealtimeConnectionError):
    """Reconnect attempts ran past the retry bound."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Connection lost after {attempts} reconnect attempts")


class ConfigurationError(RealtimeError):
    """Missing or invalid client settings."""
