# =============================================================================
# Rocket.Chat Realtime Client -- Outgoing Commands
# =============================================================================
#
# DDP client -> server messages.  Commands deriving from ``IdentityAware``
# get a request id assigned by the session right before serialization.
# =============================================================================

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any

from .constants import (
    DDP_SUPPORTED_VERSIONS,
    DDP_VERSION,
    METHOD_LOGIN,
    MSG_CONNECT,
    MSG_METHOD,
    MSG_PONG,
    MSG_SUB,
    MSG_UNSUB,
    PASSWORD_ALGORITHM,
)


@dataclass
class Message:
    """Base class for every outgoing command."""

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass
class IdentityAware(Message):
    """A command whose reply is correlated by request id."""

    id: str | None = field(default=None, kw_only=True)


@dataclass
class Connect(Message):
    """Initial handshake; the server closes the socket if it is not sent first."""

    version: str = DDP_VERSION
    support: tuple[str, ...] = DDP_SUPPORTED_VERSIONS

    def to_dict(self) -> dict[str, Any]:
        return {
            "msg": MSG_CONNECT,
            "version": self.version,
            "support": list(self.support),
        }


@dataclass
class Pong(Message):
    """Keep-alive reply.  ``ping_id`` echoes the id of the ping, if any."""

    ping_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"msg": MSG_PONG, "id": self.ping_id}


@dataclass
class Method(IdentityAware):
    """Remote method call."""

    method: str
    params: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "msg": MSG_METHOD,
            "method": self.method,
            "id": self.id,
            "params": list(self.params),
        }


@dataclass
class Login(IdentityAware):
    """Username/password login.  Only the SHA-256 digest goes on the wire."""

    username: str
    password: str = field(repr=False)

    def to_dict(self) -> dict[str, Any]:
        digest = hashlib.sha256(self.password.encode("utf-8")).hexdigest()
        return {
            "msg": MSG_METHOD,
            "method": METHOD_LOGIN,
            "id": self.id,
            "params": [
                {
                    "user": {"username": self.username},
                    "password": {"digest": digest, "algorithm": PASSWORD_ALGORITHM},
                }
            ],
        }


@dataclass
class Subscribe(IdentityAware):
    """Subscribe to a publication or stream."""

    name: str
    params: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "msg": MSG_SUB,
            "id": self.id,
            "name": self.name,
            "params": list(self.params),
        }


@dataclass
class Unsubscribe(Message):
    """Stop a subscription.  Reuses the subscription's own id."""

    sub_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"msg": MSG_UNSUB, "id": self.sub_id}
