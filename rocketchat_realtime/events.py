# =============================================================================
# Rocket.Chat Realtime Client -- Domain Events
# =============================================================================
#
# Typed events classified from DDP "changed" frames, plus SessionReady which
# the session itself publishes after a successful login.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Protocol, Union

from .constants import (
    MSG_CHANGED,
    STREAM_NOTIFY_PREFIX,
    STREAM_ROOM_MESSAGES,
)
from .protocol import get_date, get_msg, get_text


@dataclass(frozen=True, slots=True)
class User:
    """A user reference as embedded in messages (``u`` field)."""

    id: str | None
    username: str | None
    name: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> User | None:
        if not isinstance(data, dict):
            return None
        return cls(
            id=get_text(data, "_id"),
            username=get_text(data, "username"),
            name=get_text(data, "name"),
        )


@dataclass(frozen=True, slots=True)
class SessionReady:
    """Login finished; the session can be used."""

    user_id: str | None
    username: str
    user: User | None = None


@dataclass(frozen=True, slots=True)
class MessageEvent:
    """A chat message pushed on ``stream-room-messages``.

    Attributes:
        room_participant: Whether the session's user is a member of the
            room.  Absent on per-room subscriptions, which only deliver
            rooms the session asked for, so it defaults to True.
    """

    message_id: str | None
    room_id: str | None
    text: str | None
    user: User | None
    timestamp: datetime | None = None
    room_participant: bool = True
    room_type: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class NotificationEvent:
    """A ``stream-notify-*`` push (user, room or logged-in notifications)."""

    collection: str
    event_name: str | None
    args: list[Any] = field(default_factory=list)
    user: User | None = None


DomainEvent = Union[SessionReady, MessageEvent, NotificationEvent]

EventSink = Callable[[DomainEvent], Union[Awaitable[Any], Any]]


class EventClassifier(Protocol):
    def __call__(self, message: dict[str, Any]) -> DomainEvent | None: ...


def classify(message: dict[str, Any]) -> DomainEvent | None:
    """Turn a parsed frame into a domain event, or ``None`` if it is not one."""
    if get_msg(message) != MSG_CHANGED:
        return None

    collection = get_text(message, "collection")
    fields = message.get("fields")
    if collection is None or not isinstance(fields, dict):
        return None

    args = fields.get("args")
    if not isinstance(args, list):
        args = []

    if collection == STREAM_ROOM_MESSAGES:
        return _message_event(args)
    if collection.startswith(STREAM_NOTIFY_PREFIX):
        return NotificationEvent(
            collection=collection,
            event_name=get_text(fields, "eventName"),
            args=args,
        )
    return None


def _message_event(args: list[Any]) -> MessageEvent | None:
    if not args or not isinstance(args[0], dict):
        return None
    data = args[0]
    context = args[1] if len(args) > 1 and isinstance(args[1], dict) else {}

    participant = context.get("roomParticipant")
    return MessageEvent(
        message_id=get_text(data, "_id"),
        room_id=get_text(data, "rid"),
        text=get_text(data, "msg"),
        user=User.from_json(data.get("u")),
        timestamp=get_date(data, "ts"),
        room_participant=True if participant is None else bool(participant),
        room_type=get_text(context, "roomType"),
        raw=data,
    )
