# =============================================================================
# Rocket.Chat Realtime Client -- Wire Protocol Codec
# =============================================================================
#
# DDP frames are single JSON objects in websocket text frames:
#
# Incoming (server -> client):
#   {"msg": "connected" | "ping" | "result" | "ready" | "changed" | ..., ...}
#
# Outgoing (client -> server):
#   Command dataclasses from ``messages.py``, ``None`` fields omitted.
# =============================================================================

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from ._logging import logger
from .constants import FIELD_MSG, MAX_MESSAGE_SIZE

if TYPE_CHECKING:
    from .messages import Message

try:
    import orjson

    def _json_loads(data: str | bytes) -> Any:
        return orjson.loads(data)

    def _json_dumps(obj: Any) -> str:
        return orjson.dumps(obj).decode()

except ImportError:

    def _json_loads(data: str | bytes) -> Any:
        return json.loads(data)

    def _json_dumps(obj: Any) -> str:
        return json.dumps(obj, separators=(",", ":"))


class MessageCodec:
    """Encode outgoing commands and decode incoming DDP frames.

    Args:
        max_message_size: Frames longer than this are dropped on decode.
    """

    def __init__(self, max_message_size: int = MAX_MESSAGE_SIZE) -> None:
        self._max_message_size = max_message_size

    def serialize(self, command: Message) -> str:
        """Encode a command as compact JSON, omitting ``None`` fields."""
        data = {k: v for k, v in command.to_dict().items() if v is not None}
        return _json_dumps(data)

    def parse(self, data: str | bytes) -> dict[str, Any] | None:
        """Decode a frame.  Returns ``None`` for anything that is not a JSON object."""
        if len(data) > self._max_message_size:
            logger.warning("Message exceeds max size (%d bytes), dropping", len(data))
            return None

        try:
            parsed = _json_loads(data)
        except (json.JSONDecodeError, ValueError) as e:
            logger.debug("Failed to parse JSON: %s", e)
            return None

        if not isinstance(parsed, dict):
            logger.debug("Ignoring non-object frame: %r", parsed)
            return None
        return parsed


# -- Field helpers --------------------------------------------------------------


def get_text(data: dict[str, Any] | None, attr: str) -> str | None:
    """Return ``data[attr]`` as text, or ``None`` when missing or null."""
    if not isinstance(data, dict):
        return None
    value = data.get(attr)
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def get_date(data: dict[str, Any] | None, attr: str) -> datetime | None:
    """Return a UTC datetime from epoch millis or an EJSON ``{"$date": ms}``."""
    if not isinstance(data, dict):
        return None
    value = data.get(attr)
    if isinstance(value, dict):
        value = value.get("$date")
    if value is None or isinstance(value, bool):
        return None
    try:
        millis = int(value)
    except (TypeError, ValueError):
        return None
    return datetime.fromtimestamp(millis / 1000, tz=UTC)


def get_msg(data: dict[str, Any] | None) -> str | None:
    """Return the DDP message type (the ``msg`` field)."""
    return get_text(data, FIELD_MSG)
