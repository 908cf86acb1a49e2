# =============================================================================
# Rocket.Chat Realtime Client -- Reply Matcher
# =============================================================================
#
# Correlates replies with the requests waiting for them.  Keys are request
# ids (as sent on the wire) or HANDSHAKE_KEY for the initial connect.
# =============================================================================

from __future__ import annotations

import threading
from typing import Any, Callable

from .constants import (
    FIELD_ID,
    FIELD_RESULT,
    HANDSHAKE_KEY,
    MSG_CONNECTED,
    MSG_FAILED,
    MSG_READY,
)
from .protocol import get_msg, get_text

ReplyHandler = Callable[[dict[str, Any]], Any]


class RequestIdGenerator:
    """Monotonic request id source, safe to call from any thread.

    Starts at 0; the first id issued is 1.  Ids are never reused for the
    lifetime of the generator.
    """

    def __init__(self, start: int = 0) -> None:
        self._value = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def current(self) -> int:
        return self._value


class ReplyMatcher:
    """Single-shot reply callbacks keyed by correlation key.

    ``match()`` removes the entry it returns, so a duplicate reply from the
    server finds nothing.  There is no timeout: an entry whose reply never
    arrives stays until ``clear()`` runs on disconnect.
    """

    def __init__(self) -> None:
        self._pending: dict[str, ReplyHandler] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, key: object) -> bool:
        return key in self._pending

    def register(self, key: str, callback: ReplyHandler) -> None:
        """Store *callback* under *key*.  A second registration replaces the first."""
        with self._lock:
            self._pending[key] = callback

    def match(self, message: dict[str, Any]) -> ReplyHandler | None:
        """Pop and return the callback waiting for *message*, if any."""
        with self._lock:
            for key in self._candidate_keys(message):
                callback = self._pending.pop(key, None)
                if callback is not None:
                    return callback
        return None

    def discard(self, key: str) -> bool:
        with self._lock:
            return self._pending.pop(key, None) is not None

    def clear(self) -> int:
        """Drop every pending entry.  Returns how many were dropped."""
        with self._lock:
            dropped = len(self._pending)
            self._pending.clear()
            return dropped

    @staticmethod
    def _candidate_keys(message: dict[str, Any]) -> list[str]:
        msg = get_msg(message)
        request_id = get_text(message, FIELD_ID)

        if msg in (MSG_CONNECTED, MSG_FAILED):
            return [HANDSHAKE_KEY]
        if request_id is None and FIELD_RESULT in message:
            return [HANDSHAKE_KEY]
        if request_id is not None:
            return [request_id]
        # "ready" acknowledges subscriptions by listing their ids
        if msg == MSG_READY:
            subs = message.get("subs") or []
            return [str(s) for s in subs]
        return []
