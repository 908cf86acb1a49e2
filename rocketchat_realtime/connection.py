# =============================================================================
# Rocket.Chat Realtime Client -- WebSocket Transport
# =============================================================================
#
# Opens and owns the websocket.  It has no protocol knowledge and no
# reconnect policy of its own: it reports connect / message / disconnect to
# its callbacks object and the session decides what to do.
# =============================================================================

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from uuid import uuid4

import websockets.asyncio.client
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedError,
    ConnectionClosedOK,
)

from ._logging import logger
from .constants import (
    CLOSE_TIMEOUT,
    CONNECTION_TIMEOUT,
    MAX_MESSAGE_SIZE,
    WS_CLOSE_NORMAL,
)


class TransportCallbacks(Protocol):
    """What a transport reports back to its owner."""

    async def connected(self, session_id: str) -> None: ...

    async def on_message(self, message: str) -> None: ...

    async def disconnected(self, session_id: str | None) -> None: ...


class Transport(Protocol):
    """Duplex text channel driven by the session."""

    @property
    def is_connected(self) -> bool: ...

    async def connect(self, uri: str) -> None: ...

    async def send(self, data: str) -> bool: ...

    async def disconnect(self) -> None: ...


class WebSocketTransport:
    """Websocket channel built on the ``websockets`` asyncio client.

    Frames are delivered to ``callbacks.on_message`` one at a time from the
    receive task; the next frame is not read until the callback returns.

    Args:
        callbacks: Receiver of connected / on_message / disconnected.
        extra_headers: Additional HTTP headers for the opening handshake.
        open_timeout: Seconds allowed for the opening handshake.
        max_size: Largest accepted frame in bytes.
    """

    def __init__(
        self,
        callbacks: TransportCallbacks,
        *,
        extra_headers: dict[str, str] | None = None,
        open_timeout: float = CONNECTION_TIMEOUT,
        max_size: int = MAX_MESSAGE_SIZE,
    ) -> None:
        self._callbacks = callbacks
        self._extra_headers = extra_headers or {}
        self._open_timeout = open_timeout
        self._max_size = max_size

        self._ws_cm: Any | None = None  # websocket context manager
        self._ws: websockets.asyncio.client.ClientConnection | None = None
        self._is_connecting = False
        self._session_id: str | None = None
        self._recv_task: asyncio.Task[None] | None = None

    # -- Properties -----------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    @property
    def is_connecting(self) -> bool:
        return self._is_connecting

    @property
    def session_id(self) -> str | None:
        return self._session_id

    # -- Connect / Disconnect -------------------------------------------------

    async def connect(self, uri: str) -> None:
        """Open the websocket.  Failure is reported as a disconnect."""
        if self.is_connected or self._is_connecting:
            logger.debug("Connect ignored, already connected or connecting")
            return

        self._is_connecting = True
        failed = False
        logger.info("Connecting to %s", uri)
        try:
            self._ws_cm = websockets.asyncio.client.connect(
                uri,
                additional_headers=self._extra_headers,
                max_size=self._max_size,
                open_timeout=None,  # asyncio.wait_for handles timeout
                ping_interval=None,  # the server drives keep-alive at DDP level
            )
            self._ws = await asyncio.wait_for(
                self._ws_cm.__aenter__(),
                timeout=self._open_timeout,
            )
        except asyncio.CancelledError:
            logger.debug("Connect to %s cancelled", uri)
            await self._close_cm()
            raise
        except Exception as exc:
            if isinstance(exc, asyncio.TimeoutError):
                logger.warning("Connection timed out after %.1fs", self._open_timeout)
            else:
                logger.warning("Failed to connect: %s", exc)
            await self._close_cm()
            failed = True
        finally:
            self._is_connecting = False

        if failed:
            await self._callbacks.disconnected(None)
            return

        self._session_id = uuid4().hex
        self._recv_task = asyncio.create_task(self._recv_loop(self._session_id))
        await self._callbacks.connected(self._session_id)

    async def disconnect(self) -> None:
        """Close the websocket.  The receive task then reports the disconnect."""
        ws = self._ws
        if ws is None:
            return
        try:
            await asyncio.wait_for(
                ws.close(WS_CLOSE_NORMAL, "Client disconnect"), timeout=CLOSE_TIMEOUT
            )
        except Exception as exc:
            logger.debug("Close failed: %s", exc)
            if self._recv_task is not None:
                self._recv_task.cancel()

    # -- Send -----------------------------------------------------------------

    async def send(self, data: str) -> bool:
        """Send a text frame.  Returns True on success."""
        if not self._ws:
            logger.debug("Send skipped: not connected")
            return False

        try:
            await self._ws.send(data)
            return True
        except ConnectionClosed:
            logger.debug("Send failed: connection closed")
            return False
        except Exception as exc:
            logger.debug("Send failed: %s", exc)
            return False

    # -- Internal: receive loop -----------------------------------------------

    async def _recv_loop(self, session_id: str) -> None:
        """Read frames until the socket closes, then report the disconnect."""
        assert self._ws is not None
        try:
            async for message in self._ws:
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                await self._callbacks.on_message(message)
        except ConnectionClosedOK:
            logger.debug("WebSocket closed normally")
        except ConnectionClosedError as exc:
            logger.warning("WebSocket closed: code=%s reason=%s", exc.code, exc.reason)
        except asyncio.CancelledError:
            logger.debug("Receive loop cancelled")
        except Exception as exc:
            logger.warning("Receive loop error: %s", exc)

        self._ws = None
        self._recv_task = None
        self._session_id = None
        await self._close_cm()
        await self._callbacks.disconnected(session_id)

    async def _close_cm(self) -> None:
        cm = self._ws_cm
        self._ws_cm = None
        self._ws = None
        if cm is not None:
            try:
                await cm.__aexit__(None, None, None)
            except Exception as exc:
                logger.debug("Socket cleanup failed: %s", exc)
