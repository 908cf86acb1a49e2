# =============================================================================
# Rocket.Chat Realtime Client -- Realtime Session
# =============================================================================
#
# Connection lifecycle, connect/login handshake, keep-alive, reply
# correlation, event filtering and the bounded reconnect policy.
# =============================================================================

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable

from ._logging import logger
from .config import ClientSettings
from .connection import Transport, TransportCallbacks, WebSocketTransport
from .constants import (
    FIELD_ERROR,
    HANDSHAKE_KEY,
    MSG_FAILED,
    MSG_PING,
    MY_MESSAGES,
    STREAM_ROOM_MESSAGES,
)
from .errors import (
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
    EventClassifier,
    EventSink,
    MessageEvent,
    SessionReady,
    classify,
)
from .messages import (
    Connect,
    IdentityAware,
    Login,
    Message,
    Method,
    Pong,
    Subscribe,
    Unsubscribe,
)
from .protocol import MessageCodec, get_msg, get_text
from .reply_matcher import ReplyHandler, ReplyMatcher, RequestIdGenerator
from .types import ConnectionState, SecurityContext
from .worker_pool import MessageWorkerPool

FatalHandler = Callable[[RealtimeError], Any]
TransportFactory = Callable[[TransportCallbacks], Transport]


class RealtimeSession:
    """A single, self-healing realtime connection for a bot account.

    The transport calls :meth:`connected`, :meth:`on_message` and
    :meth:`disconnected`.  Inbound frames are parsed on the transport's
    receive task; pings are answered right there, everything else goes to a
    worker pool that is recreated per connection.

    Args:
        settings: Endpoint and credentials.
        sink: Receives every published :data:`DomainEvent`.  May be sync or
            async; exceptions it raises are logged and swallowed.
        on_fatal: Called once when reconnect attempts are exhausted.
        classifier: Maps parsed frames to events (default :func:`classify`).
        codec: Wire codec (default :class:`MessageCodec`).
        transport_factory: Builds the transport from this session.

    Example::

        session = RealtimeSession(settings, sink=print, on_fatal=lambda e: stop.set())
        await session.start()
        await session.wait_ready()
        await session.subscribe("stream-room-messages", "__my_messages__", False)
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        sink: EventSink,
        on_fatal: FatalHandler | None = None,
        classifier: EventClassifier = classify,
        codec: MessageCodec | None = None,
        transport_factory: TransportFactory = WebSocketTransport,
    ) -> None:
        self._settings = settings
        self._sink = sink
        self._on_fatal = on_fatal
        self._classifier = classifier
        self._codec = codec or MessageCodec()
        self._transport = transport_factory(self)

        self._ids = RequestIdGenerator()
        self._reply_matcher = ReplyMatcher()
        self._pool: MessageWorkerPool | None = None

        # State
        self._connected = False
        self._state = ConnectionState.DISCONNECTED
        self._retry_count = 0
        self._stopping = False
        self._fatal_signalled = False
        self._security_context: SecurityContext | None = None
        self._startup_error: RealtimeError | None = None
        self._calls: set[asyncio.Future[dict[str, Any]]] = set()
        self._ready_event = asyncio.Event()
        self._reconnect_task: asyncio.Task[None] | None = None

    # -- Properties -----------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def is_ready(self) -> bool:
        return self._connected and self._security_context is not None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def security_context(self) -> SecurityContext | None:
        return self._security_context

    @property
    def user_id(self) -> str | None:
        ctx = self._security_context
        return ctx.user_id if ctx is not None else None

    @property
    def username(self) -> str:
        return self._settings.username

    @property
    def pending_replies(self) -> int:
        return len(self._reply_matcher)

    # -- Lifecycle ------------------------------------------------------------

    async def start(self) -> None:
        """Ask the transport to connect.  The outcome arrives via callbacks."""
        self._stopping = False
        if self._state == ConnectionState.CONNECTING or self._transport.is_connected:
            logger.debug("Start ignored, connection already in progress")
            return
        uri = self._settings.websocket_uri
        self._set_state(ConnectionState.CONNECTING)
        try:
            await self._transport.connect(uri)
        except asyncio.CancelledError:
            if self._state == ConnectionState.CONNECTING:
                self._set_state(ConnectionState.DISCONNECTED)
            raise

    async def stop(self) -> None:
        """Close the connection without reconnecting afterwards.

        A connect still in flight is abandoned: a pending reconnect is
        cancelled, and a socket that opens after this call is closed again
        from :meth:`connected`.
        """
        self._stopping = True
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            self._reconnect_task = None

        was_open = self._transport.is_connected
        await self._transport.disconnect()
        if not was_open:
            # No socket, so no disconnected callback will follow
            self._connected = False
            self._set_state(ConnectionState.CLOSED)

    async def wait_ready(self, timeout: float | None = None) -> SecurityContext:
        """Wait until login completes on the current connection.

        Raises:
            LoginError: The server rejected the credentials.
            RealtimeProtocolError: The server refused the DDP handshake.
            RealtimeTimeoutError: *timeout* expired first.
        """
        try:
            await asyncio.wait_for(self._ready_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            raise RealtimeTimeoutError(f"Session not ready after {timeout}s") from None
        if self._startup_error is not None:
            raise self._startup_error
        assert self._security_context is not None
        return self._security_context

    # -- Send -----------------------------------------------------------------

    async def send(self, request: Message, on_reply: ReplyHandler | None = None) -> bool:
        """Serialize and send *request*.  Never waits for the reply.

        Identity-bearing requests get the next request id; *on_reply*, if
        given, is registered under it.  The handshake registers under a
        fixed key because its reply carries no id.
        """
        if isinstance(request, IdentityAware):
            request.id = str(self._ids.next())
            if on_reply is not None:
                self._reply_matcher.register(request.id, on_reply)

        if isinstance(request, Connect) and on_reply is not None:
            self._reply_matcher.register(HANDSHAKE_KEY, on_reply)

        return await self._transport.send(self._codec.serialize(request))

    async def call(self, method: str, *params: Any, timeout: float | None = None) -> Any:
        """Call a server method and return its ``result``.

        Raises:
            MethodError: The reply carried an ``error``.
            RealtimeConnectionError: The request could not be sent, or the
                connection dropped before the reply arrived.
            RealtimeTimeoutError: No reply within *timeout*.
        """
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()

        def _resolve(reply: dict[str, Any]) -> None:
            if not future.done():
                future.set_result(reply)

        request = Method(method, list(params))
        self._calls.add(future)
        try:
            if not await self.send(request, _resolve):
                self._reply_matcher.discard(request.id)
                raise RealtimeConnectionError(f"Could not send '{method}', not connected")

            try:
                reply = await asyncio.wait_for(future, timeout=timeout)
            except asyncio.TimeoutError:
                self._reply_matcher.discard(request.id)
                raise RealtimeTimeoutError(f"No reply to '{method}' after {timeout}s") from None
        finally:
            self._calls.discard(future)

        error = reply.get(FIELD_ERROR)
        if error is not None:
            raise MethodError(method, error if isinstance(error, dict) else {"error": error})
        return reply.get("result")

    async def subscribe(
        self,
        name: str,
        *params: Any,
        on_ready: ReplyHandler | None = None,
    ) -> str:
        """Subscribe to *name* and return the subscription id."""
        request = Subscribe(name, list(params))
        await self.send(request, on_ready)
        assert request.id is not None
        return request.id

    async def subscribe_my_messages(self) -> str:
        """Subscribe to messages from every room the bot belongs to."""
        return await self.subscribe(STREAM_ROOM_MESSAGES, MY_MESSAGES, False)

    async def unsubscribe(self, sub_id: str) -> bool:
        return await self.send(Unsubscribe(sub_id))

    # -- Transport callbacks --------------------------------------------------

    async def connected(self, session_id: str) -> None:
        if self._stopping:
            logger.info("Connected after stop, closing (session=%s)", session_id)
            await self._transport.disconnect()
            return

        self._retry_count = 0
        self._connected = True
        self._fatal_signalled = False
        self._security_context = None
        self._startup_error = None
        self._ready_event.clear()
        self._set_state(ConnectionState.CONNECTED)

        if self._pool is not None:
            self._pool.shutdown_now()
        self._pool = MessageWorkerPool(self._settings.max_workers)

        logger.info("Connection established successfully (session=%s)", session_id)

        # The server closes the socket unless "connect" is the first message
        await self.send(Connect(), self._on_connect_reply)

    async def on_message(self, message: str) -> None:
        parsed = self._codec.parse(message)
        if parsed is None:
            return

        # Answered inline so a busy pool can never delay it past the server timeout
        if get_msg(parsed) == MSG_PING:
            await self._transport.send(self._codec.serialize(Pong(get_text(parsed, "id"))))
            return

        pool = self._pool
        if pool is None:
            logger.debug("No worker pool, dropping message")
            return
        pool.submit(self._handle_message, parsed)

    async def disconnected(self, session_id: str | None) -> None:
        logger.warning("Disconnected (session=%s)", session_id)

        self._connected = False
        self._security_context = None
        self._ready_event.clear()

        if self._pool is not None:
            abandoned = self._pool.shutdown_now()
            self._pool = None
            if abandoned:
                logger.debug("Abandoned %d in-flight handlers", abandoned)
        dropped = self._reply_matcher.clear()
        if dropped:
            logger.debug("Dropped %d pending replies", dropped)
        for future in self._calls:
            if not future.done():
                future.set_exception(RealtimeConnectionError("Connection lost before reply"))

        if self._stopping:
            self._set_state(ConnectionState.CLOSED)
            return

        logger.info("Reconnect attempt count: %d", self._retry_count)
        # Counter values 0..max_retries each allow one reconnect, so with the
        # default of 5 the seventh consecutive disconnect is fatal
        if self._retry_count <= self._settings.max_retries:
            self._retry_count += 1
            self._set_state(ConnectionState.DISCONNECTED)
            self._reconnect_task = asyncio.ensure_future(self.start())
            return

        self._set_state(ConnectionState.CLOSED)
        self._signal_fatal(RetriesExhaustedError(self._retry_count))

    # -- Internal: handshake --------------------------------------------------

    async def _on_connect_reply(self, reply: dict[str, Any]) -> None:
        if get_msg(reply) == MSG_FAILED:
            raise RealtimeProtocolError(
                f"Server refused DDP handshake (supports {reply.get('version')})"
            )
        await self.send(
            Login(self._settings.username, self._settings.password),
            self._on_login_reply,
        )

    async def _on_login_reply(self, reply: dict[str, Any]) -> None:
        error = reply.get(FIELD_ERROR)
        if error is not None:
            raise LoginError(
                get_text(error, "message") if isinstance(error, dict) else str(error),
                error if isinstance(error, dict) else None,
            )

        self._security_context = SecurityContext.from_login_response(reply)
        self._set_state(ConnectionState.READY)
        self._ready_event.set()
        logger.info("Logged in as %s (user_id=%s)", self.username, self.user_id)

        await self._publish(SessionReady(user_id=self.user_id, username=self.username))

    # -- Internal: inbound pipeline -------------------------------------------

    async def _handle_message(self, message: dict[str, Any]) -> None:
        callback = self._reply_matcher.match(message)
        if callback is not None:
            try:
                result = callback(message)
                if inspect.isawaitable(result):
                    await result
            except (LoginError, RealtimeProtocolError) as exc:
                logger.error("%s", exc)
                self._startup_error = exc
                self._ready_event.set()
                return

        event = self._classifier(message)
        if event is None:
            return
        if self._is_suppressed(event):
            return
        await self._publish(event)

    def _is_suppressed(self, event: DomainEvent) -> bool:
        user = getattr(event, "user", None)
        if user is not None:
            if user.username is not None and user.username == self.username:
                return True
            if user.id is not None and user.id == self.user_id:
                return True

        # Messages from rooms the bot is not a member of
        if isinstance(event, MessageEvent) and not event.room_participant:
            return True
        return False

    async def _publish(self, event: DomainEvent) -> None:
        try:
            result = self._sink(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Event publish failed for %s", type(event).__name__)

    def _signal_fatal(self, error: RealtimeError) -> None:
        if self._fatal_signalled:
            return
        self._fatal_signalled = True
        logger.error("%s, shutting down", error)
        if self._on_fatal is None:
            return
        try:
            result = self._on_fatal(error)
            if inspect.isawaitable(result):
                asyncio.ensure_future(result)
        except Exception:
            logger.exception("Fatal handler failed")

    # -- State management -----------------------------------------------------

    def _set_state(self, new_state: ConnectionState) -> None:
        if new_state == self._state:
            return
        old = self._state
        self._state = new_state
        logger.debug("State: %s -> %s", old.value, new_state.value)
