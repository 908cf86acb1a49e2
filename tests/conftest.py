"""Shared fixtures: an in-memory transport and a session wired to it."""

import asyncio
import json

import pytest

from rocketchat_realtime.config import ClientSettings
from rocketchat_realtime.session import RealtimeSession


class FakeTransport:
    """Records outgoing frames and lets tests drive the callbacks."""

    def __init__(self, callbacks):
        self.callbacks = callbacks
        self.raw_sent: list[str] = []
        self.connects: list[str] = []
        self.disconnects = 0
        self.is_connected = False
        self.fail_connect = False

    @property
    def sent(self) -> list[dict]:
        return [json.loads(data) for data in self.raw_sent]

    async def connect(self, uri):
        self.connects.append(uri)
        if self.fail_connect:
            await self.callbacks.disconnected(None)
            return
        self.is_connected = True
        await self.callbacks.connected(f"session-{len(self.connects)}")

    async def send(self, data):
        self.raw_sent.append(data)
        return True

    async def disconnect(self):
        self.disconnects += 1
        await self.drop()

    async def drop(self):
        self.is_connected = False
        await self.callbacks.disconnected(f"session-{len(self.connects)}")


class GatedTransport(FakeTransport):
    """A transport whose opening handshake completes only once ``gate`` is set."""

    def __init__(self, callbacks):
        super().__init__(callbacks)
        self.gate = asyncio.Event()
        self.connecting = False

    async def connect(self, uri):
        if self.is_connected or self.connecting:
            return
        self.connects.append(uri)
        self.connecting = True
        try:
            await self.gate.wait()
        finally:
            self.connecting = False
        self.is_connected = True
        await self.callbacks.connected(f"session-{len(self.connects)}")

    async def disconnect(self):
        self.disconnects += 1
        if self.is_connected:
            await self.drop()


async def settle(rounds: int = 50) -> None:
    """Let scheduled callbacks and reconnect tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def drain(session: RealtimeSession) -> None:
    """Wait for every task currently queued on the session's worker pool."""
    pool = session._pool
    while pool is not None and pool.pending:
        await asyncio.gather(*list(pool._tasks), return_exceptions=True)


@pytest.fixture
def settings():
    return ClientSettings(
        url="https://chat.example.com",
        username="alice",
        password="p",
        max_workers=4,
    )


@pytest.fixture
def events():
    return []


@pytest.fixture
def fatal():
    return []


@pytest.fixture
def session(settings, events, fatal):
    return RealtimeSession(
        settings,
        sink=events.append,
        on_fatal=fatal.append,
        transport_factory=FakeTransport,
    )
