# =============================================================================
# Rocket.Chat Realtime Client -- Message Worker Pool
# =============================================================================
#
# Bounded set of asyncio tasks that run the inbound pipeline.  A fresh pool
# is created on every connect and cancelled, not drained, on disconnect.
# =============================================================================

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from ._logging import logger
from .constants import DEFAULT_MAX_WORKERS


class MessageWorkerPool:
    """Run submitted coroutine functions with at most *max_workers* in flight.

    Args:
        max_workers: Concurrency bound (default 10).
    """

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._max_workers = max_workers
        self._semaphore = asyncio.Semaphore(max_workers)
        self._tasks: set[asyncio.Task[Any]] = set()
        self._shutdown = False

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def pending(self) -> int:
        """Tasks submitted but not finished (running or waiting for a slot)."""
        return len(self._tasks)

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def submit(
        self, fn: Callable[..., Awaitable[Any]], *args: Any
    ) -> asyncio.Task[Any] | None:
        """Schedule ``fn(*args)``.  Returns ``None`` once the pool is shut down."""
        if self._shutdown:
            logger.debug("Worker pool is shut down, dropping task")
            return None
        task = asyncio.ensure_future(self._run(fn, *args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def shutdown_now(self) -> int:
        """Cancel every outstanding task without waiting.  Returns the count."""
        self._shutdown = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        self._tasks.clear()
        return len(tasks)

    async def _run(self, fn: Callable[..., Awaitable[Any]], *args: Any) -> None:
        async with self._semaphore:
            try:
                await fn(*args)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Message handler failed")
