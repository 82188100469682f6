"""Fire-and-forget task runner for best-effort side effects (audit writes, analytics).

The event loop only keeps weak references to tasks, so the runner holds a
strong reference until each task finishes. Failures are logged in a
done-callback and never re-raised. Callers do not await spawned tasks;
only shutdown (lifespan) and tests call drain().
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """Spawns detached asyncio tasks with their own error boundary."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        """Number of spawned tasks that have not finished yet."""
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> None:
        """Schedule coro on the running loop; returns immediately.

        Must be called from within a running event loop.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed: %s",
                task.get_name(),
                exc,
                exc_info=exc,
            )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight tasks (including ones they spawn) up to timeout seconds.

        Tasks still running after the timeout are left alone; shutdown may
        drop them.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                logger.warning(
                    "Background drain timed out with %d task(s) pending",
                    len(self._tasks),
                )
                return
            await asyncio.wait(set(self._tasks), timeout=remaining)


_default_runner = BackgroundTaskRunner()


def get_background_runner() -> BackgroundTaskRunner:
    """Return the process-wide runner (shared by all requests)."""
    return _default_runner
