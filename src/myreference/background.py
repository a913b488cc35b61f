"""Tracked fire-and-forget tasks (activation mail after registration).

Handlers spawn work here instead of calling asyncio.create_task
directly so shutdown can wait for in-flight sends before the process
exits. Failures are logged, never propagated: the request that spawned
the task has already been answered.
"""

import asyncio
from typing import Any, Coroutine, Optional

import structlog

logger = structlog.get_logger()


class BackgroundTaskGroup:
    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(self._run(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            logger.warning("background.cancelled", task=name)
            raise
        except Exception:
            logger.exception("background.failed", task=name)

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight tasks. Returns False if some were still running."""
        if not self._tasks:
            return True
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("background.abandoned", count=len(pending))
            for task in pending:
                task.cancel()
            return False
        return True


# Process-wide group; lifespan waits on it at shutdown.
background_tasks = BackgroundTaskGroup()
