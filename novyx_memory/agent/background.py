"""Track detached (fire-and-forget) memory writes."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from novyx_memory.logging import get_logger

logger = get_logger(__name__)


class BackgroundTasks:
    """Holds strong references to detached tasks and discards their failures.

    A failed task is logged and forgotten; nothing is re-raised into the turn
    that spawned it.
    """

    def __init__(self) -> None:
        self.tasks: set[asyncio.Task[Any]] = set()
        self.errored = 0

    def spawn(self, label: str, work: Callable[[], Awaitable[Any]], **log_fields: Any) -> asyncio.Task[Any]:
        async def _runner() -> Any:
            try:
                return await work()
            except asyncio.CancelledError:
                raise
            except Exception:
                self.errored += 1
                logger.exception("Background memory task errored", task=label, **log_fields)
                return None

        task = asyncio.create_task(_runner(), name=f"novyx-memory:{label}")
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self.tasks)

    async def drain(self) -> None:
        """Wait for every task spawned so far, including ones spawned while waiting."""
        while self.tasks:
            await asyncio.gather(*list(self.tasks), return_exceptions=True)

    async def cancel_all(self) -> int:
        running = [t for t in self.tasks if not t.done()]
        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)
        return len(running)
