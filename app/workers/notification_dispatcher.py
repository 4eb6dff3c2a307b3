import asyncio
import logging
from typing import Awaitable, Set

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Runs notification coroutines as detached tasks.

    Callers dispatch after their own write has committed; a failing task is
    logged and never reaches the request. ``drain`` waits for whatever is
    still running (used on shutdown and in tests).
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, coro: Awaitable, name: str = "notification") -> asyncio.Task:
        task = asyncio.create_task(self._run(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Awaitable, name: str) -> None:
        try:
            await coro
        except Exception as e:
            logger.error(f"Notification task '{name}' failed: {e}", exc_info=True)

    async def drain(self) -> None:
        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} notification tasks")
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


notification_dispatcher = NotificationDispatcher()
