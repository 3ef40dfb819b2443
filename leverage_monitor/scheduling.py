"""Asyncio-backed recurring scheduler with cancellable handles."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

# Back-off after a callback blows up, so a persistent bug cannot spin.
ERROR_RETRY_SECONDS = 60


class AsyncioScheduleHandle:
    """Handle for a recurring task.

    Cancelling while the task sleeps stops it at once; cancelling while a
    callback is running lets the callback finish and prevents the next run.
    """

    def __init__(self) -> None:
        self._task: asyncio.Task[None] | None = None
        self._cancelled = False
        self._running_callback = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None and not self._running_callback:
            self._task.cancel()

    async def wait(self) -> None:
        """Block until the recurring task has finished."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class AsyncioScheduler:
    """Run a coroutine every ``interval_seconds`` after the previous run completes."""

    def __init__(self, error_retry_seconds: float = ERROR_RETRY_SECONDS) -> None:
        self._error_retry_seconds = error_retry_seconds

    def schedule(
        self, interval_seconds: float, callback: Callable[[], Awaitable[None]]
    ) -> AsyncioScheduleHandle:
        handle = AsyncioScheduleHandle()
        handle._task = asyncio.get_running_loop().create_task(
            self._run(handle, interval_seconds, callback)
        )
        return handle

    async def _run(
        self,
        handle: AsyncioScheduleHandle,
        interval_seconds: float,
        callback: Callable[[], Awaitable[None]],
    ) -> None:
        delay = interval_seconds
        while not handle.cancelled:
            await asyncio.sleep(delay)
            if handle.cancelled:
                break

            handle._running_callback = True
            try:
                await callback()
                delay = interval_seconds
            except Exception as e:
                logger.error("Error in monitoring loop: %s", e)
                delay = min(interval_seconds, self._error_retry_seconds)
            finally:
                handle._running_callback = False

        logger.debug("Recurring task stopped")
