"""Scheduler protocol — recurring, cancellable callbacks."""
from typing import Awaitable, Callable, Protocol


class ScheduleHandle(Protocol):
    """Ticket returned by a scheduler; cancelling stops future runs."""

    @property
    def cancelled(self) -> bool: ...

    def cancel(self) -> None: ...

    async def wait(self) -> None: ...


class Scheduler(Protocol):
    """Abstract interface for running a coroutine on a fixed interval."""

    def schedule(
        self, interval_seconds: float, callback: Callable[[], Awaitable[None]]
    ) -> ScheduleHandle: ...
