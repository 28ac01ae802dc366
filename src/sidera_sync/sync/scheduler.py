"""Cancellable scheduled task used for trailing debounce.

A ScheduledTask owns one async action and at most one pending timer.
``arm`` (re)starts the timer, ``cancel`` drops it, ``flush`` runs the action
now if a timer was pending. It relies only on the running asyncio loop, so
it can be driven directly from tests.

Example:
    >>> task = ScheduledTask(push, delay=1.0)
    >>> task.arm()   # fires in 1 s
    >>> task.arm()   # restarts the window
    >>> await task.flush()
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from sidera_sync.core.logging import get_logger

logger = get_logger(__name__)

AsyncAction = Callable[[], Awaitable[None]]


class ScheduledTask:
    """A trailing-debounce timer around one async action."""

    def __init__(self, action: AsyncAction, delay: float, *, name: str = "task") -> None:
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self._action = action
        self.delay = delay
        self.name = name
        self._handle: asyncio.TimerHandle | None = None
        self._running: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        """Whether a timer is armed and has not fired yet."""
        return self._handle is not None

    @property
    def running(self) -> bool:
        """Whether a fired action is still executing."""
        return self._running is not None and not self._running.done()

    def arm(self) -> None:
        """Start the timer, cancelling any pending one.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._on_timer)

    def cancel(self) -> bool:
        """Drop the pending timer.

        Returns:
            True if a timer was pending.
        """
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _on_timer(self) -> None:
        self._handle = None
        self._running = asyncio.ensure_future(self._run())

    async def _run(self) -> None:
        try:
            await self._action()
        except Exception:
            # The action reports its own failures; this only keeps the loop quiet.
            logger.exception("Scheduled action failed", task=self.name)

    async def flush(self) -> bool:
        """Run the action immediately if a timer was pending.

        An action already in flight is awaited first.

        Returns:
            True if a pending action was run.
        """
        await self.wait()
        if not self.cancel():
            return False
        await self._run()
        return True

    async def wait(self) -> None:
        """Wait for a fired action to finish. Does not wait for pending timers."""
        if self._running is not None:
            await asyncio.shield(self._running)


__all__ = ["AsyncAction", "ScheduledTask"]
