"""Quiescence-window debouncing on the running asyncio loop."""

import asyncio
from collections.abc import Callable
from typing import Any


class Debouncer:
    """Deliver the last submitted value after *wait* seconds of quiet.

    Each :meth:`submit` cancels the pending delivery and arms a new one,
    so a burst of submissions closer together than *wait* results in a
    single callback with the final value.  :meth:`cancel` drops the
    pending delivery; owners call it on teardown so nothing fires after
    disposal.

    Must be used from a coroutine running on an asyncio event loop.
    """

    def __init__(self, callback: Callable[[Any], None], wait: float) -> None:
        if wait < 0:
            raise ValueError(f"wait must be >= 0, got {wait}")
        self._callback = callback
        self.wait = wait
        self._pending: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        """Whether a delivery is armed and has not fired yet."""
        return self._pending is not None and not self._pending.done()

    def submit(self, value: Any) -> asyncio.Task[None]:
        """Arm a delivery of *value*, replacing any pending one.

        Returns:
            The task that sleeps out the window and then runs the
            callback.  It ends cancelled if a later :meth:`submit` or
            :meth:`cancel` supersedes it.
        """
        self.cancel()
        task = asyncio.get_running_loop().create_task(self._deliver(value))
        self._pending = task
        return task

    def cancel(self) -> None:
        """Drop the pending delivery, if any."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _deliver(self, value: Any) -> None:
        await asyncio.sleep(self.wait)
        self._pending = None
        self._callback(value)
