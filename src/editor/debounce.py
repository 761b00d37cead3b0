"""Quiet-window debouncing with generation tokens."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Action = Callable[[int], Awaitable[None]]


class Debouncer:
    """Run only the most recently scheduled action, once a quiet window elapses.

    Every ``schedule`` call opens a new generation and restarts the timer.
    Actions receive their generation token and must check
    ``is_current(token)`` after each await before publishing a result, so a
    slow response from an older generation never overwrites a newer one.
    ``cancel`` drops the pending timer and invalidates anything in flight.

    Must be used from inside a running event loop.
    """

    def __init__(self, delay: float, *, name: str = "debounce") -> None:
        self.delay = delay
        self.name = name
        self._generation = 0
        self._timer: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> bool:
        """True while a timer is counting down."""
        return self._timer is not None and not self._timer.done()

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def schedule(self, action: Action) -> int:
        """Restart the quiet window for ``action``; returns its token."""
        self._generation += 1
        token = self._generation
        self._cancel_timer()
        task = asyncio.get_running_loop().create_task(
            self._fire(token, action), name=f"{self.name}-{token}"
        )
        self._timer = task
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return token

    def cancel(self) -> None:
        self._generation += 1
        self._cancel_timer()

    async def wait(self) -> None:
        """Block until every timer and in-flight action has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _fire(self, token: int, action: Action) -> None:
        await asyncio.sleep(self.delay)
        if self._timer is asyncio.current_task():
            self._timer = None
        if not self.is_current(token):
            return
        await action(token)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def _finished(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s action failed", self.name, exc_info=exc)
