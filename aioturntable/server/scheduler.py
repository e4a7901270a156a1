"""Cancelable deferred advance to the next track."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)

AdvanceCallback = Callable[[int], Coroutine[Any, Any, None]]
"""Coroutine function receiving the generation of the timer that fired."""


class AdvanceScheduler:
    """
    Holds at most one pending deferred advance.

    Every arm() bumps a generation number. When the timer fires, the callback is
    started as a task with the generation it was armed with; the callback must
    check is_current() under the station lock before applying any effect, since
    a cancel or re-arm may have happened between firing and acquiring the lock.
    """

    _loop: asyncio.AbstractEventLoop
    _callback: AdvanceCallback
    _handle: asyncio.TimerHandle | None
    """Timer handle of the pending advance, None when disarmed."""
    _generation: int
    """Generation of the most recent arm()."""
    _armed_generation: int | None
    """Generation that is allowed to apply its effects, None when disarmed."""
    _tasks: set[asyncio.Task[None]]
    """Callback tasks that were started by fired timers and did not finish yet."""

    def __init__(self, loop: asyncio.AbstractEventLoop, callback: AdvanceCallback) -> None:
        """
        Initialize a disarmed scheduler.

        Args:
            loop: The event loop to schedule timers on.
            callback: Coroutine function started when a timer fires.
        """
        self._loop = loop
        self._callback = callback
        self._handle = None
        self._generation = 0
        self._armed_generation = None
        self._tasks = set()

    @property
    def armed(self) -> bool:
        """Whether an advance is pending."""
        return self._armed_generation is not None

    @property
    def generation(self) -> int:
        """Generation of the most recent arm()."""
        return self._generation

    def is_current(self, generation: int) -> bool:
        """Return True if generation belongs to the currently armed timer."""
        return self._armed_generation == generation

    def arm(self, delay: float) -> int:
        """
        Schedule an advance after delay seconds, replacing any pending one.

        Returns:
            The generation of the new timer.
        """
        self.cancel()
        self._generation += 1
        generation = self._generation
        self._armed_generation = generation
        self._handle = self._loop.call_later(delay, self._fire, generation)
        logger.debug("Armed advance #%d in %.3fs", generation, delay)
        return generation

    def cancel(self) -> None:
        """Disarm the pending advance, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._armed_generation is not None:
            logger.debug("Canceled advance #%d", self._armed_generation)
        self._armed_generation = None

    def _fire(self, generation: int) -> None:
        """Start the callback task for a timer that fired."""
        if self._armed_generation == generation:
            self._handle = None
        task = self._loop.create_task(self._callback(generation))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and (exc := task.exception()) is not None:
            logger.error("Scheduled advance failed", exc_info=exc)

    async def close(self) -> None:
        """Disarm and wait for callbacks that are already running."""
        self.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
