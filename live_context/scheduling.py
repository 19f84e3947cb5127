"""Per-key debounced scheduling on the running asyncio loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[None]]


class Debouncer:
    """One cancellable timer per key; scheduling again replaces the timer.

    Bursts of :meth:`schedule` calls for the same key within ``delay``
    seconds collapse into a single run of the last job.  Jobs run as
    tasks on the loop that was running when they were scheduled; the
    debouncer keeps a reference to every in-flight task until it ends.
    An in-flight task is never cancelled by a re-schedule.
    """

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._timers: dict[str, tuple[asyncio.TimerHandle, Job]] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def schedule(self, key: str, job: Job, *, immediate: bool = False) -> None:
        loop = asyncio.get_running_loop()
        self.cancel(key)
        if immediate:
            self._start(key, job)
            return
        handle = loop.call_later(self.delay, self._fire, key, job)
        self._timers[key] = (handle, job)
        logger.debug("Scheduled %s in %.2fs", key, self.delay)

    def _fire(self, key: str, job: Job) -> None:
        self._timers.pop(key, None)
        self._start(key, job)

    def _start(self, key: str, job: Job) -> None:
        task = asyncio.get_running_loop().create_task(job(), name=f"debounced:{key}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Debounced job %s failed", task.get_name(), exc_info=exc
            )

    def cancel(self, key: str) -> bool:
        entry = self._timers.pop(key, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def cancel_all(self) -> None:
        for handle, _ in self._timers.values():
            handle.cancel()
        self._timers.clear()

    def flush(self) -> None:
        """Start every pending job now instead of waiting for its timer."""
        pending = list(self._timers.items())
        self._timers.clear()
        for key, (handle, job) in pending:
            handle.cancel()
            self._start(key, job)

    def is_pending(self, key: str) -> bool:
        return key in self._timers

    async def drain(self) -> None:
        """Wait for every in-flight job to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
