"""Deadline countdown driven by an asyncio task.

Remaining time is recomputed from the wall clock on every tick instead of
being decremented, so a late or skipped tick never accumulates drift.
"""

import asyncio
import inspect
import logging
import math
import time
from collections.abc import Callable

from forest.config import settings

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[], object]


def format_remaining(seconds: int) -> str:
    """MM:SS, zero padded."""
    seconds = max(int(seconds), 0)
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


def remaining_until(target: int, now: float) -> int:
    return max(int(target) - math.floor(now), 0)


class CountdownTimer:
    """Counts down to an absolute unix-seconds deadline.

    Idle while the target is None, Running otherwise. Each Running episode
    fires on_complete exactly once, the first time remaining reaches zero,
    and reports 0 from then on. Replacing the target (None included)
    cancels the previous tick task before anything new is scheduled.
    """

    def __init__(
        self,
        on_complete: CompletionCallback | None = None,
        clock: Callable[[], float] = time.time,
        interval: float = settings.COUNTDOWN_INTERVAL_SECONDS,
    ):
        self._callbacks: list[CompletionCallback] = [on_complete] if on_complete else []
        self._clock = clock
        self.interval = interval
        self._target: int | None = None
        self._remaining: int | None = None
        self._completed = False
        self._task: asyncio.Task | None = None
        self._pending_callbacks: set[asyncio.Task] = set()

    @property
    def target(self) -> int | None:
        return self._target

    @property
    def remaining(self) -> int | None:
        return self._remaining

    @property
    def is_running(self) -> bool:
        return self._target is not None

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def display(self) -> str | None:
        if self._remaining is None:
            return None
        return format_remaining(self._remaining)

    def add_completion_callback(self, callback: CompletionCallback) -> None:
        self._callbacks.append(callback)

    def set_target(self, target: int | None) -> None:
        """Start a new episode for target, or go idle for None.

        Setting the target already being counted down is a no-op so a
        refresh that returns the same deadline does not re-arm completion.
        """
        if target == self._target:
            return

        self._cancel_task()
        self._target = target
        self._completed = False

        if target is None:
            self._remaining = None
            return

        self._tick()
        if not self._completed:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        """Stop ticking and go idle."""
        self._cancel_task()
        self._target = None
        self._remaining = None
        self._completed = False

    async def close(self) -> None:
        self.cancel()
        for task in list(self._pending_callbacks):
            task.cancel()
        if self._pending_callbacks:
            await asyncio.gather(*self._pending_callbacks, return_exceptions=True)

    async def __aenter__(self) -> "CountdownTimer":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _cancel_task(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while not self._completed:
            await asyncio.sleep(self.interval)
            self._tick()
        if self._task is asyncio.current_task():
            self._task = None

    def _tick(self) -> None:
        if self._target is None:
            return
        self._remaining = remaining_until(self._target, self._clock())
        if self._remaining <= 0 and not self._completed:
            self._completed = True
            logger.debug("Countdown to %d completed", self._target)
            self._fire_completion()

    def _fire_completion(self) -> None:
        for callback in self._callbacks:
            try:
                result = callback()
            except Exception:
                logger.exception("Countdown completion callback failed")
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending_callbacks.add(task)
                task.add_done_callback(self._callback_done)

    def _callback_done(self, task: asyncio.Task) -> None:
        self._pending_callbacks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Countdown completion callback failed: %s", task.exception())
