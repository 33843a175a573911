"""Cancellable one-second countdown for exam sessions.

The countdown owns a single asyncio task. Each interval it awaits the
session's tick callback; the callback returns False when the countdown
should end (time ran out, the session moved past in_progress, or the
session was replaced). ``stop()`` is idempotent and guarantees no tick
callback starts after it returns.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[bool]]

TICK_INTERVAL_SECONDS = 1.0


class Countdown(Protocol):
    def start(self) -> None: ...
    def stop(self) -> None: ...

    @property
    def running(self) -> bool: ...


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class AsyncioCountdown:
    def __init__(
        self, on_tick: TickCallback, *, interval: float = TICK_INTERVAL_SECONDS
    ) -> None:
        self._on_tick = on_tick
        self._interval = interval
        self._task: asyncio.Task | None = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._stopped and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("countdown already started")
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        self._stopped = True
        task = self._task
        # A tick that stops its own countdown must not cancel itself
        # mid-write; the loop exits on the _stopped check instead.
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    async def _run(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self._interval)
            if self._stopped:
                return
            try:
                keep_going = await self._on_tick()
            except Exception:
                logger.exception("Exam countdown tick failed; stopping countdown")
                keep_going = False
            if not keep_going:
                self._stopped = True
