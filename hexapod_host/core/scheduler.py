# hexapod_host/core/scheduler.py

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """One-shot, cancellable timers. The sequencer only needs this much."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """
    Scheduler backed by an asyncio loop (loop.call_later).

    If no loop is given, the running loop is looked up on first use, so the
    scheduler can be built before the loop starts.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, float(delay_s)), callback)
