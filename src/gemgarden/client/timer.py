"""
Countdown for timed mode, running on the client's event loop.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CountdownTimer:
    """
    Ticks once per ``interval`` and fires ``on_expire`` when time runs out.

    Every ``start`` or ``cancel`` bumps a generation counter. A tick that
    wakes up under an older generation exits without calling back, so a
    timer left over from a suspended or replaced session never writes into
    the current one.
    """

    def __init__(
        self,
        on_expire: Callable[[], None],
        on_tick: Optional[Callable[[float], None]] = None,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.on_expire = on_expire
        self.on_tick = on_tick
        self.interval = interval
        self.clock = clock
        self.generation = 0
        self._deadline: Optional[float] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self.clock())

    def start(self, seconds: float) -> int:
        """Start (or restart) the countdown. Requires a running event loop."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._deadline = self.clock() + seconds
        self._task = loop.create_task(self._run(self.generation))
        return self.generation

    def cancel(self):
        self.generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._deadline = None

    async def _run(self, generation: int):
        while True:
            remaining = self.remaining
            if remaining is None:
                return
            await asyncio.sleep(min(self.interval, remaining))
            if generation != self.generation:
                return

            remaining = self.remaining
            if self.on_tick is not None:
                self.on_tick(remaining)
            if remaining <= 0:
                logger.debug("Countdown expired (generation %d)", generation)
                self._deadline = None
                # Release the handle first: on_expire may call cancel()
                self._task = None
                self.on_expire()
                return
