"""Mock-exam countdown.

``Countdown`` is an immutable value the session state machine carries;
``CountdownTask`` is the asyncio handle that feeds it one tick per second.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

log = logging.getLogger("gsi_trainer.timer")

MOCK_DURATION = 90 * 60
LOW_TIME_SECONDS = 300


@dataclass(frozen=True)
class Countdown:
    duration: int = MOCK_DURATION
    remaining: int = MOCK_DURATION
    armed: bool = False

    @classmethod
    def create(cls, duration: int = MOCK_DURATION) -> Countdown:
        return cls(duration=duration, remaining=duration)

    @property
    def expired(self) -> bool:
        return self.remaining <= 0

    @property
    def low_time(self) -> bool:
        return self.remaining < LOW_TIME_SECONDS

    @property
    def display(self) -> str:
        m, s = divmod(max(self.remaining, 0), 60)
        return f"{m:02d}:{s:02d}"

    def arm(self) -> Countdown:
        return replace(self, armed=True)

    def tick(self) -> Countdown:
        if not self.armed or self.expired:
            return self
        return replace(self, remaining=max(self.remaining - 1, 0))

    def reset(self) -> Countdown:
        return Countdown.create(self.duration)


class CountdownTask:
    """Repeating one-second callback owned by the session controller.

    *on_tick* runs once per interval and returns whether ticking should
    continue. Once it returns False, or ``cancel()`` is called, no further
    callbacks happen.
    """

    def __init__(self, on_tick: Callable[[], bool], interval: float = 1.0):
        self._on_tick = on_tick
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time() + self.interval
        while True:
            # Sleep to an absolute deadline so ticks don't drift.
            await asyncio.sleep(max(next_at - loop.time(), 0))
            next_at += self.interval
            if not self._on_tick():
                log.info("Countdown stopped")
                return
