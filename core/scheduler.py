"""
Tidewater Periodic Scheduler

Named periodic timers on the running event loop, cancellable one by one
or as a group. The sleep function is injectable so tests can drive time.
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Set

from utils.logger import core_logger as logger

Sleep = Callable[[float], Awaitable[None]]


class PeriodicScheduler:
    """
    Fires callbacks immediately and then every ``interval`` seconds.

    Each firing runs as its own task, so a slow callback never delays its
    own timer or any other.
    """

    def __init__(self, sleep: Sleep = asyncio.sleep):
        self._sleep = sleep
        self._timers: Dict[str, asyncio.Task] = {}
        self._inflight: Set[asyncio.Task] = set()

    @property
    def names(self) -> List[str]:
        return list(self._timers)

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def schedule(self, name: str, callback: Callable[[], Awaitable[None]], interval: float) -> None:
        """
        Start a named periodic timer.

        Args:
            name: Timer name, unique within the scheduler
            callback: Coroutine function fired on every tick
            interval: Seconds between ticks

        Raises:
            ValueError: If a timer with ``name`` already exists
        """
        if name in self._timers:
            raise ValueError(f"Timer already scheduled: {name}")
        self._timers[name] = asyncio.create_task(
            self._run(name, callback, interval), name=f"timer:{name}"
        )
        logger.debug(f"Scheduled {name} every {interval}s")

    async def _run(self, name: str, callback, interval: float) -> None:
        while True:
            task = asyncio.create_task(callback(), name=f"tick:{name}")
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            await self._sleep(interval)

    def cancel(self, name: str) -> bool:
        task = self._timers.pop(name, None)
        if task is None:
            return False
        task.cancel()
        return True

    async def cancel_all(self) -> None:
        """Cancel every timer. Ticks already running are left to finish."""
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def drain(self) -> None:
        """Wait for in-flight ticks to complete."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
