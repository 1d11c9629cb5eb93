"""
Tidewater Test Support

Helpers shared across test modules.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

from core.models import PriceUpdate

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_updates(symbol: str, prices: List[float], start: datetime = T0) -> List[PriceUpdate]:
    return [PriceUpdate(symbol, p, start + timedelta(days=i)) for i, p in enumerate(prices)]


async def settle(rounds: int = 50) -> None:
    """Let ready tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeClock:
    """Sleep that only returns when the test advances time."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []
        self._waiters: List[Tuple[float, asyncio.Future]] = []

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        future = asyncio.get_running_loop().create_future()
        self._waiters.append((self.now + delay, future))
        await future

    async def advance(self, seconds: float) -> None:
        self.now += seconds
        pending = []
        for deadline, future in self._waiters:
            if future.done():
                continue
            if deadline <= self.now:
                future.set_result(None)
            else:
                pending.append((deadline, future))
        self._waiters = pending
        await settle()
