"""Time sources for orchestration loops."""

from __future__ import annotations

import asyncio
import time
from typing import Optional


class Clock:
    def now(self) -> float:  # pragma: no cover - interface
        raise NotImplementedError

    async def sleep(self, seconds: float) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class MonotonicClock(Clock):
    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


async def wait_or_stop(clock: Clock, seconds: float, stop_event: Optional[asyncio.Event] = None) -> bool:
    """Sleep for ``seconds`` unless ``stop_event`` fires first; True when stopped."""
    if stop_event is None:
        if seconds > 0:
            await clock.sleep(seconds)
        return False
    if stop_event.is_set():
        return True
    if seconds <= 0:
        return False

    sleeper = asyncio.ensure_future(clock.sleep(seconds))
    waiter = asyncio.ensure_future(stop_event.wait())
    _, pending = await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
    return stop_event.is_set()
