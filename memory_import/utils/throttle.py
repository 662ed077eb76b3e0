from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional


class RateLimiter:
    """
    Enforce a minimum gap between consecutive calls.

    Shared by everything that talks to one rate-limited service; the first
    call goes straight through.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None

    async def wait(self) -> None:
        if self._last is not None and self.min_interval > 0:
            remaining = self.min_interval - (self._clock() - self._last)
            if remaining > 0:
                await self._sleep(remaining)
        self._last = self._clock()
