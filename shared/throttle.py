"""Fixed-delay pacing for calls against rate-limited APIs."""
import asyncio
from typing import Awaitable, Callable


class Throttle:
    """Waits a fixed delay before each paced call.

    Holds no lock: concurrent callers each sleep their own delay, so only
    calls awaited one after another are spaced out.
    """

    def __init__(
        self,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.delay_seconds = max(0.0, delay_seconds)
        self._sleep = sleep
        self.calls = 0

    async def wait(self):
        self.calls += 1
        if self.delay_seconds > 0:
            await self._sleep(self.delay_seconds)
