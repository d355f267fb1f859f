"""Clock port used by polling loops.

Injecting the clock lets tests drive polling deterministically instead of
waiting on real timers.
"""

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    """Protocol for reading time and suspending between polling ticks."""

    def monotonic(self) -> float:
        """Current monotonic time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for `seconds` without blocking the event loop."""
        ...


class SystemClock:
    """Clock backed by time.monotonic and asyncio.sleep."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
