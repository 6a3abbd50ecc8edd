"""
Adapter: wall-clock time source.

Implements ClockPort on top of ``time.monotonic`` and ``asyncio.sleep``.
"""

import asyncio
import time

from intentflow.domain.command.ports import ClockPort


class AsyncioClock(ClockPort):
    """Real time for production use."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0.0))
