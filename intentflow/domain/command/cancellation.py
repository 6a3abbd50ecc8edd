"""
Cooperative cancellation token shared by the controller, the
orchestrator and the executor.

Cancellation is checked at every suspension point: each stage progress
tick, the interpretation latency, and each slice of the executing phase.
"""

import asyncio
from typing import Optional

from intentflow.domain.command.errors import CancellationRequested


class CancellationToken:
    """One-shot cancellation flag for a single operation."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled by user") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationRequested(self._reason)

    async def wait(self) -> None:
        await self._event.wait()
