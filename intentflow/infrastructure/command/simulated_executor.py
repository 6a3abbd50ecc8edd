"""
Adapter: simulated command executor.

Implements ExecutorPort. Waits out the execution latency in short,
cancellable slices and returns a pseudo transaction reference. Nothing
is signed or broadcast.

Rejections:
    - ``unknown`` intents have nothing to execute.
    - On-chain intents (swap, bridge, limit_order) need a connected
      wallet.
"""

import logging
import math
import random
from typing import Optional

from intentflow.domain.command.cancellation import CancellationToken
from intentflow.domain.command.entities import Intent, IntentCategory
from intentflow.domain.command.errors import ExecutionFailure
from intentflow.domain.command.ports import ClockPort, ExecutorPort, WalletSessionPort

logger = logging.getLogger(__name__)


class SimulatedExecutor(ExecutorPort):
    """Executor that only pretends to commit.

    Args:
        clock: Time source for the execution latency.
        wallet: Wallet session checked before on-chain intents.
        latency: Total simulated execution time in seconds.
        slice_seconds: Granularity of cancellation checks.
        rng: Random source for transaction references.
    """

    def __init__(
        self,
        clock: ClockPort,
        wallet: WalletSessionPort,
        latency: float = 3.0,
        slice_seconds: float = 0.25,
        rng: Optional[random.Random] = None,
    ) -> None:
        if slice_seconds <= 0:
            raise ValueError("slice_seconds must be positive")
        self._clock = clock
        self._wallet = wallet
        self._latency = latency
        self._slice = slice_seconds
        self._rng = rng or random.Random()

    async def execute(self, intent: Intent, cancel_token: CancellationToken) -> str:
        if intent.category is IntentCategory.UNKNOWN:
            raise ExecutionFailure("command was not understood")
        if intent.category.is_on_chain and not self._wallet.is_connected():
            raise ExecutionFailure("wallet not connected")

        cancel_token.raise_if_cancelled()
        slices = math.ceil(self._latency / self._slice) if self._latency > 0 else 0
        for index in range(slices):
            last = index == slices - 1
            await self._clock.sleep(
                self._latency - self._slice * (slices - 1) if last else self._slice
            )
            cancel_token.raise_if_cancelled()

        if intent.category.is_on_chain:
            reference = f"0x{self._rng.getrandbits(256):064x}"
        else:
            reference = f"local-{self._rng.getrandbits(48):012x}"
        logger.info("Executed %s intent: %s", intent.category.value, reference)
        return reference
