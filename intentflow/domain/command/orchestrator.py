"""
Domain service: multi-stage analysis pipeline.

Runs every catalog stage for one intent and publishes a snapshot of the
PipelineRun after each stage change.

Stage lifecycle:
    pending -> running (progress 0) -> progress ticks up by a random
    increment after a random delay until it reaches 100 -> the stage
    result is built -> exactly one terminal status: completed, or with
    a small probability warning ("Minor warning detected").

    A result builder that raises fails the stage. An optional per-stage
    ceiling fails a stage that is still running when it elapses.
    Cancellation is checked after every delay and before each stage
    starts; pending and running stages become cancelled.

Concurrency:
    Each stage runs in its own task behind a semaphore of
    ``max_workers`` permits (1 keeps strict catalog order). The
    aggregate is computed after all stage tasks have joined and is
    published with the final snapshot.
"""

import asyncio
import logging
import random
from typing import AsyncIterator, Callable, Optional, Sequence

from intentflow.domain.command.aggregator import PipelineAggregator
from intentflow.domain.command.cancellation import CancellationToken
from intentflow.domain.command.catalog import STAGE_CATALOG
from intentflow.domain.command.entities import (
    Intent,
    PipelineRun,
    Stage,
    StageDefinition,
)
from intentflow.domain.command.ports import ClockPort, MarketDataPort, WalletSessionPort
from intentflow.domain.command.stage_results import StageResultBuilder

logger = logging.getLogger(__name__)

WARNING_MESSAGE = "Minor warning detected"

_DONE = object()


class PipelineOrchestrator:
    """Runs the stage catalog and streams PipelineRun snapshots.

    Args:
        market_data: Market-data port used by the stage result builder.
        wallet: Wallet session port used by the stage result builder.
        clock: Time source for progress delays and durations.
        rng: Random source for increments, delays and warnings.
        catalog: Stage definitions to instantiate, in order.
        aggregator: Aggregator applied after the join barrier.
        result_builder: Override for the stage result builder.
        max_workers: Number of stages allowed to run at once.
        warning_probability: Chance that a finished stage ends as warning.
        increment_bounds: Inclusive (low, high) progress increment.
        tick_delay_bounds: (low, high) delay in seconds before each tick.
        stage_timeout: Seconds after which a running stage is failed.
    """

    def __init__(
        self,
        market_data: MarketDataPort,
        wallet: WalletSessionPort,
        clock: ClockPort,
        rng: Optional[random.Random] = None,
        *,
        catalog: Sequence[StageDefinition] = STAGE_CATALOG,
        aggregator: Optional[PipelineAggregator] = None,
        result_builder: Optional[StageResultBuilder] = None,
        max_workers: int = 1,
        warning_probability: float = 0.05,
        increment_bounds: tuple[int, int] = (10, 30),
        tick_delay_bounds: tuple[float, float] = (0.1, 0.3),
        stage_timeout: Optional[float] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if increment_bounds[0] < 1 or increment_bounds[0] > increment_bounds[1]:
            raise ValueError(f"invalid increment bounds {increment_bounds}")

        self._clock = clock
        self._rng = rng or random.Random()
        self._catalog = tuple(catalog)
        self._aggregator = aggregator or PipelineAggregator()
        self._builder = result_builder or StageResultBuilder(market_data, wallet)
        self._max_workers = max_workers
        self._warning_probability = warning_probability
        self._increment_bounds = increment_bounds
        self._tick_delay_bounds = tick_delay_bounds
        self._stage_timeout = stage_timeout

    @property
    def catalog(self) -> tuple[StageDefinition, ...]:
        return self._catalog

    async def run(
        self,
        intent: Intent,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[PipelineRun]:
        """Run every stage for ``intent`` and yield snapshots.

        The first snapshot has every stage pending; the last one carries
        the aggregate. Closing the iterator early cancels the run.
        """
        token = cancel_token or CancellationToken()
        run = PipelineRun(
            intent=intent,
            stages=[Stage.from_definition(d) for d in self._catalog],
        )
        logger.info(
            "Pipeline started: intent=%s stages=%d workers=%d",
            intent.category.value,
            len(run.stages),
            self._max_workers,
        )
        yield run.snapshot()

        queue: asyncio.Queue = asyncio.Queue()
        driver = asyncio.create_task(self._drive(run, token, queue))
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    break
                yield item
            await driver
        finally:
            if not driver.done():
                driver.cancel()
                try:
                    await driver
                except asyncio.CancelledError:
                    pass

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _drive(
        self,
        run: PipelineRun,
        token: CancellationToken,
        queue: asyncio.Queue,
    ) -> None:
        def publish() -> None:
            queue.put_nowait(run.snapshot())

        semaphore = asyncio.Semaphore(self._max_workers)
        try:
            await asyncio.gather(
                *(
                    self._run_stage(stage, run.intent, token, semaphore, publish)
                    for stage in run.stages
                )
            )
            run.set_aggregate(self._aggregator.aggregate(run.stages))
            publish()
            logger.info(
                "Pipeline finished: completed=%d/%d probability=%.3f risk=%s",
                run.completed_count,
                len(run.stages),
                run.aggregate.success_probability,
                run.aggregate.risk_level.value,
            )
        finally:
            queue.put_nowait(_DONE)

    async def _run_stage(
        self,
        stage: Stage,
        intent: Intent,
        token: CancellationToken,
        semaphore: asyncio.Semaphore,
        publish: Callable[[], None],
    ) -> None:
        async with semaphore:
            if token.is_cancelled:
                stage.cancel()
                publish()
                return

            started = self._clock.monotonic()

            def elapsed_ms() -> int:
                return int(round((self._clock.monotonic() - started) * 1000))

            stage.start()
            publish()
            logger.debug("Stage %s running", stage.id.value)

            while stage.progress < 100:
                await self._clock.sleep(self._rng.uniform(*self._tick_delay_bounds))
                if token.is_cancelled:
                    stage.cancel(elapsed_ms())
                    publish()
                    logger.debug("Stage %s cancelled at %d%%", stage.id.value, stage.progress)
                    return
                if (
                    self._stage_timeout is not None
                    and self._clock.monotonic() - started >= self._stage_timeout
                ):
                    stage.fail(f"Stage timed out after {self._stage_timeout:g}s", elapsed_ms())
                    publish()
                    logger.warning("Stage %s timed out", stage.id.value)
                    return
                stage.advance(stage.progress + self._rng.randint(*self._increment_bounds))
                publish()

            try:
                result = self._builder.build(stage.id, intent)
            except Exception as exc:
                stage.fail(str(exc) or type(exc).__name__, elapsed_ms())
                publish()
                logger.warning("Stage %s failed: %s", stage.id.value, stage.error)
                return

            warning = (
                WARNING_MESSAGE if self._rng.random() < self._warning_probability else None
            )
            stage.finish(result, elapsed_ms(), warning=warning)
            publish()
            logger.debug(
                "Stage %s %s in %dms", stage.id.value, stage.status.value, stage.duration_ms
            )
