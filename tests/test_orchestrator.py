"""
Tests for the pipeline orchestrator.

Runs on the virtual clock from conftest, so no test waits in real time.
"""

import asyncio
import random
from unittest.mock import MagicMock

import pytest

from intentflow.domain.command.cancellation import CancellationToken
from intentflow.domain.command.catalog import STAGE_CATALOG
from intentflow.domain.command.entities import RiskLevel, StageId, StageStatus
from intentflow.domain.command.orchestrator import WARNING_MESSAGE
from intentflow.domain.command.ports import MarketDataPort


async def _collect(orchestrator, intent, token=None):
    return [snapshot async for snapshot in orchestrator.run(intent, token)]


@pytest.fixture
def swap_intent(interpreter):
    return interpreter.classify("Swap 100 USDC for ETH on Ethereum")


# ══════════════════════════════════════════════════════════════════════
# Snapshot stream
# ══════════════════════════════════════════════════════════════════════


class TestSnapshotStream:
    """Shape of the published snapshot sequence."""

    @pytest.mark.asyncio
    async def test_first_snapshot_all_pending(self, make_orchestrator, swap_intent):
        snapshots = await _collect(make_orchestrator(), swap_intent)
        first = snapshots[0]
        assert len(first.stages) == 12
        assert all(s.status is StageStatus.PENDING for s in first.stages)
        assert [s.id for s in first.stages] == [d.id for d in STAGE_CATALOG]

    @pytest.mark.asyncio
    async def test_only_last_snapshot_has_aggregate(self, make_orchestrator, swap_intent):
        snapshots = await _collect(make_orchestrator(), swap_intent)
        assert all(s.aggregate is None for s in snapshots[:-1])
        last = snapshots[-1]
        assert last.aggregate is not None
        assert last.is_terminal

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, make_orchestrator, swap_intent):
        snapshots = await _collect(make_orchestrator(max_workers=3), swap_intent)
        seen: dict[StageId, int] = {}
        for snapshot in snapshots:
            for stage in snapshot.stages:
                assert stage.progress >= seen.get(stage.id, 0)
                seen[stage.id] = stage.progress
                if stage.status is StageStatus.COMPLETED:
                    assert stage.progress == 100

    @pytest.mark.asyncio
    async def test_terminal_status_is_final(self, make_orchestrator, swap_intent):
        snapshots = await _collect(make_orchestrator(), swap_intent)
        terminal: dict[StageId, StageStatus] = {}
        for snapshot in snapshots:
            for stage in snapshot.stages:
                if stage.id in terminal:
                    assert stage.status is terminal[stage.id]
                elif stage.is_terminal:
                    terminal[stage.id] = stage.status

    @pytest.mark.asyncio
    async def test_snapshots_do_not_alias(self, make_orchestrator, swap_intent):
        snapshots = await _collect(make_orchestrator(), swap_intent)
        assert snapshots[0].stages[0].status is StageStatus.PENDING
        assert snapshots[-1].stages[0].status is StageStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_custom_catalog(self, make_orchestrator, swap_intent):
        orchestrator = make_orchestrator(catalog=STAGE_CATALOG[:2])
        snapshots = await _collect(orchestrator, swap_intent)
        assert [s.id for s in snapshots[-1].stages] == [
            StageId.INTENT_ANALYSIS,
            StageId.RISK_ASSESSMENT,
        ]
        assert snapshots[-1].aggregate.success_probability == 1.0


# ══════════════════════════════════════════════════════════════════════
# Outcomes
# ══════════════════════════════════════════════════════════════════════


class TestOutcomes:
    """Terminal statuses and the aggregate they produce."""

    @pytest.mark.asyncio
    async def test_no_warnings(self, make_orchestrator, swap_intent):
        last = (await _collect(make_orchestrator(warning_probability=0.0), swap_intent))[-1]
        assert last.completed_count == 12
        assert last.aggregate.success_probability == 1.0
        assert last.aggregate.risk_level is RiskLevel.LOW
        assert last.aggregate.security_score == 100
        assert last.aggregate.estimated_gas == "0.0023 ETH"
        assert last.aggregate.estimated_time == "30 seconds"
        assert all(s.result for s in last.stages)

    @pytest.mark.asyncio
    async def test_all_warnings(self, make_orchestrator, swap_intent):
        last = (await _collect(make_orchestrator(warning_probability=1.0), swap_intent))[-1]
        assert last.count(StageStatus.WARNING) == 12
        assert all(s.error == WARNING_MESSAGE for s in last.stages)
        assert all(s.result is not None for s in last.stages)
        assert last.aggregate.success_probability == 0.0
        assert last.aggregate.risk_level is RiskLevel.HIGH
        assert last.aggregate.security_score == 50

    @pytest.mark.asyncio
    async def test_builder_failure_fails_only_its_stage(
        self, make_orchestrator, swap_intent
    ):
        market = MagicMock(spec=MarketDataPort)
        market.get_quote.side_effect = RuntimeError("provider down")
        last = (await _collect(make_orchestrator(market_data=market), swap_intent))[-1]

        assert last.completed_count == 3
        assert last.count(StageStatus.FAILED) == 9
        for stage_id in (
            StageId.INTENT_ANALYSIS,
            StageId.WALLET_VALIDATION,
            StageId.SECURITY_CHECK,
        ):
            assert last.stage(stage_id).status is StageStatus.COMPLETED
        failed = last.stage(StageId.MARKET_ANALYSIS)
        assert failed.error == "provider down"
        assert failed.result is None
        assert last.aggregate.success_probability == 0.25
        assert last.aggregate.estimated_gas == "n/a"

    @pytest.mark.asyncio
    async def test_stage_timeout(self, make_orchestrator, swap_intent):
        orchestrator = make_orchestrator(
            stage_timeout=0.5,
            tick_delay_bounds=(0.2, 0.2),
            increment_bounds=(10, 10),
        )
        last = (await _collect(orchestrator, swap_intent))[-1]
        assert last.count(StageStatus.FAILED) == 12
        for stage in last.stages:
            assert stage.error == "Stage timed out after 0.5s"
            assert stage.progress == 20
            assert stage.duration_ms == 600

    @pytest.mark.asyncio
    async def test_duration_follows_clock(self, make_orchestrator, swap_intent):
        orchestrator = make_orchestrator(
            tick_delay_bounds=(0.1, 0.1), increment_bounds=(25, 25)
        )
        last = (await _collect(orchestrator, swap_intent))[-1]
        assert [s.duration_ms for s in last.stages] == [400] * 12

    @pytest.mark.asyncio
    async def test_same_seed_same_outcome(self, make_orchestrator, swap_intent):
        def outcome(snapshots):
            return [(s.status, s.progress) for s in snapshots[-1].stages], len(snapshots)

        first = await _collect(
            make_orchestrator(rng=random.Random(7), warning_probability=0.5), swap_intent
        )
        second = await _collect(
            make_orchestrator(rng=random.Random(7), warning_probability=0.5), swap_intent
        )
        assert outcome(first) == outcome(second)


# ══════════════════════════════════════════════════════════════════════
# Concurrency
# ══════════════════════════════════════════════════════════════════════


class TestConcurrency:
    """Worker limits and ordering."""

    @staticmethod
    def _max_running(snapshots) -> int:
        return max(s.count(StageStatus.RUNNING) for s in snapshots)

    @pytest.mark.asyncio
    async def test_single_worker_is_sequential(self, make_orchestrator, swap_intent):
        snapshots = await _collect(make_orchestrator(max_workers=1), swap_intent)
        assert self._max_running(snapshots) == 1

        started: list[StageId] = []
        for snapshot in snapshots:
            for stage in snapshot.stages:
                if stage.status is not StageStatus.PENDING and stage.id not in started:
                    started.append(stage.id)
        assert started == [d.id for d in STAGE_CATALOG]

    @pytest.mark.asyncio
    async def test_worker_pool_runs_stages_together(self, make_orchestrator, swap_intent):
        snapshots = await _collect(make_orchestrator(max_workers=4), swap_intent)
        assert self._max_running(snapshots) == 4
        assert snapshots[-1].completed_count == 12

    @pytest.mark.parametrize("workers", [0, -1])
    def test_invalid_worker_count(self, make_orchestrator, workers):
        with pytest.raises(ValueError):
            make_orchestrator(max_workers=workers)

    def test_invalid_increment_bounds(self, make_orchestrator):
        with pytest.raises(ValueError):
            make_orchestrator(increment_bounds=(30, 10))


# ══════════════════════════════════════════════════════════════════════
# Cancellation
# ══════════════════════════════════════════════════════════════════════


class TestCancellation:
    """Cooperative cancellation and early close."""

    @pytest.mark.asyncio
    async def test_cancel_after_three_stages(self, make_orchestrator, swap_intent):
        token = CancellationToken()
        orchestrator = make_orchestrator(increment_bounds=(10, 10))
        last = None
        async for snapshot in orchestrator.run(swap_intent, token):
            if snapshot.completed_count == 3:
                token.cancel()
            last = snapshot

        assert last.completed_count == 3
        assert last.count(StageStatus.CANCELLED) == 9
        assert last.aggregate.success_probability == 0.25
        assert last.aggregate.risk_level is RiskLevel.HIGH

    @pytest.mark.asyncio
    async def test_pre_cancelled_token(self, make_orchestrator, swap_intent, clock):
        token = CancellationToken()
        token.cancel()
        last = (await _collect(make_orchestrator(), swap_intent, token))[-1]
        assert last.count(StageStatus.CANCELLED) == 12
        assert all(s.progress == 0 and s.duration_ms is None for s in last.stages)
        assert last.aggregate.success_probability == 0.0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_running_stage_keeps_progress(self, make_orchestrator, swap_intent):
        token = CancellationToken()
        orchestrator = make_orchestrator(increment_bounds=(10, 10))
        last = None
        async for snapshot in orchestrator.run(swap_intent, token):
            if snapshot.stages[0].progress == 30:
                token.cancel()
            last = snapshot

        first = last.stages[0]
        assert first.status is StageStatus.CANCELLED
        assert first.progress == 30
        assert first.duration_ms is not None
        assert all(s.status is StageStatus.CANCELLED for s in last.stages)

    @pytest.mark.asyncio
    async def test_closing_iterator_stops_the_run(
        self, make_orchestrator, swap_intent, clock
    ):
        stream = make_orchestrator().run(swap_intent)
        for _ in range(5):
            await stream.__anext__()
        await stream.aclose()

        ticks = len(clock.sleeps)
        for _ in range(20):
            await asyncio.sleep(0)
        assert len(clock.sleeps) == ticks
