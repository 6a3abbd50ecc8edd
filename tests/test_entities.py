"""
Tests for the command domain entities and the cancellation token.
"""

import pytest

from intentflow.domain.command.cancellation import CancellationToken
from intentflow.domain.command.catalog import STAGE_CATALOG, get_definition
from intentflow.domain.command.entities import (
    Aggregate,
    Intent,
    IntentCategory,
    PipelineRun,
    RiskLevel,
    Stage,
    StageCategory,
    StageId,
    StageStatus,
)
from intentflow.domain.command.errors import (
    AggregateAlreadySetError,
    CancellationRequested,
    PipelineNotTerminalError,
    StageTransitionError,
)


# ══════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════


def _stage(stage_id: StageId = StageId.MARKET_ANALYSIS) -> Stage:
    return Stage.from_definition(get_definition(stage_id))


def _finished_stage(stage_id: StageId = StageId.MARKET_ANALYSIS) -> Stage:
    stage = _stage(stage_id)
    stage.start()
    stage.advance(100)
    stage.finish({"ok": True}, duration_ms=10)
    return stage


def _aggregate() -> Aggregate:
    return Aggregate(
        success_probability=1.0,
        risk_level=RiskLevel.LOW,
        recommendations=(),
        estimated_gas="n/a",
        estimated_time="n/a",
        security_score=100,
    )


def _intent() -> Intent:
    return Intent(category=IntentCategory.HELP, confidence=0.95, parameters={"topic": "general"})


# ══════════════════════════════════════════════════════════════════════
# Tests
# ══════════════════════════════════════════════════════════════════════


class TestCatalog:
    """The fixed stage catalog."""

    def test_twelve_stages_in_order(self):
        assert [d.id for d in STAGE_CATALOG] == list(StageId)

    def test_categories(self):
        security = [d.id for d in STAGE_CATALOG if d.category is StageCategory.SECURITY]
        assert security == [
            StageId.RISK_ASSESSMENT,
            StageId.WALLET_VALIDATION,
            StageId.SECURITY_CHECK,
        ]

    def test_get_definition(self):
        definition = get_definition(StageId.GAS_OPTIMIZATION)
        assert definition.name == "Gas Optimization"
        assert definition.category is StageCategory.OPTIMIZATION


class TestIntent:
    """Intent validation and immutability."""

    def test_confidence_out_of_range(self):
        with pytest.raises(ValueError):
            Intent(category=IntentCategory.SWAP, confidence=1.5)

    def test_parameters_are_copied(self):
        source = {"amount": "1"}
        intent = Intent(category=IntentCategory.SWAP, confidence=0.95, parameters=source)
        source["amount"] = "2"
        assert intent.parameters["amount"] == "1"

    def test_planned_steps_become_tuple(self):
        intent = Intent(category=IntentCategory.HELP, confidence=0.9, planned_steps=["a", "b"])
        assert intent.planned_steps == ("a", "b")


class TestStageTransitions:
    """Stage state machine."""

    def test_start_from_pending(self):
        stage = _stage()
        stage.start()
        assert stage.status is StageStatus.RUNNING
        assert stage.progress == 0

    def test_start_twice_rejected(self):
        stage = _stage()
        stage.start()
        with pytest.raises(StageTransitionError):
            stage.start()

    def test_advance_clamps_to_100(self):
        stage = _stage()
        stage.start()
        stage.advance(150)
        assert stage.progress == 100

    def test_progress_never_decreases(self):
        stage = _stage()
        stage.start()
        stage.advance(40)
        with pytest.raises(StageTransitionError):
            stage.advance(30)

    def test_advance_requires_running(self):
        with pytest.raises(StageTransitionError):
            _stage().advance(10)

    def test_finish_requires_full_progress(self):
        stage = _stage()
        stage.start()
        stage.advance(50)
        with pytest.raises(StageTransitionError):
            stage.finish({}, duration_ms=1)

    def test_finish_completed(self):
        stage = _finished_stage()
        assert stage.status is StageStatus.COMPLETED
        assert stage.result == {"ok": True}
        assert stage.error is None
        assert stage.duration_ms == 10

    def test_finish_with_warning(self):
        stage = _stage()
        stage.start()
        stage.advance(100)
        stage.finish({"ok": True}, duration_ms=5, warning="Minor warning detected")
        assert stage.status is StageStatus.WARNING
        assert stage.error == "Minor warning detected"
        assert stage.result == {"ok": True}

    def test_single_terminal_transition(self):
        stage = _finished_stage()
        with pytest.raises(StageTransitionError):
            stage.fail("late")
        with pytest.raises(StageTransitionError):
            stage.cancel()

    def test_fail_requires_running(self):
        with pytest.raises(StageTransitionError):
            _stage().fail("boom")

    def test_cancel_from_pending(self):
        stage = _stage()
        stage.cancel()
        assert stage.status is StageStatus.CANCELLED
        assert stage.duration_ms is None

    def test_cancel_from_running(self):
        stage = _stage()
        stage.start()
        stage.advance(30)
        stage.cancel(duration_ms=120)
        assert stage.status is StageStatus.CANCELLED
        assert stage.progress == 30
        assert stage.duration_ms == 120

    def test_copy_is_independent(self):
        stage = _finished_stage()
        clone = stage.copy()
        stage.result["ok"] = False
        assert clone.result == {"ok": True}


class TestPipelineRun:
    """Aggregate barrier and snapshots."""

    def test_aggregate_rejected_before_terminal(self):
        run = PipelineRun(intent=_intent(), stages=[_finished_stage(), _stage()])
        with pytest.raises(PipelineNotTerminalError) as exc_info:
            run.set_aggregate(_aggregate())
        assert exc_info.value.pending == 1
        assert run.aggregate is None

    def test_aggregate_write_once(self):
        run = PipelineRun(intent=_intent(), stages=[_finished_stage()])
        run.set_aggregate(_aggregate())
        with pytest.raises(AggregateAlreadySetError):
            run.set_aggregate(_aggregate())

    def test_counts_and_lookup(self):
        cancelled = _stage(StageId.LIQUIDITY_CHECK)
        cancelled.cancel()
        run = PipelineRun(intent=_intent(), stages=[_finished_stage(), cancelled])
        assert run.is_terminal
        assert run.completed_count == 1
        assert run.count(StageStatus.CANCELLED) == 1
        assert run.stage(StageId.LIQUIDITY_CHECK) is cancelled
        with pytest.raises(KeyError):
            run.stage(StageId.SECURITY_CHECK)

    def test_snapshot_is_independent(self):
        stage = _stage()
        run = PipelineRun(intent=_intent(), stages=[stage])
        snapshot = run.snapshot()
        stage.start()
        stage.advance(60)
        assert snapshot.stages[0].status is StageStatus.PENDING
        assert snapshot.stages[0].progress == 0
        assert snapshot.intent is run.intent


class TestCancellationToken:
    """One-shot cooperative cancellation flag."""

    def test_not_cancelled_initially(self):
        token = CancellationToken()
        assert not token.is_cancelled
        token.raise_if_cancelled()

    def test_cancel_keeps_first_reason(self):
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")
        assert token.is_cancelled
        assert token.reason == "first"

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(CancellationRequested):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self):
        token = CancellationToken()
        token.cancel()
        await token.wait()
        assert token.reason == "cancelled by user"
