"""
Tests for the per-session execution state machine.

All phases run on the virtual clock; background work is stepped with
``asyncio.sleep(0)``.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from intentflow.domain.command.controller import (
    ANALYSIS_FAILED_MESSAGE,
    EXECUTION_CANCELLED_MESSAGE,
    EXECUTION_FAILED_MESSAGE,
    EXECUTION_SUCCEEDED_MESSAGE,
)
from intentflow.domain.command.entities import (
    ExecutionState,
    IntentCategory,
    NotificationType,
    StageStatus,
)
from intentflow.domain.command.errors import (
    EmptyCommandError,
    InvalidStateTransitionError,
)
from intentflow.domain.command.ports import CommandInterpreterPort

SWAP = "Swap 100 USDC for ETH on Ethereum"


async def _step_until(predicate, limit: int = 10_000) -> None:
    for _ in range(limit):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


def _record(controller) -> list[tuple[ExecutionState, ExecutionState]]:
    transitions: list[tuple[ExecutionState, ExecutionState]] = []
    controller.subscribe(lambda previous, current: transitions.append((previous, current)))
    return transitions


# ══════════════════════════════════════════════════════════════════════
# Happy path
# ══════════════════════════════════════════════════════════════════════


class TestHappyPath:
    """submit -> ready -> confirm -> success -> idle."""

    @pytest.mark.asyncio
    async def test_submit_reaches_ready(self, make_controller, notifier):
        controller = make_controller()
        transitions = _record(controller)

        run = await controller.submit(SWAP)

        assert controller.state is ExecutionState.READY
        assert transitions == [
            (ExecutionState.IDLE, ExecutionState.UNDERSTANDING),
            (ExecutionState.UNDERSTANDING, ExecutionState.READY),
        ]
        assert controller.last_input == SWAP
        assert controller.intent.category is IntentCategory.SWAP
        assert run is controller.run
        assert run.aggregate is not None
        assert run.completed_count == 12
        assert notifier.messages == ["Analysis completed with 95% confidence"]
        assert notifier.received[0].type is NotificationType.SUCCESS
        assert notifier.received[0].duration_ms == 3000

    @pytest.mark.asyncio
    async def test_confidence_in_notification(self, make_controller, notifier):
        controller = make_controller()
        await controller.submit("Bridge 500 USDC from Ethereum to Polygon")
        assert notifier.messages == ["Analysis completed with 88% confidence"]

    @pytest.mark.asyncio
    async def test_classify_latency_is_waited(self, make_controller, clock):
        controller = make_controller(classify_latency=1.5)
        await controller.submit(SWAP)
        assert clock.sleeps[0] == 1.5

    @pytest.mark.asyncio
    async def test_confirm_succeeds_then_resets(self, make_controller, notifier):
        controller = make_controller()
        await controller.submit(SWAP)
        transitions = _record(controller)

        result = await controller.confirm()

        assert result.succeeded
        assert result.tx_reference.startswith("0x")
        assert len(result.tx_reference) == 66
        assert controller.state is ExecutionState.SUCCESS
        assert controller.last_result == result
        assert notifier.messages[-1] == EXECUTION_SUCCEEDED_MESSAGE
        assert notifier.received[-1].duration_ms == 4000

        await _step_until(lambda: controller.state is ExecutionState.IDLE)
        assert transitions == [
            (ExecutionState.READY, ExecutionState.EXECUTING),
            (ExecutionState.EXECUTING, ExecutionState.SUCCESS),
            (ExecutionState.SUCCESS, ExecutionState.IDLE),
        ]

    @pytest.mark.asyncio
    async def test_read_only_intent_gets_local_reference(self, make_controller):
        controller = make_controller()
        await controller.submit("help")
        result = await controller.confirm()
        assert result.tx_reference.startswith("local-")

    @pytest.mark.asyncio
    async def test_resubmit_from_ready(self, make_controller):
        controller = make_controller()
        await controller.submit(SWAP)
        await controller.submit("help")
        assert controller.state is ExecutionState.READY
        assert controller.intent.category is IntentCategory.HELP

    @pytest.mark.asyncio
    async def test_new_submit_cancels_pending_reset(self, make_controller):
        controller = make_controller()
        await controller.submit(SWAP)
        await controller.confirm()
        await controller.submit("help")

        for _ in range(50):
            await asyncio.sleep(0)
        assert controller.state is ExecutionState.READY


# ══════════════════════════════════════════════════════════════════════
# Errors and retry
# ══════════════════════════════════════════════════════════════════════


class TestErrors:
    """Failures move to error; retry re-runs the last input."""

    @pytest.mark.asyncio
    async def test_interpreter_failure(self, make_controller, notifier):
        interpreter = MagicMock(spec=CommandInterpreterPort)
        interpreter.classify.side_effect = RuntimeError("model offline")
        controller = make_controller(interpreter=interpreter)

        assert await controller.submit(SWAP) is None

        assert controller.state is ExecutionState.ERROR
        assert controller.error == "model offline"
        assert notifier.messages == [ANALYSIS_FAILED_MESSAGE]
        assert notifier.received[0].type is NotificationType.ERROR
        assert notifier.received[0].duration_ms == 5000

    @pytest.mark.asyncio
    async def test_disconnected_wallet_then_retry(self, make_controller, wallet, notifier):
        wallet.disconnect()
        controller = make_controller()
        await controller.submit(SWAP)

        result = await controller.confirm()

        assert not result.succeeded
        assert result.error == "Execution failed: wallet not connected"
        assert controller.state is ExecutionState.ERROR
        assert controller.error == result.error
        assert notifier.messages[-1] == EXECUTION_FAILED_MESSAGE

        wallet.connect("0x742d35Cc6634C0532925a3b844Bc454e4438f44e")
        await controller.retry()
        assert controller.state is ExecutionState.READY
        assert controller.last_input == SWAP
        assert controller.error is None
        assert (await controller.confirm()).succeeded

    @pytest.mark.asyncio
    async def test_unknown_intent_cannot_execute(self, make_controller):
        controller = make_controller()
        await controller.submit("asdlkjasd")
        assert controller.state is ExecutionState.READY

        result = await controller.confirm()
        assert result.error == "Execution failed: command was not understood"
        assert controller.state is ExecutionState.ERROR

    @pytest.mark.asyncio
    async def test_submit_from_error(self, make_controller, wallet):
        wallet.disconnect()
        controller = make_controller()
        await controller.submit(SWAP)
        await controller.confirm()
        await controller.submit("help")
        assert controller.state is ExecutionState.READY


# ══════════════════════════════════════════════════════════════════════
# Guards
# ══════════════════════════════════════════════════════════════════════


class TestGuards:
    """Operations rejected in the wrong state."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_blank_input_rejected(self, make_controller, text):
        controller = make_controller()
        with pytest.raises(EmptyCommandError):
            await controller.submit(text)
        assert controller.state is ExecutionState.IDLE

    @pytest.mark.asyncio
    async def test_confirm_from_idle(self, make_controller):
        with pytest.raises(InvalidStateTransitionError, match="Cannot confirm while idle"):
            await make_controller().confirm()

    @pytest.mark.asyncio
    async def test_retry_from_idle(self, make_controller):
        with pytest.raises(InvalidStateTransitionError):
            await make_controller().retry()

    def test_cancel_when_idle(self, make_controller):
        assert make_controller().cancel() is False

    @pytest.mark.asyncio
    async def test_only_cancel_while_executing(self, make_controller):
        controller = make_controller()
        await controller.submit(SWAP)
        task = asyncio.create_task(controller.confirm())
        await _step_until(lambda: controller.state is ExecutionState.EXECUTING)

        with pytest.raises(InvalidStateTransitionError):
            await controller.submit("help")
        with pytest.raises(InvalidStateTransitionError):
            await controller.confirm()
        with pytest.raises(InvalidStateTransitionError):
            await controller.retry()

        assert (await task).succeeded

    @pytest.mark.asyncio
    async def test_submit_while_understanding_rejected(self, make_controller):
        controller = make_controller()
        task = asyncio.create_task(controller.submit(SWAP))
        await _step_until(lambda: controller.state is ExecutionState.UNDERSTANDING)
        with pytest.raises(InvalidStateTransitionError):
            await controller.submit("help")
        await task


# ══════════════════════════════════════════════════════════════════════
# Cancellation
# ══════════════════════════════════════════════════════════════════════


class TestCancellation:
    """Cancel returns understanding to idle and executing to ready."""

    @pytest.mark.asyncio
    async def test_cancel_during_understanding(self, make_controller, notifier):
        controller = make_controller()
        task = asyncio.create_task(controller.submit(SWAP))
        await _step_until(
            lambda: controller.run is not None and controller.run.completed_count >= 2
        )

        assert controller.cancel() is True
        assert controller.state is ExecutionState.IDLE

        run = await task
        assert controller.state is ExecutionState.IDLE
        assert run is controller.run
        assert run.count(StageStatus.CANCELLED) > 0
        assert run.completed_count >= 2
        assert notifier.messages == []

    @pytest.mark.asyncio
    async def test_cancel_during_classify_latency(self, make_controller):
        controller = make_controller()
        task = asyncio.create_task(controller.submit(SWAP))
        await _step_until(lambda: controller.state is ExecutionState.UNDERSTANDING)
        controller.cancel()
        assert await task is None
        assert controller.intent is None

    @pytest.mark.asyncio
    async def test_cancel_during_executing(self, make_controller, notifier, clock):
        controller = make_controller()
        await controller.submit(SWAP)
        started = clock.now
        task = asyncio.create_task(controller.confirm())
        await _step_until(lambda: clock.now - started >= 1.0)

        assert controller.cancel() is True
        assert controller.state is ExecutionState.READY

        result = await task
        assert result.status is ExecutionState.ERROR
        assert result.error == EXECUTION_CANCELLED_MESSAGE
        assert controller.last_result == result
        assert controller.state is ExecutionState.READY
        assert EXECUTION_SUCCEEDED_MESSAGE not in notifier.messages

        assert (await controller.confirm()).succeeded

    @pytest.mark.asyncio
    async def test_cancel_when_ready_is_noop(self, make_controller):
        controller = make_controller()
        await controller.submit(SWAP)
        assert controller.cancel() is False
        assert controller.state is ExecutionState.READY


# ══════════════════════════════════════════════════════════════════════
# Listeners
# ══════════════════════════════════════════════════════════════════════


class TestListeners:
    """State listeners are isolated from the state machine."""

    @pytest.mark.asyncio
    async def test_failing_listener_is_tolerated(self, make_controller):
        controller = make_controller()

        def broken(previous, current):
            raise RuntimeError("listener bug")

        controller.subscribe(broken)
        await controller.submit(SWAP)
        assert controller.state is ExecutionState.READY

    @pytest.mark.asyncio
    async def test_unsubscribe(self, make_controller):
        controller = make_controller()
        seen = []
        unsubscribe = controller.subscribe(lambda previous, current: seen.append(current))
        await controller.submit(SWAP)
        unsubscribe()
        await controller.submit("help")
        assert seen == [ExecutionState.UNDERSTANDING, ExecutionState.READY]
