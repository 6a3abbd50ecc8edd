"""
Domain service: per-session execution state machine.

States and transitions:
    idle --submit--> understanding --pipeline done--> ready
    ready --confirm--> executing --commit ok--> success --(delay)--> idle
    understanding/executing --error--> error --retry--> understanding
    understanding --cancel--> idle
    executing --cancel--> ready

``submit`` is accepted from idle, ready, success and error. While
executing, only ``cancel`` is accepted. Any other operation raises
InvalidStateTransitionError.

The ``begin_*`` methods perform the synchronous transition and return
the awaitable remainder, so a host can run the slow part in the
background while the new state is already observable.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from intentflow.domain.command.cancellation import CancellationToken
from intentflow.domain.command.entities import (
    ExecutionResult,
    ExecutionState,
    Intent,
    Notification,
    NotificationType,
    PipelineRun,
)
from intentflow.domain.command.errors import (
    CancellationRequested,
    EmptyCommandError,
    InvalidStateTransitionError,
)
from intentflow.domain.command.orchestrator import PipelineOrchestrator
from intentflow.domain.command.ports import (
    ClockPort,
    CommandInterpreterPort,
    ExecutorPort,
    NotificationSinkPort,
)

logger = logging.getLogger(__name__)

StateListener = Callable[[ExecutionState, ExecutionState], None]

ALLOWED: dict[str, frozenset[ExecutionState]] = {
    "submit": frozenset(
        {
            ExecutionState.IDLE,
            ExecutionState.READY,
            ExecutionState.SUCCESS,
            ExecutionState.ERROR,
        }
    ),
    "confirm": frozenset({ExecutionState.READY}),
    "retry": frozenset({ExecutionState.ERROR}),
}

ANALYSIS_FAILED_MESSAGE = "Failed to process natural language query"
EXECUTION_FAILED_MESSAGE = "Command execution failed"
EXECUTION_SUCCEEDED_MESSAGE = "Command executed successfully!"
EXECUTION_CANCELLED_MESSAGE = "Execution cancelled"


class ExecutionController:
    """Sequences interpretation, analysis and execution for one session.

    Args:
        interpreter: Strategy that classifies the submitted text.
        orchestrator: Pipeline that analyses the classified intent.
        executor: Strategy that commits a confirmed intent.
        notifier: Sink for user-facing notifications.
        clock: Time source for the classify latency and the auto-reset.
        classify_latency: Seconds spent "understanding" before classifying.
        reset_delay: Seconds after which success returns to idle.
    """

    def __init__(
        self,
        interpreter: CommandInterpreterPort,
        orchestrator: PipelineOrchestrator,
        executor: ExecutorPort,
        notifier: NotificationSinkPort,
        clock: ClockPort,
        *,
        classify_latency: float = 1.0,
        reset_delay: float = 2.0,
    ) -> None:
        self._interpreter = interpreter
        self._orchestrator = orchestrator
        self._executor = executor
        self._notifier = notifier
        self._clock = clock
        self._classify_latency = classify_latency
        self._reset_delay = reset_delay

        self._state = ExecutionState.IDLE
        self._listeners: list[StateListener] = []
        self._token: Optional[CancellationToken] = None
        self._reset_task: Optional[asyncio.Task] = None

        self._last_input: Optional[str] = None
        self._intent: Optional[Intent] = None
        self._run: Optional[PipelineRun] = None
        self._error: Optional[str] = None
        self._last_result: Optional[ExecutionResult] = None

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ExecutionState:
        return self._state

    @property
    def last_input(self) -> Optional[str]:
        return self._last_input

    @property
    def intent(self) -> Optional[Intent]:
        return self._intent

    @property
    def run(self) -> Optional[PipelineRun]:
        """Latest snapshot of the current (or last cancelled) pipeline run."""
        return self._run

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def last_result(self) -> Optional[ExecutionResult]:
        return self._last_result

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a ``(previous, current)`` listener; returns an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def submit(self, text: str) -> Optional[PipelineRun]:
        return await self.begin_submit(text)

    async def confirm(self) -> ExecutionResult:
        return await self.begin_confirm()

    async def retry(self) -> Optional[PipelineRun]:
        return await self.begin_retry()

    def begin_submit(self, text: str) -> Awaitable[Optional[PipelineRun]]:
        """Enter understanding for ``text`` and return the analysis coroutine."""
        if not text or not text.strip():
            raise EmptyCommandError()
        self._require("submit")
        return self._start_understanding(text)

    def begin_retry(self) -> Awaitable[Optional[PipelineRun]]:
        """Re-run understanding with the last submitted input."""
        self._require("retry")
        return self._start_understanding(self._last_input or "")

    def begin_confirm(self) -> Awaitable[ExecutionResult]:
        """Enter executing for the ready intent and return the commit coroutine."""
        self._require("confirm")
        if self._intent is None or self._run is None or self._run.aggregate is None:
            raise InvalidStateTransitionError("confirm", "analysis is incomplete")

        token = CancellationToken()
        self._token = token
        self._error = None
        self._last_result = None
        self._transition(ExecutionState.EXECUTING)
        return self._execute(self._intent, token)

    def cancel(self) -> bool:
        """Cancel understanding or executing. Returns False if nothing ran."""
        if self._state is ExecutionState.UNDERSTANDING:
            target = ExecutionState.IDLE
        elif self._state is ExecutionState.EXECUTING:
            target = ExecutionState.READY
        else:
            return False

        if self._token is not None:
            self._token.cancel()
        self._transition(target)
        return True

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _start_understanding(self, text: str) -> Awaitable[Optional[PipelineRun]]:
        self._cancel_reset()
        token = CancellationToken()
        self._token = token
        self._last_input = text
        self._intent = None
        self._run = None
        self._error = None
        self._last_result = None
        self._transition(ExecutionState.UNDERSTANDING)
        return self._understand(text, token)

    async def _understand(
        self, text: str, token: CancellationToken
    ) -> Optional[PipelineRun]:
        try:
            await self._clock.sleep(self._classify_latency)
            token.raise_if_cancelled()

            intent = self._interpreter.classify(text)
            if self._token is token:
                self._intent = intent

            async for snapshot in self._orchestrator.run(intent, token):
                if self._token is token:
                    self._run = snapshot
            token.raise_if_cancelled()
        except CancellationRequested:
            logger.info("Understanding cancelled")
            return self._run if self._token is token else None
        except Exception as exc:
            if self._token is not token:
                return None
            logger.error("Failed to analyse command: %s", exc)
            self._error = str(exc) or type(exc).__name__
            self._transition(ExecutionState.ERROR)
            await self._notify(NotificationType.ERROR, ANALYSIS_FAILED_MESSAGE, 5000)
            return None

        if self._token is not token:
            return None
        self._transition(ExecutionState.READY)
        await self._notify(
            NotificationType.SUCCESS,
            f"Analysis completed with {round(intent.confidence * 100)}% confidence",
            3000,
        )
        return self._run

    async def _execute(self, intent: Intent, token: CancellationToken) -> ExecutionResult:
        try:
            tx_reference = await self._executor.execute(intent, token)
            token.raise_if_cancelled()
        except CancellationRequested:
            logger.info("Execution cancelled")
            result = ExecutionResult(
                status=ExecutionState.ERROR, error=EXECUTION_CANCELLED_MESSAGE
            )
            if self._token is token:
                self._last_result = result
            return result
        except Exception as exc:
            result = ExecutionResult(
                status=ExecutionState.ERROR, error=str(exc) or type(exc).__name__
            )
            if self._token is not token:
                return result
            logger.error("Execution failed: %s", exc)
            self._error = result.error
            self._last_result = result
            self._transition(ExecutionState.ERROR)
            await self._notify(NotificationType.ERROR, EXECUTION_FAILED_MESSAGE, 5000)
            return result

        result = ExecutionResult(status=ExecutionState.SUCCESS, tx_reference=tx_reference)
        if self._token is not token:
            return result
        self._last_result = result
        self._transition(ExecutionState.SUCCESS)
        await self._notify(NotificationType.SUCCESS, EXECUTION_SUCCEEDED_MESSAGE, 4000)
        self._reset_task = asyncio.create_task(self._auto_reset(token))
        return result

    async def _auto_reset(self, token: CancellationToken) -> None:
        await self._clock.sleep(self._reset_delay)
        if self._state is ExecutionState.SUCCESS and self._token is token:
            self._transition(ExecutionState.IDLE)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, operation: str) -> None:
        if self._state not in ALLOWED[operation]:
            raise InvalidStateTransitionError(operation, self._state.value)

    def _cancel_reset(self) -> None:
        if self._reset_task is not None and not self._reset_task.done():
            self._reset_task.cancel()
        self._reset_task = None

    def _transition(self, target: ExecutionState) -> None:
        previous = self._state
        self._state = target
        logger.info("Execution state: %s -> %s", previous.value, target.value)
        for listener in list(self._listeners):
            try:
                listener(previous, target)
            except Exception:
                logger.exception("State listener raised")

    async def _notify(self, type_: NotificationType, message: str, duration_ms: int) -> None:
        await self._notifier.notify(Notification(type_, message, duration_ms))
