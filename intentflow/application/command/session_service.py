"""
Use case: Drive per-session execution state machines.

Input: session id plus the operation (submit text, confirm, retry, cancel)
Output: SessionView of the session after the synchronous transition
Side effects: Starts the slow part of submit/confirm/retry as a
    background task; the caller polls the session for progress.
Failure cases: SessionNotFoundError, EmptyCommandError,
    InvalidStateTransitionError.
"""

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable

from intentflow.application.command.dtos import SessionView
from intentflow.domain.command.controller import ExecutionController
from intentflow.domain.command.errors import SessionNotFoundError

logger = logging.getLogger(__name__)

ControllerFactory = Callable[[], ExecutionController]


class CommandSessionService:
    """Owns one ExecutionController per session.

    Args:
        controller_factory: Builds a fresh controller for a new session.
        max_sessions: Oldest sessions are evicted beyond this count.
    """

    def __init__(self, controller_factory: ControllerFactory, max_sessions: int = 1000) -> None:
        self._factory = controller_factory
        self._max_sessions = max_sessions
        self._sessions: dict[str, ExecutionController] = {}
        self._background_tasks: set[asyncio.Task] = set()  # prevent GC
        self._session_tasks: dict[str, set[asyncio.Task]] = {}

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def create(self) -> SessionView:
        """Open a new idle session."""
        while len(self._sessions) >= self._max_sessions:
            oldest = next(iter(self._sessions))
            self._release(oldest)
            logger.info("Evicted session %s", oldest)

        session_id = uuid.uuid4().hex
        self._sessions[session_id] = self._factory()
        logger.info("Session created: %s", session_id)
        return self.get(session_id)

    def get(self, session_id: str) -> SessionView:
        controller = self._controller(session_id)
        return SessionView(
            session_id=session_id,
            state=controller.state,
            last_input=controller.last_input,
            intent=controller.intent,
            run=controller.run,
            error=controller.error,
            last_result=controller.last_result,
        )

    def controller(self, session_id: str) -> ExecutionController:
        """Return the controller behind a session."""
        return self._controller(session_id)

    def submit(self, session_id: str, text: str) -> SessionView:
        controller = self._controller(session_id)
        self._spawn(session_id, controller.begin_submit(text))
        return self.get(session_id)

    def confirm(self, session_id: str) -> SessionView:
        controller = self._controller(session_id)
        self._spawn(session_id, controller.begin_confirm())
        return self.get(session_id)

    def retry(self, session_id: str) -> SessionView:
        controller = self._controller(session_id)
        self._spawn(session_id, controller.begin_retry())
        return self.get(session_id)

    def cancel(self, session_id: str) -> tuple[bool, SessionView]:
        """Cancel the session's running phase.

        Returns:
            Whether anything was cancelled, and the session after it.
        """
        cancelled = self._controller(session_id).cancel()
        return cancelled, self.get(session_id)

    def close(self, session_id: str) -> None:
        self._controller(session_id)  # raises SessionNotFoundError
        self._release(session_id)
        logger.info("Session closed: %s", session_id)

    async def shutdown(self) -> None:
        """Cancel every session and wait for background work to stop."""
        for controller in self._sessions.values():
            controller.cancel()
        tasks = list(self._background_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._sessions.clear()
        self._session_tasks.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _controller(self, session_id: str) -> ExecutionController:
        controller = self._sessions.get(session_id)
        if controller is None:
            raise SessionNotFoundError(session_id)
        return controller

    def _release(self, session_id: str) -> None:
        """Drop a session, cancelling its controller and any work it still has running."""
        self._sessions.pop(session_id).cancel()
        for task in self._session_tasks.pop(session_id, set()):
            task.cancel()

    def _spawn(self, session_id: str, work: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(work)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        session_tasks = self._session_tasks.setdefault(session_id, set())
        session_tasks.add(task)
        task.add_done_callback(session_tasks.discard)
        task.add_done_callback(lambda t: self._log_failure(session_id, t))

    @staticmethod
    def _log_failure(session_id: str, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Background work for session %s failed: %s", session_id, task.exception()
            )
