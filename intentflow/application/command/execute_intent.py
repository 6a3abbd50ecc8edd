"""
Use case: Execute an intent outside of a session.

Input: ExecuteIntentCommand (intent)
Output: ExecutionResult (success with a transaction reference, or error)
Side effects: Whatever the executor commits.
Failure cases: None raised. ExecutionFailure becomes an error result.
"""

import logging
from typing import Optional

from intentflow.application.command.dtos import ExecuteIntentCommand
from intentflow.domain.command.cancellation import CancellationToken
from intentflow.domain.command.entities import ExecutionResult, ExecutionState
from intentflow.domain.command.errors import CancellationRequested, ExecutionFailure
from intentflow.domain.command.ports import ExecutorPort

logger = logging.getLogger(__name__)


class ExecuteIntentUseCase:
    """Commits an intent and reports success or error only."""

    def __init__(self, executor: ExecutorPort) -> None:
        self._executor = executor

    async def execute(
        self,
        command: ExecuteIntentCommand,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExecutionResult:
        """Run the execution use case.

        Args:
            command: The intent to execute.
            cancel_token: Optional token to abort the commit.

        Returns:
            The execution result.
        """
        token = cancel_token or CancellationToken()
        logger.info("Executing %s intent", command.intent.category.value)
        try:
            tx_reference = await self._executor.execute(command.intent, token)
        except ExecutionFailure as exc:
            logger.warning("Execution failed: %s", exc.reason)
            return ExecutionResult(status=ExecutionState.ERROR, error=exc.message)
        except CancellationRequested:
            return ExecutionResult(status=ExecutionState.ERROR, error="Execution cancelled")
        return ExecutionResult(status=ExecutionState.SUCCESS, tx_reference=tx_reference)
