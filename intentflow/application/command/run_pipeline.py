"""
Use case: Run the multi-stage analysis pipeline for an intent.

Input: RunPipelineCommand (intent)
Output: AsyncIterator[PipelineRun] of snapshots; the last one carries
    the aggregate.
Side effects: None.
Failure cases: None. Stage problems are recorded on the stages.
"""

import logging
from typing import AsyncIterator, Optional

from intentflow.application.command.dtos import RunPipelineCommand
from intentflow.domain.command.cancellation import CancellationToken
from intentflow.domain.command.entities import PipelineRun
from intentflow.domain.command.orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)


class RunPipelineUseCase:
    """Streams pipeline snapshots from the orchestrator."""

    def __init__(self, orchestrator: PipelineOrchestrator) -> None:
        self._orchestrator = orchestrator

    def execute(
        self,
        command: RunPipelineCommand,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[PipelineRun]:
        """Start a pipeline run.

        Args:
            command: The intent to analyse.
            cancel_token: Optional token to stop the run early.

        Returns:
            An async iterator of PipelineRun snapshots.
        """
        logger.info("Running pipeline for %s intent", command.intent.category.value)
        return self._orchestrator.run(command.intent, cancel_token)
