"""
Data Transfer Objects for the command application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass
from typing import Optional

from intentflow.domain.command.entities import (
    ExecutionResult,
    ExecutionState,
    Intent,
    PipelineRun,
)


@dataclass(frozen=True)
class ClassifyCommandQuery:
    """Input DTO for classifying a free-text command.

    Attributes:
        text: Raw user input.
    """

    text: str


@dataclass(frozen=True)
class RunPipelineCommand:
    """Input DTO for running the analysis pipeline.

    Attributes:
        intent: The classified intent to analyse.
    """

    intent: Intent


@dataclass(frozen=True)
class ExecuteIntentCommand:
    """Input DTO for committing an intent.

    Attributes:
        intent: The intent to execute.
    """

    intent: Intent


@dataclass(frozen=True)
class SessionView:
    """Output DTO describing one command session.

    Attributes:
        session_id: Opaque session identifier.
        state: Current execution state.
        last_input: Most recently submitted text, if any.
        intent: Intent of the current analysis, if classified.
        run: Latest pipeline snapshot, if any.
        error: Error text of the last failure, if any.
        last_result: Result of the last execution attempt, if any.
    """

    session_id: str
    state: ExecutionState
    last_input: Optional[str] = None
    intent: Optional[Intent] = None
    run: Optional[PipelineRun] = None
    error: Optional[str] = None
    last_result: Optional[ExecutionResult] = None
