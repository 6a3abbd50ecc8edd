"""
Domain-specific errors for the command bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.

Stage-level problems (warnings, failures) are never raised past the
orchestrator; they are recorded on the Stage itself. Only
ExecutionFailure travels up to the execution controller.
"""


class CommandDomainError(Exception):
    """Base error for all command domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class EmptyCommandError(CommandDomainError):
    """Raised when a blank command is submitted."""

    def __init__(self) -> None:
        super().__init__("Command text must not be empty")


class InvalidStateTransitionError(CommandDomainError):
    """Raised when an operation is not allowed in the current execution state."""

    def __init__(self, operation: str, state: str) -> None:
        super().__init__(f"Cannot {operation} while {state}")
        self.operation = operation
        self.state = state


class StageTransitionError(CommandDomainError):
    """Raised when a stage is moved through an illegal status change."""

    def __init__(self, stage_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Stage {stage_id} cannot move from {current} to {target}"
        )
        self.stage_id = stage_id
        self.current = current
        self.target = target


class PipelineNotTerminalError(CommandDomainError):
    """Raised when an aggregate is set before every stage is terminal."""

    def __init__(self, pending: int) -> None:
        super().__init__(f"{pending} stage(s) have not reached a terminal status")
        self.pending = pending


class AggregateAlreadySetError(CommandDomainError):
    """Raised when a pipeline run's aggregate is written twice."""

    def __init__(self) -> None:
        super().__init__("Aggregate has already been computed for this run")


class SessionNotFoundError(CommandDomainError):
    """Raised when a command session id is unknown."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class ExecutionFailure(CommandDomainError):
    """Raised from the executing phase when the commit does not go through."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Execution failed: {reason}")
        self.reason = reason


class CancellationRequested(Exception):
    """Cooperative cancellation signal. Not an error.

    Raised at suspension points when the session's cancellation token
    is set, and caught by whoever owns the cancelled operation.
    """
