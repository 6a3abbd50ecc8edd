"""
Centralized error handlers for FastAPI.

Maps command domain errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses share the ErrorResponse shape.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from intentflow.domain.command.errors import (
    CommandDomainError,
    EmptyCommandError,
    InvalidStateTransitionError,
    SessionNotFoundError,
)

logger = logging.getLogger(__name__)

HTTP_404 = 404
HTTP_409 = 409
HTTP_422 = 422
HTTP_500 = 500


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(SessionNotFoundError)
    async def handle_session_not_found(
        _request: Request, exc: SessionNotFoundError
    ) -> JSONResponse:
        """Handle unknown session ids."""
        logger.warning("Session not found: %s", exc.session_id)
        return _error_response(HTTP_404, "Session not found")

    @app.exception_handler(EmptyCommandError)
    async def handle_empty_command(
        _request: Request, exc: EmptyCommandError
    ) -> JSONResponse:
        """Handle blank command submissions."""
        logger.warning("Empty command rejected")
        return _error_response(HTTP_422, "Empty command", exc.message)

    @app.exception_handler(InvalidStateTransitionError)
    async def handle_invalid_transition(
        _request: Request, exc: InvalidStateTransitionError
    ) -> JSONResponse:
        """Handle operations that the session's current state does not allow."""
        logger.warning("Rejected %s in state %s", exc.operation, exc.state)
        return _error_response(HTTP_409, "Invalid state transition", exc.message)

    @app.exception_handler(CommandDomainError)
    async def handle_command_domain(
        _request: Request, exc: CommandDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled command domain errors."""
        logger.error("Unhandled command domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
