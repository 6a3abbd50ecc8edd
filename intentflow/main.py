"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (health, commands)
- Error handlers (centralized domain-to-HTTP mapping)
- Security middleware (headers, rate limiting)
- Logging configuration
- Session shutdown on exit

No business logic belongs here.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from intentflow.core.config import settings
from intentflow.interfaces.command.dependencies import get_session_service
from intentflow.interfaces.command.router import router as command_router
from intentflow.interfaces.health import router as health_router
from intentflow.shared.errors.handlers import register_error_handlers
from intentflow.shared.logging import configure_logging
from intentflow.shared.security.headers import SecurityHeadersMiddleware
from intentflow.shared.security.rate_limiting import limiter, rate_limit_exceeded_handler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: stop every session's background work on exit."""
    logger.info("%s %s starting", settings.project_name, settings.version)
    yield
    await get_session_service().shutdown()
    logger.info("%s stopped", settings.project_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This is the composition root of the HTTP host.

    Returns:
        A fully configured FastAPI application instance.
    """
    configure_logging(level=settings.log_level)

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # --- Rate Limiting ---
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # --- Security Middleware ---
    app.add_middleware(SecurityHeadersMiddleware)

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(command_router, prefix="/api/v1")

    return app


app = create_app()
