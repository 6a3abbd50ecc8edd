"""
Health check router.

Liveness/readiness probe. Returns application status and version.
"""

from fastapi import APIRouter

from intentflow.core.config import settings
from intentflow.interfaces.command.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns application health status and version.",
)
def health_check() -> HealthResponse:
    """Return current application health status."""
    return HealthResponse(status="ok", version=settings.version)
