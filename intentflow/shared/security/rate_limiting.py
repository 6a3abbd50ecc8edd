"""
Rate limiting setup.

slowapi limiter keyed on the client address. Limits come from settings;
the execute endpoint gets a tighter one than the rest.
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from intentflow.core.config import settings

DEFAULT_RATE_LIMIT = settings.rate_limit_default
EXECUTE_RATE_LIMIT = settings.rate_limit_execute

limiter = Limiter(key_func=get_remote_address, default_limits=[DEFAULT_RATE_LIMIT])


async def rate_limit_exceeded_handler(
    _request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Return a 429 JSON response in the shared error shape."""
    return JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded", "detail": str(exc.detail)},
    )
