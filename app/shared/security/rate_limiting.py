"""
Rate limiting configuration and setup.

Uses slowapi to throttle the custody write endpoints.
Callers are keyed by their X-User-Id header, falling back to the
remote address for anonymous requests.
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.core.config import settings

USER_ID_HEADER = "x-user-id"


def caller_key(request: Request) -> str:
    """Return the rate limit bucket for a request."""
    user_id = request.headers.get(USER_ID_HEADER)
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=caller_key)

WRITE_RATE_LIMIT = settings.write_rate_limit


async def rate_limit_exceeded_handler(
    _request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Handle rate limit exceeded errors with a clean JSON response.

    Args:
        _request: The incoming HTTP request.
        exc: The rate limit exceeded exception.

    Returns:
        A 429 JSON response with a clear error message.
    """
    return JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded", "detail": str(exc.detail)},
    )
