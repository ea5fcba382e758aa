"""
Rate limiting shared by the application and the sync trigger routes.
"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

HEALTH_LIMIT = "120/minute"
GENERAL_LIMIT = "60/minute"
SYNC_TRIGGER_LIMIT = "10/minute"


def get_rate_limit_key(request: Request) -> str:
    """
    Get the rate limit key for a request.

    Uses IP address, with fallback to X-Forwarded-For for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[GENERAL_LIMIT],
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED
)
