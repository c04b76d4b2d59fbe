"""Rate limiting for the credential endpoints (slowapi, in-memory storage)."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from footballzone.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],          # applied per-route
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)

# login / register
AUTH_LIMIT = settings.AUTH_RATE_LIMIT
