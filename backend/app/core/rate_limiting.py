"""Per-client request limit for the API, keyed on the remote address."""

import redis
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings


def _storage_uri() -> str:
    """Redis when it answers a ping, so API workers share counters; memory otherwise."""
    if not settings.RATE_LIMIT_ENABLED:
        return "memory://"
    try:
        redis.from_url(settings.REDIS_URL).ping()
    except (redis.RedisError, ValueError):
        return "memory://"
    return settings.REDIS_URL


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_storage_uri(),
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


def get_limiter() -> Limiter:
    return limiter


def default_limit() -> str:
    """Limit applied to the account deletion endpoint."""
    return settings.RATE_LIMIT_DEFAULT
