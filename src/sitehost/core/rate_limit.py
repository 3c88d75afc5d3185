"""Rate limiting for credential endpoints (slowapi).

Uses the Redis storage backend when the site store itself runs on Redis so
limits are shared across workers; otherwise limits are per-process.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from src.sitehost.core.config import get_settings
from src.sitehost.core.logging import get_logger

logger = get_logger(__name__)

LOGIN_RATE_LIMIT = "5/minute"
REGISTER_RATE_LIMIT = "10/hour"


def get_rate_limit_key(request: Request) -> str:
    """Key buckets by client IP only; never by user-controlled headers."""
    return get_remote_address(request) or "unknown"


def create_limiter() -> Limiter:
    """Create the limiter. Disabled in the testing environment."""
    settings = get_settings()

    if settings.app_env == "testing":
        logger.info("Rate limiter disabled (testing environment)")
        return Limiter(key_func=get_rate_limit_key, enabled=False)

    if settings.storage_backend == "redis" and settings.redis_url:
        logger.info("Rate limiter using Redis backend")
        return Limiter(key_func=get_rate_limit_key, storage_uri=settings.redis_url)

    logger.info("Rate limiter using in-memory backend (not distributed)")
    return Limiter(key_func=get_rate_limit_key)


limiter = create_limiter()
