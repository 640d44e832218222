import logging

from flask import request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def default_limit(max_requests: int, window_seconds: int) -> str:
    return f"{max_requests} per {window_seconds} seconds"


def storage_uri(app, redis_client=None) -> str:
    """Shared counters in Redis when it answered at startup, otherwise per process."""
    if redis_client is not None:
        return app.config["REDIS_URL"]
    return "memory://"


def init_rate_limiter(app, redis_client=None, path_prefix: str = "/api") -> Limiter:
    """Per-IP fixed-window limit on every route under path_prefix."""
    limit = default_limit(
        app.config.get("RATE_LIMIT_MAX_REQUESTS", 100),
        app.config.get("RATE_LIMIT_WINDOW_SECONDS", 900),
    )
    # remote_addr is the real client once ProxyFix has run
    limiter = Limiter(
        get_remote_address,
        app=app,
        default_limits=[limit],
        storage_uri=storage_uri(app, redis_client),
        strategy="fixed-window",
        headers_enabled=True,
        in_memory_fallback_enabled=True,
        enabled=app.config.get("RATE_LIMIT_ENABLED", True),
    )

    @limiter.request_filter
    def _outside_api():
        return not request.path.startswith(path_prefix)

    logger.info("Rate limiting %s: %s", path_prefix, limit)
    return limiter
