# plantgenius/extensions.py

from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
import redis

db = SQLAlchemy()
cors = CORS()


def init_redis(app):
    """Connect to REDIS_URL for shared rate limit counters.

    Returns None when Redis is not configured or unreachable; the limiter then
    counts per process.
    """
    url = app.config.get("REDIS_URL")
    if not url:
        app.logger.info("REDIS_URL not set, rate limit counters stay in process")
        return None

    client = redis.Redis.from_url(url, decode_responses=True, socket_timeout=2)
    try:
        client.ping()
    except redis.RedisError as exc:
        app.logger.warning(f"Redis unavailable at startup, using in-process counters: {exc}")
        return None

    app.extensions["redis"] = client
    app.logger.info("Redis connected for rate limiting")
    return client
