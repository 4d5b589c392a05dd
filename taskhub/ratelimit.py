import hashlib

import redis
import structlog
from fastapi import Request, Response

from taskhub.config import settings
from taskhub.errors import RateLimited
from taskhub import redis_client as rc

log = structlog.get_logger()

def _hash(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()[:24]

# fixed-window limiter using redis INCR + EXPIRE
def rate_limit(name: str, limit_per_window: int, window_seconds: int = 60):
    def _dep(request: Request, response: Response) -> None:
        if not settings.rate_limit_enabled:
            return

        ip = (request.client.host if request.client else "unknown").strip()
        key = f"rl:{name}:{_hash(ip)}"

        try:
            pipe = rc.redis_client.pipeline()
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            count, _ = pipe.execute()
        except redis.RedisError:
            # fail-open if redis is down
            log.warning("ratelimit.redis_unavailable", name=name)
            return

        count = int(count)
        remaining = max(int(limit_per_window) - count, 0)
        response.headers["RateLimit-Policy"] = f"{limit_per_window};w={window_seconds}"
        response.headers["RateLimit-Limit"] = str(limit_per_window)
        response.headers["RateLimit-Remaining"] = str(remaining)

        if count > int(limit_per_window):
            log.info("ratelimit.exceeded", name=name)
            raise RateLimited()

    return _dep
