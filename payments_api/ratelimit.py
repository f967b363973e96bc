from __future__ import annotations

import hashlib
import logging

import redis
from fastapi import HTTPException, Request

from payments_api.config import settings
from payments_api.redis_client import redis_client

logger = logging.getLogger(__name__)

def _client_key(request: Request) -> str:
    ip = (request.client.host if request.client else "unknown").strip()
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()[:24]

# fixed-window limiter on redis INCR + EXPIRE, keyed per route and caller ip
def rate_limit(name: str, limit_per_window: int, window_seconds: int):
    async def _dep(request: Request) -> None:
        if not settings.rate_limit_enabled:
            return

        key = f"rl:{name}:{_client_key(request)}"
        try:
            pipe = redis_client.pipeline()
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            count, _ = pipe.execute()
        except redis.RedisError as e:
            # fail open if redis is down
            logger.warning("rate_limit_unavailable", extra={"extra": {"limiter": name, "error": str(e)}})
            return

        if int(count) > int(limit_per_window):
            raise HTTPException(
                status_code=429,
                detail="rate_limited",
                headers={"Retry-After": str(window_seconds)},
            )

    return _dep
