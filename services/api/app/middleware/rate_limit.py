"""Per-caller request throttling backed by a Redis sorted set per caller."""

import hashlib
import logging
import time
from typing import Callable

import redis.asyncio as redis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import Settings

logger = logging.getLogger(__name__)

EXEMPT_PATHS = frozenset({"/health", "/health/ready", "/metrics"})
WINDOW_SECONDS = 60


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Allow ``rate_limit_per_minute`` requests per caller over a sliding minute.

    Callers are told apart by a hash of their bearer token, or by client IP
    when anonymous. While Redis is unreachable every request is let through.
    """

    def __init__(self, app, settings: Settings) -> None:
        super().__init__(app)
        self._limit = settings.rate_limit_per_minute
        self._redis_url = settings.redis_url
        self._redis: redis.Redis | None = None

    async def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(self._redis_url, decode_responses=True)
        return self._redis

    @staticmethod
    def caller_key(request: Request) -> str | None:
        auth = request.headers.get("authorization", "")
        if auth.startswith("Bearer "):
            # Never store the token itself
            return "token:" + hashlib.sha256(auth[7:].encode()).hexdigest()[:16]
        if request.client:
            return f"ip:{request.client.host}"
        return None

    async def _hits_in_window(self, caller: str) -> int:
        """Record this hit and return how many came before it inside the window."""
        key = f"eventhub:ratelimit:{caller}"
        now = time.time()
        r = await self._get_redis()
        pipe = r.pipeline()
        pipe.zremrangebyscore(key, 0, now - WINDOW_SECONDS)
        pipe.zcard(key)
        pipe.zadd(key, {str(now): now})
        pipe.expire(key, WINDOW_SECONDS)
        _, earlier, _, _ = await pipe.execute()
        return earlier

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        caller = None if request.url.path in EXEMPT_PATHS else self.caller_key(request)
        if caller is None:
            return await call_next(request)

        try:
            earlier = await self._hits_in_window(caller)
        except Exception as e:
            logger.warning("Rate limiter skipped, Redis unavailable: %s", e)
            return await call_next(request)

        if earlier >= self._limit:
            logger.info("Rate limit hit for %s on %s", caller.split(":", 1)[0], request.url.path)
            return JSONResponse(
                status_code=429,
                content={"error": "RateLimited", "detail": "Rate limit exceeded. Try again later."},
                headers={
                    "Retry-After": str(WINDOW_SECONDS),
                    "X-RateLimit-Limit": str(self._limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self._limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self._limit - earlier - 1))
        return response
