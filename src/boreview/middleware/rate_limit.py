"""Global request ceiling per client, counted in Redis fixed windows.

Per-action limits (comments, votes, contact form, ...) are enforced by
``boreview.security`` against the database; this layer only caps raw
request volume and is skipped entirely when Redis is not configured.
"""

import time
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from boreview.redis_client import get_redis
from boreview.security.dependencies import RATE_LIMITED_MESSAGE
from boreview.security.service import get_client_ip, hash_ip

logger = structlog.get_logger()

_EXEMPT_PATHS = frozenset({"/health", "/ready", "/version"})


async def _count_hit(redis: Redis, key: str, window_seconds: int) -> int:
    pipe = redis.pipeline()
    pipe.incr(key)
    pipe.expire(key, window_seconds + 1)
    count, _ = await pipe.execute()
    return int(count)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: Any, requests_per_window: int = 300, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    def _key(self, request: Request) -> str:
        window = int(time.time()) // self.window_seconds
        return f"boreview:ratelimit:{hash_ip(get_client_ip(request))}:{window}"

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        try:
            count = await _count_hit(get_redis(), self._key(request), self.window_seconds)
        except RuntimeError:
            return await call_next(request)
        except RedisError:
            logger.warning("global_rate_limit_unavailable", exc_info=True)
            return await call_next(request)

        limit = str(self.requests_per_window)
        if count > self.requests_per_window:
            logger.info("global_rate_limit_exceeded", path=request.url.path)
            return JSONResponse(
                status_code=429,
                content={"error": RATE_LIMITED_MESSAGE},
                headers={
                    "Retry-After": str(self.window_seconds),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Limit": limit,
                },
            )

        response = await call_next(request)
        # Per-action guards report a tighter remaining count; keep theirs.
        response.headers.setdefault("X-RateLimit-Remaining", str(self.requests_per_window - count))
        response.headers["X-RateLimit-Limit"] = limit
        return response
