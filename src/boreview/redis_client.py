"""Optional Redis client.

Redis only backs the coarse global request ceiling. When
``BOREVIEW_REDIS_URL`` is empty, or the app runs without its lifespan (the
test client), the client stays unset and callers fall back to letting
requests through.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> None:
    global _client  # noqa: PLW0603
    if not url:
        _client = None
        return
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    client, _client = _client, None
    if client is not None:
        await client.aclose()


def get_redis() -> redis.Redis:
    """Return the shared client; RuntimeError when Redis is not configured."""
    if _client is None:
        msg = "Redis is not configured"
        raise RuntimeError(msg)
    return _client


async def redis_status() -> str:
    """``ok``, ``disabled`` or ``error: <reason>`` for the readiness probe."""
    if _client is None:
        return "disabled"
    try:
        await _client.ping()
    except RedisError as exc:
        return f"error: {exc}"
    return "ok"
