"""FastAPI dependencies for IP identity, bans and per-action rate limits."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.dependencies import get_db
from boreview.security.service import check_rate_limit, get_client_ip, hash_ip, is_ip_banned

RATE_LIMITED_MESSAGE = "Quá nhiều yêu cầu. Vui lòng thử lại sau."


async def get_ip_hash(request: Request) -> str:
    return hash_ip(get_client_ip(request))


async def enforce_guard(db: AsyncSession, response: Response, ip_hash: str, action: str) -> None:
    """Reject banned IPs (403) and over-limit callers (429); commits the counter."""
    if await is_ip_banned(db, ip_hash):
        raise HTTPException(status_code=403, detail="Access denied")

    result = await check_rate_limit(db, ip_hash, action)
    await db.commit()
    if not result.allowed:
        raise HTTPException(
            status_code=429,
            detail=RATE_LIMITED_MESSAGE,
            headers={"Retry-After": "60", "X-RateLimit-Remaining": "0"},
        )
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)


def public_guard(action: str) -> Callable[..., Awaitable[str]]:
    """Build a dependency that guards a public endpoint and yields the caller's ipHash."""

    async def guard(
        response: Response,
        ip_hash: str = Depends(get_ip_hash),
        db: AsyncSession = Depends(get_db),
    ) -> str:
        await enforce_guard(db, response, ip_hash, action)
        return ip_hash

    return guard
