"""
IP identity, per-action rate limiting, bans and input hygiene.

Clients are identified by a salted SHA-256 of their IP (the ipHash); the raw
address is never stored. Rate limits are fixed windows kept in the
``rate_limits`` table, one row per (ip_hash, action).
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import httpx
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from boreview.config import get_settings
from boreview.db.base import utcnow
from boreview.db.models import BannedIP, RateLimit

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from starlette.requests import Request

logger = logging.getLogger(__name__)

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"

# action -> (max requests, window seconds)
RATE_LIMITS: dict[str, tuple[int, int]] = {
    "comment": (5, 60),
    "reaction": (20, 60),
    "poll": (10, 60),
    "search": (30, 60),
    "auth": (10, 60),
    "newsletter": (3, 3600),
    "contact": (3, 3600),
    "upload": (10, 60),
    "admin": (100, 60),
    "public": (60, 60),
}
DEFAULT_RATE_LIMIT: tuple[int, int] = (10, 60)

PROFANITY_WORDS: tuple[str, ...] = ("spam", "scam", "xxx", "porn", "viagra", "casino")

_HTML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int


def hash_ip(ip: str) -> str:
    """Salted SHA-256 hex digest of a client IP."""
    salt = get_settings().ip_hash_salt
    return hashlib.sha256(f"{ip}{salt}".encode()).hexdigest()


def get_client_ip(request: Request) -> str:
    """Best-effort client IP: X-Forwarded-For (first hop), X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


def get_rate_limit(action: str) -> tuple[int, int]:
    return RATE_LIMITS.get(action, DEFAULT_RATE_LIMIT)


async def check_rate_limit(
    db: AsyncSession,
    ip_hash: str,
    action: str,
    now: datetime | None = None,
) -> RateLimitResult:
    """
    Count one request against the (ip_hash, action) window.

    A missing or expired window restarts at count 1. A full window denies
    without incrementing. The caller commits.
    """
    max_requests, window_seconds = get_rate_limit(action)
    now = now or utcnow()
    window_floor = now - timedelta(seconds=window_seconds)

    result = await db.execute(
        select(RateLimit).where(RateLimit.ip_hash == ip_hash, RateLimit.action == action)
    )
    row = result.scalar_one_or_none()

    if row is None:
        try:
            async with db.begin_nested():
                db.add(RateLimit(ip_hash=ip_hash, action=action, count=1, window_start=now))
        except IntegrityError:
            # A concurrent request created the window first; count against it instead
            logger.debug("Rate limit row race for %s/%s", ip_hash[:8], action)
            return await check_rate_limit(db, ip_hash, action, now)
        return RateLimitResult(allowed=True, remaining=max_requests - 1)

    if row.window_start < window_floor:
        row.count = 1
        row.window_start = now
        await db.flush()
        return RateLimitResult(allowed=True, remaining=max_requests - 1)

    if row.count >= max_requests:
        return RateLimitResult(allowed=False, remaining=0)

    previous = row.count
    row.count = previous + 1
    await db.flush()
    return RateLimitResult(allowed=True, remaining=max_requests - previous - 1)


async def is_ip_banned(db: AsyncSession, ip_hash: str) -> bool:
    result = await db.execute(select(BannedIP.id).where(BannedIP.ip_hash == ip_hash))
    return result.scalar_one_or_none() is not None


def contains_profanity(text: str) -> bool:
    """Case-insensitive substring match against the blocked word list."""
    lowered = text.lower()
    return any(word in lowered for word in PROFANITY_WORDS)


def sanitize_input(text: str) -> str:
    """Escape HTML-significant characters; everything else passes through."""
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in text)


async def verify_recaptcha(token: str | None) -> bool:
    """
    Verify a reCAPTCHA v3 token.

    Always passes when no secret key is configured. Network failures count as
    a failed verification.
    """
    settings = get_settings()
    if not settings.recaptcha_secret_key:
        return True
    if not token:
        return False

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                RECAPTCHA_VERIFY_URL,
                data={"secret": settings.recaptcha_secret_key, "response": token},
                timeout=10.0,
            )
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError):
        logger.warning("reCAPTCHA verification request failed", exc_info=True)
        return False

    return bool(data.get("success")) and float(data.get("score", 0)) >= settings.recaptcha_min_score
