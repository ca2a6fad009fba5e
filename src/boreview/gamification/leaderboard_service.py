"""Leaderboard rankings with a short-lived table cache.

Rankings are computed for the top 50 and cached per (period, category);
requests with a smaller limit slice the cached list.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.config import get_settings
from boreview.db.base import utcnow
from boreview.db.models import LeaderboardCache, PointTransaction, Streak, VisitorProfile

logger = logging.getLogger(__name__)

PERIODS = ("weekly", "monthly", "alltime")
CATEGORIES = ("xp", "streak", "comments")
MAX_LIMIT = 50
PERIOD_DAYS = {"weekly": 7, "monthly": 30}


def period_start(period: str, now: datetime) -> datetime | None:
    days = PERIOD_DAYS.get(period)
    return now - timedelta(days=days) if days else None


def _entry(rank: int, visitor_id: str, username: str, display_name: str | None, value: int) -> dict:
    return {
        "visitor_id": visitor_id,
        "username": username,
        "display_name": display_name or username,
        "value": int(value or 0),
        "rank": rank,
    }


async def _sum_transactions(
    db: AsyncSession,
    since: datetime | None,
    action: str | None,
    aggregate: str,
) -> list[dict]:
    value = func.sum(PointTransaction.points) if aggregate == "sum" else func.count(PointTransaction.id)
    query = (
        select(VisitorProfile.id, VisitorProfile.username, VisitorProfile.display_name, value.label("value"))
        .join(PointTransaction, PointTransaction.visitor_id == VisitorProfile.id)
        .where(VisitorProfile.is_banned.is_(False))
        .group_by(VisitorProfile.id, VisitorProfile.username, VisitorProfile.display_name)
        .order_by(value.desc())
        .limit(MAX_LIMIT)
    )
    if since is not None:
        query = query.where(PointTransaction.created_at >= since)
    if action is not None:
        query = query.where(PointTransaction.action == action)
    rows = (await db.execute(query)).all()
    return [_entry(i + 1, r.id, r.username, r.display_name, r.value) for i, r in enumerate(rows)]


async def generate_rankings(db: AsyncSession, period: str, category: str, now: datetime | None = None) -> list[dict]:
    """Fresh top-50 rankings for one leaderboard.

    xp: all-time total, or XP earned inside the period.
    streak: current streak (period-independent).
    comments: comment awards inside the period.
    """
    now = now or utcnow()
    since = period_start(period, now)

    if category == "xp":
        if since is None:
            result = await db.execute(
                select(VisitorProfile)
                .where(VisitorProfile.is_banned.is_(False))
                .order_by(VisitorProfile.total_xp.desc(), VisitorProfile.created_at)
                .limit(MAX_LIMIT)
            )
            return [
                _entry(i + 1, v.id, v.username, v.display_name, v.total_xp)
                for i, v in enumerate(result.scalars())
            ]
        return await _sum_transactions(db, since, None, "sum")

    if category == "streak":
        result = await db.execute(
            select(Streak, VisitorProfile)
            .join(VisitorProfile, VisitorProfile.id == Streak.visitor_id)
            .where(VisitorProfile.is_banned.is_(False))
            .order_by(Streak.current_streak.desc(), Streak.longest_streak.desc())
            .limit(MAX_LIMIT)
        )
        return [
            _entry(i + 1, v.id, v.username, v.display_name, s.current_streak)
            for i, (s, v) in enumerate(result.all())
        ]

    if category == "comments":
        return await _sum_transactions(db, since, "comment", "count")

    return []


async def _cached_rankings(db: AsyncSession, period: str, category: str, now: datetime) -> tuple[list[dict], datetime]:
    ttl = timedelta(seconds=get_settings().leaderboard_cache_ttl_seconds)
    result = await db.execute(
        select(LeaderboardCache).where(
            LeaderboardCache.period == period,
            LeaderboardCache.category == category,
        )
    )
    cached = result.scalar_one_or_none()
    if cached is not None and now - cached.updated_at < ttl:
        return list(cached.rankings), cached.updated_at

    rankings = await generate_rankings(db, period, category, now)
    if cached is not None:
        cached.rankings = rankings
        cached.updated_at = now
        await db.flush()
        return rankings, now

    try:
        async with db.begin_nested():
            db.add(LeaderboardCache(period=period, category=category, rankings=rankings, updated_at=now))
    except IntegrityError:
        # Another request filled the cache first; serve our fresh copy anyway
        logger.debug("Leaderboard cache race for %s/%s", period, category)
    return rankings, now


async def _period_xp_rank(db: AsyncSession, visitor: VisitorProfile, since: datetime) -> dict:
    mine = await db.scalar(
        select(func.coalesce(func.sum(PointTransaction.points), 0)).where(
            PointTransaction.visitor_id == visitor.id,
            PointTransaction.created_at >= since,
        )
    )
    totals = (
        select(PointTransaction.visitor_id)
        .join(VisitorProfile, VisitorProfile.id == PointTransaction.visitor_id)
        .where(PointTransaction.created_at >= since, VisitorProfile.is_banned.is_(False))
        .group_by(PointTransaction.visitor_id)
        .having(func.sum(PointTransaction.points) > mine)
        .subquery()
    )
    higher = await db.scalar(select(func.count()).select_from(totals))
    return _entry(int(higher or 0) + 1, visitor.id, visitor.username, visitor.display_name, int(mine or 0))


async def _fallback_rank(
    db: AsyncSession,
    visitor_id: str,
    period: str,
    category: str,
    now: datetime,
) -> dict | None:
    """Rank for a visitor outside the cached top list, counted the same way as the rankings."""
    result = await db.execute(select(VisitorProfile).where(VisitorProfile.id == visitor_id))
    visitor = result.scalar_one_or_none()
    if visitor is None:
        return None

    not_banned = VisitorProfile.is_banned.is_(False)
    if category == "xp":
        since = period_start(period, now)
        if since is not None:
            return await _period_xp_rank(db, visitor, since)
        higher = await db.scalar(
            select(func.count(VisitorProfile.id)).where(not_banned, VisitorProfile.total_xp > visitor.total_xp)
        )
        return _entry(int(higher or 0) + 1, visitor.id, visitor.username, visitor.display_name, visitor.total_xp)
    if category == "streak":
        higher = await db.scalar(
            select(func.count(VisitorProfile.id)).where(
                not_banned, VisitorProfile.current_streak > visitor.current_streak
            )
        )
        return _entry(
            int(higher or 0) + 1, visitor.id, visitor.username, visitor.display_name, visitor.current_streak
        )
    return None


def _public(entry: dict) -> dict:
    return {k: v for k, v in entry.items() if k != "visitor_id"}


async def get_leaderboard(
    db: AsyncSession,
    period: str,
    category: str,
    limit: int = 10,
    visitor_id: str | None = None,
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()
    limit = max(1, min(limit, MAX_LIMIT))
    rankings, updated_at = await _cached_rankings(db, period, category, now)

    user_rank = None
    if visitor_id is not None:
        user_rank = next((r for r in rankings if r["visitor_id"] == visitor_id), None)
        if user_rank is None:
            user_rank = await _fallback_rank(db, visitor_id, period, category, now)

    return {
        "period": period,
        "category": category,
        "rankings": [_public(r) for r in rankings[:limit]],
        "user_rank": _public(user_rank) if user_rank else None,
        "updated_at": updated_at,
    }
