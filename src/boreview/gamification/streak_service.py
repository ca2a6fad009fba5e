"""Daily check-in streaks with freeze tokens.

A check-in on the site day after the previous one extends the streak. A gap
consumes a freeze when one is available, otherwise the streak restarts at 1.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.db.base import utcnow
from boreview.db.models import PointTransaction, Streak
from boreview.gamification.badge_service import award_badge
from boreview.gamification.site_day import site_date, site_day_start
from boreview.gamification.xp_service import XP_REWARDS, award_xp, get_visitor

logger = logging.getLogger(__name__)

STREAK_MILESTONES: tuple[int, ...] = (3, 7, 14, 30, 60, 100, 365)
CALENDAR_DAYS = 30


class StreakNotFoundError(LookupError):
    """The visitor has no streak row yet."""


class NoFreezeAvailableError(ValueError):
    """A freeze was requested with none left."""


async def get_streak(db: AsyncSession, visitor_id: str) -> Streak | None:
    result = await db.execute(select(Streak).where(Streak.visitor_id == visitor_id))
    return result.scalar_one_or_none()


async def _sync_visitor_streak(db: AsyncSession, visitor_id: str, current: int, longest: int) -> None:
    visitor = await get_visitor(db, visitor_id)
    if visitor is not None:
        visitor.current_streak = current
        visitor.longest_streak = longest


async def check_and_update_streak(
    db: AsyncSession,
    visitor_id: str,
    now: datetime | None = None,
) -> dict:
    """Advance the visitor's streak for today's check-in.

    Returns current_streak, is_new_day, streak_broken, xp_awarded and
    milestone_badge (badge name or None). XP is only computed here; the
    caller pays it out (see daily_check_in).
    """
    now = now or utcnow()
    today = site_date(now)
    yesterday = today - timedelta(days=1)

    streak = await get_streak(db, visitor_id)
    if streak is None:
        db.add(Streak(visitor_id=visitor_id, current_streak=1, longest_streak=1, last_check_in=now))
        await _sync_visitor_streak(db, visitor_id, 1, 1)
        await db.flush()
        return {
            "current_streak": 1,
            "is_new_day": True,
            "streak_broken": False,
            "xp_awarded": XP_REWARDS["daily_login"],
            "milestone_badge": None,
        }

    last_day = site_date(streak.last_check_in)
    if last_day >= today:
        return {
            "current_streak": streak.current_streak,
            "is_new_day": False,
            "streak_broken": False,
            "xp_awarded": 0,
            "milestone_badge": None,
        }

    xp_awarded = XP_REWARDS["daily_login"]
    streak_broken = False
    if last_day == yesterday:
        new_streak = streak.current_streak + 1
        xp_awarded += XP_REWARDS["streak_bonus"] * new_streak
    elif streak.freezes_available > 0:
        new_streak = streak.current_streak
        streak.freezes_available -= 1
        streak.freezes_used += 1
        logger.info("Freeze consumed for visitor %s (%d left)", visitor_id, streak.freezes_available)
    else:
        new_streak = 1
        streak_broken = True

    streak.current_streak = new_streak
    streak.longest_streak = max(streak.longest_streak, new_streak)
    streak.last_check_in = now
    await _sync_visitor_streak(db, visitor_id, new_streak, streak.longest_streak)
    await db.flush()

    milestone_badge = None
    if new_streak in STREAK_MILESTONES:
        badge = await award_badge(db, visitor_id, f"streak-{new_streak}")
        if badge is not None:
            milestone_badge = badge.name
            xp_awarded += badge.xp_reward

    return {
        "current_streak": new_streak,
        "is_new_day": True,
        "streak_broken": streak_broken,
        "xp_awarded": xp_awarded,
        "milestone_badge": milestone_badge,
    }


async def daily_check_in(db: AsyncSession, visitor_id: str, now: datetime | None = None) -> dict:
    """Run the streak check and pay out its XP as a ``login`` transaction."""
    result = await check_and_update_streak(db, visitor_id, now)
    xp_result = None
    if result["is_new_day"] and result["xp_awarded"] > 0:
        xp_result = await award_xp(db, visitor_id, "login", custom_points=result["xp_awarded"])
    return {**result, "xp_result": xp_result}


async def use_freeze(db: AsyncSession, visitor_id: str) -> Streak:
    """Spend one freeze manually."""
    streak = await get_streak(db, visitor_id)
    if streak is None:
        msg = "Không tìm thấy streak"
        raise StreakNotFoundError(msg)
    if streak.freezes_available <= 0:
        msg = "Không còn freeze khả dụng!"
        raise NoFreezeAvailableError(msg)
    streak.freezes_available -= 1
    streak.freezes_used += 1
    await db.flush()
    return streak


async def get_check_in_days(db: AsyncSession, visitor_id: str, now: datetime | None = None) -> list[str]:
    """Site-day dates (YYYY-MM-DD) of ``login`` awards over the last 30 days, newest first."""
    now = now or utcnow()
    since = site_day_start(now) - timedelta(days=CALENDAR_DAYS)
    result = await db.execute(
        select(PointTransaction.created_at)
        .where(
            PointTransaction.visitor_id == visitor_id,
            PointTransaction.action == "login",
            PointTransaction.created_at >= since,
        )
        .order_by(PointTransaction.created_at.desc())
    )
    days: list[str] = []
    for created_at in result.scalars():
        day = site_date(created_at).isoformat()
        if day not in days:
            days.append(day)
    return days


def can_check_in_today(streak: Streak | None, now: datetime | None = None) -> bool:
    if streak is None:
        return True
    return site_date(streak.last_check_in) < site_date(now or utcnow())
