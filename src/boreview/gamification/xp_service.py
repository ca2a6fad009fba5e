"""XP awards with level-up detection."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.db.base import utcnow
from boreview.db.models import PointTransaction, VisitorProfile
from boreview.gamification.level_thresholds import calculate_level, get_level_info
from boreview.visitors.notification_service import create_notification

logger = logging.getLogger(__name__)

XP_REWARDS: dict[str, int] = {
    "read_post": 10,
    "react": 5,
    "comment": 15,
    "daily_login": 10,
    "streak_bonus": 5,
    "complete_daily_tasks": 20,
    "first_comment": 25,
    "first_reaction": 10,
}

# default points per ledger action when no custom amount is given
ACTION_POINTS: dict[str, int] = {
    "read": XP_REWARDS["read_post"],
    "react": XP_REWARDS["react"],
    "comment": XP_REWARDS["comment"],
    "login": XP_REWARDS["daily_login"],
}
DEFAULT_ACTION_POINTS = 10

ACTION_DESCRIPTIONS: dict[str, str] = {
    "read": "Đọc bài viết",
    "comment": "Viết bình luận",
    "react": "Thả cảm xúc",
    "login": "Đăng nhập hàng ngày",
    "streak_bonus": "Thưởng streak",
    "daily_task": "Hoàn thành nhiệm vụ",
    "daily_bonus": "Hoàn thành tất cả nhiệm vụ hôm nay",
    "badge_earned": "Đạt huy hiệu",
    "level_up": "Lên cấp",
    "first_action": "Hành động đầu tiên",
    "welcome": "Thưởng chào mừng thành viên mới",
}


class VisitorNotFoundError(LookupError):
    """Raised when an XP award targets a visitor that does not exist."""


def points_for_action(action: str) -> int:
    return ACTION_POINTS.get(action, DEFAULT_ACTION_POINTS)


async def get_visitor(db: AsyncSession, visitor_id: str) -> VisitorProfile | None:
    result = await db.execute(select(VisitorProfile).where(VisitorProfile.id == visitor_id))
    return result.scalar_one_or_none()


async def award_xp(
    db: AsyncSession,
    visitor_id: str,
    action: str,
    post_id: str | None = None,
    custom_points: int | None = None,
) -> dict:
    """Award XP to a visitor.

    1. Add points to the visitor's total and recompute the level
    2. Touch last_active_at
    3. Record a PointTransaction
    4. On level up, notify the visitor

    Returns new_xp, leveled_up, new_level and points_awarded.
    """
    visitor = await get_visitor(db, visitor_id)
    if visitor is None:
        msg = f"Visitor not found: {visitor_id}"
        raise VisitorNotFoundError(msg)

    points = custom_points if custom_points is not None else points_for_action(action)
    old_level = calculate_level(visitor.total_xp)
    new_xp = visitor.total_xp + points
    new_level = calculate_level(new_xp)
    leveled_up = new_level > old_level

    visitor.total_xp = new_xp
    visitor.level = new_level
    visitor.last_active_at = utcnow()

    db.add(PointTransaction(
        points=points,
        action=action,
        visitor_id=visitor_id,
        post_id=post_id,
        description=ACTION_DESCRIPTIONS.get(action, action),
    ))
    await db.flush()

    if leveled_up:
        await _emit_level_up(db, visitor_id, new_level)

    return {
        "new_xp": new_xp,
        "leveled_up": leveled_up,
        "new_level": new_level,
        "points_awarded": points,
    }


async def _emit_level_up(db: AsyncSession, visitor_id: str, new_level: int) -> None:
    info = get_level_info(new_level)
    await create_notification(
        db,
        visitor_id,
        "level_up",
        f"🎉 Chúc mừng! Bạn đã lên Level {new_level}!",
        f'Bạn đã trở thành "{info["name"]}". Tiếp tục phát huy nhé!',
    )
    logger.info("Visitor %s reached level %d", visitor_id, new_level)
