"""Badge award service with duplicate prevention and notification."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.db.models import Badge, UserBadge
from boreview.visitors.notification_service import create_notification

logger = logging.getLogger(__name__)

MAX_FEATURED_BADGES = 3


async def get_badge_by_slug(db: AsyncSession, slug: str) -> Badge | None:
    result = await db.execute(select(Badge).where(Badge.slug == slug))
    return result.scalar_one_or_none()


async def has_badge(db: AsyncSession, visitor_id: str, badge_id: str) -> bool:
    result = await db.execute(
        select(UserBadge.id).where(
            UserBadge.visitor_id == visitor_id,
            UserBadge.badge_id == badge_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def award_badge(
    db: AsyncSession,
    visitor_id: str,
    slug: str,
    featured: bool = False,
) -> Badge | None:
    """Award a badge to a visitor.

    Returns the Badge when newly awarded; None when the slug is unknown, the
    badge is already held, or a concurrent award won the unique constraint.
    Badge XP is not granted here; callers decide how the reward is paid.
    """
    badge = await get_badge_by_slug(db, slug)
    if badge is None:
        logger.warning("Badge not found: %s", slug)
        return None

    if await has_badge(db, visitor_id, badge.id):
        return None

    try:
        async with db.begin_nested():
            db.add(UserBadge(visitor_id=visitor_id, badge_id=badge.id, is_featured=featured))
    except IntegrityError:
        return None  # Race condition: badge already awarded

    await create_notification(
        db,
        visitor_id,
        "badge_earned",
        f"🏆 Huy hiệu mới: {badge.name}!",
        badge.description,
        link="/achievements",
    )
    return badge


async def list_user_badges(db: AsyncSession, visitor_id: str) -> list[UserBadge]:
    """A visitor's badges, most recently earned first."""
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.visitor_id == visitor_id)
        .order_by(UserBadge.earned_at.desc())
    )
    return list(result.scalars().all())


async def list_active_badges(db: AsyncSession) -> list[Badge]:
    result = await db.execute(
        select(Badge).where(Badge.is_active.is_(True)).order_by(Badge.category, Badge.xp_reward)
    )
    return list(result.scalars().all())


async def set_featured_badges(db: AsyncSession, visitor_id: str, badge_ids: list[str]) -> None:
    """Feature up to three held badges (by badge id); everything else is un-featured."""
    if len(badge_ids) > MAX_FEATURED_BADGES:
        msg = f"Tối đa {MAX_FEATURED_BADGES} huy hiệu nổi bật"
        raise ValueError(msg)

    await db.execute(
        update(UserBadge).where(UserBadge.visitor_id == visitor_id).values(is_featured=False)
    )
    if badge_ids:
        await db.execute(
            update(UserBadge)
            .where(UserBadge.visitor_id == visitor_id, UserBadge.badge_id.in_(badge_ids))
            .values(is_featured=True)
        )
    await db.flush()
