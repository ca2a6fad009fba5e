"""Badge trigger engine: evaluates visitor activity against badge requirements."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.db.models import Badge, Category, PointTransaction, ReadingHistory, post_categories
from boreview.gamification.badge_service import award_badge, has_badge
from boreview.gamification.xp_service import award_xp, get_visitor

logger = logging.getLogger(__name__)

# activity event -> requirement types it can satisfy
EVENT_REQUIREMENTS: dict[str, frozenset[str]] = {
    "comment": frozenset({"comment_count"}),
    "react": frozenset({"react_count"}),
    "read": frozenset({"read_count", "read_category"}),
}
LEVEL_REQUIREMENT = "level"


class TriggerEngine:
    """Evaluates badge requirements after a visitor action."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._badge_cache: list[Badge] | None = None

    async def _load_badges(self) -> list[Badge]:
        """Load and cache active badge definitions."""
        if self._badge_cache is None:
            result = await self.db.execute(select(Badge).where(Badge.is_active.is_(True)))
            self._badge_cache = list(result.scalars().all())
        return self._badge_cache

    async def evaluate(self, visitor_id: str, event: str) -> list[str]:
        """Award every badge the event newly satisfies. Returns awarded slugs.

        Level badges are always re-checked since badge XP can itself level
        the visitor up.
        """
        kinds = EVENT_REQUIREMENTS.get(event, frozenset())
        awarded: list[str] = []

        for badge in await self._load_badges():
            kind = badge.requirement.get("type")
            if kind not in kinds:
                continue
            if await self._satisfied(visitor_id, badge) and await self._grant(visitor_id, badge):
                awarded.append(badge.slug)

        awarded += await self._check_level_badges(visitor_id)
        return awarded

    async def _check_level_badges(self, visitor_id: str) -> list[str]:
        awarded: list[str] = []
        for badge in await self._load_badges():
            if badge.requirement.get("type") != LEVEL_REQUIREMENT:
                continue
            if await self._satisfied(visitor_id, badge) and await self._grant(visitor_id, badge):
                awarded.append(badge.slug)
        return awarded

    async def _grant(self, visitor_id: str, badge: Badge) -> bool:
        if await has_badge(self.db, visitor_id, badge.id):
            return False
        if await award_badge(self.db, visitor_id, badge.slug) is None:
            return False
        if badge.xp_reward > 0:
            await award_xp(self.db, visitor_id, "badge_earned", custom_points=badge.xp_reward)
        logger.info("Badge %s awarded to visitor %s", badge.slug, visitor_id)
        return True

    async def _satisfied(self, visitor_id: str, badge: Badge) -> bool:
        requirement = badge.requirement
        kind = requirement.get("type")
        target = int(requirement.get("count", 0))

        if kind == "comment_count":
            return await self._count_transactions(visitor_id, "comment") >= target
        if kind == "react_count":
            return await self._count_transactions(visitor_id, "react") >= target
        if kind == "read_count":
            return await self._count_reads(visitor_id) >= target
        if kind == "read_category":
            return await self._count_reads(visitor_id, requirement.get("category")) >= target
        if kind == LEVEL_REQUIREMENT:
            visitor = await get_visitor(self.db, visitor_id)
            return visitor is not None and visitor.level >= int(requirement.get("level", 0))
        return False

    async def _count_transactions(self, visitor_id: str, action: str) -> int:
        count = await self.db.scalar(
            select(func.count(PointTransaction.id)).where(
                PointTransaction.visitor_id == visitor_id,
                PointTransaction.action == action,
            )
        )
        return int(count or 0)

    async def _count_reads(self, visitor_id: str, category_slug: str | None = None) -> int:
        query = select(func.count(func.distinct(ReadingHistory.post_id))).where(
            ReadingHistory.visitor_id == visitor_id,
            ReadingHistory.completed.is_(True),
        )
        if category_slug:
            query = (
                query.join(post_categories, post_categories.c.post_id == ReadingHistory.post_id)
                .join(Category, Category.id == post_categories.c.category_id)
                .where(Category.slug == category_slug)
            )
        count = await self.db.scalar(query)
        return int(count or 0)
