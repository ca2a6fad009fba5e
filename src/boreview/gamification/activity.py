"""Rewards that follow a visitor's public action (comment, reaction, read).

The action itself is committed first. Rewards run afterwards in their own
unit of work: if anything fails the reward is rolled back and logged, and the
committed action stands.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from boreview.gamification.daily_tasks import record_task_progress
from boreview.gamification.trigger_engine import TriggerEngine
from boreview.gamification.xp_service import award_xp

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_secondary(db: AsyncSession, label: str, fn: Callable[[], Awaitable[T]]) -> T | None:
    """Run ``fn`` and commit; on any error roll back, log and return None."""
    try:
        result = await fn()
        await db.commit()
    except Exception:
        await db.rollback()
        logger.warning("Secondary step failed: %s", label, exc_info=True)
        return None
    return result


async def reward_activity(
    db: AsyncSession,
    visitor_id: str,
    action: str,
    task_type: str,
    post_id: str | None = None,
) -> dict | None:
    """Award XP for ``action``, advance the matching daily task and check badges."""

    async def _reward() -> dict:
        xp_result = await award_xp(db, visitor_id, action, post_id=post_id)
        await record_task_progress(db, visitor_id, task_type)
        await TriggerEngine(db).evaluate(visitor_id, action)
        return xp_result

    return await run_secondary(db, f"{action} reward for visitor {visitor_id}", _reward)
