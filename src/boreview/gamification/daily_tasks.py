"""Daily task progress, reset at the start of each site day."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.db.base import utcnow
from boreview.db.models import DailyTask, PointTransaction, UserDailyTask
from boreview.gamification.site_day import site_day_bounds
from boreview.gamification.xp_service import XP_REWARDS, award_xp

logger = logging.getLogger(__name__)

TASK_TYPES = frozenset({"read", "react", "comment", "explore"})
DAILY_BONUS_ACTION = "daily_bonus"


async def list_active_tasks(db: AsyncSession, task_type: str | None = None) -> list[DailyTask]:
    query = select(DailyTask).where(DailyTask.is_active.is_(True))
    if task_type is not None:
        query = query.where(DailyTask.task_type == task_type)
    result = await db.execute(query.order_by(DailyTask.sort_order))
    return list(result.scalars().all())


async def _todays_rows(db: AsyncSession, visitor_id: str, now: datetime) -> dict[str, UserDailyTask]:
    start, end = site_day_bounds(now)
    result = await db.execute(
        select(UserDailyTask).where(
            UserDailyTask.visitor_id == visitor_id,
            UserDailyTask.date >= start,
            UserDailyTask.date < end,
        )
    )
    return {row.task_id: row for row in result.scalars()}


async def _bonus_awarded_today(db: AsyncSession, visitor_id: str, now: datetime) -> bool:
    start, end = site_day_bounds(now)
    count = await db.scalar(
        select(func.count(PointTransaction.id)).where(
            PointTransaction.visitor_id == visitor_id,
            PointTransaction.action == DAILY_BONUS_ACTION,
            PointTransaction.created_at >= start,
            PointTransaction.created_at < end,
        )
    )
    return bool(count)


async def _get_or_create_row(
    db: AsyncSession,
    visitor_id: str,
    task: DailyTask,
    rows: dict[str, UserDailyTask],
    now: datetime,
) -> UserDailyTask:
    task_id = task.id
    row = rows.get(task_id)
    if row is not None:
        return row
    start, _ = site_day_bounds(now)
    row = UserDailyTask(visitor_id=visitor_id, task_id=task_id, date=start, progress=0)
    try:
        async with db.begin_nested():
            db.add(row)
    except IntegrityError:
        # A concurrent request created today's row; continue from theirs
        logger.debug("Daily task row race for visitor %s task %s", visitor_id, task_id)
        rows.update(await _todays_rows(db, visitor_id, now))
        row = rows[task_id]
    return row


async def record_task_progress(
    db: AsyncSession,
    visitor_id: str,
    task_type: str,
    increment: int = 1,
    now: datetime | None = None,
) -> dict:
    """Add progress to every active task of ``task_type`` for today.

    Completing a task pays its XP once (``daily_task``). Completing the last
    open task of the day pays the all-tasks bonus once.
    """
    now = now or utcnow()
    tasks = await list_active_tasks(db, task_type)
    rows = await _todays_rows(db, visitor_id, now)
    results: list[dict] = []

    for task in tasks:
        row = await _get_or_create_row(db, visitor_id, task, rows, now)
        if row.completed:
            results.append({"task_name": task.name, "already_completed": True})
            continue

        row.progress += increment
        completed = row.progress >= task.requirement
        xp_result = None
        if completed:
            row.completed = True
            row.completed_at = now
            if not row.xp_awarded:
                row.xp_awarded = True
                xp_result = await award_xp(db, visitor_id, "daily_task", custom_points=task.xp_reward)
        await db.flush()

        results.append({
            "task_name": task.name,
            "progress": row.progress,
            "target": task.requirement,
            "completed": completed,
            "xp_result": xp_result,
        })

    bonus = None
    if any(r.get("completed") and not r.get("already_completed") for r in results):
        bonus = await _maybe_award_daily_bonus(db, visitor_id, now)

    return {"results": results, "bonus": bonus}


async def _maybe_award_daily_bonus(db: AsyncSession, visitor_id: str, now: datetime) -> dict | None:
    tasks = await list_active_tasks(db)
    if not tasks:
        return None
    rows = await _todays_rows(db, visitor_id, now)
    if not all(rows.get(task.id) is not None and rows[task.id].completed for task in tasks):
        return None
    if await _bonus_awarded_today(db, visitor_id, now):
        return None
    logger.info("Visitor %s completed all daily tasks", visitor_id)
    return await award_xp(
        db, visitor_id, DAILY_BONUS_ACTION, custom_points=XP_REWARDS["complete_daily_tasks"]
    )


async def get_daily_tasks(db: AsyncSession, visitor_id: str, now: datetime | None = None) -> dict:
    """Active tasks merged with today's progress, plus a completion summary."""
    now = now or utcnow()
    tasks = await list_active_tasks(db)
    rows = await _todays_rows(db, visitor_id, now)

    merged = []
    for task in tasks:
        row = rows.get(task.id)
        merged.append({
            "id": task.id,
            "name": task.name,
            "description": task.description,
            "task_type": task.task_type,
            "requirement": task.requirement,
            "xp_reward": task.xp_reward,
            "icon": task.icon,
            "progress": row.progress if row else 0,
            "completed": row.completed if row else False,
            "completed_at": row.completed_at if row else None,
            "xp_awarded": row.xp_awarded if row else False,
        })

    completed = sum(1 for t in merged if t["completed"])
    return {
        "tasks": merged,
        "summary": {
            "total": len(merged),
            "completed": completed,
            "all_completed": bool(merged) and completed == len(merged),
            "bonus_awarded": await _bonus_awarded_today(db, visitor_id, now),
        },
    }
