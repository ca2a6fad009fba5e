"""Daily task tests: progress, one-time task XP and the all-tasks bonus."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.db.base import utcnow
from boreview.db.models import PointTransaction, UserDailyTask, VisitorProfile
from boreview.gamification import daily_tasks
from boreview.gamification.activity import reward_activity
from boreview.gamification.daily_tasks import get_daily_tasks, list_active_tasks, record_task_progress
from boreview.gamification.site_day import site_day_bounds

NOW = datetime(2026, 3, 2, 5, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def reader(db_session: AsyncSession) -> VisitorProfile:
    visitor = VisitorProfile(username="tasker", display_name="Tasker")
    db_session.add(visitor)
    await db_session.commit()
    return visitor


async def _count_actions(db: AsyncSession, visitor_id: str, action: str) -> int:
    return await db.scalar(
        select(func.count(PointTransaction.id)).where(
            PointTransaction.visitor_id == visitor_id, PointTransaction.action == action
        )
    )


class TestRecordTaskProgress:
    @pytest.mark.asyncio
    async def test_single_step_task_completes_and_pays(self, db_session, reader) -> None:
        result = await record_task_progress(db_session, reader.id, "read", now=NOW)
        item = result["results"][0]
        assert item["completed"] is True
        assert item["xp_result"]["points_awarded"] == 10
        assert result["bonus"] is None

    @pytest.mark.asyncio
    async def test_completed_task_is_not_paid_twice(self, db_session, reader) -> None:
        await record_task_progress(db_session, reader.id, "read", now=NOW)
        again = await record_task_progress(db_session, reader.id, "read", now=NOW)
        assert again["results"][0]["already_completed"] is True
        assert await _count_actions(db_session, reader.id, "daily_task") == 1

    @pytest.mark.asyncio
    async def test_multi_step_task(self, db_session, reader) -> None:
        first = await record_task_progress(db_session, reader.id, "explore", now=NOW)
        assert first["results"][0]["progress"] == 1
        assert first["results"][0]["completed"] is False
        second = await record_task_progress(db_session, reader.id, "explore", now=NOW)
        assert second["results"][0]["completed"] is True
        assert second["results"][0]["xp_result"]["points_awarded"] == 20

    @pytest.mark.asyncio
    async def test_all_tasks_bonus_once(self, db_session, reader) -> None:
        for task_type in ("read", "react", "comment", "explore"):
            result = await record_task_progress(db_session, reader.id, task_type, now=NOW)
        result = await record_task_progress(db_session, reader.id, "explore", now=NOW)
        assert result["bonus"]["points_awarded"] == 20
        assert await _count_actions(db_session, reader.id, "daily_bonus") == 1

    @pytest.mark.asyncio
    async def test_progress_resets_next_site_day(self, db_session, reader) -> None:
        await record_task_progress(db_session, reader.id, "read", now=NOW)
        tomorrow = await record_task_progress(db_session, reader.id, "read", now=NOW + timedelta(days=1))
        assert tomorrow["results"][0]["completed"] is True
        assert tomorrow["results"][0].get("already_completed") is not True


class TestGetDailyTasks:
    @pytest.mark.asyncio
    async def test_merges_progress_and_summary(self, db_session, reader) -> None:
        await record_task_progress(db_session, reader.id, "comment", now=NOW)
        data = await get_daily_tasks(db_session, reader.id, NOW)
        assert len(data["tasks"]) == 4
        by_type = {t["task_type"]: t for t in data["tasks"]}
        assert by_type["comment"]["completed"] is True
        assert by_type["read"]["progress"] == 0
        assert data["summary"] == {
            "total": 4,
            "completed": 1,
            "all_completed": False,
            "bonus_awarded": False,
        }


class TestConcurrentTaskRow:
    @pytest.mark.asyncio
    async def test_row_created_elsewhere_keeps_earlier_rewards(self, db_session, reader, monkeypatch) -> None:
        """Another request inserts today's row between our read and our insert."""
        (task,) = await list_active_tasks(db_session, "comment")
        start, _ = site_day_bounds(utcnow())
        db_session.add(UserDailyTask(visitor_id=reader.id, task_id=task.id, date=start, progress=0))
        await db_session.commit()

        real_rows = daily_tasks._todays_rows
        calls = []

        async def stale_then_real(db, visitor_id, now):
            calls.append(now)
            if len(calls) == 1:
                return {}
            return await real_rows(db, visitor_id, now)

        monkeypatch.setattr(daily_tasks, "_todays_rows", stale_then_real)

        xp_result = await reward_activity(db_session, reader.id, "comment", "comment")

        assert xp_result is not None
        assert xp_result["points_awarded"] == 15
        assert await _count_actions(db_session, reader.id, "comment") == 1
        assert await _count_actions(db_session, reader.id, "daily_task") == 1

        rows = (await db_session.execute(
            select(UserDailyTask).where(UserDailyTask.visitor_id == reader.id)
        )).scalars().all()
        assert len(rows) == 1
        assert rows[0].completed is True
        assert rows[0].progress == 1
