"""Integration tests for gamification endpoints: badges, streak, daily tasks, leaderboard."""

from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.db.base import utcnow
from boreview.db.models import Streak
from boreview.gamification.seed import BADGE_SEED_DATA, DAILY_TASK_SEED_DATA


class TestBadgesEndpoints:
    @pytest.mark.asyncio
    async def test_catalogue_is_public(self, client: AsyncClient):
        response = await client.get("/api/visitor/badges", params={"type": "all"})
        assert response.status_code == 200
        data = response.json()
        assert {b["slug"] for b in data["badges"]} == {b["slug"] for b in BADGE_SEED_DATA}
        assert "streak" in data["grouped"]
        assert sum(len(v) for v in data["grouped"].values()) == len(data["badges"])

    @pytest.mark.asyncio
    async def test_user_badges_require_login(self, client: AsyncClient):
        response = await client.get("/api/visitor/badges")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_user_badges(self, client: AsyncClient, visitor_headers):
        data = (await client.get("/api/visitor/badges", headers=visitor_headers)).json()
        assert data["totalCount"] == 2
        assert {b["slug"] for b in data["badges"]} == {"nguoi-moi", "early-bird"}
        assert [b["slug"] for b in data["featuredBadges"]] == ["nguoi-moi"]
        assert all("earnedAt" in b for b in data["badges"])

    @pytest.mark.asyncio
    async def test_update_featured(self, client: AsyncClient, visitor_headers):
        badges = (await client.get("/api/visitor/badges", headers=visitor_headers)).json()["badges"]
        early_bird = next(b["id"] for b in badges if b["slug"] == "early-bird")

        response = await client.put("/api/visitor/badges", headers=visitor_headers, json={"badgeIds": [early_bird]})
        assert response.status_code == 200
        assert response.json()["success"] is True

        data = (await client.get("/api/visitor/badges", headers=visitor_headers)).json()
        assert [b["slug"] for b in data["featuredBadges"]] == ["early-bird"]

    @pytest.mark.asyncio
    async def test_featured_limit(self, client: AsyncClient, visitor_headers):
        response = await client.put(
            "/api/visitor/badges", headers=visitor_headers, json={"badgeIds": ["a", "b", "c", "d"]}
        )
        assert response.status_code == 400


class TestStreakEndpoints:
    @pytest.mark.asyncio
    async def test_streak_info(self, client: AsyncClient, visitor_headers):
        response = await client.get("/api/visitor/streak", headers=visitor_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["currentStreak"] == 1
        assert data["freezesAvailable"] == 2
        assert data["canCheckInToday"] is False

    @pytest.mark.asyncio
    async def test_check_in_twice_same_day(self, client: AsyncClient, visitor_headers):
        data = (await client.post("/api/visitor/streak", headers=visitor_headers)).json()
        assert data["success"] is False
        assert data["isNewDay"] is False
        assert data["message"] == "Bạn đã check-in hôm nay rồi!"

    @pytest.mark.asyncio
    async def test_check_in_next_day(
        self, client: AsyncClient, visitor: dict, visitor_headers, db_session: AsyncSession
    ):
        await db_session.execute(
            update(Streak)
            .where(Streak.visitor_id == visitor["visitor"]["id"])
            .values(last_check_in=utcnow() - timedelta(days=1))
        )
        await db_session.commit()

        data = (await client.post("/api/visitor/streak", headers=visitor_headers)).json()
        assert data["success"] is True
        assert data["currentStreak"] == 2
        assert data["xpAwarded"] > 0
        assert data["xpResult"]["pointsAwarded"] == data["xpAwarded"]
        assert data["message"] == "🔥 Check-in thành công! Streak: 2 ngày"

        info = (await client.get("/api/visitor/streak", headers=visitor_headers)).json()
        assert len(info["checkInDays"]) == 1

    @pytest.mark.asyncio
    async def test_use_freezes(self, client: AsyncClient, visitor_headers):
        first = (await client.put("/api/visitor/streak", headers=visitor_headers)).json()
        assert first["freezesAvailable"] == 1
        assert first["freezesUsed"] == 1
        await client.put("/api/visitor/streak", headers=visitor_headers)

        response = await client.put("/api/visitor/streak", headers=visitor_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Không còn freeze khả dụng!"}


class TestDailyTaskEndpoints:
    @pytest.mark.asyncio
    async def test_list_tasks(self, client: AsyncClient, visitor_headers):
        data = (await client.get("/api/visitor/daily-tasks", headers=visitor_headers)).json()
        assert len(data["tasks"]) == len(DAILY_TASK_SEED_DATA)
        assert data["summary"]["total"] == len(DAILY_TASK_SEED_DATA)
        assert data["summary"]["completed"] == 0
        assert data["summary"]["allCompleted"] is False

    @pytest.mark.asyncio
    async def test_progress_task(self, client: AsyncClient, visitor_headers):
        response = await client.post("/api/visitor/daily-tasks", headers=visitor_headers, json={"taskType": "comment"})
        assert response.status_code == 200
        item = response.json()["results"][0]
        assert item["completed"] is True
        assert item["xpResult"]["pointsAwarded"] == 15

        again = (
            await client.post("/api/visitor/daily-tasks", headers=visitor_headers, json={"taskType": "comment"})
        ).json()
        assert again["results"][0]["alreadyCompleted"] is True

    @pytest.mark.asyncio
    async def test_unknown_task_type(self, client: AsyncClient, visitor_headers):
        response = await client.post("/api/visitor/daily-tasks", headers=visitor_headers, json={"taskType": "dance"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_requires_login(self, client: AsyncClient):
        assert (await client.get("/api/visitor/daily-tasks")).status_code == 401


class TestLeaderboardEndpoint:
    @pytest.mark.asyncio
    async def test_alltime_xp(self, client: AsyncClient, visitor_factory, visitor_headers):
        await visitor_factory(username="thu", display_name="Thu", ip="10.0.0.2")
        response = await client.get(
            "/api/leaderboard", params={"period": "alltime", "category": "xp"}, headers=visitor_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["period"] == "alltime"
        assert data["category"] == "xp"
        assert {r["username"] for r in data["rankings"]} == {"bofan", "thu"}
        assert all(r["value"] == 25 for r in data["rankings"])
        assert "visitorId" not in data["rankings"][0]
        assert data["userRank"]["username"] == "bofan"
        assert data["updatedAt"]

    @pytest.mark.asyncio
    async def test_anonymous_has_no_user_rank(self, client: AsyncClient, visitor: dict):
        data = (await client.get("/api/leaderboard")).json()
        assert data["period"] == "weekly"
        assert data["userRank"] is None
        assert data["rankings"][0]["username"] == "bofan"

    @pytest.mark.asyncio
    async def test_invalid_period(self, client: AsyncClient):
        response = await client.get("/api/leaderboard", params={"period": "daily"})
        assert response.status_code == 400
