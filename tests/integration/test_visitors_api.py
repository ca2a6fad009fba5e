"""Integration tests for visitor accounts, profiles, reading and notifications."""

from __future__ import annotations

import logging

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.db.models import Post, ReadingHistory


def _login(username: str = "bofan", password: str | None = "secret1") -> dict:
    body = {"action": "login", "username": username}
    if password is not None:
        body["password"] = password
    return body


class TestRegistration:
    @pytest.mark.asyncio
    async def test_welcome_package(self, visitor_factory):
        data = await visitor_factory(username="  BoFan ")
        assert data["success"] is True
        assert data["token"]
        visitor = data["visitor"]
        assert visitor["username"] == "bofan"
        assert visitor["totalXp"] == 25
        assert visitor["level"] == 1
        assert visitor["currentStreak"] == 1
        assert [b["slug"] for b in visitor["badges"]] == ["nguoi-moi"]

    @pytest.mark.asyncio
    async def test_registration_logged_through_stdlib(self, visitor_factory, caplog: pytest.LogCaptureFixture):
        caplog.set_level(logging.INFO, logger="boreview.visitors.service")
        data = await visitor_factory(username="loglan")
        messages = [r.getMessage() for r in caplog.records if r.name == "boreview.visitors.service"]
        assert f"Visitor {data['visitor']['id']} registered (early adopter: True)" in messages

    @pytest.mark.asyncio
    async def test_duplicate_username(self, client: AsyncClient, visitor: dict):
        response = await client.post(
            "/api/visitor/auth",
            json={"action": "register", "username": "BOFAN", "displayName": "Người khác"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Tên đăng nhập đã tồn tại"}

    @pytest.mark.asyncio
    async def test_username_length(self, client: AsyncClient):
        response = await client.post(
            "/api/visitor/auth", json={"action": "register", "username": "ab", "displayName": "Bơ"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Tên đăng nhập phải từ 3-20 ký tự"

    @pytest.mark.asyncio
    async def test_short_password(self, client: AsyncClient):
        response = await client.post(
            "/api/visitor/auth",
            json={"action": "register", "username": "bofan", "displayName": "Bơ Fan", "password": "123"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Mật khẩu phải có ít nhất 6 ký tự"

    @pytest.mark.asyncio
    async def test_welcome_notifications(self, client: AsyncClient, visitor: dict, visitor_headers):
        data = (await client.get("/api/visitor/notifications", headers=visitor_headers)).json()
        titles = [n["title"] for n in data["notifications"]]
        assert "🎉 Chào mừng đến Bơ Review!" in titles
        assert sum("Huy hiệu mới" in t for t in titles) == 2
        assert data["unreadCount"] == len(titles)


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_with_password(self, client: AsyncClient, visitor: dict):
        response = await client.post("/api/visitor/auth", json=_login())
        assert response.status_code == 200
        data = response.json()
        assert data["visitor"]["id"] == visitor["visitor"]["id"]
        assert data["message"] == "Đăng nhập thành công!"
        # registration already counted today's check-in
        assert data["streakBonus"] == 0

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: AsyncClient, visitor: dict):
        response = await client.post("/api/visitor/auth", json=_login(password="wrong!"))
        assert response.status_code == 401
        assert response.json() == {"error": "Mật khẩu không chính xác"}

    @pytest.mark.asyncio
    async def test_unknown_account(self, client: AsyncClient):
        response = await client.post("/api/visitor/auth", json=_login(username="ghost"))
        assert response.status_code == 404
        assert response.json() == {"error": "Tài khoản không tồn tại"}

    @pytest.mark.asyncio
    async def test_passwordless_account(self, client: AsyncClient, visitor_factory):
        await visitor_factory(username="khongmk", password=None)
        response = await client.post("/api/visitor/auth", json=_login(username="khongmk", password=None))
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_banned_visitor(self, client: AsyncClient, visitor: dict, admin_headers):
        await client.patch(
            f"/api/admin/visitors/{visitor['visitor']['id']}", headers=admin_headers, json={"action": "ban"}
        )
        response = await client.post("/api/visitor/auth", json=_login())
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_auth_rate_limit(self, client: AsyncClient):
        headers = {"X-Forwarded-For": "9.9.9.9"}
        statuses = [
            (await client.post("/api/visitor/auth", json=_login(username="ghost"), headers=headers)).status_code
            for _ in range(11)
        ]
        assert statuses[:10] == [404] * 10
        assert statuses[10] == 429


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_requires_token(self, client: AsyncClient):
        response = await client.post(
            "/api/visitor/auth",
            json={"action": "change-password", "newPassword": "secret2", "confirmPassword": "secret2"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_change(self, client: AsyncClient, visitor: dict, visitor_headers):
        response = await client.post(
            "/api/visitor/auth",
            headers=visitor_headers,
            json={
                "action": "change-password",
                "currentPassword": "secret1",
                "newPassword": "secret2",
                "confirmPassword": "secret2",
            },
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Đổi mật khẩu thành công!"}
        assert (await client.post("/api/visitor/auth", json=_login(password="secret2"))).status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, client: AsyncClient, visitor: dict, visitor_headers):
        response = await client.post(
            "/api/visitor/auth",
            headers=visitor_headers,
            json={
                "action": "change-password",
                "currentPassword": "nope!!",
                "newPassword": "secret2",
                "confirmPassword": "secret2",
            },
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Mật khẩu hiện tại không chính xác"

    @pytest.mark.asyncio
    async def test_mismatch(self, client: AsyncClient, visitor: dict, visitor_headers):
        response = await client.post(
            "/api/visitor/auth",
            headers=visitor_headers,
            json={
                "action": "change-password",
                "currentPassword": "secret1",
                "newPassword": "secret2",
                "confirmPassword": "secret3",
            },
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Mật khẩu xác nhận không khớp"

    @pytest.mark.asyncio
    async def test_first_password(self, client: AsyncClient, visitor_factory):
        data = await visitor_factory(username="khongmk", password=None)
        response = await client.post(
            "/api/visitor/auth",
            headers={"Authorization": f"Bearer {data['token']}"},
            json={"action": "change-password", "newPassword": "secret9", "confirmPassword": "secret9"},
        )
        assert response.json()["message"] == "Đặt mật khẩu thành công!"


class TestProfile:
    @pytest.mark.asyncio
    async def test_public_profile(self, client: AsyncClient, visitor: dict):
        response = await client.get("/api/visitor/profile", params={"username": "bofan"})
        assert response.status_code == 200
        data = response.json()
        assert data["displayName"] == "Bơ Fan"
        assert data["totalXp"] == 25
        assert data["xpToNextLevel"] == 75
        assert data["levelInfo"]["name"] == "Người Mới"
        assert data["currentStreak"] == 1
        assert data["freezesAvailable"] == 2
        assert {b["slug"] for b in data["badges"]} == {"nguoi-moi", "early-bird"}
        assert [b["slug"] for b in data["featuredBadges"]] == ["nguoi-moi"]
        assert data["stats"] == {"postsRead": 0, "totalActions": 1, "comments": 0, "reactions": 0}
        assert "email" not in data

    @pytest.mark.asyncio
    async def test_profile_by_id(self, client: AsyncClient, visitor: dict):
        response = await client.get("/api/visitor/profile", params={"id": visitor["visitor"]["id"]})
        assert response.json()["username"] == "bofan"

    @pytest.mark.asyncio
    async def test_profile_requires_key(self, client: AsyncClient):
        response = await client.get("/api/visitor/profile")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_profile_not_found(self, client: AsyncClient):
        response = await client.get("/api/visitor/profile", params={"username": "ghost"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient, visitor: dict, visitor_headers):
        response = await client.patch(
            "/api/visitor/profile",
            headers=visitor_headers,
            json={"displayName": "Bơ Chín", "bio": "Mê phim Hàn"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["displayName"] == "Bơ Chín"
        assert data["bio"] == "Mê phim Hàn"

    @pytest.mark.asyncio
    async def test_update_requires_login(self, client: AsyncClient):
        response = await client.patch("/api/visitor/profile", json={"bio": "x"})
        assert response.status_code == 401
        assert response.json() == {"error": "Vui lòng đăng nhập"}

    @pytest.mark.asyncio
    async def test_invalid_token(self, client: AsyncClient):
        response = await client.patch(
            "/api/visitor/profile", json={"bio": "x"}, headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_token_is_not_a_visitor_token(self, client: AsyncClient, admin_headers):
        response = await client.patch("/api/visitor/profile", json={"bio": "x"}, headers=admin_headers)
        assert response.status_code == 401


class TestReading:
    @pytest.mark.asyncio
    async def test_partial_read_no_xp(self, client: AsyncClient, published_post: Post, visitor_headers):
        response = await client.post(
            "/api/visitor/reading",
            headers=visitor_headers,
            json={"postId": published_post.id, "readTimeSeconds": 30},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["readingHistory"] == {"progress": 10, "completed": False, "readDuration": 30}
        assert data["xpResult"] is None
        assert data["alreadyRewarded"] is False

    @pytest.mark.asyncio
    async def test_completed_read_pays_once(
        self, client: AsyncClient, published_post: Post, visitor_headers, db_session: AsyncSession
    ):
        body = {"postId": published_post.id, "readTimeSeconds": 150, "completed": True}
        first = (await client.post("/api/visitor/reading", headers=visitor_headers, json=body)).json()
        assert first["xpResult"]["pointsAwarded"] == 10
        assert first["readingHistory"]["progress"] == 100

        second = (await client.post("/api/visitor/reading", headers=visitor_headers, json=body)).json()
        assert second["xpResult"] is None
        assert second["alreadyRewarded"] is True
        assert second["readingHistory"]["readDuration"] == 300

        flags = (await db_session.execute(select(ReadingHistory.xp_awarded))).scalars().all()
        assert flags == [True]

    @pytest.mark.asyncio
    async def test_quick_completion_not_rewarded(self, client: AsyncClient, published_post: Post, visitor_headers):
        body = {"postId": published_post.id, "readTimeSeconds": 20, "completed": True}
        data = (await client.post("/api/visitor/reading", headers=visitor_headers, json=body)).json()
        assert data["xpResult"] is None
        assert data["readingHistory"]["completed"] is True

    @pytest.mark.asyncio
    async def test_reading_advances_daily_tasks(self, client: AsyncClient, published_post: Post, visitor_headers):
        body = {"postId": published_post.id, "readTimeSeconds": 150, "completed": True}
        await client.post("/api/visitor/reading", headers=visitor_headers, json=body)

        tasks = (await client.get("/api/visitor/daily-tasks", headers=visitor_headers)).json()["tasks"]
        by_type = {t["taskType"]: t for t in tasks}
        assert by_type["read"]["completed"] is True
        assert by_type["explore"]["progress"] == 1
        assert by_type["explore"]["completed"] is False

    @pytest.mark.asyncio
    async def test_history(self, client: AsyncClient, published_post: Post, visitor_headers):
        await client.post(
            "/api/visitor/reading", headers=visitor_headers, json={"postId": published_post.id, "readTimeSeconds": 40}
        )
        data = (await client.get("/api/visitor/reading", headers=visitor_headers)).json()
        assert len(data["history"]) == 1
        entry = data["history"][0]
        assert entry["post"]["slug"] == published_post.slug
        assert entry["readDuration"] == 40

    @pytest.mark.asyncio
    async def test_draft_post(self, client: AsyncClient, draft_post: Post, visitor_headers):
        response = await client.post(
            "/api/visitor/reading", headers=visitor_headers, json={"postId": draft_post.id, "readTimeSeconds": 5}
        )
        assert response.status_code == 404


class TestNotifications:
    @pytest.mark.asyncio
    async def test_mark_all_read(self, client: AsyncClient, visitor_headers):
        before = (await client.get("/api/visitor/notifications", headers=visitor_headers)).json()
        assert before["unreadCount"] > 0

        response = await client.post("/api/visitor/notifications/read", headers=visitor_headers, json={})
        assert response.json() == {"success": True, "updated": before["unreadCount"]}

        after = (await client.get("/api/visitor/notifications", headers=visitor_headers)).json()
        assert after["unreadCount"] == 0
        assert all(n["read"] for n in after["notifications"])

    @pytest.mark.asyncio
    async def test_mark_selected_and_unread_filter(self, client: AsyncClient, visitor_headers):
        notifications = (await client.get("/api/visitor/notifications", headers=visitor_headers)).json()["notifications"]
        first = notifications[0]["id"]

        await client.post("/api/visitor/notifications/read", headers=visitor_headers, json={"ids": [first]})
        unread = (
            await client.get("/api/visitor/notifications", headers=visitor_headers, params={"unreadOnly": "true"})
        ).json()
        assert first not in [n["id"] for n in unread["notifications"]]
        assert unread["unreadCount"] == len(notifications) - 1
