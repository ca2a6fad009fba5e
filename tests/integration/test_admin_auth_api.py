"""Integration tests for admin sessions: login, logout, me and change-password."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.auth.jwt import create_admin_token, create_visitor_token
from boreview.auth.service import create_admin_user
from boreview.db.models import User

ADMIN_EMAIL = "admin@boreview.vn"
ADMIN_PASSWORD = "AdminPass123"


class TestAdminLogin:
    @pytest.mark.asyncio
    async def test_login_sets_cookie(self, client: AsyncClient, admin_user: User):
        response = await client.post(
            "/api/admin/login", json={"email": ADMIN_EMAIL.upper(), "password": ADMIN_PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["user"]["email"] == ADMIN_EMAIL
        assert data["user"]["role"] == "ADMIN"
        assert "passwordHash" not in data["user"]

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("boreview_session=")
        assert "HttpOnly" in set_cookie

    @pytest.mark.asyncio
    async def test_cookie_session(self, client: AsyncClient, admin_user: User):
        login = await client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        token = login.json()["token"]

        client.cookies.set("boreview_session", token)
        response = await client.get("/api/admin/me")
        assert response.status_code == 200
        assert response.json()["name"] == "Bơ Admin"

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: AsyncClient, admin_user: User):
        response = await client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": "Wrong1234"})
        assert response.status_code == 401
        assert response.json() == {"error": "Email hoặc mật khẩu không đúng"}

    @pytest.mark.asyncio
    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post("/api/admin/login", json={"email": "nobody@boreview.vn", "password": "Abcdef12"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_clears_cookie(self, client: AsyncClient):
        response = await client.post("/api/admin/logout")
        assert response.status_code == 200
        assert response.json() == {"success": True}
        set_cookie = response.headers["set-cookie"].lower()
        assert set_cookie.startswith("boreview_session=")
        assert "max-age=0" in set_cookie


class TestAdminMe:
    @pytest.mark.asyncio
    async def test_bearer(self, client: AsyncClient, admin_headers):
        response = await client.get("/api/admin/me", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["email"] == ADMIN_EMAIL

    @pytest.mark.asyncio
    async def test_no_session(self, client: AsyncClient):
        response = await client.get("/api/admin/me")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    @pytest.mark.asyncio
    async def test_visitor_token_rejected(self, client: AsyncClient, visitor: dict):
        token = create_visitor_token(visitor["visitor"]["id"], "bofan")
        response = await client.get("/api/admin/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_non_admin_role(self, client: AsyncClient, db_session: AsyncSession):
        editor = await create_admin_user(db_session, "editor@boreview.vn", "Editor1234", role="EDITOR")
        await db_session.commit()
        token = create_admin_token(editor.id, editor.email, editor.role)
        response = await client.get("/api/admin/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403


class TestAdminChangePassword:
    @pytest.mark.asyncio
    async def test_change(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/admin/change-password",
            headers=admin_headers,
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": "NewPass4567", "confirmPassword": "NewPass4567"},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Đổi mật khẩu thành công"}

        login = await client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": "NewPass4567"})
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_current(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/admin/change-password",
            headers=admin_headers,
            json={"currentPassword": "Nope12345", "newPassword": "NewPass4567", "confirmPassword": "NewPass4567"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Mật khẩu hiện tại không đúng"

    @pytest.mark.asyncio
    async def test_weak_new_password(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/admin/change-password",
            headers=admin_headers,
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": "weakpass", "confirmPassword": "weakpass"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Mật khẩu phải có ít nhất một chữ hoa"

    @pytest.mark.asyncio
    async def test_confirmation_mismatch(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/admin/change-password",
            headers=admin_headers,
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": "NewPass4567", "confirmPassword": "Other4567"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Mật khẩu xác nhận không khớp"
