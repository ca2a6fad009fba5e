"""Admin session router: /api/admin/login, /logout, /change-password, /me."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.auth.dependencies import get_current_admin
from boreview.auth.jwt import create_admin_token
from boreview.auth.schemas import (
    AdminChangePasswordRequest,
    AdminLoginRequest,
    AdminSessionResponse,
    AdminUserResponse,
)
from boreview.auth.service import InvalidCredentialsError, authenticate_admin, change_admin_password
from boreview.config import get_settings
from boreview.db.models import User
from boreview.dependencies import get_db
from boreview.security.dependencies import enforce_guard, get_ip_hash

logger = structlog.get_logger()

router = APIRouter(prefix="/api/admin", tags=["Admin session"])


@router.post("/login", response_model=AdminSessionResponse)
async def login(
    body: AdminLoginRequest,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    db: AsyncSession = Depends(get_db),
) -> AdminSessionResponse:
    """Verify credentials and set the HTTP-only session cookie."""
    await enforce_guard(db, response, ip_hash, "auth")
    try:
        user = await authenticate_admin(db, body.email, body.password)
    except InvalidCredentialsError as e:
        logger.info("admin_login_failed", email=body.email)
        raise HTTPException(status_code=401, detail=str(e)) from e
    await db.commit()

    settings = get_settings()
    token = create_admin_token(user.id, user.email, user.role)
    response.set_cookie(
        settings.admin_session_cookie,
        token,
        max_age=settings.admin_session_expire_hours * 3600,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    logger.info("admin_login", user_id=user.id)
    return AdminSessionResponse(user=AdminUserResponse.model_validate(user), token=token)


@router.post("/logout")
async def logout(response: Response) -> dict[str, bool]:
    response.delete_cookie(get_settings().admin_session_cookie)
    return {"success": True}


@router.get("/me", response_model=AdminUserResponse)
async def me(user: User = Depends(get_current_admin)) -> AdminUserResponse:
    return AdminUserResponse.model_validate(user)


@router.post("/change-password")
async def change_password(
    body: AdminChangePasswordRequest,
    user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, object]:
    try:
        await change_admin_password(db, user, body.current_password, body.new_password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"success": True, "message": "Đổi mật khẩu thành công"}
