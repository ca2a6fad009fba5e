"""FastAPI authentication dependencies for admins and visitors."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Request, Response, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.auth.jwt import verify_token
from boreview.auth.service import get_user_by_id
from boreview.config import get_settings
from boreview.db.models import User, VisitorProfile
from boreview.dependencies import get_db
from boreview.security.dependencies import enforce_guard, get_ip_hash

_bearer = HTTPBearer(auto_error=False)


async def get_visitor_by_id(db: AsyncSession, visitor_id: str) -> VisitorProfile | None:
    result = await db.execute(select(VisitorProfile).where(VisitorProfile.id == visitor_id))
    return result.scalar_one_or_none()


async def get_current_admin(
    request: Request,
    response: Response,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    ip_hash: str = Depends(get_ip_hash),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the admin session from the session cookie or a bearer token.

    Banned IPs get 403 and the ``admin`` rate limit applies before the session
    is checked. Missing or invalid sessions get 401; non-ADMIN roles get 403.
    """
    await enforce_guard(db, response, ip_hash, "admin")

    token = request.cookies.get(get_settings().admin_session_cookie)
    if not token and credentials is not None:
        token = credentials.credentials
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        payload = verify_token(token, expected_type="admin")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail="Unauthorized") from e

    user = await get_user_by_id(db, str(payload["sub"]))
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if user.role != "ADMIN":
        raise HTTPException(status_code=403, detail="Forbidden")
    return user


async def get_current_visitor(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_db),
) -> VisitorProfile:
    """Require a valid visitor bearer token. 401 when absent/invalid, 403 when banned."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Vui lòng đăng nhập")
    try:
        payload = verify_token(credentials.credentials, expected_type="visitor")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail="Phiên đăng nhập không hợp lệ") from e

    visitor = await get_visitor_by_id(db, str(payload["sub"]))
    if visitor is None:
        raise HTTPException(status_code=401, detail="Phiên đăng nhập không hợp lệ")
    if visitor.is_banned:
        raise HTTPException(status_code=403, detail="Tài khoản đã bị khóa")
    return visitor


async def get_optional_visitor(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_db),
) -> VisitorProfile | None:
    """Like get_current_visitor, but anonymous or banned callers resolve to None."""
    if credentials is None:
        return None
    try:
        payload = verify_token(credentials.credentials, expected_type="visitor")
    except jwt.InvalidTokenError:
        return None
    visitor = await get_visitor_by_id(db, str(payload["sub"]))
    if visitor is None or visitor.is_banned:
        return None
    return visitor


async def get_optional_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """The admin behind the session cookie or bearer token, if any. Never raises."""
    token = request.cookies.get(get_settings().admin_session_cookie)
    if not token and credentials is not None:
        token = credentials.credentials
    if not token:
        return None
    try:
        payload = verify_token(token, expected_type="admin")
    except jwt.InvalidTokenError:
        return None
    user = await get_user_by_id(db, str(payload["sub"]))
    if user is None or user.role != "ADMIN":
        return None
    return user
