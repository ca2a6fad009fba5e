"""Visitor endpoints: auth, profile, reading history and notifications."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.auth.dependencies import get_current_visitor, get_visitor_by_id
from boreview.auth.jwt import create_visitor_token
from boreview.db.base import utcnow
from boreview.db.models import ReadingHistory, VisitorProfile
from boreview.dependencies import get_db
from boreview.gamification.activity import reward_activity, run_secondary
from boreview.gamification.daily_tasks import record_task_progress
from boreview.gamification.schemas import BadgeResponse
from boreview.gamification.streak_service import daily_check_in
from boreview.posts.service import get_published_post
from boreview.schemas import ActionResponse
from boreview.security.dependencies import enforce_guard, get_ip_hash, public_guard
from boreview.visitors import service
from boreview.visitors.notification_service import list_notifications, mark_read
from boreview.visitors.schemas import (
    MarkReadRequest,
    NotificationListResponse,
    NotificationResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    PublicProfileResponse,
    ReadingHistoryItem,
    ReadingHistoryListResponse,
    ReadingRequest,
    ReadingResponse,
    ReadingState,
    VisitorAuthRequest,
    VisitorAuthResponse,
    VisitorSummary,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/visitor", tags=["Visitors"])

_bearer = HTTPBearer(auto_error=False)


async def _summary(db: AsyncSession, visitor: VisitorProfile) -> VisitorSummary:
    featured = await service.get_featured_user_badges(db, visitor.id)
    return VisitorSummary(
        id=visitor.id,
        username=visitor.username,
        display_name=visitor.display_name,
        avatar=visitor.avatar,
        level=visitor.level,
        total_xp=visitor.total_xp,
        current_streak=visitor.current_streak,
        badges=[BadgeResponse.model_validate(ub.badge) for ub in featured],
    )


# ── Auth ──


@router.post("/auth", response_model=VisitorAuthResponse | ActionResponse)
async def visitor_auth(
    body: VisitorAuthRequest,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_db),
):
    """Register, log in or change password, selected by ``action``."""
    await enforce_guard(db, response, ip_hash, "auth")
    if body.action == "register":
        return await _register(db, body, ip_hash)
    if body.action == "login":
        return await _login(db, body)
    return await _change_password(db, body, credentials)


async def _register(db: AsyncSession, body: VisitorAuthRequest, ip_hash: str) -> VisitorAuthResponse:
    try:
        visitor = await service.register_visitor(
            db,
            username=body.username or "",
            display_name=body.display_name or "",
            ip_hash=ip_hash,
            password=body.password,
            email=str(body.email) if body.email else None,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()

    return VisitorAuthResponse(
        visitor=await _summary(db, visitor),
        token=create_visitor_token(visitor.id, visitor.username),
        message="Đăng ký thành công! Chào mừng đến Bơ Review!",
    )


async def _login(db: AsyncSession, body: VisitorAuthRequest) -> VisitorAuthResponse:
    try:
        visitor = await service.authenticate_visitor(db, body.username or "", body.password)
    except service.AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except service.InvalidPasswordError as e:
        logger.info("visitor_login_failed", username=body.username)
        raise HTTPException(status_code=401, detail=str(e)) from e
    if visitor.is_banned:
        raise HTTPException(status_code=403, detail="Tài khoản đã bị khóa")

    check_in = await daily_check_in(db, visitor.id)
    visitor.last_active_at = utcnow()
    await db.commit()

    logger.info("visitor_login", visitor_id=visitor.id, new_day=check_in["is_new_day"])
    return VisitorAuthResponse(
        visitor=await _summary(db, visitor),
        token=create_visitor_token(visitor.id, visitor.username),
        message="Đăng nhập thành công!",
        streak_bonus=check_in["xp_awarded"] if check_in["is_new_day"] else 0,
    )


async def _change_password(
    db: AsyncSession,
    body: VisitorAuthRequest,
    credentials: HTTPAuthorizationCredentials | None,
) -> ActionResponse:
    visitor = await get_current_visitor(credentials, db)
    try:
        had_password = await service.change_visitor_password(
            db,
            visitor,
            new_password=body.new_password,
            confirm_password=body.confirm_password,
            current_password=body.current_password,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    message = "Đổi mật khẩu thành công!" if had_password else "Đặt mật khẩu thành công!"
    return ActionResponse(message=message)


# ── Profile ──


@router.get("/profile", response_model=PublicProfileResponse)
async def get_profile(
    id_: str | None = Query(None, alias="id"),
    username: str | None = Query(None),
    _ip_hash: str = Depends(public_guard("public")),
    db: AsyncSession = Depends(get_db),
):
    if not id_ and not username:
        raise HTTPException(status_code=400, detail="Thiếu id hoặc username")

    if id_:
        visitor = await get_visitor_by_id(db, id_)
    else:
        visitor = await service.get_visitor_by_username(db, username or "")
    if visitor is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    if visitor.is_banned:
        raise HTTPException(status_code=403, detail="Tài khoản đã bị khóa")
    return await service.build_public_profile(db, visitor)


@router.patch("/profile", response_model=ProfileUpdateResponse)
async def patch_profile(
    body: ProfileUpdateRequest,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    visitor: VisitorProfile = Depends(get_current_visitor),
    db: AsyncSession = Depends(get_db),
):
    await enforce_guard(db, response, ip_hash, "public")
    try:
        await service.update_profile(
            db,
            visitor,
            display_name=body.display_name,
            bio=body.bio,
            avatar=body.avatar,
            featured_badge_ids=body.featured_badge_ids,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ProfileUpdateResponse(
        username=visitor.username,
        display_name=visitor.display_name,
        avatar=visitor.avatar,
        bio=visitor.bio,
    )


# ── Reading ──


@router.get("/reading", response_model=ReadingHistoryListResponse)
async def get_reading(
    post_id: str | None = Query(None, alias="postId"),
    limit: int = Query(20, ge=1, le=100),
    _ip_hash: str = Depends(public_guard("public")),
    visitor: VisitorProfile = Depends(get_current_visitor),
    db: AsyncSession = Depends(get_db),
):
    rows = await service.list_reading_history(db, visitor.id, post_id=post_id, limit=limit)
    return ReadingHistoryListResponse(
        history=[
            ReadingHistoryItem(
                progress=row.progress,
                completed=row.completed,
                read_duration=row.read_duration,
                last_read_at=row.last_read_at,
                post={"title": post.title, "slug": post.slug, "thumbnail": post.thumbnail},
            )
            for row, post in rows
        ]
    )


@router.post("/reading", response_model=ReadingResponse)
async def post_reading(
    body: ReadingRequest,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    visitor: VisitorProfile = Depends(get_current_visitor),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a reading ping.

    The history row is committed first; XP, the ``read`` task and the
    ``explore`` task follow as secondary steps.
    """
    await enforce_guard(db, response, ip_hash, "public")
    if await get_published_post(db, body.post_id) is None:
        raise HTTPException(status_code=404, detail="Post not found")

    visitor_id = visitor.id
    row, already_rewarded, explores = await service.record_reading(
        db, visitor_id, body.post_id, body.read_time_seconds, body.completed
    )
    should_reward = service.earns_read_xp(row, body.completed)
    state = ReadingState(progress=row.progress, completed=row.completed, read_duration=row.read_duration)
    row_id = row.id
    await db.commit()

    xp_result = None
    if should_reward:
        xp_result = await reward_activity(db, visitor_id, "read", "read", post_id=body.post_id)
        if xp_result is not None:

            async def _mark_rewarded() -> None:
                fresh = await db.get(ReadingHistory, row_id)
                if fresh is not None:
                    fresh.xp_awarded = True

            await run_secondary(db, f"read flag for {row_id}", _mark_rewarded)

    if explores:

        async def _explore() -> dict:
            return await record_task_progress(db, visitor_id, "explore")

        await run_secondary(db, f"explore progress for visitor {visitor_id}", _explore)

    return ReadingResponse(
        reading_history=state,
        xp_result=xp_result,
        already_rewarded=already_rewarded,
    )


# ── Notifications ──


@router.get("/notifications", response_model=NotificationListResponse)
async def get_notifications(
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False, alias="unreadOnly"),
    _ip_hash: str = Depends(public_guard("public")),
    visitor: VisitorProfile = Depends(get_current_visitor),
    db: AsyncSession = Depends(get_db),
):
    notifications, unread = await list_notifications(db, visitor.id, limit=limit, unread_only=unread_only)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread,
    )


@router.post("/notifications/read")
async def read_notifications(
    body: MarkReadRequest,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    visitor: VisitorProfile = Depends(get_current_visitor),
    db: AsyncSession = Depends(get_db),
) -> dict[str, object]:
    await enforce_guard(db, response, ip_hash, "public")
    updated = await mark_read(db, visitor.id, body.ids)
    await db.commit()
    return {"success": True, "updated": updated}

