"""Gamification endpoints: visitor badges, streak, daily tasks and the leaderboard."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.auth.dependencies import get_current_visitor, get_optional_visitor
from boreview.db.models import Badge, UserBadge, VisitorProfile
from boreview.dependencies import get_db
from boreview.gamification.badge_service import list_active_badges, list_user_badges, set_featured_badges
from boreview.gamification.daily_tasks import get_daily_tasks, record_task_progress
from boreview.gamification.leaderboard_service import get_leaderboard
from boreview.gamification.schemas import (
    AllBadgesResponse,
    BadgeResponse,
    CheckInResponse,
    DailyTasksResponse,
    FeaturedBadgesRequest,
    FreezeResponse,
    LeaderboardResponse,
    StreakInfoResponse,
    TaskProgressRequest,
    TaskProgressResponse,
    UserBadgeResponse,
    UserBadgesResponse,
)
from boreview.gamification.streak_service import (
    NoFreezeAvailableError,
    StreakNotFoundError,
    can_check_in_today,
    daily_check_in,
    get_check_in_days,
    get_streak,
    use_freeze,
)
from boreview.security.dependencies import enforce_guard, get_ip_hash, public_guard

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Gamification"])


def _badge(badge: Badge) -> BadgeResponse:
    return BadgeResponse.model_validate(badge)


def _user_badge(ub: UserBadge) -> UserBadgeResponse:
    return UserBadgeResponse(
        **_badge(ub.badge).model_dump(),
        earned_at=ub.earned_at,
        is_featured=ub.is_featured,
    )


# ── Badges ──


@router.get("/visitor/badges", response_model=UserBadgesResponse | AllBadgesResponse)
async def get_badges(
    type_: str = Query("user", alias="type", pattern="^(user|all)$"),
    _ip_hash: str = Depends(public_guard("public")),
    visitor: VisitorProfile | None = Depends(get_optional_visitor),
    db: AsyncSession = Depends(get_db),
):
    """A visitor's badges, or with ``type=all`` the whole catalogue grouped by category."""
    if type_ == "all":
        badges = [_badge(b) for b in await list_active_badges(db)]
        grouped: dict[str, list[BadgeResponse]] = {}
        for badge in badges:
            grouped.setdefault(badge.category, []).append(badge)
        return AllBadgesResponse(badges=badges, grouped=grouped)

    if visitor is None:
        raise HTTPException(status_code=401, detail="Vui lòng đăng nhập")
    user_badges = await list_user_badges(db, visitor.id)
    return UserBadgesResponse(
        badges=[_user_badge(ub) for ub in user_badges],
        featured_badges=[_badge(ub.badge) for ub in user_badges if ub.is_featured][:3],
        total_count=len(user_badges),
    )


@router.put("/visitor/badges")
async def update_featured_badges(
    body: FeaturedBadgesRequest,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    visitor: VisitorProfile = Depends(get_current_visitor),
    db: AsyncSession = Depends(get_db),
) -> dict[str, object]:
    await enforce_guard(db, response, ip_hash, "public")
    await set_featured_badges(db, visitor.id, body.badge_ids)
    await db.commit()
    return {"success": True, "message": "Đã cập nhật huy hiệu nổi bật"}


# ── Streak ──


@router.get("/visitor/streak", response_model=StreakInfoResponse)
async def get_streak_info(
    _ip_hash: str = Depends(public_guard("public")),
    visitor: VisitorProfile = Depends(get_current_visitor),
    db: AsyncSession = Depends(get_db),
):
    streak = await get_streak(db, visitor.id)
    if streak is None:
        raise HTTPException(status_code=404, detail="Không tìm thấy streak")
    return StreakInfoResponse(
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        last_check_in=streak.last_check_in,
        freezes_available=streak.freezes_available,
        freezes_used=streak.freezes_used,
        check_in_days=await get_check_in_days(db, visitor.id),
        can_check_in_today=can_check_in_today(streak),
    )


@router.post("/visitor/streak", response_model=CheckInResponse)
async def check_in(
    _ip_hash: str = Depends(public_guard("public")),
    visitor: VisitorProfile = Depends(get_current_visitor),
    db: AsyncSession = Depends(get_db),
):
    result = await daily_check_in(db, visitor.id)
    await db.commit()

    if not result["is_new_day"]:
        message = "Bạn đã check-in hôm nay rồi!"
    elif result["streak_broken"]:
        message = "💔 Streak bị reset! Bắt đầu lại nào!"
    else:
        message = f"🔥 Check-in thành công! Streak: {result['current_streak']} ngày"
    logger.info("visitor_check_in", visitor_id=visitor.id, streak=result["current_streak"])
    return CheckInResponse(success=result["is_new_day"], message=message, **result)


@router.put("/visitor/streak", response_model=FreezeResponse)
async def spend_freeze(
    _ip_hash: str = Depends(public_guard("public")),
    visitor: VisitorProfile = Depends(get_current_visitor),
    db: AsyncSession = Depends(get_db),
):
    try:
        streak = await use_freeze(db, visitor.id)
    except StreakNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except NoFreezeAvailableError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return FreezeResponse(
        message="❄️ Đã sử dụng 1 freeze!",
        freezes_available=streak.freezes_available,
        freezes_used=streak.freezes_used,
    )


# ── Daily tasks ──


@router.get("/visitor/daily-tasks", response_model=DailyTasksResponse)
async def list_daily_tasks(
    _ip_hash: str = Depends(public_guard("public")),
    visitor: VisitorProfile = Depends(get_current_visitor),
    db: AsyncSession = Depends(get_db),
):
    return await get_daily_tasks(db, visitor.id)


@router.post("/visitor/daily-tasks", response_model=TaskProgressResponse)
async def update_daily_task(
    body: TaskProgressRequest,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    visitor: VisitorProfile = Depends(get_current_visitor),
    db: AsyncSession = Depends(get_db),
):
    await enforce_guard(db, response, ip_hash, "public")
    result = await record_task_progress(db, visitor.id, body.task_type, body.increment)
    await db.commit()
    return TaskProgressResponse(results=result["results"], bonus=result["bonus"])


# ── Leaderboard ──


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    period: str = Query("weekly", pattern="^(weekly|monthly|alltime)$"),
    category: str = Query("xp", pattern="^(xp|streak|comments)$"),
    limit: int = Query(10, ge=1),
    _ip_hash: str = Depends(public_guard("public")),
    visitor: VisitorProfile | None = Depends(get_optional_visitor),
    db: AsyncSession = Depends(get_db),
):
    """Top visitors; ``limit`` is capped at 50."""
    result = await get_leaderboard(db, period, category, limit, visitor.id if visitor else None)
    await db.commit()
    return result
