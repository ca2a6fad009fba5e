"""
Visitor account business logic.

Handles registration (welcome bonus, streak, starter badges), login with
the daily check-in, password changes, profiles and reading history.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from boreview.auth.password import (
    PasswordStrengthError,
    hash_password,
    validate_visitor_password,
    verify_password,
)
from boreview.config import get_settings
from boreview.db.base import utcnow
from boreview.db.models import (
    Post,
    PointTransaction,
    ReadingHistory,
    Streak,
    UserBadge,
    VisitorProfile,
    post_categories,
)
from boreview.gamification.badge_service import award_badge, set_featured_badges
from boreview.gamification.level_thresholds import get_level_info, get_xp_for_next_level, level_progress
from boreview.gamification.site_day import site_day_start
from boreview.gamification.xp_service import award_xp
from boreview.visitors.notification_service import create_notification

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

WELCOME_TITLE = "🎉 Chào mừng đến Bơ Review!"


class UsernameTakenError(ValueError):
    """Username already registered."""


class AccountNotFoundError(LookupError):
    """No visitor with that username."""


class InvalidPasswordError(Exception):
    """Password missing or wrong on login."""


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_visitor_by_username(db: AsyncSession, username: str) -> VisitorProfile | None:
    result = await db.execute(
        select(VisitorProfile).where(VisitorProfile.username == username.strip().lower())
    )
    return result.scalar_one_or_none()


async def get_featured_user_badges(db: AsyncSession, visitor_id: str) -> list[UserBadge]:
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.visitor_id == visitor_id, UserBadge.is_featured.is_(True))
        .order_by(UserBadge.earned_at.desc())
        .limit(3)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Registration / login
# ---------------------------------------------------------------------------


async def register_visitor(
    db: AsyncSession,
    username: str,
    display_name: str,
    ip_hash: str,
    password: str | None = None,
    email: str | None = None,
) -> VisitorProfile:
    """
    Create a visitor with the welcome package.

    The welcome bonus is paid as a ledger entry; the starter badges carry no
    XP of their own. Early adopters (the first N visitors) also get the
    ``early-bird`` badge.
    """
    settings = get_settings()
    username = username.strip().lower()
    if await get_visitor_by_username(db, username) is not None:
        msg = "Tên đăng nhập đã tồn tại"
        raise UsernameTakenError(msg)
    if password:
        validate_visitor_password(password)

    existing_count = await db.scalar(select(func.count(VisitorProfile.id)))
    is_early_adopter = int(existing_count or 0) < settings.early_adopter_limit

    now = utcnow()
    visitor = VisitorProfile(
        username=username,
        display_name=display_name.strip(),
        email=email,
        password_hash=hash_password(password) if password else None,
        ip_hash=ip_hash,
        level=1,
        total_xp=0,
        current_streak=1,
        longest_streak=1,
        last_active_at=now,
    )
    db.add(visitor)
    await db.flush()

    db.add(Streak(visitor_id=visitor.id, current_streak=1, longest_streak=1, last_check_in=now))
    await award_xp(db, visitor.id, "welcome", custom_points=settings.welcome_bonus_xp)
    await award_badge(db, visitor.id, "nguoi-moi", featured=True)
    if is_early_adopter:
        await award_badge(db, visitor.id, "early-bird")

    await create_notification(
        db,
        visitor.id,
        "system",
        WELCOME_TITLE,
        f'Bạn đã nhận {settings.welcome_bonus_xp} XP và huy hiệu "Người Mới". '
        "Hãy khám phá và tích lũy điểm nhé!",
    )
    logger.info("Visitor %s registered (early adopter: %s)", visitor.id, is_early_adopter)
    return visitor


async def authenticate_visitor(db: AsyncSession, username: str, password: str | None) -> VisitorProfile:
    """
    Resolve a login.

    Accounts without a password log in by username alone. Raises
    AccountNotFoundError or InvalidPasswordError.
    """
    visitor = await get_visitor_by_username(db, username)
    if visitor is None:
        msg = "Tài khoản không tồn tại"
        raise AccountNotFoundError(msg)
    if visitor.password_hash and (not password or not verify_password(password, visitor.password_hash)):
        msg = "Mật khẩu không chính xác"
        raise InvalidPasswordError(msg)
    return visitor


async def change_visitor_password(
    db: AsyncSession,
    visitor: VisitorProfile,
    new_password: str | None,
    confirm_password: str | None,
    current_password: str | None = None,
) -> bool:
    """
    Set or replace a visitor password. Returns True when one was already set.

    Raises ValueError (incl. PasswordStrengthError) with a user-facing message.
    """
    if not new_password:
        msg = "Mật khẩu mới phải có ít nhất 6 ký tự"
        raise PasswordStrengthError(msg)
    validate_visitor_password(new_password)
    if new_password != confirm_password:
        msg = "Mật khẩu xác nhận không khớp"
        raise ValueError(msg)

    had_password = visitor.password_hash is not None
    if had_password:
        if not current_password:
            msg = "Vui lòng nhập mật khẩu hiện tại"
            raise ValueError(msg)
        if not verify_password(current_password, visitor.password_hash):
            msg = "Mật khẩu hiện tại không chính xác"
            raise ValueError(msg)
        if verify_password(new_password, visitor.password_hash):
            msg = "Mật khẩu mới không được trùng với mật khẩu hiện tại"
            raise ValueError(msg)

    visitor.password_hash = hash_password(new_password)
    await db.flush()
    logger.info("Visitor %s changed password (first time: %s)", visitor.id, not had_password)
    return had_password


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


async def _count(db: AsyncSession, query) -> int:  # noqa: ANN001
    return int(await db.scalar(query) or 0)


async def build_public_profile(db: AsyncSession, visitor: VisitorProfile) -> dict:
    """Public view of a visitor: level, streak, badges and activity counts."""
    streak = (
        await db.execute(select(Streak).where(Streak.visitor_id == visitor.id))
    ).scalar_one_or_none()
    user_badges = list(
        (
            await db.execute(
                select(UserBadge)
                .where(UserBadge.visitor_id == visitor.id)
                .order_by(UserBadge.earned_at.desc())
            )
        ).scalars()
    )

    def tx_count(action: str | None = None):  # noqa: ANN202
        query = select(func.count(PointTransaction.id)).where(PointTransaction.visitor_id == visitor.id)
        return query.where(PointTransaction.action == action) if action else query

    stats = {
        "posts_read": await _count(
            db, select(func.count(ReadingHistory.id)).where(ReadingHistory.visitor_id == visitor.id)
        ),
        "total_actions": await _count(db, tx_count()),
        "comments": await _count(db, tx_count("comment")),
        "reactions": await _count(db, tx_count("react")),
    }

    return {
        "username": visitor.username,
        "display_name": visitor.display_name,
        "avatar": visitor.avatar,
        "bio": visitor.bio,
        "level": visitor.level,
        "level_info": get_level_info(visitor.level),
        "total_xp": visitor.total_xp,
        "xp_to_next_level": get_xp_for_next_level(visitor.level) - visitor.total_xp,
        "progress_to_next_level": level_progress(visitor.total_xp, visitor.level),
        "current_streak": streak.current_streak if streak else 0,
        "longest_streak": streak.longest_streak if streak else 0,
        "freezes_available": streak.freezes_available if streak else 0,
        "badges": [
            {
                "id": ub.badge.id,
                "name": ub.badge.name,
                "slug": ub.badge.slug,
                "description": ub.badge.description,
                "icon": ub.badge.icon,
                "category": ub.badge.category,
                "rarity": ub.badge.rarity,
                "xp_reward": ub.badge.xp_reward,
                "earned_at": ub.earned_at,
                "is_featured": ub.is_featured,
            }
            for ub in user_badges
        ],
        "featured_badges": [
            {"name": ub.badge.name, "slug": ub.badge.slug, "icon": ub.badge.icon, "rarity": ub.badge.rarity}
            for ub in user_badges
            if ub.is_featured
        ][:3],
        "stats": stats,
        "created_at": visitor.created_at,
        "last_active_at": visitor.last_active_at,
    }


async def update_profile(
    db: AsyncSession,
    visitor: VisitorProfile,
    display_name: str | None = None,
    bio: str | None = None,
    avatar: str | None = None,
    featured_badge_ids: list[str] | None = None,
) -> VisitorProfile:
    if display_name:
        visitor.display_name = display_name.strip()
    if bio is not None:
        visitor.bio = bio[:200]
    if avatar:
        visitor.avatar = avatar
    if featured_badge_ids is not None:
        await set_featured_badges(db, visitor.id, featured_badge_ids)
    await db.flush()
    return visitor


# ---------------------------------------------------------------------------
# Reading history
# ---------------------------------------------------------------------------


async def get_reading_row(db: AsyncSession, visitor_id: str, post_id: str) -> ReadingHistory | None:
    result = await db.execute(
        select(ReadingHistory).where(
            ReadingHistory.visitor_id == visitor_id,
            ReadingHistory.post_id == post_id,
        )
    )
    return result.scalar_one_or_none()


async def opens_new_category(db: AsyncSession, visitor_id: str, post_id: str, now: datetime) -> bool:
    """True when the post has a category the visitor has not read from yet today."""
    post_cats = set(
        (
            await db.execute(
                select(post_categories.c.category_id).where(post_categories.c.post_id == post_id)
            )
        ).scalars()
    )
    if not post_cats:
        return False
    read_today = set(
        (
            await db.execute(
                select(post_categories.c.category_id)
                .join(ReadingHistory, ReadingHistory.post_id == post_categories.c.post_id)
                .where(
                    ReadingHistory.visitor_id == visitor_id,
                    ReadingHistory.post_id != post_id,
                    ReadingHistory.last_read_at >= site_day_start(now),
                )
            )
        ).scalars()
    )
    return bool(post_cats - read_today)


async def record_reading(
    db: AsyncSession,
    visitor_id: str,
    post_id: str,
    read_time_seconds: int,
    completed: bool,
    now: datetime | None = None,
) -> tuple[ReadingHistory, bool, bool]:
    """
    Upsert the visitor's reading row for a post.

    Each ping adds 10% progress (100% when completed) and accumulates read
    time. Returns (row, already_rewarded, explores_new_category); the caller
    decides on XP after committing the row.
    """
    now = now or utcnow()
    row = await get_reading_row(db, visitor_id, post_id)
    first_touch_today = row is None or row.last_read_at < site_day_start(now)
    explores = first_touch_today and await opens_new_category(db, visitor_id, post_id, now)

    if row is None:
        row = ReadingHistory(
            visitor_id=visitor_id,
            post_id=post_id,
            progress=100 if completed else 10,
            read_duration=read_time_seconds,
            completed=completed,
            xp_awarded=False,
            last_read_at=now,
        )
        db.add(row)
        already_rewarded = False
    else:
        already_rewarded = row.xp_awarded
        row.progress = min(100, row.progress + (100 if completed else 10))
        row.read_duration += read_time_seconds
        row.completed = row.completed or completed
        row.last_read_at = now
    await db.flush()
    return row, already_rewarded, explores


def earns_read_xp(row: ReadingHistory, completed_now: bool) -> bool:
    return (
        completed_now
        and not row.xp_awarded
        and row.read_duration >= get_settings().min_read_seconds_for_xp
    )


async def list_reading_history(
    db: AsyncSession,
    visitor_id: str,
    post_id: str | None = None,
    limit: int = 20,
) -> list[tuple[ReadingHistory, Post]]:
    query = (
        select(ReadingHistory, Post)
        .join(Post, Post.id == ReadingHistory.post_id)
        .where(ReadingHistory.visitor_id == visitor_id)
    )
    if post_id:
        query = query.where(ReadingHistory.post_id == post_id)
    result = await db.execute(query.order_by(ReadingHistory.last_read_at.desc()).limit(limit))
    return [(row, post) for row, post in result.all()]
