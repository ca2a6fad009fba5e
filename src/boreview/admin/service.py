"""Back-office queries: dashboard stats, moderation, inbox and member management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import selectinload

from boreview.db.base import utcnow
from boreview.db.models import (
    BannedIP,
    Comment,
    ContactMessage,
    NewsletterSubscriber,
    Notification,
    PointTransaction,
    Post,
    PollVote,
    Reaction,
    ReadingHistory,
    Streak,
    UserBadge,
    UserDailyTask,
    VisitorProfile,
)
from boreview.security.service import sanitize_input

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

RECENT_COMMENTS_LIMIT = 10
DEFAULT_BAN_REASON = "Vi phạm quy định cộng đồng"

# Rows owned by a visitor, removed before the profile itself.
VISITOR_OWNED_MODELS = (
    PointTransaction,
    UserBadge,
    Streak,
    ReadingHistory,
    UserDailyTask,
    Notification,
)


class AlreadyBannedError(Exception):
    pass


async def _count(db: AsyncSession, column, *conditions) -> int:  # noqa: ANN001
    return int(await db.scalar(select(func.count(column)).where(*conditions)) or 0)


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit else 0


# --- Stats ---


def comment_to_dict(comment: Comment, with_replies: bool = False, with_post: bool = True) -> dict:
    """Flatten a comment; relationships used here must already be loaded."""
    data = {
        "id": comment.id,
        "content": comment.content,
        "author_name": comment.author_name,
        "ip_hash": comment.ip_hash,
        "approved": comment.approved,
        "is_admin_reply": comment.is_admin_reply,
        "post_id": comment.post_id,
        "parent_id": comment.parent_id,
        "created_at": comment.created_at,
        "post": {"title": comment.post.title, "slug": comment.post.slug} if with_post and comment.post else None,
    }
    if with_replies:
        data["replies"] = [comment_to_dict(r) for r in comment.replies]
    return data


async def get_dashboard_stats(db: AsyncSession) -> dict:
    """Every counter the admin dashboard shows, plus the latest comments."""
    posts_total = await _count(db, Post.id)
    posts_published = await _count(db, Post.id, Post.published.is_(True))
    views = int(await db.scalar(select(func.coalesce(func.sum(Post.views), 0))) or 0)

    recent = await db.execute(
        select(Comment)
        .options(selectinload(Comment.post))
        .order_by(Comment.created_at.desc())
        .limit(RECENT_COMMENTS_LIMIT)
    )

    return {
        "posts": {
            "total": posts_total,
            "published": posts_published,
            "drafts": posts_total - posts_published,
        },
        "views": views,
        "comments": {
            "total": await _count(db, Comment.id),
            "pending": await _count(db, Comment.id, Comment.approved.is_(False)),
        },
        "reactions": await _count(db, Reaction.id),
        "poll_votes": await _count(db, PollVote.id),
        "banned_ips": await _count(db, BannedIP.id),
        "recent_comments": [comment_to_dict(c) for c in recent.scalars()],
        "messages": {
            "total": await _count(db, ContactMessage.id),
            "unread": await _count(db, ContactMessage.id, ContactMessage.read.is_(False)),
        },
        "newsletter": {
            "total": await _count(db, NewsletterSubscriber.id),
            "active": await _count(db, NewsletterSubscriber.id, NewsletterSubscriber.is_active.is_(True)),
        },
        "visitors": {
            "total": await _count(db, VisitorProfile.id),
            "banned": await _count(db, VisitorProfile.id, VisitorProfile.is_banned.is_(True)),
        },
    }


async def get_community_stats(db: AsyncSession) -> dict:
    """Public counters for the landing page."""
    published = Post.published.is_(True)
    views = await db.scalar(select(func.coalesce(func.sum(Post.views), 0)).where(published))
    return {
        "total_posts": await _count(db, Post.id, published),
        "total_views": int(views or 0),
        "total_comments": await _count(db, Comment.id, Comment.approved.is_(True)),
        "total_members": await _count(db, VisitorProfile.id),
    }


# --- Comments ---


async def list_admin_comments(
    db: AsyncSession,
    status: str = "all",
    page: int = 1,
    limit: int = 20,
) -> tuple[list[dict], int]:
    """Top-level comments of any approval state, newest first, with every reply."""
    conditions = [Comment.parent_id.is_(None)]
    if status == "approved":
        conditions.append(Comment.approved.is_(True))
    elif status == "pending":
        conditions.append(Comment.approved.is_(False))

    total = await _count(db, Comment.id, *conditions)
    result = await db.execute(
        select(Comment)
        .where(*conditions)
        .options(
            selectinload(Comment.post),
            selectinload(Comment.replies).selectinload(Comment.post),
        )
        .order_by(Comment.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return [comment_to_dict(c, with_replies=True) for c in result.scalars()], total


async def create_admin_reply(db: AsyncSession, parent_id: str, content: str, admin_name: str | None) -> Comment | None:
    """Reply under an existing comment; None when the parent does not exist."""
    parent = await db.get(Comment, parent_id)
    if parent is None:
        return None

    reply = Comment(
        content=sanitize_input(content),
        author_name=admin_name or "Admin",
        ip_hash="admin",
        approved=True,
        is_admin_reply=True,
        post_id=parent.post_id,
        parent_id=parent.id,
    )
    db.add(reply)
    await db.flush()
    logger.info("Admin reply %s posted under comment %s", reply.id, parent_id)
    return reply


async def set_comments_approved(db: AsyncSession, ids: list[str], approved: bool) -> int:
    result = await db.execute(update(Comment).where(Comment.id.in_(ids)).values(approved=approved))
    return result.rowcount or 0


async def delete_comments(db: AsyncSession, ids: list[str]) -> int:
    """Delete comments by id; their replies cascade in the database."""
    result = await db.execute(delete(Comment).where(Comment.id.in_(ids)))
    return result.rowcount or 0


# --- Banned IPs ---


async def list_banned_ips(db: AsyncSession) -> list[BannedIP]:
    result = await db.execute(select(BannedIP).order_by(BannedIP.created_at.desc()))
    return list(result.scalars().all())


async def ban_ip(db: AsyncSession, ip_hash: str, reason: str | None) -> BannedIP:
    existing = await db.scalar(select(BannedIP.id).where(BannedIP.ip_hash == ip_hash))
    if existing is not None:
        msg = "IP already banned"
        raise AlreadyBannedError(msg)

    ban = BannedIP(ip_hash=ip_hash, reason=reason or None)
    db.add(ban)
    await db.flush()
    logger.info("IP %s banned", ip_hash[:12])
    return ban


async def unban_ip(db: AsyncSession, ban_id: str) -> bool:
    result = await db.execute(delete(BannedIP).where(BannedIP.id == ban_id))
    return bool(result.rowcount)


# --- Contact messages ---


async def list_messages(
    db: AsyncSession,
    filter_: str = "all",
    page: int = 1,
    limit: int = 20,
) -> tuple[list[ContactMessage], int, int]:
    """Messages newest first; returns (messages, filtered total, unread count)."""
    conditions = []
    if filter_ == "unread":
        conditions.append(ContactMessage.read.is_(False))
    elif filter_ == "replied":
        conditions.append(ContactMessage.replied.is_(True))

    total = await _count(db, ContactMessage.id, *conditions)
    unread = await _count(db, ContactMessage.id, ContactMessage.read.is_(False))
    result = await db.execute(
        select(ContactMessage)
        .where(*conditions)
        .order_by(ContactMessage.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total, unread


async def mark_message_read(db: AsyncSession, message: ContactMessage) -> ContactMessage:
    message.read = True
    await db.flush()
    return message


async def mark_message_replied(db: AsyncSession, message: ContactMessage) -> ContactMessage:
    message.read = True
    message.replied = True
    message.replied_at = utcnow()
    await db.flush()
    return message


async def delete_message(db: AsyncSession, message_id: str) -> bool:
    result = await db.execute(delete(ContactMessage).where(ContactMessage.id == message_id))
    return bool(result.rowcount)


# --- Newsletter ---


async def list_subscribers(
    db: AsyncSession,
    filter_: str = "all",
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[NewsletterSubscriber], int, int, int]:
    """Returns (subscribers, filtered total, active count, overall count)."""
    conditions = []
    if filter_ == "active":
        conditions.append(NewsletterSubscriber.is_active.is_(True))
    elif filter_ == "unsubscribed":
        conditions.append(NewsletterSubscriber.is_active.is_(False))
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(NewsletterSubscriber.email.ilike(pattern), NewsletterSubscriber.name.ilike(pattern)))

    total = await _count(db, NewsletterSubscriber.id, *conditions)
    active = await _count(db, NewsletterSubscriber.id, NewsletterSubscriber.is_active.is_(True))
    overall = await _count(db, NewsletterSubscriber.id)
    result = await db.execute(
        select(NewsletterSubscriber)
        .where(*conditions)
        .order_by(NewsletterSubscriber.subscribed_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total, active, overall


async def set_subscriber_active(db: AsyncSession, subscriber: NewsletterSubscriber, active: bool) -> None:
    subscriber.is_active = active
    subscriber.unsubscribed_at = None if active else utcnow()
    await db.flush()


async def delete_subscriber(db: AsyncSession, subscriber_id: str) -> bool:
    result = await db.execute(delete(NewsletterSubscriber).where(NewsletterSubscriber.id == subscriber_id))
    return bool(result.rowcount)


# --- Visitors ---


async def list_visitors(
    db: AsyncSession,
    search: str | None = None,
    banned: bool | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[VisitorProfile], int]:
    conditions = []
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(VisitorProfile.username.ilike(pattern), VisitorProfile.display_name.ilike(pattern)))
    if banned is not None:
        conditions.append(VisitorProfile.is_banned.is_(banned))

    total = await _count(db, VisitorProfile.id, *conditions)
    result = await db.execute(
        select(VisitorProfile)
        .where(*conditions)
        .order_by(VisitorProfile.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def ban_visitor(db: AsyncSession, visitor: VisitorProfile, reason: str | None) -> VisitorProfile:
    visitor.is_banned = True
    visitor.banned_at = utcnow()
    visitor.banned_reason = reason or DEFAULT_BAN_REASON
    await db.flush()
    logger.info("Visitor %s banned: %s", visitor.id, visitor.banned_reason)
    return visitor


async def unban_visitor(db: AsyncSession, visitor: VisitorProfile) -> VisitorProfile:
    visitor.is_banned = False
    visitor.banned_at = None
    visitor.banned_reason = None
    await db.flush()
    logger.info("Visitor %s unbanned", visitor.id)
    return visitor


async def delete_visitor(db: AsyncSession, visitor_id: str) -> bool:
    """Remove a visitor and everything they own. The caller commits once."""
    for model in VISITOR_OWNED_MODELS:
        await db.execute(delete(model).where(model.visitor_id == visitor_id))
    result = await db.execute(delete(VisitorProfile).where(VisitorProfile.id == visitor_id))
    return bool(result.rowcount)
