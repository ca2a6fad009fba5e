"""In-app notifications for visitors."""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.db.models import Notification


async def create_notification(
    db: AsyncSession,
    visitor_id: str,
    type_: str,
    title: str,
    message: str,
    link: str | None = None,
) -> Notification:
    notification = Notification(
        visitor_id=visitor_id,
        type=type_,
        title=title,
        message=message,
        link=link,
    )
    db.add(notification)
    await db.flush()
    return notification


async def list_notifications(
    db: AsyncSession,
    visitor_id: str,
    limit: int = 20,
    unread_only: bool = False,
) -> tuple[list[Notification], int]:
    """Newest first, plus the unread count."""
    query = select(Notification).where(Notification.visitor_id == visitor_id)
    if unread_only:
        query = query.where(Notification.read.is_(False))
    result = await db.execute(query.order_by(Notification.created_at.desc()).limit(limit))
    unread = await db.scalar(
        select(func.count(Notification.id)).where(
            Notification.visitor_id == visitor_id,
            Notification.read.is_(False),
        )
    )
    return list(result.scalars().all()), int(unread or 0)


async def mark_read(db: AsyncSession, visitor_id: str, ids: list[str] | None = None) -> int:
    """Mark the given notifications (or all of them) as read. Returns rows updated."""
    stmt = (
        update(Notification)
        .where(Notification.visitor_id == visitor_id, Notification.read.is_(False))
        .values(read=True)
    )
    if ids:
        stmt = stmt.where(Notification.id.in_(ids))
    result = await db.execute(stmt)
    return result.rowcount or 0
