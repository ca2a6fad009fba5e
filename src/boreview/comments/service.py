"""Comment queries and creation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from boreview.db.models import Comment
from boreview.security.service import sanitize_input

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def _top_level(post_id: str):  # noqa: ANN202
    return (
        Comment.post_id == post_id,
        Comment.approved.is_(True),
        Comment.parent_id.is_(None),
    )


async def list_comments(
    db: AsyncSession,
    post_id: str,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int]:
    """Approved top-level comments, newest first, each with its approved replies oldest first."""
    total = await db.scalar(select(func.count(Comment.id)).where(*_top_level(post_id)))
    result = await db.execute(
        select(Comment)
        .where(*_top_level(post_id))
        .options(selectinload(Comment.replies))
        .order_by(Comment.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    threads = [
        {
            "id": c.id,
            "content": c.content,
            "author_name": c.author_name,
            "is_admin_reply": c.is_admin_reply,
            "created_at": c.created_at,
            "replies": [
                {
                    "id": r.id,
                    "content": r.content,
                    "author_name": r.author_name,
                    "is_admin_reply": r.is_admin_reply,
                    "created_at": r.created_at,
                }
                for r in c.replies
                if r.approved
            ],
        }
        for c in result.scalars().all()
    ]
    return threads, int(total or 0)


async def create_comment(
    db: AsyncSession,
    post_id: str,
    content: str,
    author_name: str,
    ip_hash: str,
) -> Comment:
    """Store a public comment with HTML-escaped text. Comments are auto-approved."""
    comment = Comment(
        content=sanitize_input(content),
        author_name=sanitize_input(author_name),
        ip_hash=ip_hash,
        post_id=post_id,
        approved=True,
    )
    db.add(comment)
    await db.flush()
    logger.info("Comment %s created on post %s", comment.id, post_id)
    return comment
