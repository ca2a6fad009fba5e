"""Article queries and admin CRUD."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import selectinload

from boreview.content.utils import (
    calculate_reading_time,
    check_duplicate_content,
    format_reading_time,
    get_youtube_thumbnail,
    slugify,
    validate_content_quality,
)
from boreview.db.base import utcnow
from boreview.db.models import Category, Post, Tag

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from boreview.posts.schemas import PostCreate, PostUpdate

logger = logging.getLogger(__name__)

SORT_ORDERS = {
    "latest": Post.published_at.desc(),
    "views": Post.views.desc(),
    "oldest": Post.published_at.asc(),
}
DUPLICATE_SCAN_LIMIT = 50


def _with_relations(query):  # noqa: ANN001, ANN202
    return query.options(
        selectinload(Post.author),
        selectinload(Post.categories),
        selectinload(Post.tags),
    )


async def get_post(db: AsyncSession, post_id: str) -> Post | None:
    result = await db.execute(
        _with_relations(select(Post).where(Post.id == post_id)).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_published_post(db: AsyncSession, post_id: str) -> Post | None:
    result = await db.execute(select(Post).where(Post.id == post_id, Post.published.is_(True)))
    return result.scalar_one_or_none()


async def list_published_posts(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    category: str | None = None,
    featured: bool = False,
    sort: str = "latest",
) -> tuple[list[Post], int]:
    """Published posts only; search covers title and excerpt, not the body."""
    conditions = [Post.published.is_(True)]
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Post.title.ilike(pattern), Post.excerpt.ilike(pattern)))
    if category:
        conditions.append(Post.categories.any(Category.slug == category))
    if featured:
        conditions.append(Post.featured.is_(True))

    total = await db.scalar(select(func.count(Post.id)).where(*conditions))
    result = await db.execute(
        _with_relations(select(Post).where(*conditions))
        .order_by(SORT_ORDERS.get(sort, SORT_ORDERS["latest"]), Post.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), int(total or 0)


def to_public_post(post: Post) -> dict:
    return {
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt,
        "image_url": post.thumbnail,
        "published_at": post.published_at,
        "views": post.views,
        "author_name": (post.author.name if post.author else None) or "Anonymous",
        "reading_time": format_reading_time(calculate_reading_time(post.content)),
        "categories": [{"name": c.name, "slug": c.slug} for c in post.categories],
    }


def to_post_detail(post: Post, warnings: list[str] | None = None) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "content": post.content,
        "excerpt": post.excerpt,
        "youtube_url": post.youtube_url,
        "youtube_thumbnail": get_youtube_thumbnail(post.youtube_url) if post.youtube_url else None,
        "thumbnail": post.thumbnail,
        "published": post.published,
        "featured": post.featured,
        "views": post.views,
        "published_at": post.published_at,
        "seo_title": post.seo_title,
        "meta_description": post.meta_description,
        "reading_time": calculate_reading_time(post.content),
        "author": {"id": post.author.id, "name": post.author.name} if post.author else None,
        "categories": [{"id": c.id, "name": c.name, "slug": c.slug} for c in post.categories],
        "tags": [{"id": t.id, "name": t.name, "slug": t.slug} for t in post.tags],
        "created_at": post.created_at,
        "updated_at": post.updated_at,
        "warnings": warnings or [],
    }


async def unique_slug(db: AsyncSession, source: str, exclude_id: str | None = None) -> str:
    """Slug for ``source``; a millisecond timestamp is appended when taken."""
    slug = slugify(source) or "bai-viet"
    query = select(Post.id).where(Post.slug == slug)
    if exclude_id:
        query = query.where(Post.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        slug = f"{slug}-{int(time.time() * 1000)}"
    return slug


async def _terms(db: AsyncSession, model: type[Category] | type[Tag], ids: list[str]) -> list:
    if not ids:
        return []
    result = await db.execute(select(model).where(model.id.in_(ids)))
    return list(result.scalars().all())


async def content_warnings(db: AsyncSession, content: str, exclude_id: str | None = None) -> list[str]:
    """Quality and near-duplicate warnings; they never block a save."""
    warnings = list(validate_content_quality(content).warnings)
    query = select(Post.content).order_by(Post.created_at.desc()).limit(DUPLICATE_SCAN_LIMIT)
    if exclude_id:
        query = query.where(Post.id != exclude_id)
    existing = list((await db.execute(query)).scalars())
    duplicate = check_duplicate_content(content, existing)
    if duplicate["is_duplicate"]:
        warnings.append(f"Nội dung trùng {duplicate['similarity']}% với một bài viết đã có.")
    return warnings


async def create_post(db: AsyncSession, data: PostCreate, author_id: str | None) -> Post:
    post = Post(
        title=data.title,
        slug=await unique_slug(db, data.title),
        content=data.content,
        excerpt=data.excerpt,
        youtube_url=data.youtube_url,
        thumbnail=data.thumbnail,
        published=data.published,
        featured=data.featured,
        published_at=utcnow() if data.published else None,
        seo_title=data.seo_title or None,
        meta_description=data.meta_description or None,
        author_id=author_id,
        categories=await _terms(db, Category, data.categories),
        tags=await _terms(db, Tag, data.tags),
    )
    db.add(post)
    await db.flush()
    logger.info("Post created: %s (%s)", post.slug, post.id)
    return post


async def update_post(db: AsyncSession, post: Post, data: PostUpdate) -> Post:
    """
    Apply a partial update.

    A custom slug wins over a title change when regenerating the slug.
    Publishing stamps ``published_at``; unpublishing clears it.
    """
    fields = data.model_fields_set

    if data.custom_slug and data.custom_slug != post.slug:
        post.slug = await unique_slug(db, data.custom_slug, exclude_id=post.id)
    elif data.title and data.title != post.title and not data.custom_slug:
        post.slug = await unique_slug(db, data.title, exclude_id=post.id)

    if data.published is not None:
        if data.published and not post.published:
            post.published_at = utcnow()
        elif not data.published:
            post.published_at = None
        post.published = data.published

    if data.title:
        post.title = data.title
    if data.content:
        post.content = data.content
    if data.excerpt:
        post.excerpt = data.excerpt
    if data.featured is not None:
        post.featured = data.featured
    for name in ("youtube_url", "thumbnail", "seo_title", "meta_description"):
        if name in fields:
            setattr(post, name, getattr(data, name) or None)
    if data.categories is not None:
        post.categories = await _terms(db, Category, data.categories)
    if data.tags is not None:
        post.tags = await _terms(db, Tag, data.tags)

    post.updated_at = utcnow()
    await db.flush()
    return post


async def delete_post(db: AsyncSession, post_id: str) -> bool:
    """Delete a post; comments, reactions, polls and reading rows cascade in the database."""
    result = await db.execute(delete(Post).where(Post.id == post_id))
    return bool(result.rowcount)


async def increment_views(db: AsyncSession, post_id: str) -> int | None:
    result = await db.execute(update(Post).where(Post.id == post_id).values(views=Post.views + 1))
    if not result.rowcount:
        return None
    return await db.scalar(select(Post.views).where(Post.id == post_id))
