"""Article endpoints: public listing and admin CRUD."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.auth.dependencies import get_current_admin, get_optional_admin
from boreview.db.models import User
from boreview.dependencies import get_db
from boreview.posts import service
from boreview.posts.schemas import PostCreate, PostDetail, PostListResponse, PostUpdate, ViewResponse
from boreview.schemas import ActionResponse, paginate
from boreview.security.dependencies import public_guard

logger = structlog.get_logger()

router = APIRouter(prefix="/api/posts", tags=["Posts"])

LIST_CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=300"


@router.get("", response_model=PostListResponse)
async def list_posts(
    response: Response,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    search: str | None = Query(None, max_length=100),
    category: str | None = Query(None),
    featured: bool = Query(False),
    sort: str = Query("latest", pattern="^(latest|views|oldest)$"),
    _ip_hash: str = Depends(public_guard("public")),
    db: AsyncSession = Depends(get_db),
):
    """Published articles with safe public fields only."""
    posts, total = await service.list_published_posts(
        db, page=page, limit=limit, search=search, category=category, featured=featured, sort=sort
    )
    response.headers["Cache-Control"] = LIST_CACHE_CONTROL
    return PostListResponse(
        posts=[service.to_public_post(p) for p in posts],
        pagination=paginate(page, limit, total),
    )


@router.post("", response_model=PostDetail, status_code=201)
async def create_post(
    body: PostCreate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    warnings = await service.content_warnings(db, body.content)
    post = await service.create_post(db, body, author_id=admin.id)
    await db.commit()
    post = await service.get_post(db, post.id)
    logger.info("post_created", post_id=post.id, admin_id=admin.id)
    return service.to_post_detail(post, warnings)


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: str,
    _ip_hash: str = Depends(public_guard("public")),
    admin: User | None = Depends(get_optional_admin),
    db: AsyncSession = Depends(get_db),
):
    """A single article. Drafts are only visible to admins."""
    post = await service.get_post(db, post_id)
    if post is None or (not post.published and admin is None):
        raise HTTPException(status_code=404, detail="Post not found")
    return service.to_post_detail(post)


@router.put("/{post_id}", response_model=PostDetail)
async def update_post(
    post_id: str,
    body: PostUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    post = await service.get_post(db, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")

    warnings = await service.content_warnings(db, body.content, exclude_id=post_id) if body.content else []
    await service.update_post(db, post, body)
    await db.commit()
    logger.info("post_updated", post_id=post_id, admin_id=admin.id)
    return service.to_post_detail(post, warnings)


@router.delete("/{post_id}", response_model=ActionResponse)
async def delete_post(
    post_id: str,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    if not await service.delete_post(db, post_id):
        raise HTTPException(status_code=404, detail="Post not found")
    await db.commit()
    logger.info("post_deleted", post_id=post_id, admin_id=admin.id)
    return ActionResponse(message="Post deleted successfully")


@router.post("/{post_id}/view", response_model=ViewResponse)
async def record_view(
    post_id: str,
    _ip_hash: str = Depends(public_guard("public")),
    db: AsyncSession = Depends(get_db),
):
    views = await service.increment_views(db, post_id)
    if views is None:
        raise HTTPException(status_code=404, detail="Post not found")
    await db.commit()
    return ViewResponse(views=views)
