"""Public comment endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.auth.dependencies import get_optional_visitor
from boreview.comments.schemas import CommentCreate, CommentCreated, CommentListResponse
from boreview.comments.service import create_comment, list_comments
from boreview.db.models import VisitorProfile
from boreview.dependencies import get_db
from boreview.gamification.activity import reward_activity
from boreview.posts.service import get_published_post
from boreview.security.dependencies import enforce_guard, get_ip_hash, public_guard
from boreview.security.service import contains_profanity, verify_recaptcha

logger = structlog.get_logger()

router = APIRouter(prefix="/api/comments", tags=["Comments"])


@router.get("", response_model=CommentListResponse)
async def get_comments(
    response: Response,
    post_id: str = Query(..., alias="postId", min_length=1),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    _ip_hash: str = Depends(public_guard("public")),
    db: AsyncSession = Depends(get_db),
):
    threads, total = await list_comments(db, post_id, page, limit)
    response.headers["Cache-Control"] = "public, s-maxage=30, stale-while-revalidate=60"
    return CommentListResponse(
        comments=threads,
        total=total,
        page=page,
        total_pages=(total + limit - 1) // limit,
    )


@router.post("", response_model=CommentCreated, status_code=201)
async def post_comment(
    body: CommentCreate,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    visitor: VisitorProfile | None = Depends(get_optional_visitor),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a comment.

    A logged-in visitor also earns comment XP and ``comment`` task progress;
    a failure there leaves the comment in place.
    """
    await enforce_guard(db, response, ip_hash, "comment")
    if body.recaptcha_token and not await verify_recaptcha(body.recaptcha_token):
        raise HTTPException(status_code=400, detail="reCAPTCHA verification failed")
    if contains_profanity(body.content) or contains_profanity(body.author_name):
        raise HTTPException(status_code=400, detail="Comment contains inappropriate content")
    if await get_published_post(db, body.post_id) is None:
        raise HTTPException(status_code=404, detail="Post not found")

    comment = await create_comment(db, body.post_id, body.content, body.author_name, ip_hash)
    await db.commit()
    created = CommentCreated.model_validate(comment)
    visitor_id = visitor.id if visitor else None

    if visitor_id is not None:
        xp_result = await reward_activity(db, visitor_id, "comment", "comment", post_id=body.post_id)
        created = CommentCreated(**created.model_dump(exclude={"xp_result"}), xp_result=xp_result)
    logger.info("comment_created", comment_id=created.id, visitor_id=visitor_id)
    return created
