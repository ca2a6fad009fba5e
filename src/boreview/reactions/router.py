"""Public reaction endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.auth.dependencies import get_optional_visitor
from boreview.content.utils import get_reaction_emoji
from boreview.db.models import VisitorProfile
from boreview.dependencies import get_db
from boreview.gamification.activity import reward_activity
from boreview.posts.service import get_published_post
from boreview.reactions.schemas import ReactionSummary, ReactionToggle, ReactionToggleResponse
from boreview.reactions.service import reaction_summary, toggle_reaction
from boreview.security.dependencies import enforce_guard, get_ip_hash, public_guard

logger = structlog.get_logger()

router = APIRouter(prefix="/api/reactions", tags=["Reactions"])


@router.get("", response_model=ReactionSummary)
async def get_reactions(
    response: Response,
    post_id: str = Query(..., alias="postId", min_length=1),
    ip_hash: str = Depends(public_guard("public")),
    db: AsyncSession = Depends(get_db),
):
    response.headers["Cache-Control"] = "private, max-age=10"
    return await reaction_summary(db, post_id, ip_hash)


@router.post("", response_model=ReactionToggleResponse)
async def post_reaction(
    body: ReactionToggle,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    visitor: VisitorProfile | None = Depends(get_optional_visitor),
    db: AsyncSession = Depends(get_db),
):
    """Toggle a reaction. Adding one rewards a logged-in visitor; removing does not."""
    await enforce_guard(db, response, ip_hash, "reaction")
    if await get_published_post(db, body.post_id) is None:
        raise HTTPException(status_code=404, detail="Post not found")

    visitor_id = visitor.id if visitor else None
    added = await toggle_reaction(db, body.post_id, ip_hash, body.type)
    await db.commit()

    xp_result = None
    if added and visitor_id is not None:
        xp_result = await reward_activity(db, visitor_id, "react", "react", post_id=body.post_id)
    logger.info("reaction_toggled", post_id=body.post_id, type=body.type, added=added)
    return ReactionToggleResponse(
        action="added" if added else "removed",
        type=body.type,
        emoji=get_reaction_emoji(body.type),
        xp_result=xp_result,
    )
