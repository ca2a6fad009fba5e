"""Poll endpoints: public results and voting, admin create/delete."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.auth.dependencies import get_current_admin
from boreview.db.models import Post, User
from boreview.dependencies import get_db
from boreview.polls import service
from boreview.polls.schemas import (
    PollCreate,
    PollCreated,
    PollEnvelope,
    PollVoteRequest,
    PollVoteResponse,
    VoteStatus,
)
from boreview.schemas import ActionResponse
from boreview.security.dependencies import enforce_guard, get_ip_hash, public_guard

logger = structlog.get_logger()

router = APIRouter(prefix="/api/polls", tags=["Polls"])


@router.get("", response_model=PollEnvelope)
async def get_poll(
    response: Response,
    post_id: str = Query(..., alias="postId", min_length=1),
    _ip_hash: str = Depends(public_guard("public")),
    db: AsyncSession = Depends(get_db),
):
    """The post's poll with current tallies, or ``{"poll": null}``."""
    poll = await service.get_poll_for_post(db, post_id)
    if poll is None:
        return PollEnvelope(poll=None)
    response.headers["Cache-Control"] = "public, s-maxage=30, stale-while-revalidate=60"
    return PollEnvelope(poll=await service.poll_results(db, poll))


@router.post("", response_model=PollCreated, status_code=201)
async def create_poll(
    body: PollCreate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    if await db.get(Post, body.post_id) is None:
        raise HTTPException(status_code=404, detail="Post not found")
    try:
        poll, options = await service.create_poll(db, body.post_id, body.question, body.options)
    except service.PollExistsError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    logger.info("poll_created", poll_id=poll.id, admin_id=admin.id)
    return PollCreated(
        id=poll.id,
        question=poll.question,
        post_id=poll.post_id,
        created_at=poll.created_at,
        options=[{"id": o.id, "text": o.text, "position": o.position} for o in options],
    )


@router.delete("", response_model=ActionResponse)
async def delete_poll(
    poll_id: str = Query(..., alias="pollId", min_length=1),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    if not await service.delete_poll(db, poll_id):
        raise HTTPException(status_code=404, detail="Poll not found")
    await db.commit()
    return ActionResponse()


@router.post("/vote", response_model=PollVoteResponse)
async def vote(
    body: PollVoteRequest,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    db: AsyncSession = Depends(get_db),
):
    await enforce_guard(db, response, ip_hash, "poll")
    try:
        poll = await service.cast_vote(db, body.option_id, ip_hash)
    except service.AlreadyVotedError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if poll is None:
        raise HTTPException(status_code=404, detail="Poll option not found")
    await db.commit()
    return PollVoteResponse(poll=await service.poll_results(db, poll))


@router.get("/vote", response_model=VoteStatus)
async def vote_status(
    poll_id: str = Query(..., alias="pollId", min_length=1),
    ip_hash: str = Depends(public_guard("public")),
    db: AsyncSession = Depends(get_db),
):
    existing = await service.find_vote(db, poll_id, ip_hash)
    return VoteStatus(has_voted=existing is not None, voted_option_id=existing.option_id if existing else None)
