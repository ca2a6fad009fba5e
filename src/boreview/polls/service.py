"""Polls: creation, one vote per ipHash per poll, and tallies."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select

from boreview.db.models import Poll, PollOption, PollVote

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class PollExistsError(ValueError):
    """The post already has a poll."""


class AlreadyVotedError(ValueError):
    """This ipHash already voted on the poll."""


def vote_percentage(votes: int, total: int) -> int:
    """Share of the vote rounded half up to a whole percent; 0 with no votes."""
    if total <= 0:
        return 0
    return math.floor(votes * 100 / total + 0.5)


async def poll_results(db: AsyncSession, poll: Poll) -> dict:
    counts = dict(
        (
            await db.execute(
                select(PollVote.option_id, func.count(PollVote.id))
                .join(PollOption, PollOption.id == PollVote.option_id)
                .where(PollOption.poll_id == poll.id)
                .group_by(PollVote.option_id)
            )
        ).all()
    )
    options = list(
        (
            await db.execute(
                select(PollOption).where(PollOption.poll_id == poll.id).order_by(PollOption.position)
            )
        ).scalars()
    )
    total = sum(counts.values())
    return {
        "id": poll.id,
        "question": poll.question,
        "options": [
            {
                "id": option.id,
                "text": option.text,
                "votes": counts.get(option.id, 0),
                "percentage": vote_percentage(counts.get(option.id, 0), total),
            }
            for option in options
        ],
        "total_votes": total,
    }


async def get_poll_for_post(db: AsyncSession, post_id: str) -> Poll | None:
    result = await db.execute(select(Poll).where(Poll.post_id == post_id))
    return result.scalar_one_or_none()


async def create_poll(db: AsyncSession, post_id: str, question: str, options: list[str]) -> tuple[Poll, list[PollOption]]:
    if await get_poll_for_post(db, post_id) is not None:
        msg = "Poll already exists for this post"
        raise PollExistsError(msg)

    poll = Poll(post_id=post_id, question=question)
    db.add(poll)
    await db.flush()
    created = [PollOption(poll_id=poll.id, text=text, position=i) for i, text in enumerate(options)]
    db.add_all(created)
    await db.flush()
    logger.info("Poll %s created for post %s", poll.id, post_id)
    return poll, created


async def delete_poll(db: AsyncSession, poll_id: str) -> bool:
    result = await db.execute(delete(Poll).where(Poll.id == poll_id))
    return bool(result.rowcount)


async def find_vote(db: AsyncSession, poll_id: str, ip_hash: str) -> PollVote | None:
    result = await db.execute(
        select(PollVote)
        .join(PollOption, PollOption.id == PollVote.option_id)
        .where(PollOption.poll_id == poll_id, PollVote.ip_hash == ip_hash)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def cast_vote(db: AsyncSession, option_id: str, ip_hash: str) -> Poll | None:
    """
    Record a vote for ``option_id``.

    Returns the option's poll, or None for an unknown option. Raises
    AlreadyVotedError when this ipHash voted on any option of the poll.
    """
    option = await db.get(PollOption, option_id)
    if option is None:
        return None
    if await find_vote(db, option.poll_id, ip_hash) is not None:
        msg = "You have already voted on this poll"
        raise AlreadyVotedError(msg)

    db.add(PollVote(option_id=option_id, ip_hash=ip_hash))
    await db.flush()
    return await db.get(Poll, option.poll_id)
