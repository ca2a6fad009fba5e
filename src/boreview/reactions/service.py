"""Per-IP reaction toggles and counts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from boreview.content.utils import REACTION_EMOJIS
from boreview.db.models import Reaction

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def reaction_summary(db: AsyncSession, post_id: str, ip_hash: str) -> dict:
    """Counts for every reaction type (zero-filled) and the caller's own reactions."""
    counts = dict.fromkeys(REACTION_EMOJIS, 0)
    result = await db.execute(
        select(Reaction.type, func.count(Reaction.id)).where(Reaction.post_id == post_id).group_by(Reaction.type)
    )
    for type_, n in result.all():
        counts[type_] = n

    mine = await db.execute(
        select(Reaction.type).where(Reaction.post_id == post_id, Reaction.ip_hash == ip_hash)
    )
    return {"counts": counts, "user_reactions": list(mine.scalars().all())}


async def toggle_reaction(db: AsyncSession, post_id: str, ip_hash: str, type_: str) -> bool:
    """Remove the reaction when present, add it otherwise. Returns True when added."""
    removed = await db.execute(
        delete(Reaction).where(
            Reaction.post_id == post_id,
            Reaction.ip_hash == ip_hash,
            Reaction.type == type_,
        )
    )
    if removed.rowcount:
        await db.flush()
        return False

    try:
        async with db.begin_nested():
            db.add(Reaction(post_id=post_id, ip_hash=ip_hash, type=type_))
    except IntegrityError:
        # An identical concurrent toggle won the unique constraint
        return False
    return True
