"""Category and tag queries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from boreview.content.utils import slugify
from boreview.db.models import Category, Tag, post_categories, post_tags

if TYPE_CHECKING:
    from sqlalchemy import Table
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

Term = Category | Tag


class DuplicateTermError(ValueError):
    """A category or tag with the same slug exists."""


def _link_table(model: type[Term]) -> Table:
    return post_categories if model is Category else post_tags


async def list_terms_with_counts(db: AsyncSession, model: type[Term]) -> list[dict]:
    """Every term ordered by name, with the number of posts linked to it."""
    link = _link_table(model)
    fk = link.c.category_id if model is Category else link.c.tag_id
    count = func.count(link.c.post_id)
    result = await db.execute(
        select(model.name, model.slug, count.label("post_count"))
        .outerjoin(link, fk == model.id)
        .group_by(model.id, model.name, model.slug)
        .order_by(model.name.asc())
    )
    return [{"name": name, "slug": slug, "post_count": n} for name, slug, n in result.all()]


async def create_term(db: AsyncSession, model: type[Term], name: str) -> Term:
    """Create a term whose slug derives from ``name``. Raises DuplicateTermError (a ValueError)."""
    slug = slugify(name)
    if not slug:
        msg = "Name is required"
        raise ValueError(msg)
    existing = await db.execute(select(model.id).where(model.slug == slug))
    if existing.first() is not None:
        msg = f"{'Category' if model is Category else 'Tag'} already exists"
        raise DuplicateTermError(msg)

    term = model(name=name.strip(), slug=slug)
    db.add(term)
    await db.flush()
    logger.info("Created %s %s", model.__tablename__, slug)
    return term
