"""Category and tag endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.auth.dependencies import get_current_admin
from boreview.db.models import Category, Tag, User
from boreview.dependencies import get_db
from boreview.security.dependencies import public_guard
from boreview.taxonomy.schemas import TermCreate, TermResponse, TermSummary
from boreview.taxonomy.service import create_term, list_terms_with_counts

router = APIRouter(prefix="/api", tags=["Taxonomy"])

TERMS_CACHE_CONTROL = "public, s-maxage=300, stale-while-revalidate=600"


async def _create(db: AsyncSession, model: type[Category] | type[Tag], name: str) -> TermResponse:
    try:
        term = await create_term(db, model, name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return TermResponse.model_validate(term)


@router.get("/categories", response_model=list[TermSummary])
async def list_categories(
    response: Response,
    _ip_hash: str = Depends(public_guard("public")),
    db: AsyncSession = Depends(get_db),
):
    response.headers["Cache-Control"] = TERMS_CACHE_CONTROL
    return await list_terms_with_counts(db, Category)


@router.post("/categories", response_model=TermResponse, status_code=201)
async def create_category(
    body: TermCreate,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _create(db, Category, body.name)


@router.get("/tags", response_model=list[TermSummary])
async def list_tags(
    response: Response,
    _ip_hash: str = Depends(public_guard("public")),
    db: AsyncSession = Depends(get_db),
):
    response.headers["Cache-Control"] = TERMS_CACHE_CONTROL
    return await list_terms_with_counts(db, Tag)


@router.post("/tags", response_model=TermResponse, status_code=201)
async def create_tag(
    body: TermCreate,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _create(db, Tag, body.name)
