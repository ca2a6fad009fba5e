"""Pydantic models for categories and tags."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from boreview.schemas import CamelModel


class TermCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)


class TermSummary(CamelModel):
    """Public listing entry; internal ids are not exposed."""

    name: str
    slug: str
    post_count: int


class TermResponse(CamelModel):
    id: str
    name: str
    slug: str
    created_at: datetime
