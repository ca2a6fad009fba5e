"""Pydantic models for public comment endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from boreview.gamification.schemas import XPResult
from boreview.schemas import CamelModel


class CommentCreate(CamelModel):
    content: str = Field(..., min_length=3, max_length=1000)
    author_name: str = Field(..., min_length=2, max_length=50)
    post_id: str = Field(..., min_length=1)
    recaptcha_token: str | None = None


class CommentReply(CamelModel):
    """A comment as shown publicly. The author's ipHash is never included."""

    id: str
    content: str
    author_name: str
    is_admin_reply: bool
    created_at: datetime


class CommentThread(CommentReply):
    replies: list[CommentReply] = Field(default_factory=list)


class CommentListResponse(CamelModel):
    comments: list[CommentThread]
    total: int
    page: int
    total_pages: int


class CommentCreated(CamelModel):
    id: str
    content: str
    author_name: str
    post_id: str
    approved: bool
    created_at: datetime
    xp_result: XPResult | None = None
