"""Pydantic models for article endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from boreview.schemas import CamelModel, Pagination


class PostCreate(CamelModel):
    title: str = Field(..., min_length=10, max_length=100)
    excerpt: str = Field(..., min_length=50, max_length=300)
    content: str = Field(..., min_length=1)
    youtube_url: str | None = Field(None, max_length=500)
    thumbnail: str | None = Field(None, max_length=500)
    published: bool = False
    featured: bool = False
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    seo_title: str | None = Field(None, max_length=200)
    meta_description: str | None = Field(None, max_length=300)


class PostUpdate(CamelModel):
    """Partial update; omitted fields keep their current value."""

    title: str | None = Field(None, min_length=10, max_length=100)
    excerpt: str | None = Field(None, min_length=50, max_length=300)
    content: str | None = Field(None, min_length=1)
    custom_slug: str | None = Field(None, max_length=255)
    youtube_url: str | None = Field(None, max_length=500)
    thumbnail: str | None = Field(None, max_length=500)
    published: bool | None = None
    featured: bool | None = None
    categories: list[str] | None = None
    tags: list[str] | None = None
    seo_title: str | None = Field(None, max_length=200)
    meta_description: str | None = Field(None, max_length=300)


class TermRef(CamelModel):
    name: str
    slug: str


class TermDetail(TermRef):
    id: str


class AuthorRef(CamelModel):
    id: str
    name: str | None = None


class PublicPost(CamelModel):
    """List item: no internal ids or author emails."""

    title: str
    slug: str
    excerpt: str | None = None
    image_url: str | None = None
    published_at: datetime | None = None
    views: int
    author_name: str
    reading_time: str
    categories: list[TermRef]


class PostListResponse(CamelModel):
    posts: list[PublicPost]
    pagination: Pagination


class PostDetail(CamelModel):
    id: str
    title: str
    slug: str
    content: str
    excerpt: str | None = None
    youtube_url: str | None = None
    youtube_thumbnail: str | None = None
    thumbnail: str | None = None
    published: bool
    featured: bool
    views: int
    published_at: datetime | None = None
    seo_title: str | None = None
    meta_description: str | None = None
    reading_time: int
    author: AuthorRef | None = None
    categories: list[TermDetail]
    tags: list[TermDetail]
    created_at: datetime
    updated_at: datetime
    warnings: list[str] = Field(default_factory=list)


class ViewResponse(CamelModel):
    views: int
