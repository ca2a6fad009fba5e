"""Pydantic models for the admin back-office."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from boreview.schemas import CamelModel, Pagination

# --- Stats ---


class CountPair(CamelModel):
    total: int
    published: int | None = None
    drafts: int | None = None
    pending: int | None = None
    unread: int | None = None
    active: int | None = None
    banned: int | None = None


class PostRef(CamelModel):
    title: str
    slug: str


class AdminComment(CamelModel):
    """Moderation view of a comment; includes the ipHash so it can be banned."""

    id: str
    content: str
    author_name: str
    ip_hash: str
    approved: bool
    is_admin_reply: bool
    post_id: str
    parent_id: str | None = None
    created_at: datetime
    post: PostRef | None = None
    replies: list[AdminComment] = Field(default_factory=list)


class AdminStatsResponse(CamelModel):
    posts: CountPair
    views: int
    comments: CountPair
    reactions: int
    poll_votes: int
    banned_ips: int
    recent_comments: list[AdminComment]
    messages: CountPair
    newsletter: CountPair
    visitors: CountPair


class CommunityStatsResponse(CamelModel):
    total_posts: int
    total_views: int
    total_comments: int
    total_members: int


# --- Comments ---


class AdminCommentList(CamelModel):
    comments: list[AdminComment]
    total: int
    page: int
    total_pages: int


class CommentIdsRequest(CamelModel):
    ids: list[str] = Field(..., min_length=1)


class CommentModerationRequest(CommentIdsRequest):
    approved: bool


class AdminReplyRequest(CamelModel):
    parent_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=2, max_length=1000)


class BulkResult(CamelModel):
    success: bool = True
    updated: int | None = None
    deleted: int | None = None


# --- Banned IPs ---


class BanIPRequest(CamelModel):
    ip_hash: str = Field(..., min_length=1, max_length=64)
    reason: str | None = Field(None, max_length=500)


class BannedIPResponse(CamelModel):
    id: str
    ip_hash: str
    reason: str | None = None
    created_at: datetime


class BannedIPList(CamelModel):
    banned_ips: list[BannedIPResponse]


# --- Messages ---


class ContactMessageResponse(CamelModel):
    id: str
    name: str
    email: str
    subject: str
    message: str
    read: bool
    replied: bool
    replied_at: datetime | None = None
    created_at: datetime


class MessageList(CamelModel):
    messages: list[ContactMessageResponse]
    total: int
    unread_count: int
    page: int
    total_pages: int


class MessageDetail(CamelModel):
    message: ContactMessageResponse


class MessageActionRequest(CamelModel):
    action: str
    reply_content: str | None = None


class MessageActionResponse(CamelModel):
    success: bool = True
    message: str
    email_sent: bool | None = None


# --- Newsletter ---


class SubscriberResponse(CamelModel):
    id: str
    email: str
    name: str | None = None
    source: str | None = None
    is_active: bool
    subscribed_at: datetime
    unsubscribed_at: datetime | None = None


class SubscriberList(CamelModel):
    subscribers: list[SubscriberResponse]
    total: int
    active_count: int
    total_count: int
    page: int
    total_pages: int


class SubscriberActionRequest(CamelModel):
    action: str


# --- Visitors ---


class AdminVisitor(CamelModel):
    id: str
    username: str
    display_name: str
    email: str | None = None
    level: int
    total_xp: int
    current_streak: int
    is_banned: bool
    banned_at: datetime | None = None
    banned_reason: str | None = None
    last_active_at: datetime
    created_at: datetime


class AdminVisitorList(CamelModel):
    visitors: list[AdminVisitor]
    pagination: Pagination


class VisitorModerationRequest(CamelModel):
    action: str
    reason: str | None = Field(None, max_length=500)


class VisitorModerationResponse(CamelModel):
    success: bool = True
    visitor: AdminVisitor
    message: str
