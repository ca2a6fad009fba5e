"""Request/response schemas for visitor accounts, profiles and reading history."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field, field_validator, model_validator

from boreview.gamification.schemas import BadgeResponse, LevelInfoResponse, UserBadgeResponse, XPResult
from boreview.schemas import CamelModel

# --- Auth ---


class VisitorAuthRequest(CamelModel):
    """Body of POST /api/visitor/auth; required fields depend on ``action``."""

    action: Literal["register", "login", "change-password"]
    username: str | None = None
    display_name: str | None = None
    password: str | None = Field(None, max_length=128)
    email: EmailStr | None = None
    current_password: str | None = Field(None, max_length=128)
    new_password: str | None = Field(None, max_length=128)
    confirm_password: str | None = Field(None, max_length=128)

    @field_validator("username", "display_name")
    @classmethod
    def strip(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None

    @field_validator("email", mode="before")
    @classmethod
    def empty_email(cls, v: object) -> object:
        return v or None

    @model_validator(mode="after")
    def check_action_fields(self) -> VisitorAuthRequest:
        if self.action == "register":
            if not self.username or not 3 <= len(self.username) <= 20:
                msg = "Tên đăng nhập phải từ 3-20 ký tự"
                raise ValueError(msg)
            if not self.display_name or not 2 <= len(self.display_name) <= 30:
                msg = "Tên hiển thị phải từ 2-30 ký tự"
                raise ValueError(msg)
        elif self.action == "login":
            if not self.username:
                msg = "Vui lòng nhập tên đăng nhập"
                raise ValueError(msg)
        return self


class VisitorSummary(CamelModel):
    id: str
    username: str
    display_name: str
    avatar: str | None = None
    level: int
    total_xp: int
    current_streak: int
    badges: list[BadgeResponse] | None = None


class VisitorAuthResponse(CamelModel):
    success: bool = True
    visitor: VisitorSummary
    token: str
    message: str | None = None
    streak_bonus: int | None = None


# --- Profile ---


class ProfileBadge(CamelModel):
    name: str
    slug: str
    icon: str
    rarity: str


class ProfileStats(CamelModel):
    posts_read: int
    total_actions: int
    comments: int
    reactions: int


class PublicProfileResponse(CamelModel):
    username: str
    display_name: str
    avatar: str | None = None
    bio: str | None = None
    level: int
    level_info: LevelInfoResponse
    total_xp: int
    xp_to_next_level: int
    progress_to_next_level: float
    current_streak: int
    longest_streak: int
    freezes_available: int
    badges: list[UserBadgeResponse]
    featured_badges: list[ProfileBadge]
    stats: ProfileStats
    created_at: datetime
    last_active_at: datetime


class ProfileUpdateRequest(CamelModel):
    display_name: str | None = Field(None, min_length=2, max_length=30)
    bio: str | None = Field(None, max_length=200)
    avatar: str | None = Field(None, max_length=500)
    featured_badge_ids: list[str] | None = Field(None, max_length=3)


class ProfileUpdateResponse(CamelModel):
    success: bool = True
    username: str
    display_name: str
    avatar: str | None = None
    bio: str | None = None


# --- Reading ---


class ReadingRequest(CamelModel):
    post_id: str = Field(..., min_length=1)
    read_time_seconds: int = Field(0, ge=0, le=86_400)
    completed: bool = False


class ReadingState(CamelModel):
    progress: int
    completed: bool
    read_duration: int


class ReadingResponse(CamelModel):
    success: bool = True
    reading_history: ReadingState
    xp_result: XPResult | None = None
    already_rewarded: bool


class ReadingPost(CamelModel):
    title: str
    slug: str
    thumbnail: str | None = None


class ReadingHistoryItem(CamelModel):
    progress: int
    completed: bool
    read_duration: int
    last_read_at: datetime
    post: ReadingPost


class ReadingHistoryListResponse(CamelModel):
    history: list[ReadingHistoryItem]


# --- Notifications ---


class NotificationResponse(CamelModel):
    id: str
    type: str
    title: str
    message: str
    link: str | None = None
    read: bool
    created_at: datetime


class NotificationListResponse(CamelModel):
    notifications: list[NotificationResponse]
    unread_count: int


class MarkReadRequest(CamelModel):
    ids: list[str] | None = None
