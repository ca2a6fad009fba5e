"""Pydantic models for gamification endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from boreview.schemas import CamelModel

# --- Levels / XP ---


class LevelInfoResponse(CamelModel):
    level: int
    name: str
    min_xp: int
    max_xp: int
    icon: str


class XPResult(CamelModel):
    new_xp: int
    leveled_up: bool
    new_level: int
    points_awarded: int


# --- Badges ---


class BadgeResponse(CamelModel):
    id: str
    name: str
    slug: str
    description: str
    icon: str
    category: str
    rarity: str
    xp_reward: int


class UserBadgeResponse(BadgeResponse):
    earned_at: datetime
    is_featured: bool


class UserBadgesResponse(CamelModel):
    badges: list[UserBadgeResponse]
    featured_badges: list[BadgeResponse]
    total_count: int


class AllBadgesResponse(CamelModel):
    badges: list[BadgeResponse]
    grouped: dict[str, list[BadgeResponse]]


class FeaturedBadgesRequest(CamelModel):
    badge_ids: list[str] = Field(..., max_length=3)


# --- Streak ---


class StreakInfoResponse(CamelModel):
    current_streak: int
    longest_streak: int
    last_check_in: datetime
    freezes_available: int
    freezes_used: int
    check_in_days: list[str]
    can_check_in_today: bool


class CheckInResponse(CamelModel):
    success: bool
    message: str
    current_streak: int
    is_new_day: bool
    streak_broken: bool
    xp_awarded: int
    milestone_badge: str | None = None
    xp_result: XPResult | None = None


class FreezeResponse(CamelModel):
    success: bool = True
    message: str
    freezes_available: int
    freezes_used: int


# --- Daily tasks ---


class DailyTaskItem(CamelModel):
    id: str
    name: str
    description: str
    task_type: str
    requirement: int
    xp_reward: int
    icon: str
    progress: int
    completed: bool
    completed_at: datetime | None = None
    xp_awarded: bool


class DailyTaskSummary(CamelModel):
    total: int
    completed: int
    all_completed: bool
    bonus_awarded: bool


class DailyTasksResponse(CamelModel):
    tasks: list[DailyTaskItem]
    summary: DailyTaskSummary


class TaskProgressRequest(CamelModel):
    task_type: Literal["read", "react", "comment", "explore"]
    increment: int = Field(1, ge=1, le=10)


class TaskProgressItem(CamelModel):
    task_name: str
    already_completed: bool = False
    progress: int | None = None
    target: int | None = None
    completed: bool = False
    xp_result: XPResult | None = None


class TaskProgressResponse(CamelModel):
    success: bool = True
    results: list[TaskProgressItem]
    bonus: XPResult | None = None


# --- Leaderboard ---


class LeaderboardEntry(CamelModel):
    username: str
    display_name: str
    value: int
    rank: int


class LeaderboardResponse(CamelModel):
    period: str
    category: str
    rankings: list[LeaderboardEntry]
    user_rank: LeaderboardEntry | None = None
    updated_at: datetime
