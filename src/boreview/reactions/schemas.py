"""Pydantic models for reaction endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from boreview.gamification.schemas import XPResult
from boreview.schemas import CamelModel

ReactionType = Literal["like", "love", "laugh", "wow", "sad"]


class ReactionToggle(CamelModel):
    type: ReactionType
    post_id: str = Field(..., min_length=1)


class ReactionSummary(CamelModel):
    counts: dict[str, int]
    user_reactions: list[str]


class ReactionToggleResponse(CamelModel):
    action: Literal["added", "removed"]
    type: ReactionType
    emoji: str
    xp_result: XPResult | None = None
