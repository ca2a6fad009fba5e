"""Pydantic models for poll endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import Field, StringConstraints

from boreview.schemas import CamelModel

OptionText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


class PollCreate(CamelModel):
    question: str = Field(..., min_length=5, max_length=200)
    options: list[OptionText] = Field(..., min_length=2, max_length=6)
    post_id: str = Field(..., min_length=1)


class PollVoteRequest(CamelModel):
    option_id: str = Field(..., min_length=1)


class PollOptionResult(CamelModel):
    id: str
    text: str
    votes: int
    percentage: int


class PollResults(CamelModel):
    id: str
    question: str
    options: list[PollOptionResult]
    total_votes: int


class PollEnvelope(CamelModel):
    poll: PollResults | None = None


class PollVoteResponse(CamelModel):
    success: bool = True
    poll: PollResults


class PollOptionCreated(CamelModel):
    id: str
    text: str
    position: int


class PollCreated(CamelModel):
    id: str
    question: str
    post_id: str
    created_at: datetime
    options: list[PollOptionCreated]


class VoteStatus(CamelModel):
    has_voted: bool
    voted_option_id: str | None = None
