"""
Pydantic schemas for the gallery JSON API.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    id: str
    email: Optional[str] = None


class SessionResponse(BaseModel):
    access_token: str
    user: UserResponse


class LogoutResponse(BaseModel):
    status: Literal["ok"]


class CaptionOut(BaseModel):
    id: str
    image_id: str
    text: str
    profile_id: Optional[str] = None
    created_at: Optional[str] = None
    score: int = 0
    my_vote: int = 0
    liked: bool = False


class ImageOut(BaseModel):
    id: str
    url: Optional[str] = None
    created_at: Optional[str] = None
    display_date: str
    caption_count: int
    captions: list[CaptionOut]


class FeedResponse(BaseModel):
    vote_mode: Literal["votes", "likes"]
    images: list[ImageOut]


class VoteRequest(BaseModel):
    value: Literal[1, -1]


class VoteResponse(BaseModel):
    caption_id: str
    action: Literal["inserted", "updated", "removed"]
    my_vote: int
    score: int


class LikeResponse(BaseModel):
    caption_id: str
    liked: bool


class HealthResponse(BaseModel):
    status: Literal["ok"]
