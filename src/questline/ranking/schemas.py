"""Pydantic response models for ranking endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class RankResponse(BaseModel):
    external_id: str
    rank: int
    points: int
    total_users: int


class LeaderboardEntry(BaseModel):
    rank: int
    external_id: str
    name: str
    points: int
    avatar_url: str | None = None


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
    limit: int
