"""Rank and leaderboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from questline.database import get_session
from questline.ranking.schemas import LeaderboardEntry, LeaderboardResponse, RankResponse
from questline.ranking.service import clamp_limit, competition_ranks, count_users, get_rank, top_users
from questline.users.service import get_user

router = APIRouter(prefix="/api/v1", tags=["Ranking"])


@router.get("/users/{external_id}/rank", response_model=RankResponse)
async def read_rank(
    external_id: str,
    db: AsyncSession = Depends(get_session),
) -> RankResponse:
    """A user's rank; users tied on points share it."""
    user = await get_user(db, external_id)
    rank = await get_rank(db, external_id)
    total = await count_users(db)
    return RankResponse(external_id=external_id, rank=rank, points=user.points, total_users=total)


@router.get("/leaderboard/top/{limit}", response_model=LeaderboardResponse)
async def read_leaderboard(
    limit: int,
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    """Top users by points. A limit of 0 or less returns no entries."""
    users = await top_users(db, limit)
    ranks = competition_ranks([u.points for u in users])
    return LeaderboardResponse(
        entries=[
            LeaderboardEntry(
                rank=rank,
                external_id=u.external_id,
                name=u.name,
                points=u.points,
                avatar_url=u.avatar_url,
            )
            for rank, u in zip(ranks, users)
        ],
        limit=clamp_limit(limit),
    )
