"""Ranking from the live points distribution.

Rank is 1 + the number of users with strictly more points, so tied users
share a rank and the next distinct score skips ahead (1, 2, 2, 4).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.orm import aliased

from questline.database import store_operation
from questline.db.models import User
from questline.users.service import require_user

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


# Covers every user; larger values overflow the driver's integer type.
MAX_LIMIT = 2**31 - 1


def clamp_limit(limit: int) -> int:
    """Negative limits mean an empty leaderboard, never an error."""
    return max(0, min(limit, MAX_LIMIT))


def competition_ranks(points: Sequence[int]) -> list[int]:
    """Ranks for a points list already sorted descending; ties share a rank."""
    ranks: list[int] = []
    for index, value in enumerate(points):
        if index and value == points[index - 1]:
            ranks.append(ranks[-1])
        else:
            ranks.append(index + 1)
    return ranks


@store_operation
async def get_rank(db: AsyncSession, external_id: str) -> int:
    """Return the user's 1-indexed rank. Raises NotFound."""
    user = await require_user(db, external_id)
    me = aliased(User)
    points = select(me.points).where(me.id == user.id).scalar_subquery()
    result = await db.execute(select(func.count()).select_from(User).where(User.points > points))
    return result.scalar_one() + 1


@store_operation
async def count_users(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(User))
    return result.scalar_one()


@store_operation
async def top_users(db: AsyncSession, limit: int) -> list[User]:
    """Users by points descending, earliest registration first on ties."""
    limit = clamp_limit(limit)
    if limit == 0:
        return []
    result = await db.execute(
        select(User)
        .order_by(User.points.desc(), User.created_at.asc(), User.id.asc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
