"""Identity and referral registry.

Rules:
- external_id is unique; registering it twice is a Conflict
- referral codes are server-generated and retried on collision
- invited_by is stored verbatim and never validated against a real referrer
- only name, avatar_url and wallet_address are externally writable
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from questline.database import store_operation
from questline.db.models import (
    EXTERNAL_ID_MAX_LENGTH,
    NAME_MAX_LENGTH,
    REFERRAL_CODE_MAX_LENGTH,
    WALLET_ADDRESS_MAX_LENGTH,
    User,
)
from questline.errors import Conflict, InvalidArgument, NotFound, ResourceExhausted
from questline.users.referral_codes import MAX_GENERATION_ATTEMPTS, generate_referral_code

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

USER_MUTABLE_FIELDS = frozenset({"name", "avatar_url", "wallet_address"})
USER_PUBLIC_FIELDS = (
    "external_id",
    "name",
    "points",
    "avatar_url",
    "wallet_address",
    "referral_code",
    "invited_by",
    "created_at",
    "updated_at",
)


def _require_text(value: Any, field: str, max_length: int) -> str:  # noqa: ANN401
    if not isinstance(value, str) or not value.strip():
        msg = f"{field} must be a non-empty string"
        raise InvalidArgument(msg)
    value = value.strip()
    _check_length(value, field, max_length)
    return value


def _check_length(value: str | None, field: str, max_length: int) -> None:
    if value is not None and len(value) > max_length:
        msg = f"{field} must be at most {max_length} characters"
        raise InvalidArgument(msg)


async def find_user(db: AsyncSession, external_id: str, *, for_update: bool = False) -> User | None:
    """Look up a user by external id. ``for_update`` locks the row until commit."""
    stmt = select(User).where(User.external_id == external_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def require_user(db: AsyncSession, external_id: str, *, for_update: bool = False) -> User:
    """Like find_user, but raises NotFound."""
    user = await find_user(db, external_id, for_update=for_update)
    if user is None:
        msg = f"User {external_id} not found"
        raise NotFound(msg)
    return user


@store_operation
async def create_user(
    db: AsyncSession,
    name: str,
    external_id: str,
    wallet_address: str | None = None,
    avatar_url: str | None = None,
    invited_by: str | None = None,
    *,
    code_generator: Callable[[], str] = generate_referral_code,
    max_attempts: int = MAX_GENERATION_ATTEMPTS,
) -> User:
    """
    Register a new user with a freshly generated referral code.

    Each attempt inserts under a SAVEPOINT so a referral-code collision only
    rolls back that attempt. Two concurrent registrations racing on the same
    candidate code are therefore resolved by the unique index, not by a
    pre-check.

    Raises:
        InvalidArgument: If name or external_id is blank, or a value is too long.
        Conflict: If external_id is already registered.
        ResourceExhausted: If no unique code was found within max_attempts.
    """
    name = _require_text(name, "name", NAME_MAX_LENGTH)
    external_id = _require_text(external_id, "external_id", EXTERNAL_ID_MAX_LENGTH)
    _check_length(wallet_address, "wallet_address", WALLET_ADDRESS_MAX_LENGTH)
    _check_length(invited_by, "invited_by", REFERRAL_CODE_MAX_LENGTH)

    if await find_user(db, external_id) is not None:
        msg = f"User {external_id} is already registered"
        raise Conflict(msg)

    for attempt in range(1, max_attempts + 1):
        user = User(
            external_id=external_id,
            name=name,
            points=0,
            avatar_url=avatar_url,
            wallet_address=wallet_address,
            referral_code=code_generator(),
            invited_by=invited_by or None,
        )
        try:
            async with db.begin_nested():
                db.add(user)
                await db.flush()
        except IntegrityError:
            # Either a concurrent registration took external_id, or the code collided.
            if await find_user(db, external_id) is not None:
                msg = f"User {external_id} is already registered"
                raise Conflict(msg) from None
            logger.warning("referral_code_collision", external_id=external_id, attempt=attempt)
            continue

        logger.info(
            "user_created",
            external_id=external_id,
            referral_code=user.referral_code,
            invited_by=user.invited_by,
        )
        return user

    logger.error("referral_code_space_exhausted", external_id=external_id, attempts=max_attempts)
    msg = f"Failed to generate unique referral code after {max_attempts} attempts"
    raise ResourceExhausted(msg)


@store_operation
async def get_user(db: AsyncSession, external_id: str) -> User:
    """Get a user by external id. Raises NotFound."""
    return await require_user(db, external_id)


@store_operation
async def get_user_fields(db: AsyncSession, external_id: str, fields: Sequence[str]) -> dict[str, Any]:
    """
    Project a user onto a subset of public attributes.

    external_id is always part of the result. Unknown field names raise
    InvalidArgument; a missing user raises NotFound.
    """
    unknown = sorted({f for f in fields if f not in USER_PUBLIC_FIELDS})
    if unknown:
        msg = f"Unknown user fields: {', '.join(unknown)}"
        raise InvalidArgument(msg)

    columns = ["external_id", *(f for f in dict.fromkeys(fields) if f != "external_id")]
    result = await db.execute(
        select(*(getattr(User, c) for c in columns)).where(User.external_id == external_id)
    )
    row = result.mappings().one_or_none()
    if row is None:
        msg = f"User {external_id} not found"
        raise NotFound(msg)
    return dict(row)


@store_operation
async def update_user_fields(db: AsyncSession, external_id: str, fields: Mapping[str, Any]) -> User:
    """
    Apply a partial update restricted to USER_MUTABLE_FIELDS.

    points, referral_code, invited_by and identity keys only change through
    their own controlled paths, so any attempt to set them is rejected
    before anything is written.

    Raises:
        InvalidArgument: If a key is outside the allow-list, name is blank or a value is too long.
        NotFound: If the user does not exist.
    """
    rejected = sorted(set(fields) - USER_MUTABLE_FIELDS)
    if rejected:
        msg = f"Fields cannot be updated: {', '.join(rejected)}"
        raise InvalidArgument(msg)
    if not fields:
        msg = "No fields to update"
        raise InvalidArgument(msg)

    values = dict(fields)
    if "name" in values:
        values["name"] = _require_text(values["name"], "name", NAME_MAX_LENGTH)
    if "wallet_address" in values:
        _check_length(values["wallet_address"], "wallet_address", WALLET_ADDRESS_MAX_LENGTH)

    user = await require_user(db, external_id)
    for key, value in values.items():
        setattr(user, key, value)
    await db.flush()

    logger.info("user_updated", external_id=external_id, fields=sorted(values))
    return user


@store_operation
async def count_referrals(db: AsyncSession, external_id: str) -> int:
    """Count users whose invited_by equals this user's referral code."""
    user = await require_user(db, external_id)
    result = await db.execute(
        select(func.count()).select_from(User).where(User.invited_by == user.referral_code)
    )
    return result.scalar_one()


@store_operation
async def list_referrals(db: AsyncSession, external_id: str) -> list[User]:
    """List users invited with this user's referral code, oldest first."""
    user = await require_user(db, external_id)
    result = await db.execute(
        select(User)
        .where(User.invited_by == user.referral_code)
        .order_by(User.created_at.asc(), User.id.asc())
    )
    return list(result.scalars().all())
