"""User registry router: /api/v1/users/* identity and referral endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from questline.database import get_session
from questline.storage.forms import multipart_openapi, read_create_request, resolve_image_url
from questline.storage.service import BaseBlobStorage, get_blob_storage
from questline.users.schemas import (
    ReferralCountResponse,
    ReferralListResponse,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)
from questline.users.service import (
    count_referrals,
    create_user,
    get_user,
    get_user_fields,
    list_referrals,
    update_user_fields,
)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.post(
    "",
    response_model=UserResponse,
    status_code=201,
    openapi_extra=multipart_openapi(UserCreateRequest, "avatar"),
)
async def register_user(
    request: Request,
    db: AsyncSession = Depends(get_session),
    storage: BaseBlobStorage = Depends(get_blob_storage),
) -> UserResponse:
    """Register a user and issue their referral code.

    Accepts JSON, or a multipart form whose optional ``avatar`` file is
    stored first and saved as avatar_url.
    """
    body, avatar = await read_create_request(request, UserCreateRequest, "avatar")
    avatar_url = await resolve_image_url(storage, avatar, body.avatar_url, "avatar_url")
    user = await create_user(
        db,
        name=body.name,
        external_id=body.external_id,
        wallet_address=body.wallet_address,
        avatar_url=avatar_url,
        invited_by=body.invited_by,
    )
    await db.commit()
    return UserResponse.model_validate(user)


@router.get("/{external_id}", response_model=None)
async def read_user(
    external_id: str,
    fields: list[str] | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> UserResponse | dict[str, Any]:
    """Get a user, optionally projected with ?fields=points&fields=name."""
    if fields:
        return await get_user_fields(db, external_id, fields)
    user = await get_user(db, external_id)
    return UserResponse.model_validate(user)


@router.patch("/{external_id}", response_model=UserResponse)
async def patch_user(
    external_id: str,
    body: UserUpdateRequest,
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update name, avatar_url or wallet_address."""
    user = await update_user_fields(db, external_id, body.model_dump(exclude_unset=True))
    await db.commit()
    return UserResponse.model_validate(user)


@router.get("/{external_id}/referrals", response_model=ReferralListResponse)
async def read_referrals(
    external_id: str,
    db: AsyncSession = Depends(get_session),
) -> ReferralListResponse:
    """List users who registered with this user's referral code."""
    referrals = await list_referrals(db, external_id)
    return ReferralListResponse(
        external_id=external_id,
        referrals=[UserResponse.model_validate(u) for u in referrals],
        total=len(referrals),
    )


@router.get("/{external_id}/referrals/count", response_model=ReferralCountResponse)
async def read_referral_count(
    external_id: str,
    db: AsyncSession = Depends(get_session),
) -> ReferralCountResponse:
    """Count users who registered with this user's referral code."""
    count = await count_referrals(db, external_id)
    return ReferralCountResponse(external_id=external_id, referral_count=count)
