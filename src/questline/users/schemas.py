"""Request/response schemas for user and referral endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from questline.db.models import (
    EXTERNAL_ID_MAX_LENGTH,
    NAME_MAX_LENGTH,
    REFERRAL_CODE_MAX_LENGTH,
    WALLET_ADDRESS_MAX_LENGTH,
)


class UserCreateRequest(BaseModel):
    """Register a user. avatar_url may also come from an uploaded avatar file."""

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    external_id: str = Field(..., min_length=1, max_length=EXTERNAL_ID_MAX_LENGTH)
    wallet_address: str | None = Field(None, max_length=WALLET_ADDRESS_MAX_LENGTH)
    avatar_url: str | None = None
    invited_by: str | None = Field(None, max_length=REFERRAL_CODE_MAX_LENGTH)


class UserUpdateRequest(BaseModel):
    """Partial user update.

    Extra keys are kept so the service can reject writes to
    system-managed fields with a precise message.
    """

    model_config = ConfigDict(extra="allow")

    name: str | None = Field(None, min_length=1, max_length=NAME_MAX_LENGTH)
    avatar_url: str | None = None
    wallet_address: str | None = Field(None, max_length=WALLET_ADDRESS_MAX_LENGTH)


class UserResponse(BaseModel):
    """Full user record."""

    model_config = ConfigDict(from_attributes=True)

    external_id: str
    name: str
    points: int
    avatar_url: str | None = None
    wallet_address: str | None = None
    referral_code: str
    invited_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReferralCountResponse(BaseModel):
    external_id: str
    referral_count: int


class ReferralListResponse(BaseModel):
    external_id: str
    referrals: list[UserResponse]
    total: int
