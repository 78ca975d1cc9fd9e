"""Request/response schemas for task catalog endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from questline.db.models import MAX_POINTS, TITLE_MAX_LENGTH


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    points: int = Field(0, ge=0, le=MAX_POINTS)
    url: str | None = None
    image_url: str | None = None


class TaskUpdateRequest(BaseModel):
    """Partial task update; unknown keys reach the service and are rejected there."""

    model_config = ConfigDict(extra="allow")

    title: str | None = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    points: int | None = Field(None, ge=0, le=MAX_POINTS)
    url: str | None = None
    image_url: str | None = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    points: int
    url: str | None = None
    image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    total: int
