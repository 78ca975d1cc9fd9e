"""Request/response schemas for assignment endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from questline.db.models import MAX_ID
from questline.tasks.schemas import TaskResponse


class AssignTaskRequest(BaseModel):
    task_id: int = Field(..., ge=1, le=MAX_ID)


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    task_id: int
    completed: bool
    awarded_points: int | None = None
    assigned_at: datetime | None = None
    completed_at: datetime | None = None


class AssignTaskResponse(BaseModel):
    external_id: str
    created: bool
    assignment: AssignmentResponse


class BulkAssignResponse(BaseModel):
    external_id: str
    created: list[AssignmentResponse]
    total_created: int


class UserTaskEntry(BaseModel):
    task: TaskResponse
    assignment: AssignmentResponse


class UserTasksResponse(BaseModel):
    external_id: str
    tasks: list[UserTaskEntry]
    total: int
    completed: int
