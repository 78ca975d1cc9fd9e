"""Task catalog API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from questline.database import get_session
from questline.storage.forms import multipart_openapi, read_create_request, resolve_image_url
from questline.storage.service import BaseBlobStorage, get_blob_storage
from questline.tasks.schemas import (
    TaskCreateRequest,
    TaskListResponse,
    TaskResponse,
    TaskUpdateRequest,
)
from questline.tasks.service import create_task, get_task, list_tasks, update_task_fields

router = APIRouter(prefix="/api/v1/tasks", tags=["Tasks"])


@router.post(
    "",
    response_model=TaskResponse,
    status_code=201,
    openapi_extra=multipart_openapi(TaskCreateRequest, "image"),
)
async def add_task(
    request: Request,
    db: AsyncSession = Depends(get_session),
    storage: BaseBlobStorage = Depends(get_blob_storage),
) -> TaskResponse:
    """Add a task to the catalog. A multipart ``image`` file becomes image_url."""
    body, image = await read_create_request(request, TaskCreateRequest, "image")
    image_url = await resolve_image_url(storage, image, body.image_url, "image_url")
    task = await create_task(db, body.title, body.points, url=body.url, image_url=image_url)
    await db.commit()
    return TaskResponse.model_validate(task)


@router.get("", response_model=TaskListResponse)
async def read_tasks(db: AsyncSession = Depends(get_session)) -> TaskListResponse:
    """List the full catalog."""
    tasks = await list_tasks(db)
    return TaskListResponse(tasks=[TaskResponse.model_validate(t) for t in tasks], total=len(tasks))


@router.patch("/{task_id}", response_model=TaskResponse)
async def patch_task(
    task_id: int,
    body: TaskUpdateRequest,
    db: AsyncSession = Depends(get_session),
) -> TaskResponse:
    """Edit task metadata. Past awards keep the value they were granted with."""
    task = await update_task_fields(db, task_id, body.model_dump(exclude_unset=True))
    await db.commit()
    return TaskResponse.model_validate(task)


@router.get("/{task_id}", response_model=TaskResponse)
async def read_task(task_id: int, db: AsyncSession = Depends(get_session)) -> TaskResponse:
    """Get a single task."""
    task = await get_task(db, task_id)
    return TaskResponse.model_validate(task)
