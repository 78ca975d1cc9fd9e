"""Task catalog business logic.

The catalog is append/edit-only: assignments reference tasks by id, so
there is no delete operation.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from questline.database import store_operation
from questline.db.models import MAX_ID, MAX_POINTS, TITLE_MAX_LENGTH, Task
from questline.errors import InvalidArgument, NotFound

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

TASK_MUTABLE_FIELDS = frozenset({"title", "points", "url", "image_url"})


def validate_points(points: Any) -> int:  # noqa: ANN401
    """Point rewards are integers in [0, MAX_POINTS] (bool excluded)."""
    if isinstance(points, bool) or not isinstance(points, int) or not 0 <= points <= MAX_POINTS:
        msg = f"points must be an integer between 0 and {MAX_POINTS}"
        raise InvalidArgument(msg)
    return points


def validate_title(title: Any) -> str:  # noqa: ANN401
    if not isinstance(title, str) or not title.strip():
        msg = "title must be a non-empty string"
        raise InvalidArgument(msg)
    title = title.strip()
    if len(title) > TITLE_MAX_LENGTH:
        msg = f"title must be at most {TITLE_MAX_LENGTH} characters"
        raise InvalidArgument(msg)
    return title


def is_valid_task_id(task_id: int) -> bool:
    """Ids outside the column range can never exist and must not reach the driver."""
    return 1 <= task_id <= MAX_ID


async def find_task(db: AsyncSession, task_id: int) -> Task | None:
    if not is_valid_task_id(task_id):
        return None
    result = await db.execute(select(Task).where(Task.id == task_id))
    return result.scalar_one_or_none()


async def require_task(db: AsyncSession, task_id: int) -> Task:
    task = await find_task(db, task_id)
    if task is None:
        msg = f"Task {task_id} not found"
        raise NotFound(msg)
    return task


@store_operation
async def create_task(
    db: AsyncSession,
    title: str,
    points: int,
    url: str | None = None,
    image_url: str | None = None,
) -> Task:
    """Add a task to the catalog."""
    task = Task(
        title=validate_title(title),
        points=validate_points(points),
        url=url,
        image_url=image_url,
    )
    db.add(task)
    await db.flush()

    logger.info("task_created", task_id=task.id, title=task.title, points=task.points)
    return task


@store_operation
async def list_tasks(db: AsyncSession) -> list[Task]:
    """All catalog tasks, ordered by id."""
    result = await db.execute(select(Task).order_by(Task.id.asc()))
    return list(result.scalars().all())


@store_operation
async def get_task(db: AsyncSession, task_id: int) -> Task:
    return await require_task(db, task_id)


@store_operation
async def update_task_fields(db: AsyncSession, task_id: int, fields: Mapping[str, Any]) -> Task:
    """
    Apply a partial update restricted to TASK_MUTABLE_FIELDS.

    Changing points affects future completions only; past awards are frozen
    on their assignments.

    Raises:
        InvalidArgument: If a key is outside the allow-list or a value is invalid.
        NotFound: If the task does not exist.
    """
    rejected = sorted(set(fields) - TASK_MUTABLE_FIELDS)
    if rejected:
        msg = f"Fields cannot be updated: {', '.join(rejected)}"
        raise InvalidArgument(msg)
    if not fields:
        msg = "No fields to update"
        raise InvalidArgument(msg)

    values = dict(fields)
    if "title" in values:
        values["title"] = validate_title(values["title"])
    if "points" in values:
        values["points"] = validate_points(values["points"])

    task = await require_task(db, task_id)
    for key, value in values.items():
        setattr(task, key, value)
    await db.flush()

    logger.info("task_updated", task_id=task_id, fields=sorted(values))
    return task
