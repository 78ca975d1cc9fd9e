"""Assignment ledger: per-(user, task) completion state and point crediting.

Rules:
- an assignment for a (user, task) pair exists at most once
- assignment writes for one user are serialised on that user's row lock
- completion flips false -> true exactly once, in a conditional UPDATE
- only that transition credits points, as a SQL-side increment
- awarded_points freezes the task's value at completion time
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from questline.database import store_operation
from questline.db.models import Assignment, Task, User
from questline.errors import AlreadyAssigned, NotFound, Unavailable
from questline.tasks.service import is_valid_task_id, require_task
from questline.users.service import require_user

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def find_assignment(db: AsyncSession, user_id: int, task_id: int) -> Assignment | None:
    """Load the assignment for a pair, refreshing any stale identity-map copy."""
    if not is_valid_task_id(task_id):
        return None
    result = await db.execute(
        select(Assignment)
        .where(Assignment.user_id == user_id, Assignment.task_id == task_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


@store_operation
async def assign_task(db: AsyncSession, external_id: str, task_id: int) -> Assignment:
    """
    Assign a single catalog task to a user.

    Raises:
        NotFound: If the user or the task does not exist.
        AlreadyAssigned: If the pair already exists (carries the existing assignment).
    """
    user = await require_user(db, external_id, for_update=True)
    task = await require_task(db, task_id)

    existing = await find_assignment(db, user.id, task.id)
    if existing is not None:
        msg = f"Task {task_id} is already assigned to user {external_id}"
        raise AlreadyAssigned(msg, assignment=existing)

    assignment = Assignment(user_id=user.id, task_id=task.id, completed=False)
    try:
        async with db.begin_nested():
            db.add(assignment)
            await db.flush()
    except IntegrityError:
        # Unique (user_id, task_id) caught a writer that bypassed the row lock.
        existing = await find_assignment(db, user.id, task.id)
        msg = f"Task {task_id} is already assigned to user {external_id}"
        raise AlreadyAssigned(msg, assignment=existing) from None

    logger.info("task_assigned", external_id=external_id, task_id=task.id)
    return assignment


@store_operation
async def assign_all_tasks(db: AsyncSession, external_id: str) -> list[Assignment]:
    """
    Assign every catalog task the user does not hold yet.

    The user row is locked before the held set is read, so two concurrent
    calls for the same user cannot both see the same missing set. Calling
    this again with an unchanged catalog creates nothing.

    Returns:
        Only the newly created assignments, in task id order.
    """
    user = await require_user(db, external_id, for_update=True)

    held_result = await db.execute(select(Assignment.task_id).where(Assignment.user_id == user.id))
    held = set(held_result.scalars())

    catalog_result = await db.execute(select(Task.id).order_by(Task.id.asc()))
    missing = [task_id for task_id in catalog_result.scalars() if task_id not in held]

    created = [Assignment(user_id=user.id, task_id=task_id, completed=False) for task_id in missing]
    if created:
        try:
            async with db.begin_nested():
                db.add_all(created)
                await db.flush()
        except IntegrityError as exc:
            logger.warning("bulk_assign_race", external_id=external_id, missing=len(missing))
            msg = "Concurrent assignment detected, retry the request"
            raise Unavailable(msg) from exc

    logger.info("tasks_bulk_assigned", external_id=external_id, created=len(created), held=len(held))
    return created


@store_operation
async def complete_task(db: AsyncSession, external_id: str, task_id: int) -> Assignment:
    """
    Mark an assignment completed and credit the task's current points.

    The transition is a single conditional UPDATE guarded by
    ``completed = false`` that also freezes awarded_points from the task row.
    Only when it matched a row is the user's balance incremented, so a repeat
    or concurrent completion credits nothing and returns the stored award.

    Raises:
        NotFound: If the user or the assignment does not exist.
    """
    user = await require_user(db, external_id)
    if not is_valid_task_id(task_id):
        msg = f"Task {task_id} is not assigned to user {external_id}"
        raise NotFound(msg)

    current_points = (
        select(Task.points).where(Task.id == Assignment.task_id).correlate(Assignment).scalar_subquery()
    )
    result = await db.execute(
        update(Assignment)
        .where(
            Assignment.user_id == user.id,
            Assignment.task_id == task_id,
            Assignment.completed.is_(False),
        )
        .values(completed=True, awarded_points=current_points, completed_at=datetime.now(timezone.utc))
        .returning(Assignment.id, Assignment.awarded_points)
        .execution_options(synchronize_session=False)
    )
    transition = result.one_or_none()

    if transition is not None:
        awarded = transition.awarded_points or 0
        await db.execute(
            update(User)
            .where(User.id == user.id)
            .values(points=User.points + awarded)
            .execution_options(synchronize_session=False)
        )
        await db.refresh(user)
        logger.info(
            "task_completed",
            external_id=external_id,
            task_id=task_id,
            awarded_points=awarded,
            points=user.points,
        )

    assignment = await find_assignment(db, user.id, task_id)
    if assignment is None:
        msg = f"Task {task_id} is not assigned to user {external_id}"
        raise NotFound(msg)
    return assignment


@store_operation
async def get_assignment(db: AsyncSession, external_id: str, task_id: int) -> Assignment:
    """Get one assignment. Raises NotFound."""
    user = await require_user(db, external_id)
    assignment = await find_assignment(db, user.id, task_id)
    if assignment is None:
        msg = f"Task {task_id} is not assigned to user {external_id}"
        raise NotFound(msg)
    return assignment


@store_operation
async def list_user_tasks(db: AsyncSession, external_id: str) -> list[tuple[Task, Assignment]]:
    """Joined task/assignment view for a user, in assignment order."""
    user = await require_user(db, external_id)
    result = await db.execute(
        select(Task, Assignment)
        .join(Assignment, Assignment.task_id == Task.id)
        .where(Assignment.user_id == user.id)
        .order_by(Assignment.assigned_at.asc(), Assignment.id.asc())
        .execution_options(populate_existing=True)
    )
    return [(row.Task, row.Assignment) for row in result]
