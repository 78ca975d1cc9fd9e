"""Assignment ledger endpoints: /api/v1/users/{external_id}/tasks/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from questline.assignments.schemas import (
    AssignmentResponse,
    AssignTaskRequest,
    AssignTaskResponse,
    BulkAssignResponse,
    UserTaskEntry,
    UserTasksResponse,
)
from questline.assignments.service import (
    assign_all_tasks,
    assign_task,
    complete_task,
    list_user_tasks,
)
from questline.database import get_session
from questline.errors import AlreadyAssigned
from questline.tasks.schemas import TaskResponse

router = APIRouter(prefix="/api/v1/users/{external_id}/tasks", tags=["Assignments"])


@router.get("", response_model=UserTasksResponse)
async def read_user_tasks(
    external_id: str,
    db: AsyncSession = Depends(get_session),
) -> UserTasksResponse:
    """Tasks held by the user together with their completion state."""
    rows = await list_user_tasks(db, external_id)
    entries = [
        UserTaskEntry(
            task=TaskResponse.model_validate(task),
            assignment=AssignmentResponse.model_validate(assignment),
        )
        for task, assignment in rows
    ]
    return UserTasksResponse(
        external_id=external_id,
        tasks=entries,
        total=len(entries),
        completed=sum(1 for e in entries if e.assignment.completed),
    )


@router.post("", response_model=AssignTaskResponse, status_code=201)
async def add_user_task(
    external_id: str,
    body: AssignTaskRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> AssignTaskResponse:
    """Assign one task. An existing assignment is returned with 200."""
    try:
        assignment = await assign_task(db, external_id, body.task_id)
    except AlreadyAssigned as exc:
        existing = AssignmentResponse.model_validate(exc.assignment)
        await db.rollback()
        response.status_code = 200
        return AssignTaskResponse(external_id=external_id, created=False, assignment=existing)
    await db.commit()
    return AssignTaskResponse(
        external_id=external_id,
        created=True,
        assignment=AssignmentResponse.model_validate(assignment),
    )


@router.post("/assign-all", response_model=BulkAssignResponse)
async def add_all_user_tasks(
    external_id: str,
    db: AsyncSession = Depends(get_session),
) -> BulkAssignResponse:
    """Assign every catalog task the user does not hold yet."""
    created = await assign_all_tasks(db, external_id)
    await db.commit()
    return BulkAssignResponse(
        external_id=external_id,
        created=[AssignmentResponse.model_validate(a) for a in created],
        total_created=len(created),
    )


@router.post("/{task_id}/complete", response_model=AssignmentResponse)
async def mark_task_complete(
    external_id: str,
    task_id: int,
    db: AsyncSession = Depends(get_session),
) -> AssignmentResponse:
    """Complete an assignment. Repeating the call credits nothing."""
    assignment = await complete_task(db, external_id, task_id)
    await db.commit()
    return AssignmentResponse.model_validate(assignment)
