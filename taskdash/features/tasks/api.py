"""Tasks API endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from taskdash.db import get_db
from taskdash.features.tasks.domain import TaskStatus
from taskdash.features.tasks.errors import TaskNotFoundError, TaskValidationError
from taskdash.features.tasks.schemas import (
    BrainDumpRequest,
    BrainDumpResponse,
    ConvertToMainTaskRequest,
    CountsResponse,
    CreateSubtaskRequest,
    DashboardResponse,
    DeleteTaskResponse,
    ErrorResponse,
    MoveTaskRequest,
    SubtaskResponse,
    TaskCreate,
    TaskMutationResponse,
    TaskResponse,
    TaskUpdate,
    ToggleSubtaskResponse,
    UndoDeleteRequest,
)
from taskdash.features.tasks.service import TaskService

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/tasks", tags=["tasks"])

ERROR_RESPONSES = {
    404: {"description": "Task not found"},
    422: {"model": ErrorResponse, "description": "Validation failed, nothing was saved"},
}


def validation_failed(error: TaskValidationError) -> JSONResponse:
    """Render a validation error as a 422 with field-level messages"""
    body = ErrorResponse(errors=error.errors, reason=getattr(error, "reason", None))
    return JSONResponse(status_code=422, content=body.model_dump(mode="json"))


def server_error(action: str, error: Exception) -> HTTPException:
    logger.error(f"Failed to {action}: {error}", exc_info=error)
    return HTTPException(status_code=500, detail=f"Failed to {action}: {str(error)}")


@router.get("", response_model=DashboardResponse)
async def list_tasks(db: AsyncSession = Depends(get_db)):
    """
    Get the dashboard: every main task grouped into its section.

    Returns:
        Tasks newest first, the same tasks grouped by status bucket
        (rated ordered by score), and the per-bucket counters.
    """
    try:
        return await TaskService(db).list_dashboard()
    except Exception as e:
        raise server_error("list tasks", e)


@router.get("/counts", response_model=CountsResponse)
async def get_counts(db: AsyncSession = Depends(get_db)):
    """Per-bucket counters for the dashboard header"""
    return {"counts": await TaskService(db).get_counts()}


@router.post("/brain_dump", response_model=BrainDumpResponse, responses=ERROR_RESPONSES)
async def brain_dump(request: BrainDumpRequest, db: AsyncSession = Depends(get_db)):
    """
    Create one unrated task per non-blank line of brain_dump_text.
    """
    try:
        return await TaskService(db).brain_dump(request.brain_dump_text)
    except TaskValidationError as e:
        return validation_failed(e)
    except Exception as e:
        raise server_error("create tasks", e)


@router.post("/undo_delete", response_model=TaskMutationResponse, responses=ERROR_RESPONSES)
async def undo_delete(request: UndoDeleteRequest, db: AsyncSession = Depends(get_db)):
    """Restore a task from the task_data returned when it was deleted"""
    try:
        return await TaskService(db).undo_delete(request.task_data)
    except TaskValidationError as e:
        return validation_failed(e)
    except Exception as e:
        raise server_error("restore the task", e)


@router.patch(
    "/subtasks/{subtask_id}/toggle",
    response_model=ToggleSubtaskResponse,
    responses=ERROR_RESPONSES,
)
async def toggle_subtask(subtask_id: int, db: AsyncSession = Depends(get_db)):
    """Flip a subtask between open (unrated) and completed"""
    try:
        return await TaskService(db).toggle_subtask(subtask_id)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TaskValidationError as e:
        return validation_failed(e)


@router.get("/{task_id}", response_model=TaskResponse, responses=ERROR_RESPONSES)
async def get_task(task_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single task by ID"""
    try:
        task = await TaskService(db).get_task(task_id)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"task": task}


@router.post("", response_model=TaskMutationResponse, responses=ERROR_RESPONSES)
async def create_task(request: TaskCreate, db: AsyncSession = Depends(get_db)):
    """
    Create a task.

    The task starts unrated unless it arrives with all three ratings, in
    which case it is scored and lands in rated straight away.
    """
    try:
        return await TaskService(db).create_task(request)
    except TaskValidationError as e:
        return validation_failed(e)
    except Exception as e:
        raise server_error("create task", e)


@router.patch("/{task_id}", response_model=TaskMutationResponse, responses=ERROR_RESPONSES)
async def update_task(task_id: int, request: TaskUpdate, db: AsyncSession = Depends(get_db)):
    """
    Partially update a task.

    Send only the fields that change; an explicit null (or empty string)
    clears a rating. Score and status are recomputed before saving:
    completing the ratings promotes an unrated task to rated, clearing one
    sends a rated task back to unrated.

    Raises:
        404: Task not found
        422: The resulting task is invalid or the status change is not allowed
    """
    try:
        return await TaskService(db).update_task(task_id, request)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TaskValidationError as e:
        return validation_failed(e)
    except Exception as e:
        raise server_error("update task", e)


@router.post("/{task_id}/move", response_model=TaskMutationResponse, responses=ERROR_RESPONSES)
async def move_task(task_id: int, request: MoveTaskRequest, db: AsyncSession = Depends(get_db)):
    """
    Move a task card to another section (drag and drop).

    A refused move returns 422 with the denial reason; when ratings are
    missing there is one error per missing rating field.
    """
    try:
        return await TaskService(db).move_task(task_id, request.status)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TaskValidationError as e:
        return validation_failed(e)
    except Exception as e:
        raise server_error("move task", e)


@router.delete("/{task_id}", response_model=DeleteTaskResponse, responses=ERROR_RESPONSES)
async def delete_task(task_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a task and its subtasks; task_data in the response restores it"""
    try:
        return await TaskService(db).delete_task(task_id)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise server_error("delete task", e)


@router.post("/{task_id}/duplicate", response_model=TaskMutationResponse, responses=ERROR_RESPONSES)
async def duplicate_task(task_id: int, db: AsyncSession = Depends(get_db)):
    """Copy a task; the copy is titled "<title> (Copy)" and scored afresh."""
    try:
        return await TaskService(db).duplicate_task(task_id)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TaskValidationError as e:
        return validation_failed(e)


@router.post("/{task_id}/subtasks", response_model=SubtaskResponse, responses=ERROR_RESPONSES)
async def create_subtask(task_id: int, request: CreateSubtaskRequest, db: AsyncSession = Depends(get_db)):
    """Add a subtask at the end of a task's subtask list"""
    try:
        return await TaskService(db).create_subtask(task_id, request.title)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TaskValidationError as e:
        return validation_failed(e)


@router.post(
    "/{task_id}/convert_to_main_task",
    response_model=TaskMutationResponse,
    responses=ERROR_RESPONSES,
)
async def convert_to_main_task(
    task_id: int,
    request: Optional[ConvertToMainTaskRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    """Turn a subtask into a top-level task (ratings start empty)"""
    try:
        target_status = request.target_status if request else TaskStatus.UNRATED
        return await TaskService(db).convert_to_main_task(task_id, target_status)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TaskValidationError as e:
        return validation_failed(e)
