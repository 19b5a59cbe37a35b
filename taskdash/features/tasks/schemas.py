"""Request and response schemas for the Tasks API"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from taskdash.features.tasks.domain import FieldError, StatusCounts, Subtask, Task, TaskStatus
from taskdash.features.tasks.transitions import DenialReason
from taskdash.utils.datetime_helper import parse_due_date

_BLANKABLE = (
    "energy", "simplicity", "impact",
    "actual_energy", "actual_simplicity", "actual_impact",
    "time_spent", "notes", "due_date",
)


class TaskFields(BaseModel):
    """Editable task attributes. Unset fields are left alone on update."""
    title: Optional[str] = None
    status: Optional[TaskStatus] = None
    energy: Optional[int] = Field(None, ge=0, le=10)
    simplicity: Optional[int] = Field(None, ge=0, le=10)
    impact: Optional[int] = Field(None, ge=0, le=10)
    cognitive_density: Optional[int] = Field(None, ge=0, le=3)
    estimated_hours: Optional[float] = Field(None, ge=0, le=8)
    notes: Optional[str] = None
    due_date: Optional[datetime] = None
    is_focus_task: Optional[bool] = None
    actual_energy: Optional[int] = Field(None, ge=0, le=10)
    actual_simplicity: Optional[int] = Field(None, ge=0, le=10)
    actual_impact: Optional[int] = Field(None, ge=0, le=10)
    time_spent: Optional[float] = Field(None, ge=0)
    parent_task_id: Optional[int] = None

    @field_validator(*_BLANKABLE, mode="before")
    @classmethod
    def blank_to_none(cls, value):
        """An empty form value means "not set", never zero"""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_user_date(cls, value):
        return parse_due_date(value)


class TaskCreate(TaskFields):
    """
    Task creation model.

    Sizing must be sent; an explicit null reaches validation and is
    reported as blank.
    """
    title: str
    cognitive_density: Optional[int] = Field(..., ge=0, le=3)
    estimated_hours: Optional[float] = Field(..., ge=0, le=8)


class TaskUpdate(TaskFields):
    """Task update model - all fields optional"""
    pass


class MoveTaskRequest(BaseModel):
    """Drop a task card on another bucket"""
    status: TaskStatus


class BrainDumpRequest(BaseModel):
    brain_dump_text: Optional[str] = None


class CreateSubtaskRequest(BaseModel):
    title: Optional[str] = None


class ConvertToMainTaskRequest(BaseModel):
    target_status: TaskStatus = TaskStatus.UNRATED


class SubtaskSnapshot(BaseModel):
    title: str
    status: TaskStatus = TaskStatus.UNRATED
    position: int = 0


class TaskSnapshot(TaskFields):
    """Attributes needed to restore a deleted task"""
    title: str
    status: TaskStatus = TaskStatus.UNRATED
    cognitive_density: Optional[int] = Field(0, ge=0, le=3)
    estimated_hours: Optional[float] = Field(0, ge=0, le=8)
    subtasks: List[SubtaskSnapshot] = []


class UndoDeleteRequest(BaseModel):
    task_data: Optional[TaskSnapshot] = None


class TaskResponse(BaseModel):
    success: bool = True
    task: Task


class TaskMutationResponse(BaseModel):
    """Task after a write, plus fresh bucket counters"""
    success: bool = True
    task: Task
    counts: StatusCounts
    message: Optional[str] = None


class DashboardResponse(BaseModel):
    tasks: List[Task]
    sections: Dict[TaskStatus, List[Task]]
    counts: StatusCounts
    total_tasks: int


class CountsResponse(BaseModel):
    counts: StatusCounts


class DeleteTaskResponse(BaseModel):
    success: bool = True
    message: str
    task_data: TaskSnapshot
    counts: StatusCounts


class FailedLine(BaseModel):
    title: str
    errors: List[str]


class BrainDumpResponse(BaseModel):
    success: bool
    message: str
    created_count: int
    tasks: List[Task] = []
    failed_tasks: List[FailedLine] = []
    counts: StatusCounts


class SubtaskResponse(BaseModel):
    success: bool = True
    subtask: Subtask


class ToggleSubtaskResponse(BaseModel):
    success: bool = True
    status: TaskStatus
    subtask: Subtask


class ErrorResponse(BaseModel):
    """Body of every 4xx the Tasks API returns"""
    success: bool = False
    errors: List[FieldError]
    reason: Optional[DenialReason] = None
