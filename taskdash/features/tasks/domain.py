"""Domain models for the Tasks feature"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class TaskStatus(str, Enum):
    """Dashboard bucket a task lives in"""
    UNRATED = "unrated"
    RATED = "rated"
    PARKED = "parked"
    COMPLETED = "completed"


# Subtasks are only ever open or done
SUBTASK_STATUSES = (TaskStatus.UNRATED, TaskStatus.COMPLETED)

RATING_FIELDS = ("energy", "simplicity", "impact")
ACTUAL_RATING_FIELDS = ("actual_energy", "actual_simplicity", "actual_impact")

RATING_RANGE = (0, 10)
COGNITIVE_DENSITY_RANGE = (0, 3)
ESTIMATED_HOURS_RANGE = (0, 8)


class FieldError(BaseModel):
    """A single field-level validation message"""
    field: str
    message: str

    def full_message(self) -> str:
        label = self.field.replace("_", " ").capitalize()
        return f"{label} {self.message}"


class StatusCounts(BaseModel):
    """Number of main tasks in each bucket"""
    unrated_count: int = 0
    rated_count: int = 0
    parked_count: int = 0
    completed_count: int = 0

    @property
    def total(self) -> int:
        return self.unrated_count + self.rated_count + self.parked_count + self.completed_count

    def for_status(self, status: TaskStatus) -> int:
        return getattr(self, f"{TaskStatus(status).value}_count")


class Subtask(BaseModel):
    """Subtask as shown under its parent"""
    id: int
    title: str
    status: TaskStatus
    position: int
    parent_task_id: int

    model_config = ConfigDict(from_attributes=True)


class Task(BaseModel):
    """Complete task model from database"""
    id: int
    title: str
    status: TaskStatus
    energy: Optional[int] = None
    simplicity: Optional[int] = None
    impact: Optional[int] = None
    score: Optional[float] = None
    cognitive_density: int
    estimated_hours: float
    notes: Optional[str] = None
    due_date: Optional[datetime] = None
    is_focus_task: bool = False
    actual_energy: Optional[int] = None
    actual_simplicity: Optional[int] = None
    actual_impact: Optional[int] = None
    time_spent: Optional[float] = None
    parent_task_id: Optional[int] = None
    position: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None
    subtasks: List[Subtask] = []

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_subtask(self) -> bool:
        return self.parent_task_id is not None

    def has_all_ratings(self) -> bool:
        return self.energy is not None and self.simplicity is not None and self.impact is not None


def build_sections(tasks: List[Task]) -> Dict[TaskStatus, List[Task]]:
    """
    Group main tasks into dashboard buckets.

    Rated tasks are ordered by score (highest first), every other bucket
    newest first.
    """
    sections: Dict[TaskStatus, List[Task]] = {status: [] for status in TaskStatus}
    for task in tasks:
        if not task.is_subtask:
            sections[task.status].append(task)

    for status, bucket in sections.items():
        bucket.sort(key=lambda t: (t.created_at, t.id), reverse=True)
        if status == TaskStatus.RATED:
            # Stable sort keeps newest-first among equal scores
            bucket.sort(key=lambda t: t.score if t.score is not None else -1, reverse=True)
    return sections
