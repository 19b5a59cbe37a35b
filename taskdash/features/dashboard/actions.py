"""Undoable dashboard actions"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ActionType(str, Enum):
    TASK_CREATE = "task_create"
    TASK_DELETE = "task_delete"
    TASK_EDIT = "task_edit"
    TASK_STATUS_CHANGE = "task_status_change"
    SUBTASK_CREATE = "subtask_create"
    SUBTASK_TOGGLE = "subtask_toggle"


class UndoAction(BaseModel):
    """
    One entry on the undo stack.

    data holds whatever the reverse operation needs:
        task_status_change: previous_status
        task_edit: previous (field -> old value)
        task_delete: task_data (delete snapshot)
        subtask_create / subtask_toggle: subtask_id
    """
    type: ActionType
    task_id: int
    data: Dict[str, Any] = {}
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class UndoResult(BaseModel):
    success: bool
    action: Optional[UndoAction] = None
    error: Optional[str] = None
