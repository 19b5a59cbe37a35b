"""Exceptions raised by the task service"""

from typing import List

from taskdash.features.tasks.domain import FieldError


class TaskNotFoundError(ValueError):
    """Raised when a task id does not exist"""

    def __init__(self, task_id: int, kind: str = "Task"):
        self.task_id = task_id
        super().__init__(f"{kind} {task_id} not found")


class TaskValidationError(ValueError):
    """Raised when a write would leave a task invalid. Nothing is saved."""

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        super().__init__("; ".join(error.full_message() for error in errors))

    @classmethod
    def single(cls, field: str, message: str) -> "TaskValidationError":
        return cls([FieldError(field=field, message=message)])


class TransitionDeniedError(TaskValidationError):
    """Raised when a status change is not allowed from the current bucket"""

    def __init__(self, errors: List[FieldError], reason):
        self.reason = reason
        super().__init__(errors)
