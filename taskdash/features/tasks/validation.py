"""Field validation for tasks and the subtask nesting rules"""

from typing import Any, List, Mapping, Optional, Sequence

from taskdash.features.tasks.domain import (
    ACTUAL_RATING_FIELDS,
    COGNITIVE_DENSITY_RANGE,
    ESTIMATED_HOURS_RANGE,
    RATING_FIELDS,
    RATING_RANGE,
    SUBTASK_STATUSES,
    FieldError,
    TaskStatus,
)

_STATUS_VALUES = [status.value for status in TaskStatus]


def _check_range(
    errors: List[FieldError],
    values: Mapping[str, Any],
    field: str,
    bounds: tuple,
    required: bool = False,
) -> None:
    value = values.get(field)
    if value is None:
        if required:
            errors.append(FieldError(field=field, message="can't be blank"))
        return

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        errors.append(FieldError(field=field, message="is not a number"))
        return

    low, high = bounds
    if value < low:
        errors.append(FieldError(field=field, message=f"must be greater than or equal to {low}"))
    elif high is not None and value > high:
        errors.append(FieldError(field=field, message=f"must be less than or equal to {high}"))


def validate_task(values: Mapping[str, Any]) -> List[FieldError]:
    """
    Validate the full (merged) state of a task.

    Args:
        values: task attributes after the pending change is applied

    Returns:
        Every problem found; an empty list means the task may be saved.
    """
    errors: List[FieldError] = []

    title = values.get("title")
    if title is None or not str(title).strip():
        errors.append(FieldError(field="title", message="can't be blank"))

    status = values.get("status")
    status_value = status.value if isinstance(status, TaskStatus) else status
    if status_value not in _STATUS_VALUES:
        errors.append(FieldError(field="status", message="is not included in the list"))
    elif values.get("parent_task_id") is not None and TaskStatus(status_value) not in SUBTASK_STATUSES:
        errors.append(FieldError(field="status", message="must be unrated or completed for a subtask"))

    _check_range(errors, values, "cognitive_density", COGNITIVE_DENSITY_RANGE, required=True)
    _check_range(errors, values, "estimated_hours", ESTIMATED_HOURS_RANGE, required=True)

    for field in RATING_FIELDS + ACTUAL_RATING_FIELDS:
        _check_range(errors, values, field, RATING_RANGE)

    _check_range(errors, values, "time_spent", (0, None))

    return errors


def validate_parent_assignment(
    task_id: Optional[int],
    parent_task_id: Optional[int],
    ancestors: Optional[Sequence[int]],
    has_subtasks: bool = False,
) -> List[FieldError]:
    """
    Check that making parent_task_id the parent of task_id keeps nesting
    one level deep and acyclic.

    Args:
        task_id: the task being changed (None while it is being created)
        parent_task_id: the proposed parent, or None to detach
        ancestors: ancestor chain starting at the proposed parent
            (parent, its parent, ...), or None if the parent does not exist
        has_subtasks: whether the task being changed has subtasks itself
    """
    if parent_task_id is None:
        return []

    if task_id is not None and parent_task_id == task_id:
        return [FieldError(field="parent_task_id", message="can't reference the task itself")]

    if ancestors is None:
        return [FieldError(field="parent_task_id", message="must reference an existing task")]

    errors: List[FieldError] = []
    if task_id is not None and task_id in ancestors:
        errors.append(FieldError(field="parent_task_id", message="would create a circular reference"))
    if len(ancestors) > 1:
        errors.append(FieldError(field="parent_task_id", message="can't be a subtask (only one level of nesting)"))
    if has_subtasks:
        errors.append(FieldError(field="parent_task_id", message="can't be set on a task that has subtasks"))
    return errors
