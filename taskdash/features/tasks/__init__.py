"""Tasks feature module"""

from taskdash.features.tasks.domain import (
    FieldError,
    StatusCounts,
    Subtask,
    Task,
    TaskStatus,
    build_sections,
)
from taskdash.features.tasks.errors import (
    TaskNotFoundError,
    TaskValidationError,
    TransitionDeniedError,
)
from taskdash.features.tasks.scoring import ScoringResult, calculate_score, has_all_ratings, score_task
from taskdash.features.tasks.transitions import (
    DenialReason,
    allowed_targets,
    can_transition,
    denial_reason,
    missing_ratings,
)
from taskdash.features.tasks.validation import validate_parent_assignment, validate_task

__all__ = [
    "FieldError",
    "StatusCounts",
    "Subtask",
    "Task",
    "TaskStatus",
    "build_sections",
    "TaskNotFoundError",
    "TaskValidationError",
    "TransitionDeniedError",
    "ScoringResult",
    "calculate_score",
    "has_all_ratings",
    "score_task",
    "DenialReason",
    "allowed_targets",
    "can_transition",
    "denial_reason",
    "missing_ratings",
    "validate_parent_assignment",
    "validate_task",
]
