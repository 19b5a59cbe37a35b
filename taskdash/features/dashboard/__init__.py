"""Dashboard client-side state"""

from taskdash.features.dashboard.actions import ActionType, UndoAction, UndoResult
from taskdash.features.dashboard.client import ApiError, TaskApiClient
from taskdash.features.dashboard.store import DashboardStore, ChangeResult

__all__ = [
    "ActionType",
    "UndoAction",
    "UndoResult",
    "ApiError",
    "TaskApiClient",
    "DashboardStore",
    "ChangeResult",
]
