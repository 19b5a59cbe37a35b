"""
Dashboard application state.

One DashboardStore replaces the page-level globals the dashboard used to
share (undo manager, counters). It owns the task view model, the bucket
counters and a bounded undo stack, and it talks to the API only through the
TaskApiClient it is given.
"""

import logging
from collections import deque
from typing import Any, Deque, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from taskdash import config
from taskdash.features.dashboard.actions import ActionType, UndoAction, UndoResult
from taskdash.features.dashboard.client import ApiError, TaskApiClient
from taskdash.features.tasks.domain import RATING_FIELDS, StatusCounts, Task, TaskStatus, build_sections
from taskdash.features.tasks.errors import TaskNotFoundError
from taskdash.features.tasks.schemas import TaskSnapshot
from taskdash.features.tasks.transitions import (
    DenialReason,
    allowed_targets,
    denial_reason,
    missing_ratings,
)

logger = logging.getLogger(__name__)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ChangeResult(BaseModel):
    """Outcome of a move or edit; refused changes carry the reason"""
    success: bool
    task: Optional[Task] = None
    reason: Optional[DenialReason] = None
    missing_ratings: List[str] = []
    error: Optional[str] = None


class DashboardStore:
    """Single source of truth for what the dashboard shows"""

    def __init__(self, client: TaskApiClient, undo_limit: int = config.UNDO_STACK_LIMIT):
        self.client = client
        self.tasks: Dict[int, Task] = {}
        self.counts = StatusCounts()
        self.undo_stack: Deque[UndoAction] = deque(maxlen=undo_limit)

    # ============================================================================
    # VIEW MODEL
    # ============================================================================

    async def load(self) -> None:
        """Replace local state with the server's dashboard"""
        dashboard = await self.client.get_dashboard()
        self.tasks = {task.id: task for task in dashboard.tasks}
        self.counts = dashboard.counts

    def sections(self) -> Dict[TaskStatus, List[Task]]:
        return build_sections(list(self.tasks.values()))

    def update_counters(self, counts: Union[StatusCounts, Mapping[str, int]]) -> StatusCounts:
        """Apply a full or partial counts payload"""
        if isinstance(counts, StatusCounts):
            counts = counts.model_dump()

        known = {k: v for k, v in counts.items() if k in StatusCounts.model_fields and v is not None}
        self.counts = self.counts.model_copy(update=known)
        return self.counts

    def _reconcile(self, task: Task, counts: Optional[StatusCounts] = None) -> None:
        if task.is_subtask:
            self.tasks.pop(task.id, None)
        else:
            self.tasks[task.id] = task
        if counts is not None:
            self.update_counters(counts)

    # ============================================================================
    # UNDO STACK
    # ============================================================================

    def add_action(self, action: UndoAction) -> None:
        """Push an action; the oldest one falls off once the stack is full"""
        self.undo_stack.append(action)
        logger.debug(f"Added {action.type.value} action to undo stack. Stack size: {len(self.undo_stack)}")

    async def undo(self) -> UndoResult:
        """
        Reverse the most recent action.

        The action is removed from the stack whether or not the server
        accepts the reversal; a failure is logged and reported, never retried.
        """
        if not self.undo_stack:
            return UndoResult(success=False, error="Nothing to undo")

        action = self.undo_stack.pop()
        logger.info(f"Undoing {action.type.value} action on task {action.task_id}")

        try:
            await self._reverse(action)
        except ApiError as e:
            logger.warning(f"Failed to undo {action.type.value}: {e}")
            return UndoResult(success=False, action=action, error=str(e))

        try:
            await self.load()
        except ApiError as e:
            logger.warning(f"Undo applied but the dashboard could not be reloaded: {e}")
        return UndoResult(success=True, action=action)

    async def _reverse(self, action: UndoAction) -> None:
        if action.type == ActionType.TASK_STATUS_CHANGE:
            await self.client.move_task(action.task_id, TaskStatus(action.data["previous_status"]))
        elif action.type == ActionType.TASK_EDIT:
            await self.client.update_task(action.task_id, action.data["previous"])
        elif action.type == ActionType.TASK_CREATE:
            await self.client.delete_task(action.task_id)
        elif action.type == ActionType.TASK_DELETE:
            await self.client.undo_delete(TaskSnapshot.model_validate(action.data["task_data"]))
        elif action.type == ActionType.SUBTASK_CREATE:
            await self.client.delete_task(action.data["subtask_id"])
        elif action.type == ActionType.SUBTASK_TOGGLE:
            await self.client.toggle_subtask(action.data["subtask_id"])
        else:
            raise ValueError(f"Unknown action type: {action.type}")

    # ============================================================================
    # USER ACTIONS
    # ============================================================================

    def _task(self, task_id: int) -> Task:
        """A loaded main task; subtasks are never on the board"""
        task = self.tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def check_move(self, task_id: int, target: TaskStatus) -> Optional[DenialReason]:
        task = self._task(task_id)
        return denial_reason(task.status, target, task.has_all_ratings())

    def can_move(self, task_id: int, target: TaskStatus) -> bool:
        return self.check_move(task_id, target) is None

    def drop_targets(self, task_id: int) -> List[TaskStatus]:
        """Sections to highlight while a card is dragged"""
        task = self._task(task_id)
        return allowed_targets(task.status, task.has_all_ratings())

    async def move(self, task_id: int, target: TaskStatus) -> ChangeResult:
        """
        Move a card to another section.

        Illegal moves are refused locally without a request; the result
        names the rating fields to highlight when that is the reason.
        """
        task = self._task(task_id)
        target = TaskStatus(target)
        rejection = self._reject_move(task, target, task.energy, task.simplicity, task.impact)
        if rejection is not None:
            return rejection

        try:
            response = await self.client.move_task(task_id, target)
        except ApiError as e:
            logger.warning(f"Server refused moving task {task_id} to {target.value}: {e}")
            return self._refused(task, e)

        self._reconcile(response.task, response.counts)
        self.add_action(UndoAction(
            type=ActionType.TASK_STATUS_CHANGE,
            task_id=task_id,
            data={"previous_status": task.status.value, "new_status": response.task.status.value},
        ))
        return ChangeResult(success=True, task=response.task)

    async def edit(self, task_id: int, **changes: Any) -> ChangeResult:
        """
        Change task fields; score and status come back from the server.

        A status change is checked against the ratings the task will have
        after the edit, and refused locally the same way move() refuses.
        """
        task = self._task(task_id)
        target = TaskStatus(changes["status"]) if "status" in changes else task.status
        if target != task.status:
            ratings = [_blank_to_none(changes.get(name, getattr(task, name))) for name in RATING_FIELDS]
            rejection = self._reject_move(task, target, *ratings)
            if rejection is not None:
                return rejection
        if "status" in changes:
            changes["status"] = target.value

        previous = task.model_dump(mode="json", include=set(changes))
        try:
            response = await self.client.update_task(task_id, changes)
        except ApiError as e:
            logger.warning(f"Server refused editing task {task_id}: {e}")
            return self._refused(task, e)

        self._reconcile(response.task, response.counts)
        self.add_action(UndoAction(type=ActionType.TASK_EDIT, task_id=task_id, data={"previous": previous}))
        return ChangeResult(success=True, task=response.task)

    async def create(self, title: str, **fields: Any) -> Task:
        response = await self.client.create_task(title, **fields)
        self._reconcile(response.task, response.counts)
        self.add_action(UndoAction(type=ActionType.TASK_CREATE, task_id=response.task.id))
        return response.task

    async def delete(self, task_id: int) -> None:
        response = await self.client.delete_task(task_id)
        self.tasks.pop(task_id, None)
        self.update_counters(response.counts)
        self.add_action(UndoAction(
            type=ActionType.TASK_DELETE,
            task_id=task_id,
            data={"task_data": response.task_data.model_dump(mode="json")},
        ))

    async def add_subtask(self, task_id: int, title: str) -> None:
        response = await self.client.create_subtask(task_id, title)
        self.add_action(UndoAction(
            type=ActionType.SUBTASK_CREATE,
            task_id=task_id,
            data={"subtask_id": response.subtask.id},
        ))
        await self.load()

    async def toggle_subtask(self, task_id: int, subtask_id: int) -> TaskStatus:
        response = await self.client.toggle_subtask(subtask_id)
        self.add_action(UndoAction(
            type=ActionType.SUBTASK_TOGGLE,
            task_id=task_id,
            data={"subtask_id": subtask_id},
        ))
        await self.load()
        return response.status

    def _reject_move(self, task: Task, target: TaskStatus, energy, simplicity, impact) -> Optional[ChangeResult]:
        """A refusal for task -> target given these ratings, or None if allowed"""
        reason = denial_reason(task.status, target, None not in (energy, simplicity, impact))
        if reason is None:
            return None

        missing = []
        if reason == DenialReason.MISSING_RATINGS:
            missing = missing_ratings(energy, simplicity, impact)
            logger.info(f"Blocked {task.status.value} -> {target.value} for task {task.id}: missing {missing}")
        return ChangeResult(success=False, task=task, reason=reason, missing_ratings=missing)

    @staticmethod
    def _refused(task: Task, error: ApiError) -> ChangeResult:
        missing = [err.field for err in error.errors if err.field in RATING_FIELDS]
        return ChangeResult(
            success=False,
            task=task,
            reason=error.reason,
            missing_ratings=missing,
            error=str(error),
        )
