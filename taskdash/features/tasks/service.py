"""Business logic for tasks"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from taskdash.db.models.task import Task as TaskORM
from taskdash.features.tasks.domain import (
    RATING_FIELDS,
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
from taskdash.features.tasks.repository import TaskRepository
from taskdash.features.tasks.schemas import (
    BrainDumpResponse,
    DashboardResponse,
    DeleteTaskResponse,
    FailedLine,
    SubtaskResponse,
    SubtaskSnapshot,
    TaskCreate,
    TaskMutationResponse,
    TaskSnapshot,
    TaskUpdate,
    ToggleSubtaskResponse,
)
from taskdash.features.tasks.scoring import has_all_ratings, score_task
from taskdash.features.tasks.transitions import DenialReason, denial_reason, missing_ratings
from taskdash.features.tasks.validation import validate_parent_assignment, validate_task

logger = logging.getLogger(__name__)

# Columns a client may write
EDITABLE_FIELDS = (
    "title", "status", "energy", "simplicity", "impact",
    "cognitive_density", "estimated_hours", "notes", "due_date", "is_focus_task",
    "actual_energy", "actual_simplicity", "actual_impact", "time_spent",
    "parent_task_id",
)

# Sizing the user skipped; brain dump lines and subtasks start here
QUICK_TASK_SIZING: Dict[str, Any] = {"cognitive_density": 0, "estimated_hours": 0}

NEW_TASK_DEFAULTS: Dict[str, Any] = {
    "title": None,
    "status": TaskStatus.UNRATED.value,
    "energy": None,
    "simplicity": None,
    "impact": None,
    "cognitive_density": None,
    "estimated_hours": None,
    "notes": None,
    "due_date": None,
    "is_focus_task": False,
    "actual_energy": None,
    "actual_simplicity": None,
    "actual_impact": None,
    "time_spent": None,
    "parent_task_id": None,
}


def _status_value(status) -> Optional[str]:
    return status.value if isinstance(status, TaskStatus) else status


def transition_errors(reason: DenialReason, values: Dict[str, Any], target: TaskStatus) -> List[FieldError]:
    """Field errors describing why a status change was refused"""
    if reason == DenialReason.MISSING_RATINGS:
        missing = missing_ratings(*(values.get(name) for name in RATING_FIELDS))
        return [
            FieldError(field=name, message=f"must be rated before moving to {target.value}")
            for name in missing
        ]
    if reason == DenialReason.RATINGS_ARE_STICKY:
        return [FieldError(field="status", message="can't go back to unrated once the task is fully rated")]
    return [FieldError(field="status", message=f"can't change to {target.value} from here")]


class TaskService:
    """Service layer for task business logic"""

    def __init__(self, db: AsyncSession):
        self.repository = TaskRepository(db)

    # ============================================================================
    # READS
    # ============================================================================

    async def get_task(self, task_id: int) -> Task:
        task = await self._get_or_raise(task_id)
        return Task.model_validate(task)

    async def get_counts(self) -> StatusCounts:
        return await self.repository.count_by_status()

    async def list_dashboard(self) -> DashboardResponse:
        """All main tasks grouped into dashboard sections, plus counters"""
        tasks = [Task.model_validate(t) for t in await self.repository.list_main_tasks()]
        counts = await self.repository.count_by_status()
        return DashboardResponse(
            tasks=tasks,
            sections=build_sections(tasks),
            counts=counts,
            total_tasks=counts.total,
        )

    # ============================================================================
    # WRITES
    # ============================================================================

    async def create_task(self, data: TaskCreate) -> TaskMutationResponse:
        task = await self._create(data.model_dump(exclude_unset=True))
        await self.repository.commit()
        logger.info(f"Created task {task.id} in {task.status}")
        return await self._mutation_response(task.id)

    async def update_task(self, task_id: int, data: TaskUpdate) -> TaskMutationResponse:
        """
        Apply a partial update.

        Explicit nulls clear a field; fields left out are untouched. The
        merged task is validated as a whole, a status change is checked
        against the transition table, then score and status are recomputed.

        Raises:
            TaskNotFoundError: task_id does not exist
            TaskValidationError: the merged task is invalid; nothing is saved
        """
        task = await self._get_or_raise(task_id)
        previous_status = task.status
        await self._apply(task, data.model_dump(exclude_unset=True))
        await self.repository.commit()

        if task.status != previous_status:
            logger.info(f"Task {task_id} moved {previous_status} -> {task.status}")
        return await self._mutation_response(task_id)

    async def move_task(self, task_id: int, target: TaskStatus) -> TaskMutationResponse:
        """Drag-and-drop a task card onto another bucket"""
        task = await self._get_or_raise(task_id)
        if task.is_subtask:
            raise TaskValidationError.single("status", "of a subtask can only be toggled")

        return await self.update_task(task_id, TaskUpdate(status=target))

    async def delete_task(self, task_id: int) -> DeleteTaskResponse:
        """Delete a task (and its subtasks), returning what undo needs to restore it"""
        task = await self._get_or_raise(task_id)
        snapshot = self._snapshot(task)

        await self.repository.delete(task)
        await self.repository.commit()
        logger.info(f"Deleted task {task_id}")

        return DeleteTaskResponse(
            message="Task was successfully deleted.",
            task_data=snapshot,
            counts=await self.repository.count_by_status(),
        )

    async def duplicate_task(self, task_id: int) -> TaskMutationResponse:
        original = await self._get_or_raise(task_id)
        values = {field: getattr(original, field) for field in EDITABLE_FIELDS}
        values["title"] = f"{original.title} (Copy)"

        copy = await self._create(values)
        await self.repository.commit()
        logger.info(f"Duplicated task {task_id} as {copy.id}")
        return await self._mutation_response(copy.id)

    async def brain_dump(self, text: Optional[str]) -> BrainDumpResponse:
        """Create one unrated task per non-blank line of text"""
        if not text or not text.strip():
            raise TaskValidationError.single("brain_dump_text", "can't be blank")

        lines = [line.strip() for line in text.split("\n") if line.strip()]
        if not lines:
            raise TaskValidationError.single("brain_dump_text", "has no task lines")

        created: List[TaskORM] = []
        failed: List[FailedLine] = []
        for line in lines:
            try:
                created.append(await self._create({"title": line, **QUICK_TASK_SIZING}))
            except TaskValidationError as e:
                failed.append(FailedLine(title=line, errors=[err.full_message() for err in e.errors]))

        await self.repository.commit()

        count = len(created)
        plural = "s" if count != 1 else ""
        if failed:
            failed_plural = "s" if len(failed) != 1 else ""
            message = f"Created {count} task{plural}. Failed to create {len(failed)} task{failed_plural}."
        else:
            message = f"Successfully created {count} task{plural}."
        logger.info(f"Brain dump: {message}")

        tasks = []
        for task in created:
            refreshed = await self.repository.get(task.id, refresh=True)
            tasks.append(Task.model_validate(refreshed))

        return BrainDumpResponse(
            success=not failed,
            message=message,
            created_count=count,
            tasks=tasks,
            failed_tasks=failed,
            counts=await self.repository.count_by_status(),
        )

    async def undo_delete(self, snapshot: Optional[TaskSnapshot]) -> TaskMutationResponse:
        """Re-create a task (and its subtasks) from a delete snapshot"""
        if snapshot is None:
            raise TaskValidationError.single("task_data", "can't be blank")

        values = snapshot.model_dump(exclude={"subtasks", "parent_task_id"})
        task = await self._create(values)
        for sub in snapshot.subtasks:
            await self._create({
                "title": sub.title,
                "status": sub.status.value,
                "parent_task_id": task.id,
                **QUICK_TASK_SIZING,
            }, position=sub.position)

        await self.repository.commit()
        logger.info(f"Restored task {task.id} with {len(snapshot.subtasks)} subtasks")
        return await self._mutation_response(task.id, message="Task successfully restored.")

    # ============================================================================
    # SUBTASKS
    # ============================================================================

    async def create_subtask(self, parent_task_id: int, title: Optional[str]) -> SubtaskResponse:
        await self._get_or_raise(parent_task_id)
        if not title or not title.strip():
            raise TaskValidationError.single("title", "can't be blank")

        subtask = await self._create({
            "title": title.strip(),
            "parent_task_id": parent_task_id,
            **QUICK_TASK_SIZING,
        })
        await self.repository.commit()
        logger.info(f"Created subtask {subtask.id} under task {parent_task_id}")

        refreshed = await self.repository.get(subtask.id, refresh=True)
        return SubtaskResponse(subtask=Subtask.model_validate(refreshed))

    async def toggle_subtask(self, subtask_id: int) -> ToggleSubtaskResponse:
        """Flip a subtask between unrated and completed"""
        subtask = await self._get_or_raise(subtask_id, kind="Subtask")
        if not subtask.is_subtask:
            raise TaskValidationError.single("task", "is not a subtask")

        new_status = (
            TaskStatus.UNRATED if subtask.status == TaskStatus.COMPLETED.value
            else TaskStatus.COMPLETED
        )
        await self._apply(subtask, {"status": new_status.value})
        await self.repository.commit()

        refreshed = await self.repository.get(subtask_id, refresh=True)
        return ToggleSubtaskResponse(status=new_status, subtask=Subtask.model_validate(refreshed))

    async def convert_to_main_task(
        self,
        subtask_id: int,
        target_status: TaskStatus = TaskStatus.UNRATED,
    ) -> TaskMutationResponse:
        """Promote a subtask to a top-level task in the given bucket"""
        subtask = await self._get_or_raise(subtask_id, kind="Subtask")
        if not subtask.is_subtask:
            raise TaskValidationError.single("task", "is not a subtask")

        changes = {
            "parent_task_id": None,
            "status": TaskStatus(target_status).value,
            "energy": None,
            "simplicity": None,
            "impact": None,
        }
        await self._apply(subtask, changes, check_transition=False)
        subtask.position = 0
        await self.repository.commit()
        logger.info(f"Converted subtask {subtask_id} to a main task in {subtask.status}")

        return await self._mutation_response(
            subtask_id, message="Subtask successfully converted to main task"
        )

    # ============================================================================
    # INTERNALS
    # ============================================================================

    async def _get_or_raise(self, task_id: int, kind: str = "Task") -> TaskORM:
        # Re-read so the subtask collection reflects rows written since the task was loaded
        task = await self.repository.get(task_id, refresh=True)
        if task is None:
            raise TaskNotFoundError(task_id, kind)
        return task

    async def _mutation_response(self, task_id: int, message: Optional[str] = None) -> TaskMutationResponse:
        task = await self.repository.get(task_id, refresh=True)
        return TaskMutationResponse(
            task=Task.model_validate(task),
            counts=await self.repository.count_by_status(),
            message=message,
        )

    async def _create(self, values: Dict[str, Any], position: Optional[int] = None) -> TaskORM:
        """Validate, score and stage a new task (no commit)"""
        merged = {**NEW_TASK_DEFAULTS, **{k: v for k, v in values.items() if k in EDITABLE_FIELDS}}
        for field in ("status", "is_focus_task"):
            if merged[field] is None:
                merged[field] = NEW_TASK_DEFAULTS[field]
        merged["status"] = _status_value(merged["status"])

        await self._validate(None, merged, parent_changed=True)
        self._recompute(merged)

        task = TaskORM(**merged)
        if merged["parent_task_id"] is not None:
            task.position = (
                position if position is not None
                else await self.repository.next_subtask_position(merged["parent_task_id"])
            )
        return await self.repository.add(task)

    async def _apply(self, task: TaskORM, changes: Dict[str, Any], check_transition: bool = True) -> None:
        """Merge changes into a persisted task, or raise without touching it"""
        current = {field: getattr(task, field) for field in EDITABLE_FIELDS}
        changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        if "status" in changes:
            changes["status"] = _status_value(changes["status"])
        merged = {**current, **changes}

        parent_changed = merged["parent_task_id"] != current["parent_task_id"]
        await self._validate(task, merged, parent_changed=parent_changed)

        is_main = merged["parent_task_id"] is None
        if check_transition and is_main and merged["status"] != current["status"]:
            self._check_transition(task.id, current["status"], merged)

        self._recompute(merged)
        for field, value in merged.items():
            setattr(task, field, value)

        if parent_changed and merged["parent_task_id"] is not None:
            task.position = await self.repository.next_subtask_position(merged["parent_task_id"])

    async def _validate(self, task: Optional[TaskORM], merged: Dict[str, Any], parent_changed: bool) -> None:
        errors = validate_task(merged)

        parent_id = merged.get("parent_task_id")
        if parent_changed and parent_id is not None:
            ancestors = await self.repository.ancestor_chain(parent_id)
            errors += validate_parent_assignment(
                task.id if task is not None else None,
                parent_id,
                ancestors,
                has_subtasks=bool(task is not None and task.subtasks),
            )

        if errors:
            raise TaskValidationError(errors)

    def _check_transition(self, task_id: int, current_status: str, merged: Dict[str, Any]) -> None:
        target = TaskStatus(merged["status"])
        rated = has_all_ratings(*(merged.get(name) for name in RATING_FIELDS))
        reason = denial_reason(current_status, target, rated)
        if reason is None:
            return

        logger.warning(f"Refused moving task {task_id} {current_status} -> {target.value}: {reason.value}")
        raise TransitionDeniedError(transition_errors(reason, merged, target), reason)

    @staticmethod
    def _recompute(values: Dict[str, Any]) -> None:
        """Run the scoring engine on main tasks; subtasks are never scored"""
        if values.get("parent_task_id") is not None:
            values["score"] = None
            return

        result = score_task(values["energy"], values["simplicity"], values["impact"], values["status"])
        values["score"] = result.score
        values["status"] = result.status.value

    @staticmethod
    def _snapshot(task: TaskORM) -> TaskSnapshot:
        values = {field: getattr(task, field) for field in EDITABLE_FIELDS if field != "parent_task_id"}
        return TaskSnapshot(
            **values,
            subtasks=[
                SubtaskSnapshot(title=sub.title, status=sub.status, position=sub.position)
                for sub in task.subtasks
            ],
        )
