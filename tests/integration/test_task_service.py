"""Tests for taskdash/features/tasks/service.py against a real SQLite database"""

import pytest
from pydantic import ValidationError

from taskdash.features.tasks.domain import TaskStatus
from taskdash.features.tasks.errors import (
    TaskNotFoundError,
    TaskValidationError,
    TransitionDeniedError,
)
from taskdash.features.tasks.schemas import TaskCreate, TaskUpdate
from taskdash.features.tasks.transitions import DenialReason


async def create(service, title="Task", **fields):
    fields.setdefault("cognitive_density", 1)
    fields.setdefault("estimated_hours", 1.5)
    response = await service.create_task(TaskCreate(title=title, **fields))
    return response.task


async def create_rated(service, title="Rated"):
    return await create(service, title, energy=4, simplicity=6, impact=8)


def error_fields(exc_info):
    return [error.field for error in exc_info.value.errors]


# ─────────────────────────────────────────────────────────────────────────────
# Create / Update
# ─────────────────────────────────────────────────────────────────────────────


class TestCreateTask:
    """New tasks land unrated unless fully rated."""

    @pytest.mark.asyncio
    async def test_defaults(self, task_service):
        task = await create(task_service, "Buy milk", cognitive_density=2, estimated_hours=0.5)

        assert task.id is not None
        assert task.status == TaskStatus.UNRATED
        assert task.score is None
        assert task.cognitive_density == 2
        assert task.estimated_hours == 0.5
        assert task.is_focus_task is False
        assert task.created_at is not None
        assert task.subtasks == []

    @pytest.mark.asyncio
    async def test_sizing_required(self, task_service):
        with pytest.raises(TaskValidationError) as exc_info:
            await create(task_service, "Unsized", cognitive_density=None, estimated_hours=None)

        assert error_fields(exc_info) == ["cognitive_density", "estimated_hours"]
        assert exc_info.value.errors[0].full_message() == "Cognitive density can't be blank"

    def test_sizing_must_be_sent(self):
        with pytest.raises(ValidationError):
            TaskCreate(title="Unsized")

    @pytest.mark.asyncio
    async def test_result_serializes_with_subtasks(self, task_service):
        """Tasks come back fully loaded, so dumping them never touches the database"""
        parent = await create(task_service, "Parent")
        await task_service.create_subtask(parent.id, "Child")

        dumped = (await task_service.get_task(parent.id)).model_dump(mode="json")

        assert [s["title"] for s in dumped["subtasks"]] == ["Child"]
        assert dumped["subtasks"][0]["parent_task_id"] == parent.id

    @pytest.mark.asyncio
    async def test_fully_rated_is_scored(self, task_service):
        task = await create_rated(task_service)

        assert task.status == TaskStatus.RATED
        assert task.score == 6.6

    @pytest.mark.asyncio
    async def test_zero_ratings_are_ratings(self, task_service):
        task = await create(task_service, energy=0, simplicity=0, impact=0)

        assert task.status == TaskStatus.RATED
        assert task.score == 0.0

    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, task_service):
        with pytest.raises(TaskValidationError) as exc_info:
            await create(task_service, "   ")

        assert error_fields(exc_info) == ["title"]
        assert (await task_service.get_counts()).total == 0

    @pytest.mark.asyncio
    async def test_response_carries_counts(self, task_service):
        await create(task_service)
        response = await task_service.create_task(
            TaskCreate(title="Second", cognitive_density=0, estimated_hours=0)
        )

        assert response.counts.unrated_count == 2


class TestUpdateTask:
    """Partial updates and automatic promotion."""

    @pytest.mark.asyncio
    async def test_completing_ratings_promotes(self, task_service):
        task = await create(task_service, energy=4, simplicity=6)

        updated = (await task_service.update_task(task.id, TaskUpdate(impact=8))).task

        assert updated.status == TaskStatus.RATED
        assert updated.score == 6.6

    @pytest.mark.asyncio
    async def test_clearing_rating_demotes(self, task_service):
        task = await create_rated(task_service)

        updated = (await task_service.update_task(task.id, TaskUpdate(impact=None))).task

        assert updated.status == TaskStatus.UNRATED
        assert updated.score is None
        assert updated.energy == 4

    @pytest.mark.asyncio
    async def test_blank_string_clears_rating(self, task_service):
        task = await create_rated(task_service)

        updated = (await task_service.update_task(task.id, TaskUpdate(energy=""))).task

        assert updated.energy is None
        assert updated.status == TaskStatus.UNRATED

    @pytest.mark.asyncio
    async def test_unset_fields_untouched(self, task_service):
        task = await create_rated(task_service)

        updated = (await task_service.update_task(task.id, TaskUpdate(notes="call first"))).task

        assert updated.notes == "call first"
        assert updated.score == 6.6

    @pytest.mark.asyncio
    async def test_invalid_update_saves_nothing(self, task_service):
        task = await create(task_service, "Original")

        with pytest.raises(TaskValidationError):
            await task_service.update_task(task.id, TaskUpdate(title="", notes="lost"))

        reloaded = await task_service.get_task(task.id)
        assert reloaded.title == "Original"
        assert reloaded.notes is None

    @pytest.mark.asyncio
    async def test_status_change_is_checked(self, task_service):
        task = await create_rated(task_service)

        with pytest.raises(TransitionDeniedError) as exc_info:
            await task_service.update_task(task.id, TaskUpdate(status=TaskStatus.UNRATED))

        assert exc_info.value.reason == DenialReason.RATINGS_ARE_STICKY

    @pytest.mark.asyncio
    async def test_due_date_text(self, task_service):
        task = await create(task_service)

        updated = (await task_service.update_task(task.id, TaskUpdate(due_date="due:12/31/2030"))).task

        assert (updated.due_date.year, updated.due_date.month, updated.due_date.day) == (2030, 12, 31)

    @pytest.mark.asyncio
    async def test_missing_task(self, task_service):
        with pytest.raises(TaskNotFoundError, match="Task 404 not found"):
            await task_service.update_task(404, TaskUpdate(title="x"))


# ─────────────────────────────────────────────────────────────────────────────
# Moves
# ─────────────────────────────────────────────────────────────────────────────


class TestMoveTask:
    """The transition table enforced server-side."""

    @pytest.mark.asyncio
    async def test_unrated_to_rated_needs_ratings(self, task_service):
        task = await create(task_service, energy=5)

        with pytest.raises(TransitionDeniedError) as exc_info:
            await task_service.move_task(task.id, TaskStatus.RATED)

        assert exc_info.value.reason == DenialReason.MISSING_RATINGS
        assert error_fields(exc_info) == ["simplicity", "impact"]
        assert (await task_service.get_task(task.id)).status == TaskStatus.UNRATED

    @pytest.mark.asyncio
    async def test_rated_to_unrated_denied(self, task_service):
        task = await create_rated(task_service)

        with pytest.raises(TransitionDeniedError):
            await task_service.move_task(task.id, TaskStatus.UNRATED)

    @pytest.mark.asyncio
    async def test_park_and_return(self, task_service):
        task = await create_rated(task_service)

        parked = (await task_service.move_task(task.id, TaskStatus.PARKED)).task
        assert parked.status == TaskStatus.PARKED
        assert parked.score == 6.6

        back = (await task_service.move_task(task.id, TaskStatus.RATED)).task
        assert back.status == TaskStatus.RATED

    @pytest.mark.asyncio
    async def test_completed_without_ratings_reopens(self, task_service):
        task = await create(task_service)
        await task_service.move_task(task.id, TaskStatus.COMPLETED)

        reopened = (await task_service.move_task(task.id, TaskStatus.UNRATED)).task

        assert reopened.status == TaskStatus.UNRATED

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self, task_service):
        task = await create(task_service)

        response = await task_service.move_task(task.id, TaskStatus.UNRATED)

        assert response.task.status == TaskStatus.UNRATED

    @pytest.mark.asyncio
    async def test_counts_follow_moves(self, task_service):
        task = await create(task_service)

        response = await task_service.move_task(task.id, TaskStatus.PARKED)

        assert response.counts.unrated_count == 0
        assert response.counts.parked_count == 1

    @pytest.mark.asyncio
    async def test_subtask_cannot_move(self, task_service):
        parent = await create(task_service, "Parent")
        sub = (await task_service.create_subtask(parent.id, "Child")).subtask

        with pytest.raises(TaskValidationError):
            await task_service.move_task(sub.id, TaskStatus.PARKED)


# ─────────────────────────────────────────────────────────────────────────────
# Delete / Undo / Duplicate / Brain Dump
# ─────────────────────────────────────────────────────────────────────────────


class TestDeleteAndRestore:
    """Delete snapshots and undo."""

    @pytest.mark.asyncio
    async def test_delete_returns_snapshot(self, task_service):
        task = await create_rated(task_service, "Doomed")
        await task_service.create_subtask(task.id, "Step 1")

        response = await task_service.delete_task(task.id)

        assert response.task_data.title == "Doomed"
        assert response.task_data.status == TaskStatus.RATED
        assert [s.title for s in response.task_data.subtasks] == ["Step 1"]
        assert response.counts.total == 0
        with pytest.raises(TaskNotFoundError):
            await task_service.get_task(task.id)

    @pytest.mark.asyncio
    async def test_undo_delete_restores_task_and_subtasks(self, task_service):
        task = await create_rated(task_service, "Doomed")
        await task_service.create_subtask(task.id, "Step 1")
        await task_service.create_subtask(task.id, "Step 2")
        snapshot = (await task_service.delete_task(task.id)).task_data

        restored = (await task_service.undo_delete(snapshot)).task

        assert restored.title == "Doomed"
        assert restored.score == 6.6
        assert [s.title for s in restored.subtasks] == ["Step 1", "Step 2"]

    @pytest.mark.asyncio
    async def test_undo_delete_needs_data(self, task_service):
        with pytest.raises(TaskValidationError) as exc_info:
            await task_service.undo_delete(None)

        assert error_fields(exc_info) == ["task_data"]

    @pytest.mark.asyncio
    async def test_delete_missing(self, task_service):
        with pytest.raises(TaskNotFoundError):
            await task_service.delete_task(12345)


class TestDuplicate:
    @pytest.mark.asyncio
    async def test_copy_suffix_and_fields(self, task_service):
        task = await create_rated(task_service, "Report")

        copy = (await task_service.duplicate_task(task.id)).task

        assert copy.id != task.id
        assert copy.title == "Report (Copy)"
        assert copy.status == TaskStatus.RATED
        assert copy.score == 6.6


class TestBrainDump:
    """One task per non-blank line."""

    @pytest.mark.asyncio
    async def test_creates_task_per_line(self, task_service):
        response = await task_service.brain_dump("Email Sam\n\n  Book dentist  \nFile taxes\n")

        assert response.success is True
        assert response.created_count == 3
        assert [t.title for t in response.tasks] == ["Email Sam", "Book dentist", "File taxes"]
        assert all(t.status == TaskStatus.UNRATED for t in response.tasks)
        assert all((t.cognitive_density, t.estimated_hours) == (0, 0) for t in response.tasks)
        assert response.message == "Successfully created 3 tasks."
        assert response.counts.unrated_count == 3

    @pytest.mark.asyncio
    async def test_single_line_message(self, task_service):
        response = await task_service.brain_dump("Only one")

        assert response.message == "Successfully created 1 task."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [None, "", "  \n \n"])
    async def test_blank_text_rejected(self, task_service, text):
        with pytest.raises(TaskValidationError) as exc_info:
            await task_service.brain_dump(text)

        assert error_fields(exc_info) == ["brain_dump_text"]


# ─────────────────────────────────────────────────────────────────────────────
# Subtasks
# ─────────────────────────────────────────────────────────────────────────────


class TestSubtasks:
    """Single-level nesting."""

    @pytest.mark.asyncio
    async def test_positions_append(self, task_service):
        parent = await create(task_service, "Parent")

        first = (await task_service.create_subtask(parent.id, "First")).subtask
        second = (await task_service.create_subtask(parent.id, "Second")).subtask

        assert (first.position, second.position) == (0, 1)
        reloaded = await task_service.get_task(parent.id)
        assert [s.title for s in reloaded.subtasks] == ["First", "Second"]

    @pytest.mark.asyncio
    async def test_subtasks_not_counted_or_listed(self, task_service):
        parent = await create(task_service, "Parent")
        await task_service.create_subtask(parent.id, "Child")

        dashboard = await task_service.list_dashboard()

        assert [t.title for t in dashboard.tasks] == ["Parent"]
        assert dashboard.counts.unrated_count == 1
        assert dashboard.total_tasks == 1

    @pytest.mark.asyncio
    async def test_no_grandchildren(self, task_service):
        parent = await create(task_service, "Parent")
        child = (await task_service.create_subtask(parent.id, "Child")).subtask

        with pytest.raises(TaskValidationError) as exc_info:
            await task_service.create_subtask(child.id, "Grandchild")

        assert error_fields(exc_info) == ["parent_task_id"]

    @pytest.mark.asyncio
    async def test_blank_title(self, task_service):
        parent = await create(task_service, "Parent")

        with pytest.raises(TaskValidationError):
            await task_service.create_subtask(parent.id, " ")

    @pytest.mark.asyncio
    async def test_missing_parent(self, task_service):
        with pytest.raises(TaskNotFoundError):
            await task_service.create_subtask(999, "Orphan")

    @pytest.mark.asyncio
    async def test_toggle(self, task_service):
        parent = await create(task_service, "Parent")
        sub = (await task_service.create_subtask(parent.id, "Child")).subtask

        done = await task_service.toggle_subtask(sub.id)
        assert done.status == TaskStatus.COMPLETED

        reopened = await task_service.toggle_subtask(sub.id)
        assert reopened.status == TaskStatus.UNRATED
        assert reopened.subtask.status == TaskStatus.UNRATED

    @pytest.mark.asyncio
    async def test_toggle_main_task_rejected(self, task_service):
        task = await create(task_service)

        with pytest.raises(TaskValidationError):
            await task_service.toggle_subtask(task.id)

    @pytest.mark.asyncio
    async def test_toggle_missing(self, task_service):
        with pytest.raises(TaskNotFoundError, match="Subtask 77 not found"):
            await task_service.toggle_subtask(77)

    @pytest.mark.asyncio
    async def test_self_parent_rejected(self, task_service):
        task = await create(task_service)

        with pytest.raises(TaskValidationError) as exc_info:
            await task_service.update_task(task.id, TaskUpdate(parent_task_id=task.id))

        assert "itself" in exc_info.value.errors[0].message

    @pytest.mark.asyncio
    async def test_parent_with_subtasks_cannot_nest(self, task_service):
        a = await create(task_service, "A")
        b = await create(task_service, "B")
        await task_service.create_subtask(a.id, "A1")

        with pytest.raises(TaskValidationError) as exc_info:
            await task_service.update_task(a.id, TaskUpdate(parent_task_id=b.id))

        assert error_fields(exc_info) == ["parent_task_id"]

    @pytest.mark.asyncio
    async def test_cycle_rejected(self, task_service):
        a = await create(task_service, "A")
        b = (await task_service.create_subtask(a.id, "B")).subtask

        with pytest.raises(TaskValidationError) as exc_info:
            await task_service.update_task(a.id, TaskUpdate(parent_task_id=b.id))

        messages = [error.message for error in exc_info.value.errors]
        assert "would create a circular reference" in messages

    @pytest.mark.asyncio
    async def test_convert_to_main_task(self, task_service):
        parent = await create(task_service, "Parent")
        sub = (await task_service.create_subtask(parent.id, "Child")).subtask

        response = await task_service.convert_to_main_task(sub.id, TaskStatus.PARKED)

        assert response.task.parent_task_id is None
        assert response.task.status == TaskStatus.PARKED
        assert response.task.score is None
        assert response.counts.parked_count == 1
        assert (await task_service.get_task(parent.id)).subtasks == []

    @pytest.mark.asyncio
    async def test_convert_main_task_rejected(self, task_service):
        task = await create(task_service)

        with pytest.raises(TaskValidationError):
            await task_service.convert_to_main_task(task.id)


# ─────────────────────────────────────────────────────────────────────────────
# Dashboard
# ─────────────────────────────────────────────────────────────────────────────


class TestDashboard:
    @pytest.mark.asyncio
    async def test_sections_and_counts(self, task_service):
        low = await create(task_service, "Low", energy=1, simplicity=1, impact=1)
        high = await create(task_service, "High", energy=9, simplicity=9, impact=9)
        parked = await create(task_service, "Later")
        await task_service.move_task(parked.id, TaskStatus.PARKED)

        dashboard = await task_service.list_dashboard()

        assert [t.id for t in dashboard.sections[TaskStatus.RATED]] == [high.id, low.id]
        assert [t.id for t in dashboard.sections[TaskStatus.PARKED]] == [parked.id]
        assert dashboard.counts.rated_count == 2
        assert dashboard.total_tasks == 3
