"""SQLAlchemy repository for tasks"""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskdash.db.models.task import Task as TaskORM
from taskdash.features.tasks.domain import StatusCounts, TaskStatus

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for task operations using SQLAlchemy"""

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: SQLAlchemy async database session
        """
        self.db = db

    async def get(self, task_id: int, refresh: bool = False) -> Optional[TaskORM]:
        """
        Get a task (with its subtasks) by ID.

        Args:
            task_id: The task ID
            refresh: Re-read the row even if it is already in the session,
                picking up server-side defaults like updated_at
        """
        stmt = select(TaskORM).where(TaskORM.id == task_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_main_tasks(self) -> List[TaskORM]:
        """All top-level tasks, newest first"""
        stmt = (
            select(TaskORM)
            .where(TaskORM.parent_task_id.is_(None))
            .order_by(TaskORM.created_at.desc(), TaskORM.id.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_by_status(self) -> StatusCounts:
        """Count top-level tasks per dashboard bucket"""
        stmt = (
            select(TaskORM.status, func.count(TaskORM.id))
            .where(TaskORM.parent_task_id.is_(None))
            .group_by(TaskORM.status)
        )
        result = await self.db.execute(stmt)
        rows = {status: count for status, count in result.all()}

        return StatusCounts(**{
            f"{status.value}_count": rows.get(status.value, 0)
            for status in TaskStatus
        })

    async def get_parent_id(self, task_id: int) -> Optional[int]:
        stmt = select(TaskORM.parent_task_id).where(TaskORM.id == task_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, task_id: int) -> bool:
        stmt = select(TaskORM.id).where(TaskORM.id == task_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def ancestor_chain(self, task_id: int) -> Optional[List[int]]:
        """
        IDs from task_id up to its top-level ancestor, task_id first.

        Returns None if task_id does not exist. Stops early if the stored
        data already contains a loop.
        """
        if not await self.exists(task_id):
            return None

        chain = [task_id]
        parent_id = await self.get_parent_id(task_id)
        while parent_id is not None and parent_id not in chain:
            chain.append(parent_id)
            parent_id = await self.get_parent_id(parent_id)

        if parent_id is not None:
            logger.warning(f"Task {task_id} has a circular parent chain: {chain}")
        return chain

    async def next_subtask_position(self, parent_task_id: int) -> int:
        stmt = select(func.max(TaskORM.position)).where(TaskORM.parent_task_id == parent_task_id)
        result = await self.db.execute(stmt)
        max_position = result.scalar_one_or_none()
        return 0 if max_position is None else max_position + 1

    async def add(self, task: TaskORM) -> TaskORM:
        """Stage a new task and flush it so it gets an ID"""
        self.db.add(task)
        await self.db.flush()
        return task

    async def delete(self, task: TaskORM) -> None:
        """Delete a task; its subtasks go with it"""
        await self.db.delete(task)
        await self.db.flush()

    async def commit(self) -> None:
        await self.db.commit()
