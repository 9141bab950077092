import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from taskvault.core.exceptions import NotFoundError, UnknownError
from taskvault.models.task import Task, TaskPriority, TaskStatus
from taskvault.schemas.task import TaskCreate, TaskUpdate


logger = logging.getLogger(__name__)


class TaskService:
    """CRUD over the tasks of one authenticated user."""

    def __init__(self, user_id: int, db: AsyncSession):
        self.user_id = user_id
        self.db = db

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to {action} for user {self.user_id}: {e}")
            raise UnknownError(f"Failed to {action}")

    async def create_task(self, task_data: TaskCreate) -> Task:
        task = Task(user_id=self.user_id, **task_data.model_dump())
        self.db.add(task)
        await self._commit("create task")
        await self.db.refresh(task)

        logger.info(f"Created task {task.id} for user {self.user_id}")
        return task

    async def list_tasks(
        self,
        priority: Optional[TaskPriority] = None,
        status: Optional[TaskStatus] = None,
    ) -> List[Task]:
        """
        List the user's tasks, newest first.

        Args:
            priority: Only return tasks with this priority.
            status: Only return tasks with this status.
        """
        query = select(Task).where(Task.user_id == self.user_id)
        if priority is not None:
            query = query.where(Task.priority == priority)
        if status is not None:
            query = query.where(Task.status == status)

        result = await self.db.execute(query.order_by(Task.id.desc()))
        return list(result.scalars().all())

    async def get_task(self, task_id: int) -> Task:
        """
        Fetch one of the user's tasks.

        Raises:
            NotFoundError: If the task does not exist or belongs to someone else.
        """
        result = await self.db.execute(
            select(Task).where(Task.id == task_id, Task.user_id == self.user_id)
        )
        task = result.scalars().first()
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def update_task(self, task_id: int, changes: TaskUpdate) -> Task:
        task = await self.get_task(task_id)
        for field, value in changes.model_dump(exclude_unset=True).items():
            if value is None and field != "description":
                continue
            setattr(task, field, value)

        await self._commit("update task")
        await self.db.refresh(task)

        logger.info(f"Updated task {task_id} for user {self.user_id}")
        return task

    async def delete_task(self, task_id: int) -> None:
        task = await self.get_task(task_id)
        await self.db.delete(task)
        await self._commit("delete task")
        logger.info(f"Deleted task {task_id} for user {self.user_id}")
