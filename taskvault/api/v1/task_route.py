"""
Task endpoints.

Every route resolves the caller through ``get_current_user_id`` and only
ever touches that user's tasks.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskvault.db.session import get_db
from taskvault.dependencies.auth import get_current_user_id
from taskvault.models.task import TaskPriority, TaskStatus
from taskvault.schemas.task import (
    MessageEnvelope,
    TaskCreate,
    TaskEnvelope,
    TaskListEnvelope,
    TaskResponse,
    TaskUpdate,
)
from taskvault.services.task_service import TaskService


logger = logging.getLogger(__name__)

tasks_router = APIRouter()


def get_task_service(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TaskService:
    return TaskService(user_id, db)


@tasks_router.post("", response_model=TaskEnvelope, status_code=status.HTTP_201_CREATED)
async def create_task(task_data: TaskCreate, service: TaskService = Depends(get_task_service)):
    """Create a task for the authenticated user."""
    task = await service.create_task(task_data)
    return TaskEnvelope(message="Task created successfully", data=TaskResponse.model_validate(task))


@tasks_router.get("", response_model=TaskListEnvelope)
async def list_tasks(
    priority: Optional[TaskPriority] = None,
    status: Optional[TaskStatus] = None,
    service: TaskService = Depends(get_task_service),
):
    """
    List the authenticated user's tasks.

    Args:
        priority: Optional priority filter (low, medium, high).
        status: Optional status filter (pending, completed).
    """
    tasks = await service.list_tasks(priority=priority, status=status)
    return TaskListEnvelope(
        message="Tasks retrieved successfully",
        data=[TaskResponse.model_validate(task) for task in tasks],
    )


@tasks_router.get("/{task_id}", response_model=TaskEnvelope)
async def get_task(task_id: int, service: TaskService = Depends(get_task_service)):
    task = await service.get_task(task_id)
    return TaskEnvelope(message="Task retrieved successfully", data=TaskResponse.model_validate(task))


@tasks_router.put("/{task_id}", response_model=TaskEnvelope)
async def update_task(task_id: int, changes: TaskUpdate, service: TaskService = Depends(get_task_service)):
    """Apply a partial update; omitted fields keep their values."""
    task = await service.update_task(task_id, changes)
    return TaskEnvelope(message="Task updated successfully", data=TaskResponse.model_validate(task))


@tasks_router.delete("/{task_id}", response_model=MessageEnvelope)
async def delete_task(task_id: int, service: TaskService = Depends(get_task_service)):
    await service.delete_task(task_id)
    return MessageEnvelope(message="Task deleted successfully")
