from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from taskvault.models.task import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    """Schema for creating a new task."""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.LOW
    status: TaskStatus = TaskStatus.PENDING


class TaskUpdate(BaseModel):
    """Schema for a partial task update. Omitted fields are left alone."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None


class TaskResponse(BaseModel):
    """Schema for task response to client."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    priority: TaskPriority
    status: TaskStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TaskEnvelope(BaseModel):
    success: bool = True
    message: str
    data: TaskResponse


class TaskListEnvelope(BaseModel):
    success: bool = True
    message: str
    data: List[TaskResponse]


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str
