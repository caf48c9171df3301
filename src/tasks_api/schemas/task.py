# src/tasks_api/schemas/task.py
"""Task-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

TITLE_MAX_LENGTH = 100


class TaskCreate(BaseModel):
    """Schema for creating a new task."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)


class TaskUpdate(BaseModel):
    """Schema for partially updating a task."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    completed: bool | None = None


class TaskResponse(BaseModel):
    """Schema for task information returned by the API."""

    id: UUID
    title: str
    completed: bool = False
    created_at: datetime
    updated_at: datetime
