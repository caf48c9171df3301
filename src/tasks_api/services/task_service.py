"""In-memory task storage."""

from __future__ import annotations

import logging
from threading import Lock
from uuid import UUID, uuid4

from tasks_api.core.errors import NotFoundError
from tasks_api.db.time import utcnow
from tasks_api.schemas.task import TaskCreate, TaskResponse, TaskUpdate

logger = logging.getLogger(__name__)


class TaskNotFoundError(NotFoundError):
    code = "TASK_NOT_FOUND"
    message = "Task not found"


class TaskService:
    """Process-local task list; contents are lost on restart."""

    def __init__(self) -> None:
        self._tasks: dict[UUID, TaskResponse] = {}
        self._lock = Lock()

    def list_tasks(self) -> list[TaskResponse]:
        with self._lock:
            tasks = list(self._tasks.values())
        logger.debug("Returning %d tasks", len(tasks))
        return tasks

    def get_task(self, task_id: UUID) -> TaskResponse:
        with self._lock:
            task = self._tasks.get(task_id)
        if task is None:
            logger.warning("Task %s not found", task_id)
            raise TaskNotFoundError()
        return task

    def create_task(self, payload: TaskCreate) -> TaskResponse:
        now = utcnow()
        task = TaskResponse(
            id=uuid4(),
            title=payload.title.strip(),
            completed=False,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._tasks[task.id] = task
        logger.info("Task %s created", task.id)
        return task

    def update_task(self, task_id: UUID, payload: TaskUpdate) -> TaskResponse:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                logger.warning("Task %s not found for update", task_id)
                raise TaskNotFoundError()
            updated = task.model_copy(
                update={
                    "title": payload.title.strip() if payload.title is not None else task.title,
                    "completed": (
                        payload.completed if payload.completed is not None else task.completed
                    ),
                    "updated_at": utcnow(),
                }
            )
            self._tasks[task_id] = updated
        logger.info("Task %s updated", task_id)
        return updated

    def delete_task(self, task_id: UUID) -> None:
        with self._lock:
            if self._tasks.pop(task_id, None) is None:
                logger.warning("Task %s not found for deletion", task_id)
                raise TaskNotFoundError()
        logger.info("Task %s deleted", task_id)
