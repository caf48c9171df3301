"""Task CRUD endpoints."""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar
from urllib.parse import parse_qsl
from uuid import UUID

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel, ValidationError

from tasks_api.api.v1.dependencies import CsrfProtected, TaskServiceDep
from tasks_api.core.errors import (
    UnsupportedMediaTypeError,
    ValidationFailedError,
    validation_details,
)
from tasks_api.schemas.csrf import ErrorResponse
from tasks_api.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from tasks_api.services.task_service import TaskNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])

PayloadT = TypeVar("PayloadT", bound=BaseModel)

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Task not found"}}
_CSRF_REJECTED = {403: {"model": ErrorResponse, "description": "CSRF token missing or invalid"}}


def _request_body_doc(model: type[BaseModel]) -> dict[str, Any]:
    schema = model.model_json_schema()
    return {
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": schema},
                "application/x-www-form-urlencoded": {"schema": schema},
            },
        }
    }


def _coerce_form_value(value: str) -> Any:
    if value == "true":
        return True
    if value == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


async def parse_payload(request: Request, model: type[PayloadT]) -> PayloadT:
    """Parse a JSON or urlencoded form body into `model`.

    Raises:
        UnsupportedMediaTypeError: Any other content type.
        ValidationFailedError: The body cannot be parsed or fails validation.
    """
    content_type = request.headers.get("content-type", "").lower()
    raw = await request.body()

    if "application/json" in content_type:
        try:
            body = json.loads(raw or b"null")
        except ValueError as exc:
            logger.warning("Failed to parse JSON body: %s", exc)
            raise ValidationFailedError("Could not parse request body") from exc
    elif "application/x-www-form-urlencoded" in content_type:
        pairs = parse_qsl(raw.decode("utf-8", errors="replace"), keep_blank_values=True)
        body = {key: _coerce_form_value(value) for key, value in pairs}
    else:
        raise UnsupportedMediaTypeError()

    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise ValidationFailedError(details=validation_details(exc.errors())) from exc


@router.get("", response_model=list[TaskResponse])
async def list_tasks(tasks: TaskServiceDep) -> list[TaskResponse]:
    """List all tasks."""
    return tasks.list_tasks()


@router.get("/{task_id}", response_model=TaskResponse, responses=_NOT_FOUND)
async def get_task(task_id: str, tasks: TaskServiceDep) -> TaskResponse:
    """Return a single task."""
    return tasks.get_task(_parse_task_id(task_id))


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[CsrfProtected],
    responses=_CSRF_REJECTED,
    openapi_extra=_request_body_doc(TaskCreate),
)
async def create_task(request: Request, tasks: TaskServiceDep) -> TaskResponse:
    """Create a task from a JSON or form body."""
    payload = await parse_payload(request, TaskCreate)
    return tasks.create_task(payload)


@router.patch(
    "/{task_id}",
    response_model=TaskResponse,
    dependencies=[CsrfProtected],
    responses={**_NOT_FOUND, **_CSRF_REJECTED},
    openapi_extra=_request_body_doc(TaskUpdate),
)
async def update_task(task_id: str, request: Request, tasks: TaskServiceDep) -> TaskResponse:
    """Update a task's title and/or completion flag."""
    task_uuid = _parse_task_id(task_id)
    payload = await parse_payload(request, TaskUpdate)
    return tasks.update_task(task_uuid, payload)


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[CsrfProtected],
    responses={**_NOT_FOUND, **_CSRF_REJECTED},
)
async def delete_task(task_id: str, tasks: TaskServiceDep) -> Response:
    """Delete a task."""
    tasks.delete_task(_parse_task_id(task_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _parse_task_id(task_id: str) -> UUID:
    # Malformed ids can never match a stored task.
    try:
        return UUID(task_id)
    except ValueError as exc:
        raise TaskNotFoundError() from exc
