"""Error types shared by the API layer and the middleware stack.

Every failure the service reports to a client is an `ApiError`. Route handlers
raise them and FastAPI's exception handlers render them; middleware renders
them directly through `error_response` because it runs outside FastAPI's
exception handling.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base exception carrying a stable error code and HTTP status."""

    code: str = "INTERNAL_SERVER_ERROR"
    message: str = "An unexpected error occurred"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any = None,
    ) -> None:
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotFoundError(ApiError):
    code = "NOT_FOUND"
    message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationFailedError(ApiError):
    code = "VALIDATION_ERROR"
    message = "Invalid request data"
    status_code = status.HTTP_400_BAD_REQUEST


class UnsupportedMediaTypeError(ApiError):
    code = "UNSUPPORTED_MEDIA_TYPE"
    message = (
        "Unsupported content type. Use application/json or application/x-www-form-urlencoded"
    )
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE


def error_response(exc: ApiError, headers: dict[str, str] | None = None) -> JSONResponse:
    """Render an `ApiError` as the service's JSON error body."""
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


def validation_details(errors: Any) -> list[dict[str, str]]:
    """Flatten pydantic error entries into `{field, message}` pairs."""
    details = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(location), "message": error.get("msg", "")})
    return details


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "Request failed: %s %s -> %s %s",
            request.method,
            request.url.path,
            exc.code,
            exc.message,
        )
    return error_response(exc)


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(ValidationFailedError(details=validation_details(exc.errors())))


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error processing %s %s", request.method, request.url.path, exc_info=exc
    )
    return error_response(ApiError())


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON error translators to an application."""
    app.add_exception_handler(ApiError, _handle_api_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_request_validation)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected)
