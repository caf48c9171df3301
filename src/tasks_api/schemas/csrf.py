"""CSRF token schemas."""
from __future__ import annotations

from pydantic import BaseModel, Field


class CsrfTokenResponse(BaseModel):
    """Freshly issued single-use token."""

    token: str = Field(..., description="64-character hex token for the X-CSRF-Token header.")


class ErrorResponse(BaseModel):
    """Error body shared by every failing endpoint."""

    code: str
    message: str
    details: object | None = None
