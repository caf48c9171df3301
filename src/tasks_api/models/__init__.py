# src/tasks_api/models/__init__.py
"""SQLAlchemy models for the Tasks API."""

from .csrf_token import CsrfToken

__all__ = ["CsrfToken"]
