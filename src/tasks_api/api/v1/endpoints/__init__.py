# src/tasks_api/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .csrf import router as csrf_router
from .pokemon import router as pokemon_router
from .tasks import router as tasks_router

__all__ = ["csrf_router", "pokemon_router", "tasks_router"]
