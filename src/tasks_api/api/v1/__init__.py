# src/tasks_api/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import csrf_router, pokemon_router, tasks_router

__all__ = ["csrf_router", "pokemon_router", "tasks_router"]
