"""Pydantic schemas for request and response payloads."""

from .csrf import CsrfTokenResponse, ErrorResponse
from .pokemon import PokemonListResponse, PokemonResponse
from .task import TaskCreate, TaskResponse, TaskUpdate

__all__ = [
    "CsrfTokenResponse",
    "ErrorResponse",
    "PokemonListResponse",
    "PokemonResponse",
    "TaskCreate",
    "TaskResponse",
    "TaskUpdate",
]
