# src/tasks_api/services/__init__.py
"""Business logic services for the Tasks API."""

from .csrf import CsrfConfig, TokenIssuer, TokenValidator, load_csrf_config
from .csrf_store import TokenRecord, TokenStore
from .csrf_sweeper import ExpirySweeper
from .pokemon import PokemonClient
from .rate_limit import RateLimiter
from .task_service import TaskService

__all__ = [
    "CsrfConfig",
    "ExpirySweeper",
    "PokemonClient",
    "RateLimiter",
    "TaskService",
    "TokenIssuer",
    "TokenRecord",
    "TokenStore",
    "TokenValidator",
    "load_csrf_config",
]
