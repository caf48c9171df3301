"""Shared API dependencies resolving services from application state."""

from typing import Annotated

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader

from tasks_api.core.client import resolve_client_address
from tasks_api.core.settings import Settings
from tasks_api.services.csrf import CSRF_TOKEN_HEADER, TokenIssuer
from tasks_api.services.pokemon import PokemonClient
from tasks_api.services.task_service import TaskService

# Documents the header in OpenAPI; enforcement happens in CSRFMiddleware.
csrf_header_scheme = APIKeyHeader(
    name=CSRF_TOKEN_HEADER,
    scheme_name="csrf",
    description="CSRF token required for mutation operations",
    auto_error=False,
)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.csrf_issuer


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


def get_pokemon_client(request: Request) -> PokemonClient:
    return request.app.state.pokemon_client


def get_client_address(request: Request, settings: Annotated[Settings, Depends(get_settings)]) -> str:
    """Resolve the caller's address the same way the middleware stack does."""
    return resolve_client_address(request, trust_forwarded_for=settings.trust_forwarded_for)


def csrf_protected(token: Annotated[str | None, Security(csrf_header_scheme)]) -> None:
    """Mark a route as requiring the X-CSRF-Token header."""


TokenIssuerDep = Annotated[TokenIssuer, Depends(get_token_issuer)]
TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
PokemonClientDep = Annotated[PokemonClient, Depends(get_pokemon_client)]
ClientAddressDep = Annotated[str, Depends(get_client_address)]
CsrfProtected = Security(csrf_protected)
