"""Read-only Pokemon proxy endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path, Query

from tasks_api.api.v1.dependencies import PokemonClientDep
from tasks_api.schemas.csrf import ErrorResponse
from tasks_api.schemas.pokemon import PokemonListResponse, PokemonResponse

router = APIRouter(prefix="/pokemon", tags=["pokemon"])


@router.get("", response_model=PokemonListResponse)
async def list_pokemon(
    client: PokemonClientDep,
    limit: Annotated[int, Query(ge=1, le=100, description="Number of Pokemon to return")] = 20,
    offset: Annotated[int, Query(ge=0, description="Number of Pokemon to skip")] = 0,
) -> PokemonListResponse:
    """Return one page of the Pokemon index."""
    return await client.list_pokemon(limit=limit, offset=offset)


@router.get(
    "/{id_or_name}",
    response_model=PokemonResponse,
    responses={404: {"model": ErrorResponse, "description": "Pokemon not found"}},
)
async def get_pokemon(
    client: PokemonClientDep,
    id_or_name: Annotated[str, Path(description="Pokemon ID or name")],
) -> PokemonResponse:
    """Return details for one Pokemon."""
    return await client.get_pokemon(id_or_name.lower())
