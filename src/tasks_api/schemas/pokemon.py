# src/tasks_api/schemas/pokemon.py
"""Schemas for the subset of PokeAPI data the proxy returns."""

from pydantic import BaseModel


class PokemonTypeName(BaseModel):
    name: str


class PokemonType(BaseModel):
    type: PokemonTypeName


class PokemonSprites(BaseModel):
    front_default: str | None = None


class PokemonResponse(BaseModel):
    """Pokemon details."""

    id: int
    name: str
    height: int
    weight: int
    types: list[PokemonType]
    sprites: PokemonSprites


class PokemonListItem(BaseModel):
    name: str
    url: str


class PokemonListResponse(BaseModel):
    """One page of the Pokemon index."""

    count: int
    next: str | None
    previous: str | None
    results: list[PokemonListItem]
