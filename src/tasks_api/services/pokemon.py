"""Read-only client for the public Pokemon API (PokeAPI).

The proxy forwards lookups upstream and reduces the payload to the fields
described in `tasks_api.schemas.pokemon`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from fastapi import status
from pydantic import ValidationError

from tasks_api.core.errors import ApiError
from tasks_api.core.settings import Settings
from tasks_api.schemas.pokemon import PokemonListResponse, PokemonResponse

logger = logging.getLogger(__name__)

HTTP_OK = 200


class PokemonNotFoundError(ApiError):
    code = "POKEMON_NOT_FOUND"
    message = "Pokemon not found"
    status_code = status.HTTP_404_NOT_FOUND


class PokemonFetchError(ApiError):
    code = "POKEMON_FETCH_ERROR"
    message = "Failed to fetch Pokemon data"


class PokemonListError(ApiError):
    code = "POKEMON_LIST_ERROR"
    message = "Failed to fetch Pokemon list"


@dataclass(frozen=True)
class PokeApiConfig:
    """Immutable configuration for upstream calls."""

    base_url: str
    timeout_seconds: float


def load_pokeapi_config(settings: Settings) -> PokeApiConfig:
    return PokeApiConfig(
        base_url=settings.pokeapi_base_url.rstrip("/"),
        timeout_seconds=float(settings.pokeapi_timeout_seconds),
    )


class PokemonClient:
    """HTTP client wrapper for PokeAPI lookups."""

    def __init__(
        self,
        config: PokeApiConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_pokemon(self, id_or_name: str) -> PokemonResponse:
        """Fetch a single Pokemon by numeric id or name."""
        client = await self._ensure_client()
        try:
            response = await client.get(f"/pokemon/{id_or_name}")
        except httpx.HTTPError as exc:
            logger.warning("PokeAPI request for %s failed: %s", id_or_name, exc)
            raise PokemonFetchError() from exc

        if response.status_code != HTTP_OK:
            logger.debug("PokeAPI returned %s for %s", response.status_code, id_or_name)
            raise PokemonNotFoundError()

        try:
            return PokemonResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("PokeAPI returned an unexpected payload for %s: %s", id_or_name, exc)
            raise PokemonFetchError() from exc

    async def list_pokemon(self, limit: int, offset: int) -> PokemonListResponse:
        """Fetch one page of the Pokemon index."""
        client = await self._ensure_client()
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        try:
            response = await client.get("/pokemon", params=params)
            if response.status_code != HTTP_OK:
                raise PokemonListError(details={"upstream_status": response.status_code})
            return PokemonListResponse.model_validate(response.json())
        except PokemonListError:
            raise
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.warning("PokeAPI list request failed: %s", exc)
            raise PokemonListError() from exc
