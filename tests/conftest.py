# tests/conftest.py
from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from tasks_api.core.settings import Settings
from tasks_api.db.session import build_engine, build_session_factory, create_tables, drop_tables
from tasks_api.main import create_app
from tasks_api.services.csrf import CsrfConfig, TokenIssuer, TokenValidator, load_csrf_config
from tasks_api.services.csrf_store import TokenStore

TEST_DB_URL = "sqlite://"
TEST_SECRET = "test-secret-" + "0123456789abcdef" * 4
CLIENT_ADDRESS = "203.0.113.10"
OTHER_ADDRESS = "198.51.100.20"
START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when a test advances it."""

    def __init__(self, start_ms: int = START_MS) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


PIKACHU = {
    "id": 25,
    "name": "pikachu",
    "height": 4,
    "weight": 60,
    "base_experience": 112,
    "types": [{"slot": 1, "type": {"name": "electric", "url": "https://pokeapi.co/api/v2/type/13/"}}],
    "sprites": {"front_default": "https://example.test/25.png", "back_default": None},
}
POKEMON_PAGE = {
    "count": 1302,
    "next": "https://pokeapi.co/api/v2/pokemon?offset=2&limit=2",
    "previous": None,
    "results": [
        {"name": "bulbasaur", "url": "https://pokeapi.co/api/v2/pokemon/1/"},
        {"name": "ivysaur", "url": "https://pokeapi.co/api/v2/pokemon/2/"},
    ],
}


def pokeapi_handler(request: httpx.Request) -> httpx.Response:
    """Stand-in for the PokeAPI endpoints the proxy calls."""
    path = request.url.path
    if path == "/api/v2/pokemon":
        return httpx.Response(200, json=POKEMON_PAGE)
    if path in ("/api/v2/pokemon/25", "/api/v2/pokemon/pikachu"):
        return httpx.Response(200, content=json.dumps(PIKACHU).encode())
    if path == "/api/v2/pokemon/boom":
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(404, text="Not Found")


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "APP_ENV": "test",
        "CSRF_SECRET": TEST_SECRET,
        "DATABASE_URL": TEST_DB_URL,
        "RATE_LIMIT_MAX": 1000,
        "POKEAPI_BASE_URL": "https://pokeapi.test/api/v2",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = build_engine(TEST_DB_URL)
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def csrf_config(test_settings: Settings) -> CsrfConfig:
    return load_csrf_config(test_settings)


@pytest.fixture()
def token_store(session_factory: sessionmaker[Session]) -> TokenStore:
    return TokenStore(session_factory)


@pytest.fixture()
def issuer(token_store: TokenStore, csrf_config: CsrfConfig, clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(token_store, csrf_config, clock)


@pytest.fixture()
def validator(token_store: TokenStore, csrf_config: CsrfConfig, clock: FakeClock) -> TokenValidator:
    return TokenValidator(token_store, csrf_config, clock)


@pytest.fixture()
def app_factory(engine: Engine, clock: FakeClock) -> Callable[..., FastAPI]:
    """Build an isolated app over the test engine; keyword args override settings."""

    def _build(**overrides: Any) -> FastAPI:
        return create_app(
            make_settings(**overrides),
            engine=engine,
            clock=clock,
            pokemon_transport=httpx.MockTransport(pokeapi_handler),
        )

    return _build


@pytest.fixture()
def app(app_factory: Callable[..., FastAPI]) -> FastAPI:
    return app_factory()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        test_client.headers.update({"X-Forwarded-For": CLIENT_ADDRESS})
        yield test_client


@pytest.fixture()
def issue_token(client: TestClient) -> Callable[..., str]:
    """Fetch a fresh token over HTTP for the default (or given) client address."""

    def _issue(address: str = CLIENT_ADDRESS) -> str:
        response = client.get("/csrf", headers={"X-Forwarded-For": address})
        assert response.status_code == 200, response.text
        return response.json()["token"]

    return _issue
