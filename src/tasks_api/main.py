# src/tasks_api/main.py
"""Main entry point for the Tasks API application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from tasks_api.api.v1 import csrf_router, pokemon_router, tasks_router
from tasks_api.core.errors import register_exception_handlers
from tasks_api.core.logging import configure_logging
from tasks_api.core.settings import Settings, settings
from tasks_api.db.session import build_engine, build_session_factory, create_tables
from tasks_api.db.session import engine as default_engine
from tasks_api.db.time import Clock, now_ms
from tasks_api.middleware import (
    CSRFMiddleware,
    RateLimitMiddleware,
    ReferrerCheckMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from tasks_api.services.csrf import CSRF_TOKEN_HEADER, TokenIssuer, TokenValidator, load_csrf_config
from tasks_api.services.csrf_store import TokenStore
from tasks_api.services.csrf_sweeper import ExpirySweeper
from tasks_api.services.pokemon import PokemonClient, load_pokeapi_config
from tasks_api.services.rate_limit import RateLimiter
from tasks_api.services.task_service import TaskService

logger = logging.getLogger(__name__)

# Origin served by the bundled static client during development.
DEV_CLIENT_ORIGIN = "http://localhost:5500"
CORS_ALLOWED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
CORS_ALLOWED_HEADERS = [
    "Content-Type",
    "Authorization",
    "X-Requested-With",
    "Accept",
    CSRF_TOKEN_HEADER,
]
CORS_MAX_AGE_SECONDS = 86_400


def create_app(
    app_settings: Settings | None = None,
    *,
    engine: Engine | None = None,
    clock: Clock = now_ms,
    pokemon_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the application with its services and middleware stack."""
    app_settings = app_settings or settings
    if engine is None:
        engine = (
            default_engine
            if app_settings is settings
            else build_engine(app_settings.database_url, echo=app_settings.sql_debug)
        )
    configure_logging(app_settings)

    csrf_config = load_csrf_config(app_settings)
    token_store = TokenStore(build_session_factory(engine))
    issuer = TokenIssuer(token_store, csrf_config, clock)
    validator = TokenValidator(token_store, csrf_config, clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        create_tables(engine)
        if not csrf_config.bind_client_address:
            logger.warning(
                "CSRF_BIND_CLIENT_ADDRESS is disabled: tokens are accepted from any client address"
            )
        await app.state.csrf_sweeper.start()
        logger.info(
            "%s %s started in %s mode",
            app_settings.app_name,
            app_settings.app_version,
            app_settings.environment,
        )
        try:
            yield
        finally:
            await app.state.csrf_sweeper.stop()
            await app.state.pokemon_client.close()

    app = FastAPI(
        title=app_settings.app_name,
        description="A REST API with one-time CSRF token protection",
        version=app_settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.engine = engine
    app.state.token_store = token_store
    app.state.csrf_issuer = issuer
    app.state.csrf_validator = validator
    app.state.csrf_sweeper = ExpirySweeper(token_store, csrf_config, clock)
    app.state.rate_limiter = RateLimiter(
        app_settings.rate_limit_max, app_settings.rate_limit_window_seconds
    )
    app.state.task_service = TaskService()
    app.state.pokemon_client = PokemonClient(
        load_pokeapi_config(app_settings), transport=pokemon_transport
    )

    register_exception_handlers(app)

    # Added innermost first: CSRF runs last, request logging wraps everything.
    app.add_middleware(
        CSRFMiddleware,
        validator=validator,
        trust_forwarded_for=app_settings.trust_forwarded_for,
    )
    app.add_middleware(
        ReferrerCheckMiddleware,
        allowed_origins=app_settings.allowed_origins,
        enabled=app_settings.is_production,
    )
    app.add_middleware(
        RateLimitMiddleware,
        limiter=app.state.rate_limiter,
        trust_forwarded_for=app_settings.trust_forwarded_for,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted({DEV_CLIENT_ORIGIN, *app_settings.allowed_origins}),
        allow_methods=CORS_ALLOWED_METHODS,
        allow_headers=CORS_ALLOWED_HEADERS,
        max_age=CORS_MAX_AGE_SECONDS,
    )
    app.add_middleware(SecurityHeadersMiddleware, hsts=app_settings.is_production)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(csrf_router)
    app.include_router(tasks_router, prefix=app_settings.api_prefix)
    app.include_router(pokemon_router, prefix=app_settings.api_prefix)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint to verify the service is running."""
        return {"status": "ok"}

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic information about the API."""
        return {
            "name": app_settings.app_name,
            "version": app_settings.app_version,
            "description": "Tasks API with one-time CSRF tokens",
            "docs": "/docs",
            "csrf": "/csrf",
        }

    return app


def run() -> None:
    """Serve the application with uvicorn using configured host and port."""
    import uvicorn

    uvicorn.run(
        "tasks_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
    )


app = create_app()

if __name__ == "__main__":
    run()
