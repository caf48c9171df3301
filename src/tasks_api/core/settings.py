"""Application settings and configuration.

This module defines all configuration options for the Tasks API.
Settings are loaded from environment variables with sensible defaults.
"""

import secrets
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "production", "test"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or a `.env` file.
    """

    # Application metadata
    app_name: str = Field(default="Tasks API", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    environment: Environment = Field(default="development", alias="APP_ENV")
    api_version: str = Field(default="v1", alias="API_VERSION")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info", alias="LOG_LEVEL"
    )

    # Token store
    database_url: str = Field(default="sqlite:///./csrf_tokens.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # CSRF token lifecycle
    csrf_secret: str = Field(
        default_factory=lambda: secrets.token_hex(32),
        min_length=32,
        alias="CSRF_SECRET",
    )
    csrf_token_ttl_seconds: int = Field(default=86_400, gt=0, alias="CSRF_TOKEN_TTL_SECONDS")
    csrf_max_tokens_per_address: int = Field(
        default=10, gt=0, alias="CSRF_MAX_TOKENS_PER_ADDRESS"
    )
    csrf_sweep_interval_seconds: float = Field(
        default=3600.0, gt=0, alias="CSRF_SWEEP_INTERVAL_SECONDS"
    )
    # Disable only where client addresses are unreliable (local proxies, dev servers).
    csrf_bind_client_address: bool = Field(default=True, alias="CSRF_BIND_CLIENT_ADDRESS")
    trust_forwarded_for: bool = Field(default=True, alias="TRUST_FORWARDED_FOR")

    # Browser-facing protections
    allowed_origins_raw: str = Field(default="http://localhost:5500", alias="ALLOWED_ORIGINS")
    rate_limit_max: int = Field(default=100, gt=0, alias="RATE_LIMIT_MAX")
    rate_limit_window_seconds: float = Field(default=60.0, gt=0, alias="RATE_LIMIT_WINDOW_SECONDS")

    # Upstream Pokemon API
    pokeapi_base_url: str = Field(default="https://pokeapi.co/api/v2", alias="POKEAPI_BASE_URL")
    pokeapi_timeout_seconds: float = Field(default=10.0, gt=0, alias="POKEAPI_TIMEOUT_SECONDS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def allowed_origins(self) -> list[str]:
        """Return ALLOWED_ORIGINS split on commas with blanks removed."""
        return [origin.strip() for origin in self.allowed_origins_raw.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def api_prefix(self) -> str:
        return f"/api/{self.api_version}"


settings = Settings()
