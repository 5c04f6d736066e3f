"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 7032
    api_prefix: str = "/api"
    cors_origins: str = "http://localhost:5173,https://localhost:5173"

    # ==========================================================================
    # Database
    # ==========================================================================

    # Empty means the in-memory store (development and tests)
    database_url: str = ""

    # ==========================================================================
    # Authentication
    # ==========================================================================

    jwt_secret_key: str = "LegalVibes-Super-Secret-Key-For-Development-Only-Min-256-Bits-12345"
    jwt_issuer: str = "https://localhost:7032"
    jwt_audience: str = "https://localhost:5173"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 1440  # 24 hours

    password_hash_iterations: int = 100_000

    # ==========================================================================
    # Client
    # ==========================================================================

    client_api_base_url: str = "https://localhost:7032/api"
    client_timeout_seconds: float = 10.0
    client_session_file: str = "~/.legalvibes/session.json"

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def use_sql(self) -> bool:
        """Whether a relational database is configured."""
        return bool(self.database_url)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
