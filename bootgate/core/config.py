"""Gate settings with Pydantic validation and environment loading."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Boot gate settings loaded from ``BOOTGATE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BOOTGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    debug: bool = Field(default=False, description="Include source locations in logs")
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default="text", description="Log format: text or json")

    # Repositories
    pool_size: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Connections per repository pool (schema work only)",
    )
    repositories_attribute: str = Field(
        default="REPOSITORIES",
        description="Module attribute listing the application's repositories",
    )

    # Migrations
    priv_dirname: str = Field(
        default="priv", description="Private data directory inside the app package"
    )
    migrations_dirname: str = Field(
        default="migrations", description="Directory of migration units per repository"
    )
    migration_lock_id: int = Field(
        default=1, description="PostgreSQL advisory lock key held while migrating"
    )

    # Process control
    halt_on_migration: bool = Field(
        default=True, description="Terminate the process after applying migrations"
    )
    halt_exit_code: int = Field(default=0, ge=0, le=255)
    halt_graceful: bool = Field(
        default=False,
        description="Raise SystemExit instead of terminating immediately",
    )

    # Services started before any repository, in order
    services: List[str] = Field(
        default_factory=lambda: ["hashlib", "ssl", "sqlalchemy", "alembic"]
    )

    @field_validator("services", mode="before")
    @classmethod
    def parse_services(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                return json.loads(v)
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {valid}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        lower = v.lower()
        if lower not in {"text", "json"}:
            raise ValueError("log_format must be 'text' or 'json'")
        return lower


@lru_cache
def get_settings() -> Settings:
    """Cached settings factory."""
    return Settings()


settings = get_settings()
