"""
Configuration and settings for the record service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from megumi.credentials import DEFAULT_ITERATIONS, MIN_ITERATIONS


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Durable backend (any SQLAlchemy URL; Postgres expected)
    database_url: str = Field(
        default="postgresql+psycopg://localhost:5432/megumi"
    )
    database_connect_timeout: float = Field(default=5.0, gt=0)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Password hashing
    password_iterations: int = Field(default=DEFAULT_ITERATIONS, ge=MIN_ITERATIONS)

    # HTTP shell
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    static_dir: Optional[str] = Field(default=None)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
