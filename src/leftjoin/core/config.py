"""Configuration management.

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_DIALECTS = ("sqlite", "postgresql", "mysql", "mssql", "oracle")


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden via environment variables.
    Prefix: LEFTJOIN_
    """

    model_config = SettingsConfigDict(
        env_prefix="LEFTJOIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database (SQLAlchemy)
    database_url: str = Field(
        default="sqlite:///:memory:",
        description="SQLAlchemy database URL used by ConnectionManager",
    )
    echo_sql: bool = Field(
        default=False,
        description="Echo every statement SQLAlchemy emits",
    )

    # Rendering
    default_dialect: str = Field(
        default="sqlite",
        description="Dialect used by render_sql when none is given",
    )

    # Eager loading
    preload_batch_size: int = Field(
        default=500,
        gt=0,
        description="Maximum number of keys per preload IN (...) query",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")  # 'json' or 'console'

    @field_validator("default_dialect")
    @classmethod
    def _check_dialect(cls, value: str) -> str:
        if value not in SUPPORTED_DIALECTS:
            raise ValueError(f"default_dialect must be one of {', '.join(SUPPORTED_DIALECTS)}")
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
