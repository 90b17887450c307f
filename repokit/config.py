"""
Centralized configuration management powered by pydantic-settings.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Supported runtime environments."""

    LOCAL = "local"
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class SortDirection(str, Enum):
    """Ordering applied to a single sort clause."""

    ASCENDING = "ascending"
    DESCENDING = "descending"

    @classmethod
    def from_flag(cls, ascending: bool) -> SortDirection:
        return cls.ASCENDING if ascending else cls.DESCENDING

    @classmethod
    def from_token(cls, token: str) -> SortDirection | None:
        """Return the direction named by ``token`` or None if it is not a direction."""

        return _DIRECTION_TOKENS.get(token.lower())


_DIRECTION_TOKENS = {
    "asc": SortDirection.ASCENDING,
    "ascending": SortDirection.ASCENDING,
    "desc": SortDirection.DESCENDING,
    "descending": SortDirection.DESCENDING,
}


class AppSettings(BaseModel):
    """Application metadata."""

    name: str = Field(default="repokit", description="Name of the application logger.")
    environment: Environment = Field(
        default=Environment.LOCAL, description="Deployment environment identifier."
    )


class DatabaseSettings(BaseModel):
    """Database connection and session behavior."""

    url: str = Field(
        default="sqlite+aiosqlite:///./repokit.db",
        description="SQLAlchemy-compatible async database URL.",
    )
    echo: bool = Field(default=False, description="Enable SQL echo for debugging.")
    expire_on_commit: bool = Field(
        default=False, description="Expire loaded instances after each commit."
    )
    autoflush: bool = Field(default=False, description="Flush pending changes before queries.")


class LoggingSettings(BaseModel):
    """Logging configuration shared across the project."""

    level: str = Field(default="INFO", description="Root logging level.")
    format: str = Field(
        default="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        description="Standard logging format string.",
    )
    directory: Path = Field(default=Path("logs"), description="Directory for log files.")
    file_name: str = Field(default="repokit.log", description="Primary log file name.")
    max_bytes: PositiveInt = Field(
        default=5 * 1024 * 1024, description="Maximum file size before rotating."
    )
    backup_count: PositiveInt = Field(default=5, description="Number of rotated log files to keep.")


class PagingSettings(BaseModel):
    """Defaults applied when a page request leaves them out."""

    default_page_size: PositiveInt = Field(
        default=20, description="Page size used when the caller passes none."
    )
    default_direction: SortDirection = Field(
        default=SortDirection.ASCENDING,
        description="Sort direction applied to clauses without a token.",
    )

    @field_validator("default_direction", mode="before")
    @classmethod
    def normalize_direction(cls, v: object) -> object:
        """Accept asc/desc shorthands and any casing."""
        if isinstance(v, str) and not isinstance(v, SortDirection):
            direction = SortDirection.from_token(v.strip())
            if direction is None:
                raise ValueError(f"Unsupported sort direction: {v}")
            return direction
        return v


class Settings(BaseSettings):
    """Top-level settings loaded from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="REPOKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app: AppSettings = AppSettings()
    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()
    paging: PagingSettings = PagingSettings()


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance loaded from the current environment."""

    return Settings()


__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "Environment",
    "LoggingSettings",
    "PagingSettings",
    "Settings",
    "get_settings",
]
