"""Application configuration using Pydantic Settings.

This module centralizes runtime configuration for the event bus server.
Values can be provided via environment variables (preferred) or fall back to
the defaults below. A ``Settings`` instance is intended to be retrieved via
``get_settings`` which caches the object for reuse across the process.

Environment variable prefix: ``EVENT_BUS_`` (e.g. ``EVENT_BUS_HOST``). The
listener port is additionally read from a plain ``PORT`` variable.
"""

from functools import lru_cache
from typing import Any, Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from event_bus_server.constants import DEFAULT_PORT


class Settings(BaseSettings):
    """Runtime settings for the event bus and its HTTP listener.

    Attributes map directly to environment variables using the ``EVENT_BUS_``
    prefix (case-insensitive). For example, ``host`` <- ``EVENT_BUS_HOST``.
    """

    # Listener settings
    host: str = Field(
        default="0.0.0.0",
        description="Host interface to bind the HTTP listener",
    )  # fmt: skip
    port: int = Field(
        default=DEFAULT_PORT,
        validation_alias=AliasChoices("event_bus_port", "port"),
        description="HTTP listener port, falls back to 8000 when missing or non-numeric",
    )
    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Application log level",
    )

    # Persistence settings
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL used by the SQL persistent store",
    )  # fmt: skip
    sql_log: bool = Field(
        default=False,
        description="Enable SQL query logging",
    )  # fmt: skip

    @field_validator("port", mode="before")
    @classmethod
    def validate_port(cls, v: Any) -> int:
        """Fall back to the default port for empty or non-numeric values."""
        try:
            return int(str(v).strip())
        except (TypeError, ValueError):
            return DEFAULT_PORT

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | None) -> str:
        """Normalize and validate log level."""
        if v is None:
            return "INFO"

        v_upper = str(v).upper()

        allowed = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR"}
        if v_upper not in allowed:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {', '.join(sorted(allowed))}")

        return v_upper

    model_config = SettingsConfigDict(
        env_prefix="EVENT_BUS_",
        case_sensitive=False,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached ``Settings`` instance.

    The first invocation reads environment variables / .env file; subsequent
    calls reuse the same object to ensure consistent config.
    """

    return Settings()


__all__ = ["Settings", "get_settings"]
