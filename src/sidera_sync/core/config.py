"""Configuration management for the Sidera synchronization core.

This module provides centralized configuration management using
pydantic-settings, supporting environment variables, .env files, and
runtime configuration overrides.

Example:
    >>> from sidera_sync.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.sync.debounce_seconds
    1.0

Environment Variables:
    SIDERA_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    SIDERA_DATABASE_PATH: Path to the backend SQLite database
    SIDERA_LOCAL_STORE_PATH: Path to the device-local JSON store
    SIDERA_SYNC_DEBOUNCE_SECONDS: Idle window before a local edit is pushed
    SIDERA_ROOM_CODE_PREFIX: Fixed prefix of generated room codes
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sidera_sync.core.exceptions import ConfigurationError


class SyncSettings(BaseSettings):
    """Configuration for the debounced sync engine.

    Attributes:
        debounce_seconds: Idle window measured from the most recent mutation.
    """

    model_config = SettingsConfigDict(
        env_prefix="SIDERA_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debounce_seconds: float = Field(
        default=1.0,
        gt=0,
        le=30,
        description="Trailing debounce window for remote pushes",
    )


class RoomSettings(BaseSettings):
    """Configuration for room codes and host actions.

    Attributes:
        code_prefix: Fixed textual prefix of every room code.
        code_length: Number of base-36 characters after the prefix.
        max_code_attempts: Attempts at generating an unused code.
        host_label: Actor label written to the event log for host actions.
        recent_log_limit: Number of event log entries fetched on open.
    """

    model_config = SettingsConfigDict(
        env_prefix="SIDERA_ROOM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    code_prefix: str = Field(
        default="SIDERA",
        min_length=1,
        max_length=16,
        description="Room code prefix",
    )
    code_length: int = Field(
        default=4,
        ge=3,
        le=8,
        description="Random suffix length",
    )
    max_code_attempts: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Code generation attempts before giving up",
    )
    host_label: str = Field(
        default="GAME MASTER",
        min_length=1,
        description="Event log label for host actions",
    )
    recent_log_limit: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Event log entries fetched on open",
    )

    @field_validator("code_prefix", mode="after")
    @classmethod
    def validate_prefix(cls, value: str) -> str:
        """Ensure the prefix is alphanumeric and stored uppercase.

        Raises:
            ConfigurationError: If the prefix contains separators or symbols.
        """
        if not value.isalnum():
            raise ConfigurationError(
                f"Room code prefix must be alphanumeric, got {value!r}",
                config_key="code_prefix",
            )
        return value.upper()


class StorageSettings(BaseSettings):
    """Configuration for persistence locations.

    Attributes:
        database_path: Path to the SQLite file standing in for the backend.
        local_store_path: Path to the device-local key-value JSON file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SIDERA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/sidera.db"),
        description="Path to backend database",
    )
    local_store_path: Path = Field(
        default=Path("data/device.json"),
        description="Path to device-local store",
    )

    @model_validator(mode="after")
    def validate_distinct_paths(self) -> "StorageSettings":
        """Ensure the backend and the device store never share a file.

        Raises:
            ConfigurationError: If both paths point at the same file.
        """
        if self.database_path == self.local_store_path:
            raise ConfigurationError(
                "database_path and local_store_path must differ",
                config_key="local_store_path",
            )
        return self


class ProfileSettings(BaseSettings):
    """Configuration for profile summaries.

    The sync core treats character payloads as opaque; these keys are the
    only fields it reads, and only to build selection-list summaries.

    Attributes:
        name_key: Payload key holding the display name.
        setup_complete_key: Payload key flagging a finished setup.
        headline_keys: Payload keys copied into summaries as headline stats.
        fallback_name: Display name used when the payload has none.
    """

    model_config = SettingsConfigDict(
        env_prefix="SIDERA_PROFILE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    name_key: str = Field(default="name", description="Display name key")
    setup_complete_key: str = Field(
        default="wizardCompleted",
        description="Setup-complete flag key",
    )
    headline_keys: list[str] = Field(
        default_factory=lambda: ["archetypeId", "orbit"],
        description="Headline stat keys",
    )
    fallback_name: str = Field(default="Unnamed", description="Fallback display name")


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        sync: Debounced sync settings.
        rooms: Room code and host settings.
        storage: Persistence settings.
        profiles: Profile summary settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="SIDERA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="Sidera Sync",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    sync: SyncSettings = Field(default_factory=SyncSettings)
    rooms: RoomSettings = Field(default_factory=RoomSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    profiles: ProfileSettings = Field(default_factory=ProfileSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode.

        Returns:
            True if not in debug mode.
        """
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "SyncSettings",
    "RoomSettings",
    "StorageSettings",
    "ProfileSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
