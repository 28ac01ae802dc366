"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        SideraSyncError: Base exception for all application errors.
        NotFoundError, RoomNotFoundError, CharacterNotFoundError: Lookups.
        RemoteStoreError, WriteConflictError: Backend failures.
        ValidationError: Malformed caller input.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging, get_logger, bind_context, clear_context.
"""

from __future__ import annotations

from sidera_sync.core.config import (
    ProfileSettings,
    RoomSettings,
    Settings,
    StorageSettings,
    SyncSettings,
    clear_settings_cache,
    get_settings,
)
from sidera_sync.core.exceptions import (
    BroadcastError,
    CharacterNotFoundError,
    ConfigurationError,
    NotFoundError,
    RemoteStoreError,
    RoomCodeConflictError,
    RoomNotFoundError,
    SessionStateError,
    SideraSyncError,
    ValidationError,
    WriteConflictError,
)
from sidera_sync.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


__all__ = [
    # Exceptions
    "SideraSyncError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "RoomNotFoundError",
    "CharacterNotFoundError",
    "RemoteStoreError",
    "WriteConflictError",
    "RoomCodeConflictError",
    "SessionStateError",
    "BroadcastError",
    # Configuration
    "Settings",
    "SyncSettings",
    "RoomSettings",
    "StorageSettings",
    "ProfileSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
