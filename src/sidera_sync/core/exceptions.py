"""Custom exception hierarchy for the Sidera synchronization core.

All exceptions inherit from SideraSyncError, enabling unified error handling
at the application boundary while preserving domain-specific context.

Example:
    >>> from sidera_sync.core.exceptions import RoomNotFoundError
    >>> raise RoomNotFoundError("Room not found", code="SIDERA-A1B2")
"""

from __future__ import annotations

from typing import Any


class SideraSyncError(Exception):
    """Base exception for all Sidera synchronization errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(SideraSyncError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(SideraSyncError):
    """Raised when caller input is malformed.

    Validation always happens before any backend round-trip, so a
    ValidationError guarantees nothing was written anywhere.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


# =============================================================================
# Lookup Exceptions
# =============================================================================


class NotFoundError(SideraSyncError):
    """Base exception for identifiers that do not resolve.

    Surfaced immediately to the initiating action, never retried.
    """


class RoomNotFoundError(NotFoundError):
    """Raised when a room code or room id does not resolve to a joinable room."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        room_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize room lookup error.

        Args:
            message: Human-readable error description.
            code: The room code that was looked up.
            room_id: The room id that was looked up.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if code:
            combined_details["code"] = code
        if room_id:
            combined_details["room_id"] = room_id
        super().__init__(message, details=combined_details)


class CharacterNotFoundError(NotFoundError):
    """Raised when a character id has no backing row."""

    def __init__(
        self,
        message: str,
        *,
        character_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize character lookup error.

        Args:
            message: Human-readable error description.
            character_id: The character id that was looked up.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if character_id:
            combined_details["character_id"] = character_id
        super().__init__(message, details=combined_details)


# =============================================================================
# Backend Exceptions
# =============================================================================


class RemoteStoreError(SideraSyncError):
    """Raised when a backend round-trip fails.

    Covers connectivity loss and backend rejection. Background saves report
    it through the sync status; foreground actions receive it directly.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize backend error with operation context.

        Args:
            message: Human-readable error description.
            operation: Name of the backend operation that failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if operation:
            combined_details["operation"] = operation
        super().__init__(message, details=combined_details)


class WriteConflictError(RemoteStoreError):
    """Raised when a revision-checked write finds a newer row revision."""

    def __init__(
        self,
        message: str,
        *,
        character_id: str | None = None,
        expected_revision: int | None = None,
        actual_revision: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize write conflict error with revision context.

        Args:
            message: Human-readable error description.
            character_id: Row that was being written.
            expected_revision: Revision the writer based its change on.
            actual_revision: Revision currently stored.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if character_id:
            combined_details["character_id"] = character_id
        if expected_revision is not None:
            combined_details["expected_revision"] = expected_revision
        if actual_revision is not None:
            combined_details["actual_revision"] = actual_revision
        super().__init__(message, operation="update", details=combined_details)


class RoomCodeConflictError(SideraSyncError):
    """Raised when a generated room code is already held by another room."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize code conflict error.

        Args:
            message: Human-readable error description.
            code: The colliding code.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if code:
            combined_details["code"] = code
        super().__init__(message, details=combined_details)


# =============================================================================
# Session Exceptions
# =============================================================================


class SessionStateError(SideraSyncError):
    """Raised when a protocol action is invoked from the wrong state."""

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        expected_states: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize session state error with state context.

        Args:
            message: Human-readable error description.
            current_state: The current protocol state.
            expected_states: States the action is valid from.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_state:
            combined_details["current_state"] = current_state
        if expected_states:
            combined_details["expected_states"] = expected_states
        super().__init__(message, details=combined_details)


class BroadcastError(SideraSyncError):
    """Raised when publishing on a bus that has been closed."""

    def __init__(
        self,
        message: str,
        *,
        topic: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize broadcast error with topic context.

        Args:
            message: Human-readable error description.
            topic: The topic the publish targeted.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if topic:
            combined_details["topic"] = topic
        super().__init__(message, details=combined_details)


__all__ = [
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
]
