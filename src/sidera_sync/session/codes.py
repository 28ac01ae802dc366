"""Room code generation and normalization.

Codes look like ``SIDERA-A1B2``: a fixed prefix, a dash and a short
uppercase base-36 suffix. Lookups are case-insensitive, so codes are
normalized to uppercase before they reach the backend.
"""

from __future__ import annotations

import re
import secrets
import string

from sidera_sync.core.config import RoomSettings
from sidera_sync.core.exceptions import ValidationError


BASE36_ALPHABET = string.digits + string.ascii_uppercase


def generate_room_code(settings: RoomSettings | None = None) -> str:
    """Generate a fresh room code.

    Uniqueness is not checked here; the registry retries on collision.
    """
    settings = settings or RoomSettings()
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(settings.code_length))
    return f"{settings.code_prefix}-{suffix}"


def normalize_room_code(code: str) -> str:
    """Trim and uppercase a user-typed code."""
    return code.strip().upper()


def code_pattern(settings: RoomSettings) -> re.Pattern[str]:
    return re.compile(
        rf"^{re.escape(settings.code_prefix)}-[0-9A-Z]{{{settings.code_length}}}$"
    )


def validate_room_code(code: str | None, settings: RoomSettings | None = None) -> str:
    """Normalize ``code`` and check it has the room code shape.

    Returns:
        The normalized code.

    Raises:
        ValidationError: If the code is empty or malformed.
    """
    settings = settings or RoomSettings()
    if code is None or not code.strip():
        raise ValidationError("Room code is required", field_name="code")
    normalized = normalize_room_code(code)
    if not code_pattern(settings).match(normalized):
        raise ValidationError(
            f"Room codes look like {settings.code_prefix}-" + "X" * settings.code_length,
            field_name="code",
            invalid_value=code,
        )
    return normalized


__all__ = [
    "BASE36_ALPHABET",
    "generate_room_code",
    "normalize_room_code",
    "validate_room_code",
]
