"""Constants shared across the Sidera synchronization core."""

from __future__ import annotations

# =============================================================================
# Identity
# =============================================================================

ALL_TARGETS = "all"
"""Broadcast target sentinel meaning every participant in the room."""

LOCAL_ID_PREFIX = "local_"
"""Prefix of ids generated on-device for records with no backend row."""

# =============================================================================
# Backend Tables
# =============================================================================

ROOMS_TABLE = "rooms"
CHARACTERS_TABLE = "characters"
GAME_LOGS_TABLE = "game_logs"

# =============================================================================
# Device-local Keys
# =============================================================================

ACTIVE_CHARACTER_KEY = "active_character"
"""Slot holding the single active character record."""

PROFILE_SUMMARIES_KEY = "profile_summaries"
"""List of known profile summaries."""

SESSION_ATTACHMENT_KEY = "session_attachment"
"""Current room/record attachment, used to resume after a reload."""

LAST_ROOM_CODE_KEY = "last_room_code"
"""Last room code created by this device, used by the host to recover."""

CHARACTER_KEY_PREFIX = "character:"
"""Prefix of the per-id character copies kept for offline loading."""

# =============================================================================
# Broadcast Events
# =============================================================================

SHOW_IMAGE_EVENT = "show_image"
WHISPER_EVENT = "whisper"
LOOT_ALERT_EVENT = "loot_alert"


__all__ = [
    "ALL_TARGETS",
    "LOCAL_ID_PREFIX",
    "ROOMS_TABLE",
    "CHARACTERS_TABLE",
    "GAME_LOGS_TABLE",
    "ACTIVE_CHARACTER_KEY",
    "PROFILE_SUMMARIES_KEY",
    "SESSION_ATTACHMENT_KEY",
    "LAST_ROOM_CODE_KEY",
    "CHARACTER_KEY_PREFIX",
    "SHOW_IMAGE_EVENT",
    "WHISPER_EVENT",
    "LOOT_ALERT_EVENT",
]
