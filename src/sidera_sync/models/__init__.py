"""Pydantic V2 schemas for the synchronization core.

Modules:
    character: CharacterRecord, ProfileSummary, sync status and id helpers.
    room: SessionRoom and host dashboard projections.
    events: Broadcast envelopes, event log entries, change events, loot.
    derived: Pure derived-field recomputation for payloads.
"""

from __future__ import annotations

from sidera_sync.models.character import (
    CharacterRecord,
    ProfileSummary,
    StorageTier,
    SyncStatus,
    generate_local_id,
    is_local_id,
    is_remote_id,
)
from sidera_sync.models.derived import derive_computed_fields
from sidera_sync.models.events import (
    BroadcastEnvelope,
    ChangeEvent,
    ChangeType,
    GameLogEntry,
    LogCategory,
    LootItem,
    LootKind,
    Topic,
)
from sidera_sync.models.room import (
    RoomDetails,
    RoomListing,
    RoomParticipant,
    RoomStatus,
    SessionRoom,
)


__all__ = [
    # Character
    "CharacterRecord",
    "ProfileSummary",
    "StorageTier",
    "SyncStatus",
    "generate_local_id",
    "is_local_id",
    "is_remote_id",
    "derive_computed_fields",
    # Rooms
    "RoomStatus",
    "SessionRoom",
    "RoomParticipant",
    "RoomDetails",
    "RoomListing",
    # Events
    "Topic",
    "BroadcastEnvelope",
    "LogCategory",
    "GameLogEntry",
    "ChangeType",
    "ChangeEvent",
    "LootKind",
    "LootItem",
]
