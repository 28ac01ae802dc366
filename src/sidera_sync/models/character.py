"""Pydantic V2 schemas for character records and profile summaries.

A CharacterRecord is the unit of synchronization. Its payload is an opaque
JSON-like document: the sync core compares it by value and replaces it
wholesale, but never interprets its shape beyond the handful of keys named
in ProfileSettings.
"""

from __future__ import annotations

import copy
import time
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from sidera_sync.core.config import ProfileSettings
from sidera_sync.core.constants import LOCAL_ID_PREFIX


def is_local_id(record_id: str | None) -> bool:
    """Return True when the id was generated on-device."""
    return bool(record_id) and record_id.startswith(LOCAL_ID_PREFIX)


def is_remote_id(record_id: str | None) -> bool:
    """Return True when the id names a backend row."""
    return bool(record_id) and not record_id.startswith(LOCAL_ID_PREFIX)


def generate_local_id() -> str:
    """Generate an on-device id (``local_<epoch millis>``)."""
    return f"{LOCAL_ID_PREFIX}{int(time.time() * 1000)}"


class SyncStatus(StrEnum):
    """Observable state of the debounced push."""

    SAVED = "saved"
    SAVING = "saving"
    ERROR = "error"


class StorageTier(StrEnum):
    """Where a profile's authoritative copy lives."""

    LOCAL = "local"
    REMOTE = "remote"


class CharacterRecord(BaseModel):
    """The synchronized unit of player state.

    Attributes:
        id: Opaque identifier; None for a record that exists only locally
            and has not been assigned a local id yet.
        owner_identity_id: Authenticated identity owning the record.
        session_room_id: Room the record is attached to, None when detached.
        player_name: Participant display name shown on the host roster.
        payload: Opaque game-state document.
        revision: Backend write counter; 0 for records never written remotely.
        updated_at: Time of the last backend write.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    id: str | None = Field(default=None, description="Record id")
    owner_identity_id: str | None = Field(default=None, description="Owning identity")
    session_room_id: str | None = Field(default=None, description="Attached room")
    player_name: str | None = Field(default=None, description="Participant name")
    payload: dict[str, Any] = Field(default_factory=dict, description="Game-state document")
    revision: int = Field(default=0, ge=0, description="Backend revision")
    updated_at: datetime | None = Field(default=None, description="Last backend write")

    @property
    def has_remote_identity(self) -> bool:
        """Whether this record is backed by a backend row."""
        return is_remote_id(self.id)

    @property
    def is_attached(self) -> bool:
        """Whether this record is attached to a room."""
        return self.session_room_id is not None

    def name(self, key: str = "name") -> str | None:
        """Return the display name stored in the payload, if any."""
        value = self.payload.get(key)
        return value if isinstance(value, str) and value else None

    def is_setup_complete(self, key: str = "wizardCompleted") -> bool:
        """Whether the payload marks character setup as finished."""
        return bool(self.payload.get(key))

    def with_payload(self, payload: dict[str, Any]) -> CharacterRecord:
        """Return a copy carrying a deep copy of ``payload``."""
        return self.model_copy(update={"payload": copy.deepcopy(payload)})

    def detached(self) -> CharacterRecord:
        """Return a copy with the room attachment cleared."""
        return self.model_copy(update={"session_room_id": None})

    def snapshot(self) -> CharacterRecord:
        """Return a deep copy safe to hand to other components."""
        return self.model_copy(deep=True)


class ProfileSummary(BaseModel):
    """Cheap-to-list projection of a CharacterRecord for selection lists.

    Never authoritative: rebuilt from the record on every save.

    Attributes:
        id: Record id (local or remote shaped).
        name: Display name.
        headline: Small set of headline stats copied from the payload.
        last_played: Last time the record was saved.
        tier: Whether the record lives on-device or in the backend.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Record id")
    name: str = Field(description="Display name")
    headline: dict[str, Any] = Field(default_factory=dict, description="Headline stats")
    last_played: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last save time",
    )
    tier: StorageTier = Field(default=StorageTier.LOCAL, description="Storage tier")

    @classmethod
    def from_record(
        cls,
        record: CharacterRecord,
        settings: ProfileSettings,
        *,
        tier: StorageTier | None = None,
        last_played: datetime | None = None,
    ) -> ProfileSummary:
        """Project a record into a summary.

        Args:
            record: Record with an id.
            settings: Which payload keys to read.
            tier: Storage tier; derived from the id shape when omitted.
            last_played: Timestamp; defaults to now.

        Raises:
            ValueError: If the record has no id.
        """
        if not record.id:
            raise ValueError("Cannot summarize a record without an id")
        if tier is None:
            tier = StorageTier.REMOTE if record.has_remote_identity else StorageTier.LOCAL
        name = record.name(settings.name_key) or record.player_name or settings.fallback_name
        headline = {
            key: record.payload[key]
            for key in settings.headline_keys
            if key in record.payload
        }
        return cls(
            id=record.id,
            name=name,
            headline=headline,
            last_played=last_played or datetime.now(timezone.utc),
            tier=tier,
        )


__all__ = [
    "SyncStatus",
    "StorageTier",
    "CharacterRecord",
    "ProfileSummary",
    "is_local_id",
    "is_remote_id",
    "generate_local_id",
]
