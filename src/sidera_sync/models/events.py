"""Pydantic V2 schemas for transient and logged session events.

Broadcast envelopes are never persisted. Game log entries are the durable,
append-only trail left by loot grants and other host actions. Change events
describe backend row changes delivered through the change feed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from sidera_sync.core.constants import ALL_TARGETS


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Broadcast
# =============================================================================


class Topic(StrEnum):
    """Per-room broadcast topics."""

    VISUALS = "visuals"
    WHISPERS = "whispers"
    LOOT = "loot"
    TRACKING = "tracking"

    def channel_name(self, room_id: str) -> str:
        """Channel name for this topic in ``room_id``."""
        return f"room-{self.value}:{room_id}"


class BroadcastEnvelope(BaseModel):
    """A host-initiated message addressed to one participant or all of them.

    Attributes:
        topic: Topic the envelope travels on.
        event: Event name within the topic.
        payload: Event body.
        target_id: Character id, or ALL_TARGETS for every participant.
        sent_at: Publish time.
    """

    model_config = ConfigDict(extra="forbid")

    topic: Topic
    event: str = Field(min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    target_id: str = Field(default=ALL_TARGETS, min_length=1)
    sent_at: datetime = Field(default_factory=_utcnow)

    def is_for(self, identity_id: str | None) -> bool:
        """Whether a subscriber with ``identity_id`` should act on this envelope."""
        if self.target_id == ALL_TARGETS:
            return True
        return identity_id is not None and self.target_id == identity_id


# =============================================================================
# Event Log
# =============================================================================


class LogCategory(StrEnum):
    """Categories of event log entries."""

    ROLL = "roll"
    COMBAT = "combat"
    ITEM = "item"
    ALERT = "alert"


class GameLogEntry(BaseModel):
    """An append-only event log entry.

    Attributes:
        id: Row id assigned by the backend.
        room_id: Room the entry belongs to.
        actor_label: Who acted (participant name or the host label).
        message: Human-readable description.
        category: Entry category.
        created_at: Append time.
    """

    model_config = ConfigDict(extra="forbid")

    id: int | None = None
    room_id: str = Field(min_length=1)
    actor_label: str = Field(min_length=1)
    message: str = Field(min_length=1)
    category: LogCategory
    created_at: datetime = Field(default_factory=_utcnow)


# =============================================================================
# Change Feed
# =============================================================================


class ChangeType(StrEnum):
    """Kinds of row change delivered by the change feed."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ChangeEvent(BaseModel):
    """A backend row change.

    Attributes:
        table: Table the row belongs to.
        type: Kind of change.
        new: Row after the change (None for deletes).
        old: Row before the change (None for inserts).
    """

    model_config = ConfigDict(extra="forbid")

    table: str
    type: ChangeType
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None

    @property
    def row(self) -> dict[str, Any]:
        """The most recent known image of the row."""
        return self.new if self.new is not None else (self.old or {})


# =============================================================================
# Loot
# =============================================================================


class LootKind(StrEnum):
    """How a granted item lands in the character payload."""

    WEAPON = "weapon"
    """Appended to the arsenal."""

    CONSUMABLE = "consumable"
    """Added to an existing belt pouch stack."""

    GENERAL = "general"
    """Appended to the inventory slots."""


class LootItem(BaseModel):
    """An item the host grants to a participant.

    Attributes:
        kind: Where the item lands.
        name: Item name.
        description: Item description.
        weight: Inventory weight for general items.
        data: Kind-specific data (weapon stats, or ``targetId``/``amount``
            for consumables).
    """

    model_config = ConfigDict(extra="forbid")

    kind: LootKind = LootKind.GENERAL
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    weight: int = Field(default=1, ge=0)
    data: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "Topic",
    "BroadcastEnvelope",
    "LogCategory",
    "GameLogEntry",
    "ChangeType",
    "ChangeEvent",
    "LootKind",
    "LootItem",
]
