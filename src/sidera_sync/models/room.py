"""Pydantic V2 schemas for session rooms."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class RoomStatus(StrEnum):
    """Lifecycle status of a session room."""

    ACTIVE = "active"
    """Accepting joins."""

    PAUSED = "paused"
    """Not accepting joins; history and attachments kept."""

    ARCHIVED = "archived"
    """Terminal soft-delete."""


class SessionRoom(BaseModel):
    """A host-owned grouping with a shareable join code.

    Attributes:
        id: Unique room identifier.
        code: Join code, unique across all rooms.
        status: Lifecycle status.
        session_number: Incremented each time the room is (re)activated.
        owner_identity_id: Host identity; None for guest rooms.
        name: Campaign name.
        description: Campaign description.
        created_at: Creation time.
        last_session_at: Time of the most recent activation.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Room id")
    code: str = Field(min_length=1, description="Join code")
    status: RoomStatus = Field(default=RoomStatus.ACTIVE, description="Lifecycle status")
    session_number: int = Field(default=0, ge=0, description="Session counter")
    owner_identity_id: str | None = Field(default=None, description="Host identity")
    name: str | None = Field(default=None, max_length=200, description="Campaign name")
    description: str | None = Field(default=None, max_length=5000, description="Description")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation time",
    )
    last_session_at: datetime | None = Field(default=None, description="Last activation")

    @property
    def is_joinable(self) -> bool:
        """Only active rooms accept joins."""
        return self.status is RoomStatus.ACTIVE

    @property
    def is_guest(self) -> bool:
        """Guest rooms have no owning identity."""
        return self.owner_identity_id is None


class RoomParticipant(BaseModel):
    """A character attached to a room, as listed on the host dashboard."""

    model_config = ConfigDict(extra="forbid")

    id: str
    player_name: str | None = None
    character_name: str
    last_seen: datetime | None = None


class RoomDetails(BaseModel):
    """A room together with its attached participants."""

    model_config = ConfigDict(extra="forbid")

    room: SessionRoom
    players: list[RoomParticipant] = Field(default_factory=list)

    @property
    def player_count(self) -> int:
        return len(self.players)


class RoomListing(BaseModel):
    """Room row annotated with its participant count."""

    model_config = ConfigDict(extra="forbid")

    room: SessionRoom
    player_count: int = Field(default=0, ge=0)


__all__ = [
    "RoomStatus",
    "SessionRoom",
    "RoomParticipant",
    "RoomDetails",
    "RoomListing",
]
