"""Session Registry: room codes, lifecycle status and session counters.

Lifecycle:
    create (active, session 1) or create_campaign (paused, session 0)
    activate_session: new code, session_number + 1, status active
    pause: stop accepting joins, keep history and attachments
    archive: terminal soft-delete; the code stays reserved

A code resolves only while its room is active or paused. Joining further
requires the room to be active.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from sidera_sync.core.config import RoomSettings
from sidera_sync.core.exceptions import (
    RoomCodeConflictError,
    RoomNotFoundError,
    SessionStateError,
)
from sidera_sync.core.logging import get_logger
from sidera_sync.models.room import (
    RoomDetails,
    RoomListing,
    RoomParticipant,
    RoomStatus,
    SessionRoom,
)
from sidera_sync.session.codes import generate_room_code, normalize_room_code
from sidera_sync.storage.database import Database
from sidera_sync.storage.remote import RemoteCharacterStore

logger = get_logger(__name__)

_RESOLVABLE = (RoomStatus.ACTIVE.value, RoomStatus.PAUSED.value)


class SessionRegistry:
    """Async access to the rooms table."""

    def __init__(
        self,
        database: Database,
        characters: RemoteCharacterStore,
        *,
        settings: RoomSettings | None = None,
        code_factory: Callable[[], str] | None = None,
    ) -> None:
        self._db = database
        self._characters = characters
        self._settings = settings or RoomSettings()
        self._code_factory = code_factory or (lambda: generate_room_code(self._settings))

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(RoomCodeConflictError),
            stop=stop_after_attempt(self._settings.max_code_attempts),
            reraise=True,
        )

    def _next_code(self, previous: str | None = None) -> str:
        code = self._code_factory()
        if code == previous:
            # The row already holds it, so the UNIQUE constraint would not catch it
            raise RoomCodeConflictError("Generated the code being retired", code=code)
        return code

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_room(
        self,
        owner_identity_id: str | None = None,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> SessionRoom:
        """Create an active room, ready to accept joins.

        Raises:
            RoomCodeConflictError: If every generated code was taken.
            RemoteStoreError: If the backend round-trip fails.
        """
        return await self._insert(
            owner_identity_id,
            name=name,
            description=description,
            status=RoomStatus.ACTIVE,
            session_number=1,
            last_session_at=datetime.now(timezone.utc).isoformat(),
        )

    async def create_campaign(
        self,
        owner_identity_id: str,
        name: str,
        description: str | None = None,
    ) -> SessionRoom:
        """Create a paused campaign; the host activates its first session later."""
        return await self._insert(
            owner_identity_id,
            name=name,
            description=description,
            status=RoomStatus.PAUSED,
            session_number=0,
            last_session_at=None,
        )

    async def _insert(
        self,
        owner_identity_id: str | None,
        *,
        name: str | None,
        description: str | None,
        status: RoomStatus,
        session_number: int,
        last_session_at: str | None,
    ) -> SessionRoom:
        async for attempt in self._retrying():
            with attempt:
                code = self._next_code()
                row = self._db.insert_room(
                    code,
                    status=status.value,
                    session_number=session_number,
                    owner_identity_id=owner_identity_id,
                    name=name,
                    description=description,
                    last_session_at=last_session_at,
                )
        room = SessionRoom.model_validate(row)
        logger.info("Room created", room_id=room.id, code=room.code, status=room.status.value)
        return room

    # =========================================================================
    # Lookup
    # =========================================================================

    async def get(self, room_id: str) -> SessionRoom | None:
        row = self._db.get_room(room_id)
        return SessionRoom.model_validate(row) if row else None

    async def find_by_code(self, code: str) -> SessionRoom | None:
        """Resolve a code among active and paused rooms (case-insensitive)."""
        row = self._db.find_room_by_code(normalize_room_code(code), _RESOLVABLE)
        return SessionRoom.model_validate(row) if row else None

    async def find_joinable(self, code: str) -> SessionRoom:
        """Resolve a code to an active room.

        Raises:
            RoomNotFoundError: If the code is unknown, paused or archived.
        """
        room = await self.find_by_code(code)
        if room is None or not room.is_joinable:
            raise RoomNotFoundError("Room not found", code=normalize_room_code(code))
        return room

    async def _require(self, room_id: str) -> SessionRoom:
        room = await self.get(room_id)
        if room is None:
            raise RoomNotFoundError("Room not found", room_id=room_id)
        return room

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def activate_session(self, room_id: str) -> SessionRoom:
        """Start a new session: rotate the code and bump the session number.

        Records already attached to the room stay attached; the previous code
        stops resolving.

        Raises:
            RoomNotFoundError: If the room does not exist.
            SessionStateError: If the room is archived.
            RoomCodeConflictError: If every generated code was taken.
        """
        room = await self._require(room_id)
        if room.status is RoomStatus.ARCHIVED:
            raise SessionStateError(
                "Archived rooms cannot be reactivated",
                current_state=room.status.value,
                expected_states=[RoomStatus.ACTIVE.value, RoomStatus.PAUSED.value],
            )
        async for attempt in self._retrying():
            with attempt:
                row = self._db.update_room(
                    room_id,
                    code=self._next_code(previous=room.code),
                    status=RoomStatus.ACTIVE.value,
                    session_number=room.session_number + 1,
                    last_session_at=datetime.now(timezone.utc).isoformat(),
                )
        if row is None:
            raise RoomNotFoundError("Room not found", room_id=room_id)
        updated = SessionRoom.model_validate(row)
        logger.info(
            "Session activated",
            room_id=room_id,
            code=updated.code,
            previous_code=room.code,
            session_number=updated.session_number,
        )
        return updated

    async def pause(self, room_id: str) -> SessionRoom:
        """Stop accepting joins."""
        room = await self._require(room_id)
        if room.status is RoomStatus.ARCHIVED:
            raise SessionStateError(
                "Archived rooms cannot be paused",
                current_state=room.status.value,
                expected_states=[RoomStatus.ACTIVE.value],
            )
        return await self._set_status(room_id, RoomStatus.PAUSED)

    async def archive(self, room_id: str) -> SessionRoom:
        """Soft-delete a room. Its code is never handed out again."""
        await self._require(room_id)
        return await self._set_status(room_id, RoomStatus.ARCHIVED)

    async def _set_status(self, room_id: str, status: RoomStatus) -> SessionRoom:
        row = self._db.update_room(room_id, status=status.value)
        if row is None:
            raise RoomNotFoundError("Room not found", room_id=room_id)
        logger.info("Room status changed", room_id=room_id, status=status.value)
        return SessionRoom.model_validate(row)

    async def update_metadata(
        self,
        room_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> SessionRoom:
        """Rename or re-describe a room."""
        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = name
        if description is not None:
            fields["description"] = description
        row = self._db.update_room(room_id, **fields)
        if row is None:
            raise RoomNotFoundError("Room not found", room_id=room_id)
        return SessionRoom.model_validate(row)

    # =========================================================================
    # Host dashboard
    # =========================================================================

    async def list_by_owner(self, owner_identity_id: str) -> list[RoomListing]:
        """Non-archived rooms of a host, most recently played first."""
        rows = self._db.list_rooms_by_owner(owner_identity_id, exclude_status=RoomStatus.ARCHIVED.value)
        listings = []
        for row in rows:
            room = SessionRoom.model_validate(row)
            count = await self._characters.count_by_room(room.id)
            listings.append(RoomListing(room=room, player_count=count))
        return listings

    async def get_details(self, room_id: str, *, name_key: str = "name") -> RoomDetails:
        """A room with its attached participants.

        Raises:
            RoomNotFoundError: If the room does not exist.
        """
        room = await self._require(room_id)
        records = await self._characters.fetch_by_room(room_id)
        players = [
            RoomParticipant(
                id=record.id or "",
                player_name=record.player_name,
                character_name=record.name(name_key) or "Unnamed",
                last_seen=record.updated_at,
            )
            for record in records
        ]
        return RoomDetails(room=room, players=players)


__all__ = ["SessionRegistry"]
