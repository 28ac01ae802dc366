"""Session/Room Protocol: the join, create and leave state machine.

States::

    UNATTACHED --join--> JOIN_PENDING --ok--> ATTACHED --leave--> UNATTACHED
                              |
                              +--fail--> UNATTACHED

    UNATTACHED --create_room / host_room--> HOST_ATTACHED --leave--> UNATTACHED

Input is validated before anything reaches the backend. A failed
foreground call leaves the protocol in the state it was in before the call
(a failed join ends UNATTACHED, a failed leave stays ATTACHED).
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from sidera_sync.broadcast.bus import BroadcastBus
from sidera_sync.broadcast.dispatch import HostDispatcher
from sidera_sync.broadcast.inbox import NoticeCallback, ParticipantInbox
from sidera_sync.core.config import Settings, get_settings
from sidera_sync.core.exceptions import (
    CharacterNotFoundError,
    RoomNotFoundError,
    SessionStateError,
    SideraSyncError,
    ValidationError,
)
from sidera_sync.core.logging import bind_context, clear_context, get_logger
from sidera_sync.identity import IdentityProvider, StaticIdentity
from sidera_sync.models.character import CharacterRecord, is_local_id
from sidera_sync.models.room import RoomStatus, SessionRoom
from sidera_sync.session.codes import validate_room_code
from sidera_sync.storage.local_store import LocalStore
from sidera_sync.sync.engine import DebouncedSyncEngine
from sidera_sync.sync.merge import RealtimeMergeListener
from sidera_sync.sync.state import ChangeOrigin, CharacterStateStore

if TYPE_CHECKING:
    from sidera_sync.backend import Backend

logger = get_logger(__name__)


class SessionState(StrEnum):
    """Protocol states of one device."""

    UNATTACHED = "unattached"
    JOIN_PENDING = "join_pending"
    ATTACHED = "attached"
    HOST_ATTACHED = "host_attached"


class SessionProtocol:
    """Drives one device through joining, hosting and leaving rooms."""

    def __init__(
        self,
        backend: Backend,
        local_store: LocalStore,
        state: CharacterStateStore,
        engine: DebouncedSyncEngine,
        merge: RealtimeMergeListener,
        *,
        identity: IdentityProvider | None = None,
        settings: Settings | None = None,
        on_whisper: NoticeCallback | None = None,
        on_visual: NoticeCallback | None = None,
        on_loot: NoticeCallback | None = None,
    ) -> None:
        self._backend = backend
        self._local = local_store
        self._state = state
        self._engine = engine
        self._merge = merge
        self._identity = identity or StaticIdentity()
        self._settings = settings or get_settings()
        self._notice_callbacks = {"on_whisper": on_whisper, "on_visual": on_visual, "on_loot": on_loot}

        self._session_state = SessionState.UNATTACHED
        self._room: SessionRoom | None = None
        self._record_id: str | None = None
        self._pending_code: str | None = None
        self._bus: BroadcastBus | None = None
        self._inbox: ParticipantInbox | None = None
        self._host: HostDispatcher | None = None

    # =========================================================================
    # Observable state
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._session_state

    @property
    def room(self) -> SessionRoom | None:
        return self._room

    @property
    def record_id(self) -> str | None:
        return self._record_id

    @property
    def pending_code(self) -> str | None:
        return self._pending_code

    @property
    def inbox(self) -> ParticipantInbox | None:
        return self._inbox

    @property
    def host(self) -> HostDispatcher | None:
        return self._host

    def _require(self, *states: SessionState) -> None:
        if self._session_state not in states:
            raise SessionStateError(
                f"Not allowed while {self._session_state.value}",
                current_state=self._session_state.value,
                expected_states=[s.value for s in states],
            )

    # =========================================================================
    # Host
    # =========================================================================

    async def create_room(
        self,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> SessionRoom:
        """Create an active room and host it.

        Raises:
            SessionStateError: If this device is already in a room.
            RoomCodeConflictError: If no unused code could be generated.
            RemoteStoreError: If the backend round-trip fails.
        """
        self._require(SessionState.UNATTACHED)
        room = await self._backend.rooms.create_room(
            self._identity.current_identity_id(),
            name=name,
            description=description,
        )
        await self._enter_host(room)
        return room

    async def host_room(self, room_id: str) -> SessionRoom:
        """Host an existing room that is active or paused."""
        self._require(SessionState.UNATTACHED)
        room = await self._backend.rooms.get(room_id)
        if room is None or room.status is RoomStatus.ARCHIVED:
            raise RoomNotFoundError("Room not found", room_id=room_id)
        await self._enter_host(room)
        return room

    async def _enter_host(self, room: SessionRoom) -> None:
        bus = BroadcastBus(self._backend.hub, self._backend.feed, room.id)
        host = HostDispatcher(
            bus,
            self._backend.characters,
            self._backend.event_log,
            settings=self._settings.rooms,
            name_key=self._settings.profiles.name_key,
        )
        try:
            await host.open()
        except SideraSyncError:
            host.close()
            bus.close()
            raise
        self._bus = bus
        self._host = host
        self._room = room
        self._local.set_last_room_code(room.code)
        bind_context(room_id=room.id)
        self._session_state = SessionState.HOST_ATTACHED
        logger.info("Hosting room", room_id=room.id, code=room.code)

    async def pause_room(self) -> SessionRoom:
        """Stop the hosted room from accepting joins."""
        self._require(SessionState.HOST_ATTACHED)
        self._room = await self._backend.rooms.pause(self._room.id)
        return self._room

    async def activate_session(self, room_id: str | None = None) -> SessionRoom:
        """Start a new session with a fresh code.

        While hosting, the hosted room is reactivated. While unattached,
        ``room_id`` is reactivated and then hosted.
        """
        if self._session_state is SessionState.HOST_ATTACHED:
            room = await self._backend.rooms.activate_session(self._room.id)
            self._room = room
            self._local.set_last_room_code(room.code)
            return room
        self._require(SessionState.UNATTACHED)
        if room_id is None:
            raise ValidationError("A room id is required to start a session", field_name="room_id")
        room = await self._backend.rooms.activate_session(room_id)
        await self._enter_host(room)
        return room

    async def archive_room(self) -> SessionRoom:
        """Archive the hosted room and stop hosting it."""
        self._require(SessionState.HOST_ATTACHED)
        room = await self._backend.rooms.archive(self._room.id)
        self._teardown()
        self._local.clear_last_room_code()
        return room

    # =========================================================================
    # Participant
    # =========================================================================

    async def join(self, player_name: str, code: str) -> CharacterRecord:
        """Attach the active record to the room with ``code``.

        A record that already has a backend row is re-pointed at the room
        and the local payload is pushed as the authoritative copy. Otherwise
        a new row is inserted.

        Raises:
            ValidationError: If the name or code is empty or malformed.
            SessionStateError: If this device is already in a room.
            RoomNotFoundError: If the code does not name an active room.
            RemoteStoreError: If the backend round-trip fails.
        """
        self._require(SessionState.UNATTACHED)
        if not player_name or not player_name.strip():
            raise ValidationError("Player name is required", field_name="player_name")
        player_name = player_name.strip()
        normalized = validate_room_code(code, self._settings.rooms)

        self._session_state = SessionState.JOIN_PENDING
        self._pending_code = normalized
        try:
            room = await self._backend.rooms.find_joinable(normalized)
            record = await self._attach_record(room, player_name)
        except SideraSyncError:
            self._session_state = SessionState.UNATTACHED
            raise
        finally:
            self._pending_code = None

        self._enter_participant(room, record.id)
        logger.info("Joined room", room_id=room.id, code=room.code, character_id=record.id)
        return record

    async def _attach_record(self, room: SessionRoom, player_name: str) -> CharacterRecord:
        record = self._state.get()
        name_key = self._settings.profiles.name_key
        payload = dict(record.payload)
        if not record.name(name_key):
            payload[name_key] = player_name

        remote = self._backend.characters
        if record.has_remote_identity:
            try:
                attached = await remote.attach_to_room(record.id, room.id, payload, player_name=player_name)
            except CharacterNotFoundError:
                logger.warning("Backend row missing, inserting a new one", character_id=record.id)
            else:
                return self._state.set(
                    record.model_copy(
                        update={
                            "session_room_id": room.id,
                            "player_name": player_name,
                            "payload": attached.payload,
                            "revision": attached.revision,
                            "updated_at": attached.updated_at,
                        }
                    ),
                    ChangeOrigin.SYSTEM,
                )

        owner = record.owner_identity_id or self._identity.current_identity_id()
        new_id = await remote.insert(payload, owner_identity_id=owner, room_id=room.id, player_name=player_name)
        if is_local_id(record.id):
            # The backend row supersedes the on-device copy
            self._local.delete_by_id(record.id)
        return self._state.set(
            record.model_copy(
                update={
                    "id": new_id,
                    "owner_identity_id": owner,
                    "session_room_id": room.id,
                    "player_name": player_name,
                    "payload": payload,
                    "revision": 1,
                }
            ),
            ChangeOrigin.SYSTEM,
        )

    def _enter_participant(self, room: SessionRoom, record_id: str) -> None:
        self._bus = BroadcastBus(self._backend.hub, self._backend.feed, room.id)
        self._inbox = ParticipantInbox(self._bus, record_id, **self._notice_callbacks)
        self._inbox.open()
        self._merge.attach(record_id)
        self._room = room
        self._record_id = record_id
        self._local.set_attachment(room.id, record_id)
        bind_context(room_id=room.id, character_id=record_id)
        self._session_state = SessionState.ATTACHED

    # =========================================================================
    # Leaving and recovery
    # =========================================================================

    async def leave(self) -> None:
        """Leave the current room.

        Participants flush any pending push, then detach their row from the
        room. The row and the local record are kept. A row the host already
        removed does not block leaving.
        """
        if self._session_state is SessionState.HOST_ATTACHED:
            self._teardown()
            self._local.clear_last_room_code()
            return
        self._require(SessionState.ATTACHED)
        await self._engine.flush()
        try:
            await self._backend.characters.detach_from_room(self._record_id)
        except CharacterNotFoundError:
            logger.warning("Backend row already removed", room_id=self._room.id, character_id=self._record_id)
        logger.info("Left room", room_id=self._room.id, character_id=self._record_id)
        self._teardown()
        self._state.set(self._state.get().detached(), ChangeOrigin.SYSTEM)

    async def restore(self) -> SessionState:
        """Resume the attachment recorded on this device, if still valid."""
        self._require(SessionState.UNATTACHED)
        room_id, character_id = self._local.get_attachment()
        if room_id and character_id:
            room = await self._backend.rooms.get(room_id)
            row = await self._backend.characters.fetch(character_id)
            stale = (
                room is None
                or room.status is RoomStatus.ARCHIVED
                or row is None
                or row.session_room_id != room_id
                or self._state.record_id != character_id
            )
            if stale:
                logger.info("Stored attachment is stale", room_id=room_id, character_id=character_id)
                self._local.clear_attachment()
                record = self._state.get()
                if record.session_room_id is not None:
                    self._state.set(record.detached(), ChangeOrigin.SYSTEM)
                return self._session_state
            self._enter_participant(room, character_id)
            return self._session_state

        code = self._local.get_last_room_code()
        if code:
            room = await self._backend.rooms.find_by_code(code)
            if room is None:
                self._local.clear_last_room_code()
                return self._session_state
            await self._enter_host(room)
        return self._session_state

    async def reset(self) -> None:
        """Delete the active record everywhere. Explicit user action only."""
        if self._session_state is SessionState.HOST_ATTACHED:
            raise SessionStateError(
                "Hosts have no character to reset",
                current_state=self._session_state.value,
                expected_states=[SessionState.UNATTACHED.value, SessionState.ATTACHED.value],
            )
        record = self._state.get()
        self._engine.stop()
        try:
            if record.has_remote_identity:
                await self._backend.characters.delete(record.id)
        finally:
            self._engine.start()
        if self._session_state is SessionState.ATTACHED:
            self._teardown()
        if record.id:
            self._local.delete_by_id(record.id)
        self._state.clear()
        logger.info("Character reset", character_id=record.id)

    def _teardown(self) -> None:
        self._merge.detach()
        if self._inbox is not None:
            self._inbox.close()
        if self._host is not None:
            self._host.close()
        if self._bus is not None:
            self._bus.close()
        self._inbox = None
        self._host = None
        self._bus = None
        self._room = None
        self._record_id = None
        self._local.clear_attachment()
        self._session_state = SessionState.UNATTACHED
        clear_context()


__all__ = ["SessionProtocol", "SessionState"]
