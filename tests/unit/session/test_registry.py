"""Tests for the session registry."""

from __future__ import annotations

import asyncio
import itertools

import pytest

from sidera_sync.core.config import RoomSettings
from sidera_sync.core.exceptions import (
    RoomCodeConflictError,
    RoomNotFoundError,
    SessionStateError,
)
from sidera_sync.models.room import RoomStatus
from sidera_sync.session.registry import SessionRegistry
from sidera_sync.storage.database import Database
from sidera_sync.storage.remote import RemoteCharacterStore


def make_registry(
    database: Database,
    remote: RemoteCharacterStore,
    codes: list[str],
    **settings: int,
) -> SessionRegistry:
    source = iter(codes)
    return SessionRegistry(
        database,
        remote,
        settings=RoomSettings(**settings),
        code_factory=lambda: next(source),
    )


@pytest.fixture
def registry(database: Database, remote: RemoteCharacterStore) -> SessionRegistry:
    counter = itertools.count(1)
    return SessionRegistry(database, remote, code_factory=lambda: f"SIDERA-{next(counter):04d}")


class TestCreate:
    """Tests for room and campaign creation."""

    def test_create_room_is_active(self, registry: SessionRegistry) -> None:
        room = asyncio.run(registry.create_room("gm", name="Ashfall"))

        assert room.status is RoomStatus.ACTIVE
        assert room.session_number == 1
        assert room.last_session_at is not None
        assert room.owner_identity_id == "gm"

    def test_guest_room(self, registry: SessionRegistry) -> None:
        room = asyncio.run(registry.create_room())

        assert room.is_guest

    def test_campaign_starts_paused(self, registry: SessionRegistry) -> None:
        room = asyncio.run(registry.create_campaign("gm", "Ashfall", "Long campaign"))

        assert room.status is RoomStatus.PAUSED
        assert room.session_number == 0
        assert room.last_session_at is None

    def test_retries_code_collision(self, database: Database, remote: RemoteCharacterStore) -> None:
        registry = make_registry(database, remote, ["SIDERA-AAAA", "SIDERA-AAAA", "SIDERA-BBBB"])
        asyncio.run(registry.create_room())

        second = asyncio.run(registry.create_room())

        assert second.code == "SIDERA-BBBB"

    def test_gives_up_after_max_attempts(self, database: Database, remote: RemoteCharacterStore) -> None:
        registry = make_registry(database, remote, ["SIDERA-AAAA"] * 4, max_code_attempts=3)
        asyncio.run(registry.create_room())

        with pytest.raises(RoomCodeConflictError):
            asyncio.run(registry.create_room())


class TestLookup:
    """Tests for resolving codes."""

    def test_case_insensitive(self, registry: SessionRegistry) -> None:
        room = asyncio.run(registry.create_room())

        found = asyncio.run(registry.find_by_code(room.code.lower()))

        assert found is not None and found.id == room.id

    def test_paused_resolves_but_not_joinable(self, registry: SessionRegistry) -> None:
        room = asyncio.run(registry.create_room())
        asyncio.run(registry.pause(room.id))

        assert asyncio.run(registry.find_by_code(room.code)) is not None
        with pytest.raises(RoomNotFoundError) as exc_info:
            asyncio.run(registry.find_joinable(room.code))

        assert exc_info.value.details["code"] == room.code

    def test_archived_does_not_resolve(self, registry: SessionRegistry) -> None:
        room = asyncio.run(registry.create_room())
        asyncio.run(registry.archive(room.id))

        assert asyncio.run(registry.find_by_code(room.code)) is None

    def test_unknown_code(self, registry: SessionRegistry) -> None:
        with pytest.raises(RoomNotFoundError):
            asyncio.run(registry.find_joinable("SIDERA-ZZZZ"))


class TestLifecycle:
    """Tests for session activation, pause and archive."""

    def test_activate_rotates_code(self, registry: SessionRegistry) -> None:
        """Test reactivation issues a new code and retires the old one."""
        room = asyncio.run(registry.create_room())
        asyncio.run(registry.pause(room.id))

        active = asyncio.run(registry.activate_session(room.id))

        assert active.code != room.code
        assert active.session_number == 2
        assert active.status is RoomStatus.ACTIVE
        assert asyncio.run(registry.find_by_code(room.code)) is None
        assert asyncio.run(registry.find_joinable(active.code)).id == room.id

    def test_activate_skips_repeated_code(self, database: Database, remote: RemoteCharacterStore) -> None:
        registry = make_registry(database, remote, ["SIDERA-AAAA", "SIDERA-AAAA", "SIDERA-CCCC"])
        room = asyncio.run(registry.create_room())

        active = asyncio.run(registry.activate_session(room.id))

        assert active.code == "SIDERA-CCCC"

    def test_activate_gives_up_on_repeated_code(self, database: Database, remote: RemoteCharacterStore) -> None:
        """Test a generator stuck on the current code stops after the attempt limit."""
        registry = make_registry(database, remote, ["SIDERA-AAAA"] * 4, max_code_attempts=3)
        room = asyncio.run(registry.create_room())

        with pytest.raises(RoomCodeConflictError):
            asyncio.run(registry.activate_session(room.id))

        assert asyncio.run(registry.get(room.id)).session_number == 1

    def test_first_campaign_session(self, registry: SessionRegistry) -> None:
        campaign = asyncio.run(registry.create_campaign("gm", "Ashfall"))

        active = asyncio.run(registry.activate_session(campaign.id))

        assert active.session_number == 1
        assert active.last_session_at is not None

    def test_archived_is_terminal(self, registry: SessionRegistry) -> None:
        room = asyncio.run(registry.create_room())
        asyncio.run(registry.archive(room.id))

        with pytest.raises(SessionStateError):
            asyncio.run(registry.activate_session(room.id))
        with pytest.raises(SessionStateError):
            asyncio.run(registry.pause(room.id))

    def test_missing_room(self, registry: SessionRegistry) -> None:
        with pytest.raises(RoomNotFoundError):
            asyncio.run(registry.activate_session("nope"))

    def test_update_metadata(self, registry: SessionRegistry) -> None:
        room = asyncio.run(registry.create_room(name="Old"))

        updated = asyncio.run(registry.update_metadata(room.id, description="Now with dragons"))

        assert updated.name == "Old"
        assert updated.description == "Now with dragons"


class TestDashboard:
    """Tests for host listings."""

    def test_list_by_owner_counts_players(
        self,
        registry: SessionRegistry,
        remote: RemoteCharacterStore,
    ) -> None:
        room = asyncio.run(registry.create_room("gm"))
        archived = asyncio.run(registry.create_room("gm"))
        asyncio.run(registry.create_room("someone-else"))
        asyncio.run(registry.archive(archived.id))
        asyncio.run(remote.insert({"name": "Kessa"}, room_id=room.id))

        listings = asyncio.run(registry.list_by_owner("gm"))

        assert [(listing.room.id, listing.player_count) for listing in listings] == [(room.id, 1)]

    def test_details_list_participants(
        self,
        registry: SessionRegistry,
        remote: RemoteCharacterStore,
    ) -> None:
        room = asyncio.run(registry.create_room("gm"))
        asyncio.run(remote.insert({"name": "Kessa"}, room_id=room.id, player_name="Ana"))
        asyncio.run(remote.insert({}, room_id=room.id, player_name="Bo"))

        details = asyncio.run(registry.get_details(room.id))

        names = sorted((p.player_name, p.character_name) for p in details.players)
        assert names == [("Ana", "Kessa"), ("Bo", "Unnamed")]
        assert details.player_count == 2
