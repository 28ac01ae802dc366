"""Tests for the debounced sync engine."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from sidera_sync.core.exceptions import CharacterNotFoundError
from sidera_sync.models.character import CharacterRecord, SyncStatus
from sidera_sync.models.events import ChangeEvent, ChangeType
from sidera_sync.realtime.feed import ChangeFeed
from sidera_sync.storage.local_store import LocalStore
from sidera_sync.storage.remote import RemoteCharacterStore
from sidera_sync.sync.engine import DebouncedSyncEngine
from sidera_sync.sync.state import ChangeOrigin, CharacterStateStore


DELAY = 0.05


@pytest.fixture
def state(local_store: LocalStore) -> CharacterStateStore:
    return CharacterStateStore(local_store)


@pytest.fixture
def engine(state: CharacterStateStore, remote: RemoteCharacterStore) -> DebouncedSyncEngine:
    engine = DebouncedSyncEngine(state, remote, delay=DELAY)
    engine.start()
    return engine


@pytest.fixture
def row_id(remote: RemoteCharacterStore, state: CharacterStateStore) -> str:
    """A backend row that is also the active record."""
    new_id = asyncio.run(remote.insert({"name": "Kessa", "gold": 0}))
    state.set(CharacterRecord(id=new_id, payload={"name": "Kessa", "gold": 0}), ChangeOrigin.SYSTEM)
    return new_id


@pytest.fixture
def updates(feed: ChangeFeed) -> list[ChangeEvent]:
    received: list[ChangeEvent] = []
    feed.subscribe("characters", received.append, events={ChangeType.UPDATE})
    return received


class TestDebounce:
    """Tests for the trailing debounce."""

    def test_burst_produces_one_write(
        self,
        engine: DebouncedSyncEngine,
        state: CharacterStateStore,
        remote: RemoteCharacterStore,
        row_id: str,
        updates: list[ChangeEvent],
    ) -> None:
        """Test several edits inside the window are pushed once with the last payload."""

        async def scenario() -> None:
            for gold in range(1, 6):
                state.update({"gold": gold})
                await asyncio.sleep(DELAY / 5)
            assert engine.status is SyncStatus.SAVING
            await asyncio.sleep(DELAY * 3)
            await engine.wait_idle()

        asyncio.run(scenario())

        assert len(updates) == 1
        assert updates[0].new["character_data"]["gold"] == 5
        assert engine.push_count == 1
        assert engine.status is SyncStatus.SAVED
        assert asyncio.run(remote.fetch(row_id)).payload["gold"] == 5

    @pytest.mark.parametrize("origin", [ChangeOrigin.REMOTE, ChangeOrigin.SYSTEM])
    def test_non_local_changes_not_pushed(
        self,
        engine: DebouncedSyncEngine,
        state: CharacterStateStore,
        row_id: str,
        updates: list[ChangeEvent],
        origin: ChangeOrigin,
    ) -> None:
        async def scenario() -> None:
            state.update({"gold": 7}, origin)
            assert not engine.pending
            await asyncio.sleep(DELAY * 2)

        asyncio.run(scenario())

        assert updates == []
        assert engine.status is SyncStatus.SAVED

    def test_record_without_remote_id_not_pushed(
        self,
        engine: DebouncedSyncEngine,
        state: CharacterStateStore,
        updates: list[ChangeEvent],
    ) -> None:
        async def scenario() -> None:
            state.set(CharacterRecord(payload={"name": "Offline"}))
            assert not engine.pending

        asyncio.run(scenario())

        assert updates == []

    def test_flush_pushes_immediately(
        self,
        state: CharacterStateStore,
        remote: RemoteCharacterStore,
        row_id: str,
    ) -> None:
        engine = DebouncedSyncEngine(state, remote, delay=30)
        engine.start()

        async def scenario() -> bool:
            state.update({"gold": 9})
            return await engine.flush()

        assert asyncio.run(scenario()) is True
        assert asyncio.run(remote.fetch(row_id)).payload["gold"] == 9

    def test_stop_drops_pending_push(
        self,
        engine: DebouncedSyncEngine,
        state: CharacterStateStore,
        row_id: str,
        updates: list[ChangeEvent],
    ) -> None:
        async def scenario() -> None:
            state.update({"gold": 3})
            engine.stop()
            state.update({"gold": 4})
            await asyncio.sleep(DELAY * 2)

        asyncio.run(scenario())

        assert updates == []

    def test_switched_record_is_not_written(
        self,
        engine: DebouncedSyncEngine,
        state: CharacterStateStore,
        remote: RemoteCharacterStore,
        row_id: str,
        updates: list[ChangeEvent],
    ) -> None:
        """Test a timer armed for one record never writes a different active record."""
        other_id = asyncio.run(remote.insert({"name": "Bo"}))

        async def scenario() -> None:
            state.update({"gold": 3})
            state.set(CharacterRecord(id=other_id, payload={"name": "Bo"}), ChangeOrigin.SYSTEM)
            await asyncio.sleep(DELAY * 3)
            await engine.wait_idle()

        asyncio.run(scenario())

        assert updates == []
        assert engine.push_count == 0
        assert engine.status is SyncStatus.SAVED
        assert asyncio.run(remote.fetch(other_id)).revision == 1


class TestStatus:
    """Tests for the observable sync status."""

    def test_saving_then_saved(
        self,
        engine: DebouncedSyncEngine,
        state: CharacterStateStore,
        row_id: str,
    ) -> None:
        statuses: list[SyncStatus] = []
        engine.subscribe_status(statuses.append)

        async def scenario() -> None:
            state.update({"gold": 1})
            state.update({"gold": 2})
            await engine.flush()

        asyncio.run(scenario())

        assert statuses == [SyncStatus.SAVING, SyncStatus.SAVED]

    def test_failed_push_reports_error_and_waits_for_next_edit(
        self,
        engine: DebouncedSyncEngine,
        state: CharacterStateStore,
        remote: RemoteCharacterStore,
        row_id: str,
    ) -> None:
        """Test a failed push is not retried until the record changes again."""

        async def scenario() -> list[Any]:
            await remote.delete(row_id)
            state.update({"gold": 1})
            await engine.flush()
            seen = [engine.status, engine.pending]
            state.update({"gold": 2})
            seen.append(engine.status)
            return seen

        assert asyncio.run(scenario()) == [SyncStatus.ERROR, False, SyncStatus.SAVING]
        assert isinstance(engine.last_error, CharacterNotFoundError)
        assert engine.push_count == 0

    def test_default_delay_from_settings(self, state: CharacterStateStore, remote: RemoteCharacterStore) -> None:
        assert DebouncedSyncEngine(state, remote).delay == 1.0
