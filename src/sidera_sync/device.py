"""Per-device wiring.

A DeviceContext owns everything that lives on one participant's or host's
device: the local store, the active-record container and the sync machinery
around it. The backend is shared and passed in.

Example:
    >>> backend = Backend.open("data/sidera.db")
    >>> device = DeviceContext(backend)
    >>> device.edit({"name": "Kessa"})
    >>> await device.protocol.join("Ana", "SIDERA-A1B2")
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from sidera_sync.backend import Backend
from sidera_sync.broadcast.inbox import NoticeCallback
from sidera_sync.core.config import Settings, get_settings
from sidera_sync.core.exceptions import SessionStateError
from sidera_sync.core.logging import get_logger
from sidera_sync.identity import IdentityProvider, StaticIdentity
from sidera_sync.models.character import CharacterRecord, SyncStatus
from sidera_sync.profiles.service import ProfileIndexService
from sidera_sync.session.protocol import SessionProtocol, SessionState
from sidera_sync.storage.local_store import (
    JsonFileKeyValueStore,
    KeyValueStore,
    LocalStore,
)
from sidera_sync.sync.engine import DebouncedSyncEngine
from sidera_sync.sync.merge import RealtimeMergeListener
from sidera_sync.sync.state import ChangeOrigin, CharacterStateStore

logger = get_logger(__name__)


class DeviceContext:
    """One device's view of the system."""

    def __init__(
        self,
        backend: Backend,
        *,
        local_backend: KeyValueStore | None = None,
        identity: IdentityProvider | None = None,
        settings: Settings | None = None,
        bonus_hp: Mapping[str, int] | None = None,
        debounce_seconds: float | None = None,
        on_whisper: NoticeCallback | None = None,
        on_visual: NoticeCallback | None = None,
        on_loot: NoticeCallback | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.backend = backend
        self.identity = identity or StaticIdentity()
        self.local = LocalStore(local_backend, profile_settings=self.settings.profiles)
        self.state = CharacterStateStore(self.local, bonus_hp=bonus_hp)
        self.engine = DebouncedSyncEngine(
            self.state,
            backend.characters,
            delay=debounce_seconds,
            settings=self.settings.sync,
        )
        self.merge = RealtimeMergeListener(self.state, backend.feed)
        self.protocol = SessionProtocol(
            backend,
            self.local,
            self.state,
            self.engine,
            self.merge,
            identity=self.identity,
            settings=self.settings,
            on_whisper=on_whisper,
            on_visual=on_visual,
            on_loot=on_loot,
        )
        self.profiles = ProfileIndexService(self.local, backend.characters, settings=self.settings.profiles)
        self.engine.start()

    @classmethod
    def on_disk(
        cls,
        backend: Backend,
        path: str | Path | None = None,
        **kwargs: Any,
    ) -> DeviceContext:
        """A device whose local store is a JSON file."""
        settings = kwargs.get("settings") or get_settings()
        store = JsonFileKeyValueStore(path or settings.storage.local_store_path)
        return cls(backend, local_backend=store, **kwargs)

    @property
    def record(self) -> CharacterRecord:
        return self.state.get()

    @property
    def sync_status(self) -> SyncStatus:
        return self.engine.status

    def edit(self, changes: Mapping[str, Any]) -> CharacterRecord:
        """Apply a local edit to the active record."""
        return self.state.update(changes, ChangeOrigin.LOCAL)

    async def select_profile(self, record_id: str) -> CharacterRecord | None:
        """Make a known profile the active record.

        A pending edit of the current record is pushed before switching.

        Raises:
            SessionStateError: If the device is attached to a room.
        """
        if self.protocol.state is not SessionState.UNATTACHED:
            raise SessionStateError(
                "Leave the room before switching characters",
                current_state=self.protocol.state.value,
                expected_states=[SessionState.UNATTACHED.value],
            )
        record = await self.profiles.load(record_id)
        if record is None:
            return None
        await self.engine.flush()
        return self.state.set(record.detached(), ChangeOrigin.SYSTEM)

    async def close(self) -> None:
        """Push anything pending and stop background work."""
        await self.engine.flush()
        self.engine.stop()
        self.merge.detach()


__all__ = ["DeviceContext"]
