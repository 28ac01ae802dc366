"""Debounced Sync Engine: trailing-debounce pushes of the active record.

Local edits to a record with a remote identity arm a timer; every further
edit inside the window restarts it. When the window elapses the current
payload is written with a whole-document update. Bursts of edits therefore
produce exactly one write carrying the last payload.

Status transitions:
    saved  -> saving   the instant the timer is armed
    saving -> saved    push succeeded and nothing new is pending
    saving -> error    push failed; nothing retries until the next edit
"""

from __future__ import annotations

import asyncio
from typing import Callable

from sidera_sync.core.config import SyncSettings
from sidera_sync.core.exceptions import NotFoundError, RemoteStoreError
from sidera_sync.core.logging import get_logger
from sidera_sync.models.character import CharacterRecord, SyncStatus
from sidera_sync.storage.remote import RemoteCharacterStore
from sidera_sync.sync.scheduler import ScheduledTask
from sidera_sync.sync.state import ChangeOrigin, CharacterStateStore

logger = get_logger(__name__)

StatusListener = Callable[[SyncStatus], None]


class DebouncedSyncEngine:
    """Pushes local edits of the active record to the backend."""

    def __init__(
        self,
        state: CharacterStateStore,
        remote: RemoteCharacterStore,
        *,
        delay: float | None = None,
        settings: SyncSettings | None = None,
    ) -> None:
        if delay is None:
            delay = (settings or SyncSettings()).debounce_seconds
        self._state = state
        self._remote = remote
        self._task = ScheduledTask(self._push, delay, name="character-sync")
        self._lock = asyncio.Lock()
        self._status = SyncStatus.SAVED
        self._status_listeners: list[StatusListener] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._armed_id: str | None = None
        self.last_error: Exception | None = None
        self.push_count = 0

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def pending(self) -> bool:
        return self._task.pending

    @property
    def delay(self) -> float:
        return self._task.delay

    def subscribe_status(self, listener: StatusListener) -> Callable[[], None]:
        """Observe status changes; returns an unsubscribe function."""
        self._status_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._status_listeners:
                self._status_listeners.remove(listener)

        return unsubscribe

    def start(self) -> None:
        """Begin watching the state container."""
        if self._unsubscribe is None:
            self._unsubscribe = self._state.subscribe(self._on_change)

    def stop(self) -> None:
        """Stop watching and drop any pending push."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._task.cancel()

    async def flush(self) -> bool:
        """Push now if a push is pending.

        Returns:
            True if a pending push was run.
        """
        return await self._task.flush()

    async def wait_idle(self) -> None:
        """Wait for an in-flight push to finish."""
        await self._task.wait()

    def _on_change(self, record: CharacterRecord, origin: ChangeOrigin) -> None:
        if origin is not ChangeOrigin.LOCAL or not record.has_remote_identity:
            return
        self._armed_id = record.id
        self._task.arm()
        self._set_status(SyncStatus.SAVING)

    async def _push(self) -> None:
        async with self._lock:
            record = self._state.get()
            if not record.has_remote_identity:
                self._set_status(SyncStatus.SAVED)
                return
            if record.id != self._armed_id:
                # The edited record is no longer active; its payload is gone
                logger.warning(
                    "Active record changed before push, skipping",
                    armed_id=self._armed_id,
                    character_id=record.id,
                )
                self._set_status(SyncStatus.SAVED)
                return
            try:
                await self._remote.update(record.id, record.payload)
            except (RemoteStoreError, NotFoundError) as exc:
                self.last_error = exc
                logger.warning("Background sync failed", character_id=record.id, error=str(exc))
                self._set_status(SyncStatus.ERROR)
                return
            self.push_count += 1
            self.last_error = None
            logger.debug("Character pushed", character_id=record.id)
            if not self._task.pending:
                self._set_status(SyncStatus.SAVED)

    def _set_status(self, status: SyncStatus) -> None:
        if status is self._status:
            return
        self._status = status
        for listener in list(self._status_listeners):
            listener(status)


__all__ = ["DebouncedSyncEngine", "StatusListener"]
