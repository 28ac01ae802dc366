"""Realtime Merge Listener: folds backend changes into the active record.

While attached to a record id, every UPDATE of that row is compared by value
with the local payload. Equal payloads are the echo of this device's own
push and are dropped, which keeps a successful push from bouncing back as a
local replace and another debounce. Different payloads replace local state
wholesale; if a local edit and a remote write race, the one that lands last
at the backend wins.
"""

from __future__ import annotations

from sidera_sync.core.constants import CHARACTERS_TABLE
from sidera_sync.core.logging import get_logger
from sidera_sync.models.events import ChangeEvent, ChangeType
from sidera_sync.realtime.feed import ChangeFeed, RowFilter
from sidera_sync.realtime.subscription import Subscription
from sidera_sync.sync.state import CharacterStateStore

logger = get_logger(__name__)


class RealtimeMergeListener:
    """Subscribes to one character row and merges remote-origin payloads."""

    def __init__(self, state: CharacterStateStore, feed: ChangeFeed) -> None:
        self._state = state
        self._feed = feed
        self._subscription: Subscription | None = None
        self._record_id: str | None = None
        self.merged_count = 0
        self.ignored_count = 0

    @property
    def attached_id(self) -> str | None:
        return self._record_id if self._subscription is not None else None

    def attach(self, record_id: str) -> None:
        """Listen for changes to ``record_id``, replacing any prior subscription."""
        self.detach()
        self._record_id = record_id
        self._subscription = self._feed.subscribe(
            CHARACTERS_TABLE,
            self._on_change,
            events={ChangeType.UPDATE},
            row_filter=RowFilter("id", record_id),
        )
        logger.debug("Merge listener attached", character_id=record_id)

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            logger.debug("Merge listener detached", character_id=self._record_id)
        self._subscription = None
        self._record_id = None

    def _on_change(self, event: ChangeEvent) -> None:
        row = event.new
        if row is None or row.get("id") != self._record_id:
            return
        if self._state.record_id != self._record_id:
            # Active record switched without a detach
            return
        if self._state.replace_from_remote(row.get("character_data") or {}):
            self.merged_count += 1
            logger.info("Remote change merged", character_id=self._record_id, revision=row.get("revision"))
        else:
            self.ignored_count += 1


__all__ = ["RealtimeMergeListener"]
