"""Append-only event log (the backend's game_logs table)."""

from __future__ import annotations

from typing import Callable

from sidera_sync.core.constants import GAME_LOGS_TABLE
from sidera_sync.core.exceptions import ValidationError
from sidera_sync.core.logging import get_logger
from sidera_sync.models.events import ChangeEvent, ChangeType, GameLogEntry, LogCategory
from sidera_sync.realtime.feed import ChangeFeed, RowFilter
from sidera_sync.realtime.subscription import Subscription
from sidera_sync.storage.database import Database

logger = get_logger(__name__)


def entry_from_row(row: dict) -> GameLogEntry:
    return GameLogEntry(
        id=row["id"],
        room_id=row["room_id"],
        actor_label=row["player_name"],
        message=row["message"],
        category=LogCategory(row["type"]),
        created_at=row["created_at"],
    )


class EventLog:
    """Room-scoped append-only log of notable session events."""

    def __init__(self, database: Database, feed: ChangeFeed) -> None:
        self._db = database
        self._feed = feed

    async def append(
        self,
        room_id: str,
        actor_label: str,
        message: str,
        category: LogCategory,
    ) -> GameLogEntry:
        """Append one entry.

        Raises:
            ValidationError: If room, actor or message is empty.
            RemoteStoreError: If the backend round-trip fails.
        """
        for field_name, value in (("room_id", room_id), ("actor_label", actor_label), ("message", message)):
            if not value or not value.strip():
                raise ValidationError("Event log fields must not be empty", field_name=field_name)
        row = self._db.insert_log(room_id, actor_label, message, LogCategory(category).value)
        self._feed.publish(ChangeEvent(table=GAME_LOGS_TABLE, type=ChangeType.INSERT, new=row))
        logger.debug("Event logged", room_id=room_id, category=row["type"])
        return entry_from_row(row)

    async def recent(self, room_id: str, limit: int = 50) -> list[GameLogEntry]:
        """The newest ``limit`` entries of a room, oldest first."""
        return [entry_from_row(row) for row in self._db.recent_logs(room_id, limit)]

    def subscribe(self, room_id: str, handler: Callable[[GameLogEntry], None]) -> Subscription:
        """Receive entries appended to ``room_id`` from now on."""

        def on_insert(event: ChangeEvent) -> None:
            if event.new is not None:
                handler(entry_from_row(event.new))

        return self._feed.subscribe(
            GAME_LOGS_TABLE,
            on_insert,
            events={ChangeType.INSERT},
            row_filter=RowFilter("room_id", room_id),
        )


__all__ = ["EventLog", "entry_from_row"]
