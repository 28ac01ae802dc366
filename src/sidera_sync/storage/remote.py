"""Remote Character Store: the backend's characters table.

Every operation is an awaited round-trip; other mutations (local edits,
inbound change notifications) may interleave at each ``await``. Successful
writes are published on the change feed, which is how Merge Listeners and
host rosters learn about them.

``update`` is a whole-document replace. Callers that only want to change a
few fields use ``merge_update``/``apply``, which fetch, merge and write with
a revision check, retrying when another writer got there first.
"""

from __future__ import annotations

import copy
from typing import Any, Callable

from tenacity import retry, retry_if_exception_type, stop_after_attempt

from sidera_sync.core.constants import CHARACTERS_TABLE
from sidera_sync.core.exceptions import CharacterNotFoundError, WriteConflictError
from sidera_sync.core.logging import get_logger
from sidera_sync.models.character import CharacterRecord
from sidera_sync.models.events import ChangeEvent, ChangeType
from sidera_sync.realtime.feed import ChangeFeed
from sidera_sync.storage.database import Database

logger = get_logger(__name__)

MERGE_ATTEMPTS = 3
"""Fetch-merge-write attempts before a WriteConflictError is surfaced."""

PayloadMutation = Callable[[dict[str, Any]], dict[str, Any]]


def record_from_row(row: dict[str, Any]) -> CharacterRecord:
    """Build a CharacterRecord from a characters row."""
    return CharacterRecord(
        id=row["id"],
        owner_identity_id=row.get("user_id"),
        session_room_id=row.get("room_id"),
        player_name=row.get("player_name"),
        payload=row.get("character_data") or {},
        revision=row.get("revision", 0),
        updated_at=row.get("updated_at"),
    )


class RemoteCharacterStore:
    """Async access to character rows with change-feed publication."""

    def __init__(self, database: Database, feed: ChangeFeed) -> None:
        self._db = database
        self._feed = feed

    def _publish(
        self,
        change: ChangeType,
        *,
        new: dict[str, Any] | None = None,
        old: dict[str, Any] | None = None,
    ) -> None:
        self._feed.publish(ChangeEvent(table=CHARACTERS_TABLE, type=change, new=new, old=old))

    async def insert(
        self,
        payload: dict[str, Any],
        *,
        owner_identity_id: str | None = None,
        room_id: str | None = None,
        player_name: str | None = None,
    ) -> str:
        """Insert a character row.

        Returns:
            The new row id.

        Raises:
            RemoteStoreError: If the backend round-trip fails.
        """
        row = self._db.insert_character(
            payload,
            room_id=room_id,
            user_id=owner_identity_id,
            player_name=player_name,
        )
        logger.info("Character inserted", character_id=row["id"], room_id=room_id)
        self._publish(ChangeType.INSERT, new=row)
        return row["id"]

    async def update(
        self,
        character_id: str,
        payload: dict[str, Any],
        *,
        expected_revision: int | None = None,
        player_name: str | None = None,
    ) -> bool:
        """Replace the whole payload of a row.

        Args:
            character_id: Row to write.
            payload: New document; replaces the stored one entirely.
            expected_revision: Opt-in optimistic check; when omitted the write
                is last-write-wins.
            player_name: Optionally refresh the participant name column.

        Returns:
            True on success.

        Raises:
            CharacterNotFoundError: If the row is gone.
            WriteConflictError: If ``expected_revision`` no longer matches.
            RemoteStoreError: If the backend round-trip fails.
        """
        fields: dict[str, Any] = {"character_data": payload}
        if player_name is not None:
            fields["player_name"] = player_name
        before, after = self._db.update_character(
            character_id, expected_revision=expected_revision, **fields
        )
        logger.debug("Character updated", character_id=character_id, revision=after["revision"])
        self._publish(ChangeType.UPDATE, new=after, old=before)
        return True

    async def fetch(self, character_id: str) -> CharacterRecord | None:
        row = self._db.get_character(character_id)
        return record_from_row(row) if row else None

    async def fetch_by_room(self, room_id: str) -> list[CharacterRecord]:
        return [record_from_row(row) for row in self._db.list_characters(room_id=room_id)]

    async def fetch_by_owner(self, owner_identity_id: str) -> list[CharacterRecord]:
        return [record_from_row(row) for row in self._db.list_characters(user_id=owner_identity_id)]

    async def count_by_room(self, room_id: str) -> int:
        return self._db.count_characters(room_id)

    async def attach_to_room(
        self,
        character_id: str,
        room_id: str,
        payload: dict[str, Any],
        *,
        player_name: str | None = None,
    ) -> CharacterRecord:
        """Attach an existing row to a room, pushing ``payload`` as authoritative.

        Raises:
            CharacterNotFoundError: If the row is gone.
            RemoteStoreError: If the backend round-trip fails.
        """
        fields: dict[str, Any] = {"room_id": room_id, "character_data": payload}
        if player_name is not None:
            fields["player_name"] = player_name
        before, after = self._db.update_character(character_id, **fields)
        logger.info("Character attached to room", character_id=character_id, room_id=room_id)
        self._publish(ChangeType.UPDATE, new=after, old=before)
        return record_from_row(after)

    async def detach_from_room(self, character_id: str) -> None:
        """Clear the room of a row without deleting it.

        Raises:
            CharacterNotFoundError: If the row is gone.
            RemoteStoreError: If the backend round-trip fails.
        """
        before, after = self._db.update_character(character_id, room_id=None)
        logger.info("Character detached from room", character_id=character_id, room_id=before["room_id"])
        self._publish(ChangeType.UPDATE, new=after, old=before)

    async def delete(self, character_id: str) -> bool:
        """Hard-delete a row. Only ever called on explicit user action.

        Returns:
            True if a row was deleted.
        """
        row = self._db.delete_character(character_id)
        if row is None:
            return False
        logger.info("Character deleted", character_id=character_id)
        self._publish(ChangeType.DELETE, old=row)
        return True

    @retry(
        retry=retry_if_exception_type(WriteConflictError),
        stop=stop_after_attempt(MERGE_ATTEMPTS),
        reraise=True,
    )
    async def apply(self, character_id: str, mutation: PayloadMutation) -> CharacterRecord:
        """Fetch a row, transform its payload and write it back.

        The write is revision-checked; if another writer landed in between,
        the whole fetch-transform-write is repeated against the fresh row.

        Args:
            character_id: Row to change.
            mutation: Receives a private copy of the stored payload and
                returns the payload to write.

        Returns:
            The record as written.

        Raises:
            CharacterNotFoundError: If the row does not exist.
            WriteConflictError: If every attempt lost a race.
            RemoteStoreError: If the backend round-trip fails.
        """
        current = await self.fetch(character_id)
        if current is None:
            raise CharacterNotFoundError("Character not found for update", character_id=character_id)
        payload = mutation(copy.deepcopy(current.payload))
        before, after = self._db.update_character(
            character_id,
            expected_revision=current.revision,
            character_data=payload,
        )
        self._publish(ChangeType.UPDATE, new=after, old=before)
        return record_from_row(after)

    async def merge_update(self, character_id: str, updates: dict[str, Any]) -> CharacterRecord:
        """Shallow-merge ``updates`` into the stored payload (fetch-merge-write)."""
        return await self.apply(character_id, lambda payload: {**payload, **updates})


__all__ = ["RemoteCharacterStore", "record_from_row"]
