"""Host-side dispatch: live roster, side-channel messages and interventions.

The roster is loaded once and then kept current from the tracking feed
(inserts add, updates replace, deletes and rows leaving the room remove).
The newest event log entries are kept the same way.

Interventions write straight to the participant's row with a
revision-checked fetch-merge-write. The owning device learns about them
through its Merge Listener.

Loot grants are ordered so the durable side effect comes first::

    apply_loot on the stored payload  ->  fails: nothing logged, nothing sent
                 |
           one event log entry
                 |
           loot_alert to the target
"""

from __future__ import annotations

from typing import Any

from sidera_sync.broadcast.bus import BroadcastBus
from sidera_sync.broadcast.loot import append_ability, apply_loot
from sidera_sync.core.config import RoomSettings
from sidera_sync.core.constants import ALL_TARGETS, LOOT_ALERT_EVENT, SHOW_IMAGE_EVENT, WHISPER_EVENT
from sidera_sync.core.exceptions import CharacterNotFoundError, ValidationError
from sidera_sync.core.logging import get_logger
from sidera_sync.models.character import CharacterRecord
from sidera_sync.models.events import (
    BroadcastEnvelope,
    ChangeEvent,
    ChangeType,
    GameLogEntry,
    LogCategory,
    LootItem,
    Topic,
)
from sidera_sync.realtime.subscription import Subscription
from sidera_sync.storage.event_log import EventLog
from sidera_sync.storage.remote import RemoteCharacterStore, record_from_row

logger = get_logger(__name__)


class HostDispatcher:
    """Everything the host does to the participants of one room."""

    def __init__(
        self,
        bus: BroadcastBus,
        remote: RemoteCharacterStore,
        event_log: EventLog,
        *,
        settings: RoomSettings | None = None,
        name_key: str = "name",
    ) -> None:
        self._bus = bus
        self._remote = remote
        self._event_log = event_log
        self._settings = settings or RoomSettings()
        self._name_key = name_key
        self._roster: dict[str, CharacterRecord] = {}
        self._tracking: Subscription | None = None
        self._logs: list[GameLogEntry] = []
        self._log_feed: Subscription | None = None

    @property
    def room_id(self) -> str:
        return self._bus.room_id

    @property
    def roster(self) -> list[CharacterRecord]:
        """Participants currently attached to the room."""
        return [record.snapshot() for record in self._roster.values()]

    def get_player(self, player_id: str) -> CharacterRecord | None:
        record = self._roster.get(player_id)
        return record.snapshot() if record else None

    @property
    def logs(self) -> list[GameLogEntry]:
        """The room's latest event log entries, oldest first."""
        return list(self._logs)

    async def open(self) -> None:
        """Load the roster and recent log, then follow changes to both."""
        await self.refresh_roster()
        self._logs = await self.recent_logs()
        if self._tracking is None:
            self._tracking = self._bus.track(self._on_change)
        if self._log_feed is None:
            self._log_feed = self._event_log.subscribe(self.room_id, self._on_log)

    def close(self) -> None:
        for subscription in (self._tracking, self._log_feed):
            if subscription is not None:
                subscription.close()
        self._tracking = None
        self._log_feed = None
        self._roster.clear()
        self._logs.clear()

    async def recent_logs(self) -> list[GameLogEntry]:
        """Fetch the newest ``recent_log_limit`` entries of the room."""
        return await self._event_log.recent(self.room_id, self._settings.recent_log_limit)

    async def refresh_roster(self) -> list[CharacterRecord]:
        """Reload the roster from the backend."""
        records = await self._remote.fetch_by_room(self.room_id)
        self._roster = {record.id: record for record in records if record.id}
        logger.debug("Roster refreshed", room_id=self.room_id, players=len(self._roster))
        return self.roster

    def _on_change(self, event: ChangeEvent) -> None:
        if event.type is ChangeType.DELETE:
            self._roster.pop((event.old or {}).get("id"), None)
            return
        row = event.new
        if row is None:
            return
        if row.get("room_id") == self.room_id:
            self._roster[row["id"]] = record_from_row(row)
        else:
            self._roster.pop(row.get("id"), None)

    def _on_log(self, entry: GameLogEntry) -> None:
        self._logs.append(entry)
        del self._logs[: -self._settings.recent_log_limit]

    def _display_name(self, record: CharacterRecord) -> str:
        return record.name(self._name_key) or record.player_name or "Unknown"

    def _require_player(self, player_id: str) -> CharacterRecord:
        record = self._roster.get(player_id)
        if record is None:
            raise CharacterNotFoundError("Player is not in this room", character_id=player_id)
        return record

    # =========================================================================
    # Side channels
    # =========================================================================

    async def whisper(self, message: str, *, target_id: str = ALL_TARGETS) -> BroadcastEnvelope:
        """Send a private narration line to one participant or everyone."""
        if not message or not message.strip():
            raise ValidationError("Whisper message is required", field_name="message")
        return await self._bus.publish(
            Topic.WHISPERS,
            WHISPER_EVENT,
            {"message": message},
            target_id=target_id,
        )

    async def project_image(
        self,
        url: str,
        *,
        caption: str | None = None,
        target_id: str = ALL_TARGETS,
    ) -> BroadcastEnvelope:
        """Show an image on participants' screens."""
        if not url or not url.strip():
            raise ValidationError("Image url is required", field_name="url")
        payload: dict[str, Any] = {"url": url}
        if caption:
            payload["caption"] = caption
        return await self._bus.publish(Topic.VISUALS, SHOW_IMAGE_EVENT, payload, target_id=target_id)

    # =========================================================================
    # Interventions
    # =========================================================================

    async def update_player(self, player_id: str, changes: dict[str, Any]) -> CharacterRecord:
        """Merge ``changes`` into a participant's stored payload."""
        self._require_player(player_id)
        record = await self._remote.merge_update(player_id, changes)
        logger.info("Player updated by host", room_id=self.room_id, character_id=player_id, fields=sorted(changes))
        return record

    async def give_loot(self, player_id: str, item: LootItem) -> CharacterRecord:
        """Grant an item: persist, log once, then notify the target.

        Raises:
            CharacterNotFoundError: If the player is not in the room.
            RemoteStoreError: If persisting fails; nothing is logged or sent.
        """
        self._require_player(player_id)
        record = await self._remote.apply(player_id, lambda payload: apply_loot(payload, item))
        await self._event_log.append(
            self.room_id,
            self._settings.host_label,
            f"Granted {item.name} to {self._display_name(record)}",
            LogCategory.ITEM,
        )
        await self._bus.publish(
            Topic.LOOT,
            LOOT_ALERT_EVENT,
            {"itemName": item.name, "description": item.description},
            target_id=player_id,
        )
        return record

    async def grant_ability(self, player_id: str, ability: dict[str, Any]) -> CharacterRecord:
        """Append a custom ability to a participant and log it."""
        if not ability.get("name"):
            raise ValidationError("Ability name is required", field_name="name")
        self._require_player(player_id)
        record = await self._remote.apply(player_id, lambda payload: append_ability(payload, ability))
        await self._event_log.append(
            self.room_id,
            self._settings.host_label,
            f"Awakened {ability['name']} in {self._display_name(record)}",
            LogCategory.ALERT,
        )
        return record

    async def kick(self, player_id: str) -> bool:
        """Delete a participant's row. Explicit host action only."""
        self._require_player(player_id)
        deleted = await self._remote.delete(player_id)
        logger.info("Player removed by host", room_id=self.room_id, character_id=player_id)
        return deleted


__all__ = ["HostDispatcher"]
