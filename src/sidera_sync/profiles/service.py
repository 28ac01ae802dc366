"""Profile Index Service: the selectable list of known characters.

Routes by id shape: ``local_``-prefixed ids live only on this device, any
other id names a backend row. Signed-in saves go to the backend and keep a
local cache copy, so ``load`` can answer offline.
"""

from __future__ import annotations

from sidera_sync.core.config import ProfileSettings
from sidera_sync.core.logging import get_logger
from sidera_sync.models.character import (
    CharacterRecord,
    ProfileSummary,
    StorageTier,
    is_local_id,
)
from sidera_sync.storage.local_store import LocalStore
from sidera_sync.storage.remote import RemoteCharacterStore

logger = get_logger(__name__)


class ProfileIndexService:
    """Lists, saves, loads and deletes character profiles."""

    def __init__(
        self,
        local_store: LocalStore,
        remote: RemoteCharacterStore,
        *,
        settings: ProfileSettings | None = None,
    ) -> None:
        self._local = local_store
        self._remote = remote
        self._settings = settings or local_store.profile_settings

    async def list(self, identity_id: str | None = None) -> list[ProfileSummary]:
        """Device summaries followed by the identity's backend profiles.

        A backend profile replaces a cached device summary with the same id.

        Raises:
            RemoteStoreError: If the backend listing fails.
        """
        summaries = self._local.list_profile_summaries()
        if not identity_id:
            return summaries

        remote = [
            ProfileSummary.from_record(
                record,
                self._settings,
                tier=StorageTier.REMOTE,
                last_played=record.updated_at,
            )
            for record in await self._remote.fetch_by_owner(identity_id)
        ]
        remote_ids = {summary.id for summary in remote}
        return [s for s in summaries if s.id not in remote_ids] + remote

    async def save(self, record: CharacterRecord, identity_id: str | None = None) -> str:
        """Save ``record`` and return its id.

        With an identity the record is inserted into the backend when it has
        no backend id yet, and updated otherwise. Without one it is stored on
        the device under a local id.
        """
        name = record.name(self._settings.name_key)
        if not identity_id:
            stored = self._local.save_record(record)
            logger.info("Profile saved locally", character_id=stored.id)
            return stored.id

        if record.has_remote_identity:
            await self._remote.update(record.id, record.payload, player_name=name)
            record_id = record.id
        else:
            # A local profile saved while signed in gets a backend copy; the
            # device copy is kept as a backup.
            record_id = await self._remote.insert(
                record.payload,
                owner_identity_id=identity_id,
                player_name=name,
            )
        self._local.save_record(
            record.model_copy(update={"id": record_id, "owner_identity_id": identity_id})
        )
        logger.info("Profile saved to backend", character_id=record_id)
        return record_id

    async def load(self, record_id: str) -> CharacterRecord | None:
        """The cached device copy if present, else the backend row."""
        cached = self._local.load_by_id(record_id)
        if cached is not None:
            return cached
        if is_local_id(record_id):
            return None
        return await self._remote.fetch(record_id)

    async def delete(self, record_id: str) -> bool:
        """Delete a profile where it lives. Explicit user action only."""
        if is_local_id(record_id):
            return self._local.delete_by_id(record_id)
        deleted = await self._remote.delete(record_id)
        self._local.delete_by_id(record_id)
        return deleted


__all__ = ["ProfileIndexService"]
