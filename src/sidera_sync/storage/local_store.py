"""Device-resident persistence for the active character and known profiles.

The LocalStore is synchronous and never touches the network. It sits on a
small key-value backend: a JSON file on disk for real devices, a dict for
tests and ephemeral sessions.

Persisted keys:
- active_character: the single active CharacterRecord
- profile_summaries: ordered list of ProfileSummary
- session_attachment: current {room_id, character_id}
- last_room_code: last room code created by this device (host recovery)
- character:<id>: per-id record copies for offline loading
"""

from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from sidera_sync.core.config import ProfileSettings
from sidera_sync.core.constants import (
    ACTIVE_CHARACTER_KEY,
    CHARACTER_KEY_PREFIX,
    LAST_ROOM_CODE_KEY,
    PROFILE_SUMMARIES_KEY,
    SESSION_ATTACHMENT_KEY,
)
from sidera_sync.core.logging import get_logger
from sidera_sync.models.character import (
    CharacterRecord,
    ProfileSummary,
    generate_local_id,
)

logger = get_logger(__name__)


# =============================================================================
# Key-Value Backends
# =============================================================================


class KeyValueStore(ABC):
    """Minimal synchronous key-value persistence."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the JSON-compatible value under ``key`` or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def keys(self) -> list[str]:
        """All stored keys."""


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store; values are round-tripped through JSON on write."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, default=str)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """Single JSON file holding every key.

    Writes go to a temporary file in the same directory which then replaces
    the original, so a crash mid-write leaves the previous contents intact.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._data = self._read()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Local store unreadable, starting empty", path=str(self.path))
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._data, handle, default=str)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Any | None:
        value = self._data.get(key)
        # Hand out copies so callers can't mutate the cached document
        return json.loads(json.dumps(value)) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.loads(json.dumps(value, default=str))
        self._flush()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()

    def keys(self) -> list[str]:
        return list(self._data)


# =============================================================================
# Local Store
# =============================================================================


class LocalStore:
    """Device-local persistence for exactly one active record and the profile index."""

    def __init__(
        self,
        backend: KeyValueStore | None = None,
        *,
        profile_settings: ProfileSettings | None = None,
    ) -> None:
        self._kv = backend or MemoryKeyValueStore()
        self._profiles = profile_settings or ProfileSettings()

    @property
    def profile_settings(self) -> ProfileSettings:
        return self._profiles

    # -------------------------------------------------------------------------
    # Active record
    # -------------------------------------------------------------------------

    def get_active(self) -> CharacterRecord:
        """Return the active record, or an empty default record."""
        raw = self._kv.get(ACTIVE_CHARACTER_KEY)
        if raw is None:
            return CharacterRecord()
        try:
            return CharacterRecord.model_validate(raw)
        except PydanticValidationError:
            logger.warning("Stored active character is invalid, using default")
            return CharacterRecord()

    def set_active(self, record: CharacterRecord) -> CharacterRecord:
        """Overwrite the active record.

        When the payload is marked setup-complete the profile summary and
        the by-id copy are refreshed too; a setup-complete record without an
        id is given a local id first.

        Returns:
            The record as stored (possibly with a newly assigned local id).
        """
        if record.is_setup_complete(self._profiles.setup_complete_key):
            if not record.id:
                record = record.model_copy(update={"id": generate_local_id()})
                logger.info("Assigned local id to active character", character_id=record.id)
            self._store_copy(record)
            self.save_profile_summary(ProfileSummary.from_record(record, self._profiles))
        self._kv.set(ACTIVE_CHARACTER_KEY, record.model_dump(mode="json"))
        return record

    def clear_active(self) -> None:
        self._kv.delete(ACTIVE_CHARACTER_KEY)

    # -------------------------------------------------------------------------
    # Profile summaries and per-id copies
    # -------------------------------------------------------------------------

    def list_profile_summaries(self) -> list[ProfileSummary]:
        """Known summaries, in insertion order."""
        summaries: list[ProfileSummary] = []
        for raw in self._kv.get(PROFILE_SUMMARIES_KEY) or []:
            try:
                summaries.append(ProfileSummary.model_validate(raw))
            except PydanticValidationError:
                logger.warning("Skipping invalid profile summary", raw_id=raw.get("id") if isinstance(raw, dict) else None)
        return summaries

    def save_profile_summary(self, summary: ProfileSummary) -> None:
        """Insert or replace the summary with the same id."""
        summaries = self.list_profile_summaries()
        for index, existing in enumerate(summaries):
            if existing.id == summary.id:
                summaries[index] = summary
                break
        else:
            summaries.append(summary)
        self._kv.set(PROFILE_SUMMARIES_KEY, [s.model_dump(mode="json") for s in summaries])

    def save_record(self, record: CharacterRecord) -> CharacterRecord:
        """Store a by-id copy of ``record`` and refresh its summary."""
        if not record.id:
            record = record.model_copy(update={"id": generate_local_id()})
        self._store_copy(record)
        self.save_profile_summary(ProfileSummary.from_record(record, self._profiles))
        return record

    def load_by_id(self, record_id: str) -> CharacterRecord | None:
        raw = self._kv.get(f"{CHARACTER_KEY_PREFIX}{record_id}")
        if raw is None:
            return None
        return CharacterRecord.model_validate(raw)

    def delete_by_id(self, record_id: str) -> bool:
        """Remove the copy and summary for ``record_id``.

        Returns:
            True if anything was removed.
        """
        key = f"{CHARACTER_KEY_PREFIX}{record_id}"
        existed = self._kv.get(key) is not None
        self._kv.delete(key)
        summaries = self.list_profile_summaries()
        remaining = [s for s in summaries if s.id != record_id]
        if len(remaining) != len(summaries):
            existed = True
            self._kv.set(PROFILE_SUMMARIES_KEY, [s.model_dump(mode="json") for s in remaining])
        return existed

    def _store_copy(self, record: CharacterRecord) -> None:
        self._kv.set(f"{CHARACTER_KEY_PREFIX}{record.id}", record.model_dump(mode="json"))

    # -------------------------------------------------------------------------
    # Session slots
    # -------------------------------------------------------------------------

    def get_attachment(self) -> tuple[str | None, str | None]:
        """Return (room_id, character_id) of the current attachment."""
        raw = self._kv.get(SESSION_ATTACHMENT_KEY) or {}
        return raw.get("room_id"), raw.get("character_id")

    def set_attachment(self, room_id: str, character_id: str | None) -> None:
        self._kv.set(SESSION_ATTACHMENT_KEY, {"room_id": room_id, "character_id": character_id})

    def clear_attachment(self) -> None:
        self._kv.delete(SESSION_ATTACHMENT_KEY)

    def get_last_room_code(self) -> str | None:
        return self._kv.get(LAST_ROOM_CODE_KEY)

    def set_last_room_code(self, code: str) -> None:
        self._kv.set(LAST_ROOM_CODE_KEY, code)

    def clear_last_room_code(self) -> None:
        self._kv.delete(LAST_ROOM_CODE_KEY)


__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "LocalStore",
]
