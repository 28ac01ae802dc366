"""Tests for character record and profile summary models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest
from pydantic import ValidationError as PydanticValidationError

from sidera_sync.core.config import ProfileSettings
from sidera_sync.models.character import (
    CharacterRecord,
    ProfileSummary,
    StorageTier,
    generate_local_id,
    is_local_id,
    is_remote_id,
)


class TestIdShapes:
    """Tests for local/remote id helpers."""

    def test_generated_local_id(self) -> None:
        record_id = generate_local_id()
        assert record_id.startswith("local_")
        assert is_local_id(record_id)
        assert not is_remote_id(record_id)

    def test_remote_id(self) -> None:
        assert is_remote_id("3f2c9a")
        assert not is_local_id("3f2c9a")

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_id_is_neither(self, value: str | None) -> None:
        assert not is_local_id(value)
        assert not is_remote_id(value)


class TestCharacterRecord:
    """Tests for CharacterRecord."""

    def test_default_record_is_empty(self) -> None:
        record = CharacterRecord()
        assert record.id is None
        assert record.payload == {}
        assert record.revision == 0
        assert not record.has_remote_identity
        assert not record.is_attached

    def test_remote_identity(self) -> None:
        assert CharacterRecord(id="row-1").has_remote_identity
        assert not CharacterRecord(id="local_1").has_remote_identity

    def test_name_and_setup(self, sample_payload: dict[str, Any]) -> None:
        record = CharacterRecord(payload=sample_payload)
        assert record.name() == "Kessa"
        assert record.is_setup_complete()
        assert CharacterRecord(payload={"name": ""}).name() is None

    def test_with_payload_copies(self) -> None:
        """Test the new payload is not shared with the caller."""
        payload = {"inventory": ["rope"]}
        record = CharacterRecord(id="row-1").with_payload(payload)

        payload["inventory"].append("lamp")

        assert record.payload == {"inventory": ["rope"]}

    def test_detached_keeps_everything_else(self, sample_payload: dict[str, Any]) -> None:
        record = CharacterRecord(id="row-1", session_room_id="room-1", payload=sample_payload)

        detached = record.detached()

        assert detached.session_room_id is None
        assert detached.id == "row-1"
        assert detached.payload == sample_payload

    def test_rejects_unknown_fields(self) -> None:
        with pytest.raises(PydanticValidationError):
            CharacterRecord.model_validate({"id": "x", "colour": "red"})


class TestProfileSummary:
    """Tests for ProfileSummary projection."""

    def test_from_local_record(self, sample_payload: dict[str, Any]) -> None:
        record = CharacterRecord(id="local_42", payload=sample_payload)

        summary = ProfileSummary.from_record(record, ProfileSettings())

        assert summary.id == "local_42"
        assert summary.name == "Kessa"
        assert summary.headline == {"archetypeId": "vanguard", "orbit": 2}
        assert summary.tier is StorageTier.LOCAL

    def test_from_remote_record_with_timestamp(self) -> None:
        stamp = datetime(2026, 3, 1, tzinfo=timezone.utc)
        record = CharacterRecord(id="row-9", player_name="Ana", payload={})

        summary = ProfileSummary.from_record(record, ProfileSettings(), last_played=stamp)

        assert summary.tier is StorageTier.REMOTE
        assert summary.name == "Ana"
        assert summary.last_played == stamp

    def test_fallback_name(self) -> None:
        summary = ProfileSummary.from_record(CharacterRecord(id="local_1"), ProfileSettings())
        assert summary.name == "Unnamed"

    def test_requires_id(self) -> None:
        with pytest.raises(ValueError):
            ProfileSummary.from_record(CharacterRecord(), ProfileSettings())
