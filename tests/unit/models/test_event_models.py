"""Tests for broadcast, change and room models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from sidera_sync.models.events import (
    BroadcastEnvelope,
    ChangeEvent,
    ChangeType,
    LootItem,
    LootKind,
    Topic,
)
from sidera_sync.models.room import RoomDetails, RoomParticipant, RoomStatus, SessionRoom


class TestBroadcastEnvelope:
    """Tests for envelope targeting."""

    def test_broadcast_to_all(self) -> None:
        envelope = BroadcastEnvelope(topic=Topic.WHISPERS, event="whisper")
        assert envelope.target_id == "all"
        assert envelope.is_for("c-1")
        assert envelope.is_for(None)

    def test_targeted(self) -> None:
        envelope = BroadcastEnvelope(topic=Topic.LOOT, event="loot_alert", target_id="c-1")
        assert envelope.is_for("c-1")
        assert not envelope.is_for("c-2")
        assert not envelope.is_for(None)

    def test_round_trips_through_json(self) -> None:
        envelope = BroadcastEnvelope(topic=Topic.VISUALS, event="show_image", payload={"url": "u"})

        restored = BroadcastEnvelope.model_validate(envelope.model_dump(mode="json"))

        assert restored == envelope

    def test_channel_name(self) -> None:
        assert Topic.WHISPERS.channel_name("r-1") == "room-whispers:r-1"


class TestChangeEvent:
    def test_row_prefers_new(self) -> None:
        event = ChangeEvent(table="characters", type=ChangeType.UPDATE, new={"id": "n"}, old={"id": "o"})
        assert event.row == {"id": "n"}

    def test_row_of_delete(self) -> None:
        event = ChangeEvent(table="characters", type=ChangeType.DELETE, old={"id": "o"})
        assert event.row == {"id": "o"}


class TestLootItem:
    def test_defaults(self) -> None:
        item = LootItem(name="Rope")
        assert item.kind is LootKind.GENERAL
        assert item.weight == 1

    def test_name_required(self) -> None:
        with pytest.raises(PydanticValidationError):
            LootItem(name="")


class TestSessionRoom:
    def test_only_active_is_joinable(self) -> None:
        assert SessionRoom(id="r", code="SIDERA-AAAA").is_joinable
        assert not SessionRoom(id="r", code="SIDERA-AAAA", status=RoomStatus.PAUSED).is_joinable

    def test_guest_room(self) -> None:
        assert SessionRoom(id="r", code="SIDERA-AAAA").is_guest
        assert not SessionRoom(id="r", code="SIDERA-AAAA", owner_identity_id="u").is_guest

    def test_details_player_count(self) -> None:
        details = RoomDetails(
            room=SessionRoom(id="r", code="SIDERA-AAAA"),
            players=[RoomParticipant(id="c", character_name="Kessa")],
        )
        assert details.player_count == 1
