"""Tests for the SQLite backend tables."""

from __future__ import annotations

from pathlib import Path

import pytest

from sidera_sync.core.exceptions import (
    CharacterNotFoundError,
    RemoteStoreError,
    RoomCodeConflictError,
    WriteConflictError,
)
from sidera_sync.storage.database import Database


class TestRooms:
    """Tests for room rows."""

    def test_insert_and_find(self, database: Database) -> None:
        room = database.insert_room("SIDERA-A1B2", status="active", session_number=1)

        found = database.find_room_by_code("SIDERA-A1B2", ("active", "paused"))

        assert found is not None
        assert found["id"] == room["id"]

    def test_find_respects_status(self, database: Database) -> None:
        database.insert_room("SIDERA-A1B2", status="archived", session_number=1)
        assert database.find_room_by_code("SIDERA-A1B2", ("active", "paused")) is None

    def test_duplicate_code_rejected(self, database: Database) -> None:
        database.insert_room("SIDERA-A1B2", status="archived", session_number=1)

        with pytest.raises(RoomCodeConflictError) as exc_info:
            database.insert_room("SIDERA-A1B2", status="active", session_number=1)

        assert exc_info.value.details["code"] == "SIDERA-A1B2"

    def test_update_missing_room(self, database: Database) -> None:
        assert database.update_room("nope", status="paused") is None

    def test_update_to_taken_code(self, database: Database) -> None:
        database.insert_room("SIDERA-AAAA", status="active", session_number=1)
        room = database.insert_room("SIDERA-BBBB", status="active", session_number=1)

        with pytest.raises(RoomCodeConflictError):
            database.update_room(room["id"], code="SIDERA-AAAA")

    def test_list_by_owner_order(self, database: Database) -> None:
        database.insert_room("SIDERA-0001", status="paused", session_number=0, owner_identity_id="gm")
        recent = database.insert_room(
            "SIDERA-0002",
            status="active",
            session_number=1,
            owner_identity_id="gm",
            last_session_at="2026-05-01T00:00:00+00:00",
        )
        database.insert_room("SIDERA-0003", status="archived", session_number=1, owner_identity_id="gm")

        rows = database.list_rooms_by_owner("gm", exclude_status="archived")

        assert [row["code"] for row in rows] == ["SIDERA-0002", "SIDERA-0001"]
        assert rows[0]["id"] == recent["id"]


class TestCharacters:
    """Tests for character rows."""

    def test_insert_round_trip(self, database: Database) -> None:
        row = database.insert_character({"name": "Kessa"}, user_id="u-1", player_name="Ana")

        stored = database.get_character(row["id"])

        assert stored["character_data"] == {"name": "Kessa"}
        assert stored["revision"] == 1
        assert stored["room_id"] is None

    def test_update_bumps_revision(self, database: Database) -> None:
        row = database.insert_character({"hp": 1})

        before, after = database.update_character(row["id"], character_data={"hp": 2})

        assert before["character_data"] == {"hp": 1}
        assert after["character_data"] == {"hp": 2}
        assert after["revision"] == 2

    def test_revision_check(self, database: Database) -> None:
        row = database.insert_character({"hp": 1})
        database.update_character(row["id"], character_data={"hp": 2})

        with pytest.raises(WriteConflictError) as exc_info:
            database.update_character(row["id"], expected_revision=1, character_data={"hp": 3})

        assert exc_info.value.details["actual_revision"] == 2
        assert database.get_character(row["id"])["character_data"] == {"hp": 2}

    def test_update_missing(self, database: Database) -> None:
        with pytest.raises(CharacterNotFoundError):
            database.update_character("nope", character_data={})

    def test_list_and_count(self, database: Database) -> None:
        room = database.insert_room("SIDERA-A1B2", status="active", session_number=1)
        database.insert_character({}, room_id=room["id"], user_id="u-1")
        database.insert_character({}, room_id=room["id"])
        database.insert_character({}, user_id="u-1")

        assert len(database.list_characters(room_id=room["id"])) == 2
        assert len(database.list_characters(user_id="u-1")) == 2
        assert database.count_characters(room["id"]) == 2

    def test_delete(self, database: Database) -> None:
        row = database.insert_character({"name": "Kessa"})

        deleted = database.delete_character(row["id"])

        assert deleted["id"] == row["id"]
        assert database.get_character(row["id"]) is None
        assert database.delete_character(row["id"]) is None


class TestGameLogs:
    """Tests for the event log table."""

    def test_recent_is_oldest_first(self, database: Database) -> None:
        for n in range(5):
            database.insert_log("r-1", "GM", f"entry {n}", "alert")
        database.insert_log("r-2", "GM", "elsewhere", "alert")

        rows = database.recent_logs("r-1", 3)

        assert [row["message"] for row in rows] == ["entry 2", "entry 3", "entry 4"]
        assert database.count_logs("r-1") == 5


class TestBackendFailures:
    def test_unreachable_backend(self, tmp_path: Path) -> None:
        """Test a broken database file surfaces as RemoteStoreError."""
        database = Database(tmp_path / "db.sqlite")
        database.db_path.write_bytes(b"this is not a database" * 100)

        with pytest.raises(RemoteStoreError):
            database.get_character("x")

    def test_constraint_violation_is_wrapped(self, database: Database) -> None:
        """Test a constraint failure outside the rooms table is a RemoteStoreError."""
        room = database.insert_room("SIDERA-A1B2", status="active", session_number=1)

        with pytest.raises(RemoteStoreError) as exc_info:
            database.insert_log(room["id"], None, "Rolled a 20", "roll")

        assert exc_info.value.details["operation"] == "insert_log"
        assert database.count_logs(room["id"]) == 0
