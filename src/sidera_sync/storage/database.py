"""SQLite realisation of the shared relational backend.

Holds the three backend tables:
- rooms: session rooms and their join codes
- characters: one row per character record, JSON payload in character_data
- game_logs: append-only event log

Every method is a single short transaction on a fresh connection. Backend
failures are wrapped in RemoteStoreError so callers see one error type for
"the backend round-trip failed", whatever the cause.

Note: each call opens its own connection, so the database must live in a
file; ``:memory:`` would lose data between calls.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Generator
from uuid import uuid4

from sidera_sync.core.exceptions import (
    CharacterNotFoundError,
    RemoteStoreError,
    RoomCodeConflictError,
    SideraSyncError,
    WriteConflictError,
)
from sidera_sync.core.logging import get_logger

logger = get_logger(__name__)

_ROOM_COLUMNS = (
    "id, code, status, session_number, owner_identity_id, name, "
    "description, created_at, last_session_at"
)
_CHARACTER_COLUMNS = (
    "id, room_id, user_id, player_name, character_data, revision, created_at, updated_at"
)
_LOG_COLUMNS = "id, room_id, player_name, message, type, created_at"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _character_row(row: sqlite3.Row) -> dict[str, Any]:
    data = dict(row)
    data["character_data"] = json.loads(data["character_data"])
    return data


def _code_conflict(code: str | None) -> Callable[[sqlite3.IntegrityError], SideraSyncError]:
    def build(exc: sqlite3.IntegrityError) -> SideraSyncError:
        return RoomCodeConflictError("Room code already in use", code=code)

    return build


class Database:
    """SQLite database standing in for the shared backend."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path) -> None:
        """Initialize database.

        Args:
            db_path: Path to the database file. Parent directories are created.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()
        logger.info("Backend database initialized", path=str(self.db_path))

    @contextmanager
    def _get_connection(
        self,
        operation: str,
        *,
        on_conflict: Callable[[sqlite3.IntegrityError], SideraSyncError] | None = None,
    ) -> Generator[sqlite3.Connection, None, None]:
        """Get a connection that commits on success and rolls back on error.

        Args:
            operation: Name reported in wrapped errors.
            on_conflict: Builds the error raised for a constraint violation.
                Without it, violations surface as RemoteStoreError.
        """
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as exc:
            raise RemoteStoreError(
                f"Backend unavailable: {exc}", operation=operation
            ) from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            if on_conflict is not None:
                raise on_conflict(exc) from exc
            raise RemoteStoreError(
                f"Backend constraint violated in {operation}: {exc}", operation=operation
            ) from exc
        except sqlite3.Error as exc:
            conn.rollback()
            raise RemoteStoreError(f"Backend rejected {operation}: {exc}", operation=operation) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection("init_schema") as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS rooms (
                    id TEXT PRIMARY KEY,
                    code TEXT NOT NULL UNIQUE,
                    status TEXT NOT NULL DEFAULT 'active',
                    session_number INTEGER NOT NULL DEFAULT 0,
                    owner_identity_id TEXT,
                    name TEXT,
                    description TEXT,
                    created_at TEXT NOT NULL,
                    last_session_at TEXT
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS characters (
                    id TEXT PRIMARY KEY,
                    room_id TEXT REFERENCES rooms(id),
                    user_id TEXT,
                    player_name TEXT,
                    character_data TEXT NOT NULL,
                    revision INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS game_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    room_id TEXT NOT NULL,
                    player_name TEXT NOT NULL,
                    message TEXT NOT NULL,
                    type TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_characters_room
                ON characters(room_id)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_characters_user
                ON characters(user_id)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_game_logs_room
                ON game_logs(room_id, created_at DESC)
            """)
            cursor.execute("""
                INSERT OR REPLACE INTO schema_version (version) VALUES (?)
            """, (self.SCHEMA_VERSION,))

    # =========================================================================
    # Room Operations
    # =========================================================================

    def insert_room(
        self,
        code: str,
        *,
        status: str,
        session_number: int,
        owner_identity_id: str | None = None,
        name: str | None = None,
        description: str | None = None,
        last_session_at: str | None = None,
    ) -> dict[str, Any]:
        """Insert a room row.

        Raises:
            RoomCodeConflictError: If ``code`` is already held by a room.
        """
        room_id = str(uuid4())
        created_at = _now()
        with self._get_connection("insert_room", on_conflict=_code_conflict(code)) as conn:
            conn.execute(f"""
                INSERT INTO rooms ({_ROOM_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (room_id, code, status, session_number, owner_identity_id,
                  name, description, created_at, last_session_at))

        return {
            "id": room_id,
            "code": code,
            "status": status,
            "session_number": session_number,
            "owner_identity_id": owner_identity_id,
            "name": name,
            "description": description,
            "created_at": created_at,
            "last_session_at": last_session_at,
        }

    def get_room(self, room_id: str) -> dict[str, Any] | None:
        with self._get_connection("get_room") as conn:
            row = conn.execute(
                f"SELECT {_ROOM_COLUMNS} FROM rooms WHERE id = ?", (room_id,)
            ).fetchone()
            return dict(row) if row else None

    def find_room_by_code(self, code: str, statuses: tuple[str, ...]) -> dict[str, Any] | None:
        """Find a room by code among rooms in one of ``statuses``.

        Codes are stored uppercase; ``code`` must already be normalized.
        """
        placeholders = ", ".join("?" for _ in statuses)
        with self._get_connection("find_room_by_code") as conn:
            row = conn.execute(f"""
                SELECT {_ROOM_COLUMNS} FROM rooms
                WHERE code = ? AND status IN ({placeholders})
            """, (code, *statuses)).fetchone()
            return dict(row) if row else None

    def update_room(self, room_id: str, **fields: Any) -> dict[str, Any] | None:
        """Update columns of a room row.

        Returns:
            The updated row, or None if the room does not exist.

        Raises:
            RoomCodeConflictError: If a new ``code`` is already in use.
        """
        if not fields:
            return self.get_room(room_id)
        assignments = ", ".join(f"{column} = ?" for column in fields)
        with self._get_connection("update_room", on_conflict=_code_conflict(fields.get("code"))) as conn:
            cursor = conn.execute(
                f"UPDATE rooms SET {assignments} WHERE id = ?",
                (*fields.values(), room_id),
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute(
                f"SELECT {_ROOM_COLUMNS} FROM rooms WHERE id = ?", (room_id,)
            ).fetchone()
            return dict(row)

    def list_rooms_by_owner(self, owner_identity_id: str, *, exclude_status: str) -> list[dict[str, Any]]:
        """Rooms of an owner, most recent session first, then newest."""
        with self._get_connection("list_rooms_by_owner") as conn:
            rows = conn.execute(f"""
                SELECT {_ROOM_COLUMNS} FROM rooms
                WHERE owner_identity_id = ? AND status != ?
                ORDER BY last_session_at IS NULL, last_session_at DESC, created_at DESC
            """, (owner_identity_id, exclude_status)).fetchall()
            return [dict(row) for row in rows]

    # =========================================================================
    # Character Operations
    # =========================================================================

    def insert_character(
        self,
        character_data: dict[str, Any],
        *,
        room_id: str | None = None,
        user_id: str | None = None,
        player_name: str | None = None,
    ) -> dict[str, Any]:
        """Insert a character row and return it."""
        character_id = str(uuid4())
        now = _now()
        with self._get_connection("insert_character") as conn:
            conn.execute(f"""
                INSERT INTO characters ({_CHARACTER_COLUMNS})
                VALUES (?, ?, ?, ?, ?, 1, ?, ?)
            """, (character_id, room_id, user_id, player_name,
                  json.dumps(character_data, default=str), now, now))
            row = conn.execute(
                f"SELECT {_CHARACTER_COLUMNS} FROM characters WHERE id = ?", (character_id,)
            ).fetchone()
            return _character_row(row)

    def get_character(self, character_id: str) -> dict[str, Any] | None:
        with self._get_connection("get_character") as conn:
            row = conn.execute(
                f"SELECT {_CHARACTER_COLUMNS} FROM characters WHERE id = ?", (character_id,)
            ).fetchone()
            return _character_row(row) if row else None

    def update_character(
        self,
        character_id: str,
        *,
        expected_revision: int | None = None,
        **fields: Any,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Update columns of a character row, bumping its revision.

        ``character_data`` is replaced as a whole document.

        Args:
            character_id: Row to update.
            expected_revision: When given, the update only applies if the
                stored revision still matches.
            **fields: Columns to set.

        Returns:
            Tuple of (row before, row after).

        Raises:
            CharacterNotFoundError: If the row does not exist.
            WriteConflictError: If ``expected_revision`` no longer matches.
        """
        values = dict(fields)
        if "character_data" in values:
            values["character_data"] = json.dumps(values["character_data"], default=str)
        values["updated_at"] = _now()
        assignments = ", ".join(f"{column} = ?" for column in values)

        with self._get_connection("update_character") as conn:
            before = conn.execute(
                f"SELECT {_CHARACTER_COLUMNS} FROM characters WHERE id = ?", (character_id,)
            ).fetchone()
            if before is None:
                raise CharacterNotFoundError("Character not found", character_id=character_id)
            if expected_revision is not None and before["revision"] != expected_revision:
                raise WriteConflictError(
                    "Character changed since it was read",
                    character_id=character_id,
                    expected_revision=expected_revision,
                    actual_revision=before["revision"],
                )
            conn.execute(
                f"UPDATE characters SET {assignments}, revision = revision + 1 WHERE id = ?",
                (*values.values(), character_id),
            )
            after = conn.execute(
                f"SELECT {_CHARACTER_COLUMNS} FROM characters WHERE id = ?", (character_id,)
            ).fetchone()
            return _character_row(before), _character_row(after)

    def list_characters(
        self,
        *,
        room_id: str | None = None,
        user_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Characters filtered by room and/or owner, oldest first."""
        clauses: list[str] = []
        params: list[Any] = []
        if room_id is not None:
            clauses.append("room_id = ?")
            params.append(room_id)
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._get_connection("list_characters") as conn:
            rows = conn.execute(f"""
                SELECT {_CHARACTER_COLUMNS} FROM characters {where}
                ORDER BY created_at, id
            """, params).fetchall()
            return [_character_row(row) for row in rows]

    def count_characters(self, room_id: str) -> int:
        with self._get_connection("count_characters") as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM characters WHERE room_id = ?", (room_id,)
            ).fetchone()[0]

    def delete_character(self, character_id: str) -> dict[str, Any] | None:
        """Delete a character row.

        Returns:
            The deleted row, or None if it did not exist.
        """
        with self._get_connection("delete_character") as conn:
            row = conn.execute(
                f"SELECT {_CHARACTER_COLUMNS} FROM characters WHERE id = ?", (character_id,)
            ).fetchone()
            if row is None:
                return None
            conn.execute("DELETE FROM characters WHERE id = ?", (character_id,))
            return _character_row(row)

    # =========================================================================
    # Event Log Operations
    # =========================================================================

    def insert_log(self, room_id: str, player_name: str, message: str, log_type: str) -> dict[str, Any]:
        """Append a game log row and return it."""
        created_at = _now()
        with self._get_connection("insert_log") as conn:
            cursor = conn.execute(f"""
                INSERT INTO game_logs (room_id, player_name, message, type, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (room_id, player_name, message, log_type, created_at))
            row = conn.execute(
                f"SELECT {_LOG_COLUMNS} FROM game_logs WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
            return dict(row)

    def recent_logs(self, room_id: str, limit: int) -> list[dict[str, Any]]:
        """Newest ``limit`` log rows of a room, returned oldest first."""
        with self._get_connection("recent_logs") as conn:
            rows = conn.execute(f"""
                SELECT {_LOG_COLUMNS} FROM game_logs
                WHERE room_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
            """, (room_id, limit)).fetchall()
            return [dict(row) for row in reversed(rows)]

    def count_logs(self, room_id: str) -> int:
        with self._get_connection("count_logs") as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM game_logs WHERE room_id = ?", (room_id,)
            ).fetchone()[0]


__all__ = ["Database"]
