"""The shared backend every device talks to.

One Backend bundles the database, its change feed, the broadcast hub and
the table-level services built on them. Devices in the same process share
one instance the way real clients share one hosted backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from sidera_sync.core.config import Settings, get_settings
from sidera_sync.core.logging import get_logger
from sidera_sync.realtime.channels import RealtimeHub
from sidera_sync.realtime.feed import ChangeFeed
from sidera_sync.session.registry import SessionRegistry
from sidera_sync.storage.database import Database
from sidera_sync.storage.event_log import EventLog
from sidera_sync.storage.remote import RemoteCharacterStore

logger = get_logger(__name__)


@dataclass
class Backend:
    """Backend tables, realtime transport and the services over them."""

    database: Database
    feed: ChangeFeed
    hub: RealtimeHub
    characters: RemoteCharacterStore
    rooms: SessionRegistry
    event_log: EventLog

    @classmethod
    def open(
        cls,
        database_path: str | Path | None = None,
        *,
        settings: Settings | None = None,
        code_factory: Callable[[], str] | None = None,
    ) -> Backend:
        """Open (or create) the backend at ``database_path``.

        Args:
            database_path: SQLite file; defaults to the configured path.
            settings: Application settings; the cached singleton when omitted.
            code_factory: Room code generator override.
        """
        settings = settings or get_settings()
        database = Database(database_path or settings.storage.database_path)
        feed = ChangeFeed()
        characters = RemoteCharacterStore(database, feed)
        backend = cls(
            database=database,
            feed=feed,
            hub=RealtimeHub(),
            characters=characters,
            rooms=SessionRegistry(database, characters, settings=settings.rooms, code_factory=code_factory),
            event_log=EventLog(database, feed),
        )
        logger.info("Backend opened", path=str(database.db_path))
        return backend


__all__ = ["Backend"]
