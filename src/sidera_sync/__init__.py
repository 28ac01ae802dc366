"""Sidera Sync - state synchronization and session broadcast core.

Keeps a tabletop character record aligned between a device-local store, a
shared backend row and every other device in the room, and carries the
host's transient side channels (whispers, projections, loot alerts).

CONSISTENCY MODEL:
- Local state is the source of truth for the editing device
- Pushes are debounced whole-document replaces (last write wins)
- Remote changes are merged by value comparison, so own echoes are ignored
- Broadcasts are fire-and-forget; only loot grants leave a durable trace

Example:
    >>> from sidera_sync import Backend, DeviceContext
    >>>
    >>> backend = Backend.open("data/sidera.db")
    >>> host, player = DeviceContext(backend), DeviceContext(backend)
    >>>
    >>> room = await host.protocol.create_room(name="The Drift")
    >>> await player.protocol.join("Ana", room.code)
    >>> await host.protocol.host.whisper("You hear static.", target_id=player.protocol.record_id)

Modules:
    core: Configuration, logging, exceptions and constants.
    models: Pydantic V2 schemas and the derived-field rules.
    storage: Backend tables, remote character store, event log, local store.
    realtime: Change feed and broadcast channels.
    sync: Active-record container, debounced push, merge listener.
    session: Room registry and the join/host/leave protocol.
    broadcast: Per-room topics, host dispatch and participant inbox.
    profiles: Known character profiles across device and backend.
"""

from __future__ import annotations

# Core
from sidera_sync.core.config import Settings, get_settings
from sidera_sync.core.exceptions import SideraSyncError
from sidera_sync.core.logging import configure_logging, get_logger

# Models
from sidera_sync.models.character import CharacterRecord, ProfileSummary, SyncStatus
from sidera_sync.models.events import BroadcastEnvelope, LootItem, LootKind, Topic
from sidera_sync.models.room import RoomStatus, SessionRoom

# Wiring
from sidera_sync.backend import Backend
from sidera_sync.device import DeviceContext
from sidera_sync.identity import IdentityProvider, StaticIdentity
from sidera_sync.session.protocol import SessionProtocol, SessionState


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "SideraSyncError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "CharacterRecord",
    "ProfileSummary",
    "SyncStatus",
    "BroadcastEnvelope",
    "LootItem",
    "LootKind",
    "Topic",
    "RoomStatus",
    "SessionRoom",
    # Wiring
    "Backend",
    "DeviceContext",
    "IdentityProvider",
    "StaticIdentity",
    "SessionProtocol",
    "SessionState",
]
