"""Rooms, codes and the join/create/leave protocol.

Provides:
- SessionRegistry: room lifecycle and the host's room catalogue
- SessionProtocol: per-device join/host/leave state machine
- Room code helpers
"""

from sidera_sync.session.codes import (
    generate_room_code,
    normalize_room_code,
    validate_room_code,
)
from sidera_sync.session.protocol import SessionProtocol, SessionState
from sidera_sync.session.registry import SessionRegistry

__all__ = [
    "SessionProtocol",
    "SessionRegistry",
    "SessionState",
    "generate_room_code",
    "normalize_room_code",
    "validate_room_code",
]
