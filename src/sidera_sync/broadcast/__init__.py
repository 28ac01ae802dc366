"""Per-room broadcast topics and the host/participant ends of them.

Provides:
- BroadcastBus: visuals, whispers and loot topics plus the tracking feed
- HostDispatcher: live roster and host interventions
- ParticipantInbox: latest notices addressed to one character
"""

from sidera_sync.broadcast.bus import BroadcastBus
from sidera_sync.broadcast.dispatch import HostDispatcher
from sidera_sync.broadcast.inbox import ParticipantInbox
from sidera_sync.broadcast.loot import append_ability, apply_loot

__all__ = [
    "BroadcastBus",
    "HostDispatcher",
    "ParticipantInbox",
    "append_ability",
    "apply_loot",
]
