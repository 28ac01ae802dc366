"""In-process realtime layer: row change feed and broadcast channels."""

from sidera_sync.realtime.channels import BroadcastChannel, RealtimeHub
from sidera_sync.realtime.feed import ChangeFeed, RowFilter
from sidera_sync.realtime.subscription import Subscription

__all__ = [
    "BroadcastChannel",
    "ChangeFeed",
    "RealtimeHub",
    "RowFilter",
    "Subscription",
]
