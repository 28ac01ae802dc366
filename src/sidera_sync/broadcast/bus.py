"""Broadcast Bus: the four per-room topics.

``visuals``, ``whispers`` and ``loot`` are fire-and-forget: a message reaches
the subscribers connected when it is published and is then gone. There is
no replay, so a participant who connects after a whisper never sees it.
The bus never filters by recipient; every subscription checks the
envelope's target against its own id and drops the rest.

``tracking`` is not a broadcast channel but the backend change feed on the
characters table, filtered to the room.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from sidera_sync.core.constants import ALL_TARGETS, CHARACTERS_TABLE
from sidera_sync.core.exceptions import BroadcastError
from sidera_sync.core.logging import get_logger
from sidera_sync.models.events import BroadcastEnvelope, ChangeEvent, Topic
from sidera_sync.realtime.channels import RealtimeHub
from sidera_sync.realtime.feed import ChangeFeed, RowFilter
from sidera_sync.realtime.subscription import Subscription

logger = get_logger(__name__)

EnvelopeHandler = Callable[[BroadcastEnvelope], "Awaitable[None] | None"]


class BroadcastBus:
    """Room-scoped access to the broadcast topics and the tracking feed."""

    def __init__(self, hub: RealtimeHub, feed: ChangeFeed, room_id: str) -> None:
        self._hub = hub
        self._feed = feed
        self.room_id = room_id
        self._subscriptions: list[Subscription] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self, topic: Topic) -> None:
        if self._closed:
            raise BroadcastError("Broadcast bus is closed", topic=topic.value)

    async def publish(
        self,
        topic: Topic,
        event: str,
        payload: dict[str, Any] | None = None,
        *,
        target_id: str = ALL_TARGETS,
    ) -> BroadcastEnvelope:
        """Publish an envelope to whoever is listening right now.

        Raises:
            BroadcastError: If the bus is closed or ``topic`` is tracking.
        """
        self._ensure_open(topic)
        if topic is Topic.TRACKING:
            raise BroadcastError("Tracking is fed by backend changes", topic=topic.value)
        envelope = BroadcastEnvelope(topic=topic, event=event, payload=payload or {}, target_id=target_id)
        channel = self._hub.channel(topic.channel_name(self.room_id))
        delivered = await channel.send(event, envelope.model_dump(mode="json"))
        logger.info(
            "Envelope published",
            room_id=self.room_id,
            topic=topic.value,
            broadcast_event=event,
            target_id=target_id,
            delivered=delivered,
        )
        return envelope

    def subscribe(
        self,
        topic: Topic,
        event: str,
        handler: EnvelopeHandler,
        *,
        identity_id: str | None,
    ) -> Subscription:
        """Receive envelopes addressed to ``identity_id`` or to everyone.

        Raises:
            BroadcastError: If the bus is closed or ``topic`` is tracking.
        """
        self._ensure_open(topic)
        if topic is Topic.TRACKING:
            raise BroadcastError("Use track() for the tracking topic", topic=topic.value)

        def on_message(message: dict[str, Any]) -> Awaitable[None] | None:
            envelope = BroadcastEnvelope.model_validate(message)
            if not envelope.is_for(identity_id):
                return None
            return handler(envelope)

        subscription = self._hub.channel(topic.channel_name(self.room_id)).subscribe(event, on_message)
        self._subscriptions.append(subscription)
        return subscription

    def track(self, handler: Callable[[ChangeEvent], None]) -> Subscription:
        """Receive inserts, updates and deletes of the room's character rows."""
        self._ensure_open(Topic.TRACKING)
        subscription = self._feed.subscribe(
            CHARACTERS_TABLE,
            handler,
            row_filter=RowFilter("room_id", self.room_id),
        )
        self._subscriptions.append(subscription)
        return subscription

    def close(self) -> None:
        """Close every subscription opened through this bus."""
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions.clear()
        self._hub.prune()
        self._closed = True
        logger.debug("Broadcast bus closed", room_id=self.room_id)


__all__ = ["BroadcastBus", "EnvelopeHandler"]
