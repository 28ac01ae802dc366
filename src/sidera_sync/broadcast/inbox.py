"""Participant side of the broadcast topics."""

from __future__ import annotations

from typing import Callable

from sidera_sync.broadcast.bus import BroadcastBus
from sidera_sync.core.constants import LOOT_ALERT_EVENT, SHOW_IMAGE_EVENT, WHISPER_EVENT
from sidera_sync.core.exceptions import ValidationError
from sidera_sync.core.logging import get_logger
from sidera_sync.models.events import BroadcastEnvelope, Topic
from sidera_sync.realtime.subscription import Subscription

logger = get_logger(__name__)

NoticeCallback = Callable[[BroadcastEnvelope], None]


class ParticipantInbox:
    """Holds the latest whisper, projection and loot notice for one character.

    Only envelopes addressed to ``character_id`` or to everyone are kept.
    Notices are transient: nothing is stored beyond the latest of each kind,
    and closing the inbox forgets them.
    """

    def __init__(
        self,
        bus: BroadcastBus,
        character_id: str,
        *,
        on_whisper: NoticeCallback | None = None,
        on_visual: NoticeCallback | None = None,
        on_loot: NoticeCallback | None = None,
    ) -> None:
        self._bus = bus
        self.character_id = character_id
        self._callbacks = {
            Topic.WHISPERS: on_whisper,
            Topic.VISUALS: on_visual,
            Topic.LOOT: on_loot,
        }
        self._latest: dict[Topic, BroadcastEnvelope] = {}
        self._subscriptions: list[Subscription] = []

    @property
    def is_open(self) -> bool:
        return bool(self._subscriptions)

    @property
    def last_whisper(self) -> BroadcastEnvelope | None:
        return self._latest.get(Topic.WHISPERS)

    @property
    def last_visual(self) -> BroadcastEnvelope | None:
        return self._latest.get(Topic.VISUALS)

    @property
    def last_loot(self) -> BroadcastEnvelope | None:
        return self._latest.get(Topic.LOOT)

    def open(self) -> None:
        if self._subscriptions:
            return
        for topic, event in (
            (Topic.VISUALS, SHOW_IMAGE_EVENT),
            (Topic.WHISPERS, WHISPER_EVENT),
            (Topic.LOOT, LOOT_ALERT_EVENT),
        ):
            self._subscriptions.append(
                self._bus.subscribe(topic, event, self._receive, identity_id=self.character_id)
            )
        logger.debug("Inbox opened", character_id=self.character_id, room_id=self._bus.room_id)

    def on(self, topic: Topic, callback: NoticeCallback | None) -> None:
        """Replace the callback for ``topic``; None removes it."""
        if topic not in self._callbacks:
            raise ValidationError("Inbox does not receive this topic", field_name="topic", invalid_value=topic)
        self._callbacks[topic] = callback

    def dismiss(self, topic: Topic) -> None:
        """Forget the latest notice on ``topic``."""
        self._latest.pop(topic, None)

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions.clear()
        self._latest.clear()

    def _receive(self, envelope: BroadcastEnvelope) -> None:
        self._latest[envelope.topic] = envelope
        callback = self._callbacks.get(envelope.topic)
        if callback is not None:
            callback(envelope)


__all__ = ["NoticeCallback", "ParticipantInbox"]
