"""Named broadcast channels with no persistence and no replay.

A message sent on a channel reaches the handlers subscribed at that moment
and nobody else. Late subscribers never see earlier messages. This is the
accepted delivery contract for ephemeral session notifications.
"""

from __future__ import annotations

import inspect
from collections import defaultdict
from typing import Any, Awaitable, Callable

from sidera_sync.core.logging import get_logger
from sidera_sync.realtime.subscription import Subscription


logger = get_logger(__name__)

BroadcastHandler = Callable[[dict[str, Any]], "Awaitable[None] | None"]


class BroadcastChannel:
    """A named pub/sub channel.

    Handlers receive the raw message body. They may be plain callables or
    coroutine functions; coroutine handlers are awaited in subscription order.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: dict[str, list[tuple[Subscription, BroadcastHandler]]] = defaultdict(list)

    @property
    def subscriber_count(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())

    def subscribe(self, event: str, handler: BroadcastHandler) -> Subscription:
        """Receive messages for ``event`` sent from now on."""
        subscription = Subscription(f"{self.name}#{event}", self._remove)
        self._handlers[event].append((subscription, handler))
        return subscription

    async def send(self, event: str, message: dict[str, Any]) -> int:
        """Send ``message`` to current subscribers of ``event``.

        Returns:
            Number of handlers the message was delivered to.
        """
        delivered = 0
        for subscription, handler in list(self._handlers.get(event, ())):
            if not subscription.active:
                continue
            try:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Broadcast handler failed", channel=self.name, broadcast_event=event)
                continue
            delivered += 1
        logger.debug("Broadcast sent", channel=self.name, broadcast_event=event, delivered=delivered)
        return delivered

    def _remove(self, subscription: Subscription) -> None:
        for event, handlers in list(self._handlers.items()):
            remaining = [(s, h) for s, h in handlers if s is not subscription]
            if remaining:
                self._handlers[event] = remaining
            else:
                del self._handlers[event]


class RealtimeHub:
    """Registry of broadcast channels shared by every connected device."""

    def __init__(self) -> None:
        self._channels: dict[str, BroadcastChannel] = {}

    def channel(self, name: str) -> BroadcastChannel:
        """Get or create the channel called ``name``."""
        channel = self._channels.get(name)
        if channel is None:
            channel = BroadcastChannel(name)
            self._channels[name] = channel
        return channel

    def has_channel(self, name: str) -> bool:
        return name in self._channels

    def prune(self) -> int:
        """Drop channels nobody is subscribed to.

        Returns:
            Number of channels removed.
        """
        empty = [name for name, ch in self._channels.items() if ch.subscriber_count == 0]
        for name in empty:
            del self._channels[name]
        return len(empty)


__all__ = ["BroadcastChannel", "BroadcastHandler", "RealtimeHub"]
