"""Row change feed for the backend tables.

The feed is the in-process realisation of the backend's subscribable
change stream: every successful write through the storage layer publishes a
ChangeEvent, and subscribers scoped by table, event type and an equality
filter on one column receive it synchronously.

Example:
    >>> feed = ChangeFeed()
    >>> sub = feed.subscribe(
    ...     "characters",
    ...     handler,
    ...     events={ChangeType.UPDATE},
    ...     row_filter=RowFilter("id", "c-1"),
    ... )
    >>> sub.close()
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Callable

from sidera_sync.core.logging import get_logger
from sidera_sync.models.events import ChangeEvent, ChangeType
from sidera_sync.realtime.subscription import Subscription


logger = get_logger(__name__)

ChangeHandler = Callable[[ChangeEvent], None]


@dataclass(frozen=True)
class RowFilter:
    """Equality filter on one column (``column=eq.value``)."""

    column: str
    value: Any

    def matches(self, row: dict[str, Any] | None) -> bool:
        return row is not None and row.get(self.column) == self.value

    def __str__(self) -> str:
        return f"{self.column}=eq.{self.value}"


@dataclass
class _Registration:
    subscription: Subscription
    table: str
    handler: ChangeHandler
    events: frozenset[ChangeType]
    row_filter: RowFilter | None

    def wants(self, event: ChangeEvent) -> bool:
        if event.table != self.table or event.type not in self.events:
            return False
        if self.row_filter is None:
            return True
        # An update that moves a row out of the filter (e.g. a character
        # leaving a room) is still delivered so listeners can drop it.
        if event.type is ChangeType.UPDATE:
            return self.row_filter.matches(event.new) or self.row_filter.matches(event.old)
        return self.row_filter.matches(event.row)


class ChangeFeed:
    """Fan-out of backend row changes to scoped subscribers."""

    def __init__(self) -> None:
        self._registrations: list[_Registration] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._registrations)

    def subscribe(
        self,
        table: str,
        handler: ChangeHandler,
        *,
        events: Iterable[ChangeType] | None = None,
        row_filter: RowFilter | None = None,
    ) -> Subscription:
        """Subscribe to changes on ``table``.

        Args:
            table: Table name.
            handler: Called with each matching ChangeEvent.
            events: Change types to receive; all types when omitted.
            row_filter: Optional equality filter on one column.

        Returns:
            Subscription handle; close it to stop deliveries.
        """
        name = f"{table}:{row_filter}" if row_filter else table
        subscription = Subscription(name, self._remove)
        self._registrations.append(
            _Registration(
                subscription=subscription,
                table=table,
                handler=handler,
                events=frozenset(events) if events is not None else frozenset(ChangeType),
                row_filter=row_filter,
            )
        )
        logger.debug("Change feed subscribed", subscription=name)
        return subscription

    def publish(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to every matching subscriber.

        A failing handler is logged and does not prevent delivery to the
        remaining subscribers; the write that produced the event has already
        committed.

        Returns:
            Number of handlers that received the event.
        """
        delivered = 0
        for registration in list(self._registrations):
            if not registration.subscription.active or not registration.wants(event):
                continue
            try:
                registration.handler(event)
            except Exception:
                logger.exception(
                    "Change handler failed",
                    subscription=registration.subscription.name,
                    change=event.type.value,
                )
                continue
            delivered += 1
        return delivered

    def _remove(self, subscription: Subscription) -> None:
        self._registrations = [
            r for r in self._registrations if r.subscription is not subscription
        ]
        logger.debug("Change feed unsubscribed", subscription=subscription.name)


__all__ = ["ChangeFeed", "ChangeHandler", "RowFilter"]
