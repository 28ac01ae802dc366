"""Subscription handles shared by the change feed and broadcast channels."""

from __future__ import annotations

from typing import Callable


class Subscription:
    """A cancellable registration with a realtime source.

    Closing is idempotent. A closed subscription never receives further
    deliveries, including deliveries already being fanned out when it was
    closed.
    """

    def __init__(self, name: str, on_close: Callable[[Subscription], None]) -> None:
        self.name = name
        self._on_close = on_close
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        """Stop receiving deliveries."""
        if not self._active:
            return
        self._active = False
        self._on_close(self)

    def __repr__(self) -> str:
        state = "active" if self._active else "closed"
        return f"Subscription({self.name!r}, {state})"


__all__ = ["Subscription"]
