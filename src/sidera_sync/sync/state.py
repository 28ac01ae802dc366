"""Owned container for the device's active character record.

Every component that reads or changes the active record goes through one
CharacterStateStore instance injected at wiring time. Each mutation:

1. recomputes derived payload fields once (derive_computed_fields),
2. persists the result through the LocalStore,
3. notifies listeners with the new record and the mutation's origin.

The origin tells listeners who caused the change: the debounced sync engine
pushes LOCAL changes only, so remote merges and protocol bookkeeping do not
echo back to the backend.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Callable

from sidera_sync.core.logging import get_logger
from sidera_sync.models.character import CharacterRecord
from sidera_sync.models.derived import derive_computed_fields
from sidera_sync.storage.local_store import LocalStore

logger = get_logger(__name__)


class ChangeOrigin(StrEnum):
    """Who caused a change to the active record."""

    LOCAL = "local"
    """An edit made on this device; pushed to the backend."""

    REMOTE = "remote"
    """A payload received from the backend; not pushed back."""

    SYSTEM = "system"
    """Protocol bookkeeping (attach, detach, reset); not pushed."""


StateListener = Callable[[CharacterRecord, ChangeOrigin], None]


class CharacterStateStore:
    """Single owned mutable state for the active record."""

    def __init__(
        self,
        local_store: LocalStore,
        *,
        bonus_hp: Mapping[str, int] | None = None,
    ) -> None:
        self._local = local_store
        self._bonus_hp = dict(bonus_hp or {})
        self._record = local_store.get_active()
        self._listeners: list[StateListener] = []

    def get(self) -> CharacterRecord:
        """A private copy of the active record."""
        return self._record.snapshot()

    @property
    def record_id(self) -> str | None:
        return self._record.id

    def payload_equals(self, payload: Mapping[str, Any]) -> bool:
        """Deep value comparison against the current payload."""
        return self._record.payload == payload

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set(
        self,
        record: CharacterRecord,
        origin: ChangeOrigin = ChangeOrigin.LOCAL,
    ) -> CharacterRecord:
        """Replace the active record.

        Returns:
            The record as stored, with derived fields applied.
        """
        derived = derive_computed_fields(record.payload, bonus_hp=self._bonus_hp)
        if derived is not record.payload:
            record = record.with_payload(derived)
        self._record = self._local.set_active(record.snapshot())
        self._notify(origin)
        return self.get()

    def update(
        self,
        changes: Mapping[str, Any],
        origin: ChangeOrigin = ChangeOrigin.LOCAL,
    ) -> CharacterRecord:
        """Shallow-merge ``changes`` into the payload."""
        return self.set(self._record.with_payload({**self._record.payload, **changes}), origin)

    def replace_from_remote(self, payload: Mapping[str, Any]) -> bool:
        """Replace the payload wholesale with a backend copy.

        A payload equal to the current one is ignored. When derived-field
        recomputation alters the received payload the change is reported as
        LOCAL, so the corrected document is pushed back.

        Returns:
            True if local state was replaced.
        """
        if self.payload_equals(payload):
            return False
        payload = dict(payload)
        derived = derive_computed_fields(payload, bonus_hp=self._bonus_hp)
        origin = ChangeOrigin.REMOTE if derived is payload else ChangeOrigin.LOCAL
        self.set(self._record.with_payload(derived), origin)
        return True

    def clear(self) -> CharacterRecord:
        """Forget the active record and start from an empty default."""
        self._local.clear_active()
        self._record = CharacterRecord()
        self._notify(ChangeOrigin.SYSTEM)
        return self.get()

    def _notify(self, origin: ChangeOrigin) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.get(), origin)
            except Exception:
                logger.exception("State listener failed", origin=origin.value)


__all__ = ["ChangeOrigin", "CharacterStateStore", "StateListener"]
