"""Payload transforms for host item and ability grants.

Both functions are pure: they take a payload and return a new one, leaving
the input untouched. They are handed to RemoteCharacterStore.apply, which
runs them against the freshly fetched stored payload.
"""

from __future__ import annotations

import uuid
from typing import Any

from sidera_sync.models.events import LootItem, LootKind


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def apply_loot(payload: dict[str, Any], item: LootItem) -> dict[str, Any]:
    """Return ``payload`` with ``item`` added where its kind belongs.

    - weapons are appended to ``arsenal`` ready to use with a full magazine
    - consumables add ``data.amount`` to the ``beltPouch`` entry whose id is
      ``data.targetId``; other entries are left alone
    - anything else is appended to ``inventorySlots``
    """
    updated = dict(payload)
    if item.kind is LootKind.WEAPON and item.data:
        weapon = {
            **item.data,
            "id": _new_id(),
            "status": "ready",
            "currentAmmo": item.data.get("maxAmmo"),
        }
        updated["arsenal"] = [*(payload.get("arsenal") or []), weapon]
    elif item.kind is LootKind.CONSUMABLE and item.data:
        target_id = item.data.get("targetId")
        amount = item.data.get("amount", 1)
        updated["beltPouch"] = [
            {**pouch, "quantity": pouch.get("quantity", 0) + amount}
            if pouch.get("id") == target_id
            else pouch
            for pouch in payload.get("beltPouch") or []
        ]
    else:
        slot = {
            "name": item.name,
            "description": item.description,
            "weight": item.weight,
            "isConsumed": False,
        }
        updated["inventorySlots"] = [*(payload.get("inventorySlots") or []), slot]
    return updated


def append_ability(payload: dict[str, Any], ability: dict[str, Any]) -> dict[str, Any]:
    """Return ``payload`` with ``ability`` appended to ``customAbilities``."""
    entry = {**ability, "id": _new_id()}
    return {**payload, "customAbilities": [*(payload.get("customAbilities") or []), entry]}


__all__ = ["apply_loot", "append_ability"]
