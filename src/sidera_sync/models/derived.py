"""Derived payload fields recomputed after every mutation.

derive_computed_fields is a pure function: it never mutates its input and
returns the input object itself when nothing needed to change, so callers
can detect a no-op with ``is``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


BASE_MAX_HP = 10
"""Vitality every character starts with before attribute and archetype bonuses."""


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return default


def derive_computed_fields(
    payload: dict[str, Any],
    *,
    bonus_hp: Mapping[str, int] | None = None,
) -> dict[str, Any]:
    """Recompute derived fields of a character payload.

    Rules:
        - ``maxHp = 10 + attributes.ferro + bonus_hp[archetypeId]``
        - ``currentHp`` is clamped into ``[0, maxHp]``
        - a character above 0 HP has its death state cleared
          (``deathFailures = 0``, ``isStabilized = False``)

    Payloads without ``attributes`` skip the max HP rule; payloads without
    ``currentHp`` skip the clamp and death-state rules.

    Args:
        payload: Character payload.
        bonus_hp: Archetype id to bonus max HP lookup.

    Returns:
        ``payload`` itself when already consistent, otherwise a new dict.
    """
    updates: dict[str, Any] = {}

    max_hp = payload.get("maxHp")
    attributes = payload.get("attributes")
    if isinstance(attributes, Mapping):
        bonus = (bonus_hp or {}).get(payload.get("archetypeId") or "", 0)
        computed_max = BASE_MAX_HP + _as_int(attributes.get("ferro")) + bonus
        if computed_max != max_hp:
            updates["maxHp"] = computed_max
        max_hp = computed_max

    if "currentHp" in payload:
        current_hp = _as_int(payload.get("currentHp"))
        clamped = max(0, current_hp)
        if isinstance(max_hp, int) and not isinstance(max_hp, bool):
            clamped = min(clamped, max_hp)
        if clamped != payload.get("currentHp"):
            updates["currentHp"] = clamped

        if clamped > 0:
            if _as_int(payload.get("deathFailures")) > 0:
                updates["deathFailures"] = 0
            if payload.get("isStabilized"):
                updates["isStabilized"] = False

    if not updates:
        return payload
    return {**payload, **updates}


__all__ = ["BASE_MAX_HP", "derive_computed_fields"]
