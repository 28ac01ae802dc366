"""Identity provider seam.

The core only ever reads the current identity id. Sign-in flows and
credentials belong to whatever implements IdentityProvider.
"""

from __future__ import annotations

from typing import Protocol


class IdentityProvider(Protocol):
    """Supplies the id of the signed-in identity, if any."""

    def current_identity_id(self) -> str | None: ...


class StaticIdentity:
    """In-process identity holder for devices and tests."""

    def __init__(self, identity_id: str | None = None) -> None:
        self._identity_id = identity_id

    def current_identity_id(self) -> str | None:
        return self._identity_id

    def sign_in(self, identity_id: str) -> None:
        self._identity_id = identity_id

    def sign_out(self) -> None:
        self._identity_id = None


__all__ = ["IdentityProvider", "StaticIdentity"]
