"""Pytest configuration and shared fixtures.

This module provides common fixtures for the sidera_sync test suite: a
settings object isolated from the environment, a fresh backend per test,
and factories for participant and host devices sharing that backend.
"""

from __future__ import annotations

import itertools
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import pytest

from sidera_sync.backend import Backend
from sidera_sync.core.config import Settings
from sidera_sync.device import DeviceContext
from sidera_sync.identity import StaticIdentity
from sidera_sync.realtime.channels import RealtimeHub
from sidera_sync.realtime.feed import ChangeFeed
from sidera_sync.storage.database import Database
from sidera_sync.storage.event_log import EventLog
from sidera_sync.storage.local_store import LocalStore, MemoryKeyValueStore
from sidera_sync.storage.remote import RemoteCharacterStore


if TYPE_CHECKING:
    from collections.abc import Generator


TEST_DEBOUNCE = 0.05
"""Debounce window used by test devices, in seconds."""


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from sidera_sync.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings read from a clean working directory.

    Returns:
        Default settings with storage paths inside ``tmp_path``.
    """
    monkeypatch.chdir(tmp_path)
    return Settings(
        storage={
            "database_path": tmp_path / "backend.db",
            "local_store_path": tmp_path / "device.json",
        }
    )


# =============================================================================
# Backend Fixtures
# =============================================================================


@pytest.fixture
def database(tmp_path: Path) -> Database:
    """Provide a fresh backend database file."""
    return Database(tmp_path / "tables.db")


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def hub() -> RealtimeHub:
    return RealtimeHub()


@pytest.fixture
def remote(database: Database, feed: ChangeFeed) -> RemoteCharacterStore:
    return RemoteCharacterStore(database, feed)


@pytest.fixture
def event_log(database: Database, feed: ChangeFeed) -> EventLog:
    return EventLog(database, feed)


@pytest.fixture
def code_sequence() -> list[str]:
    """Room codes handed out in order by the test backend.

    Tests may append to or replace the contents before creating rooms.
    """
    return []


@pytest.fixture
def backend(tmp_path: Path, settings: Settings, code_sequence: list[str]) -> Backend:
    """A shared backend whose room codes come from ``code_sequence`` first."""
    fallback = (f"SIDERA-{n:04d}" for n in itertools.count(1000))

    def next_code() -> str:
        if code_sequence:
            return code_sequence.pop(0)
        return next(fallback)

    return Backend.open(tmp_path / "shared.db", settings=settings, code_factory=next_code)


# =============================================================================
# Device Fixtures
# =============================================================================


@pytest.fixture
def local_store() -> LocalStore:
    """An in-memory device store."""
    return LocalStore(MemoryKeyValueStore())


@pytest.fixture
def make_device(backend: Backend, settings: Settings) -> Callable[..., DeviceContext]:
    """Factory for devices connected to the shared backend.

    Returns:
        Callable accepting an optional identity id and DeviceContext kwargs.
    """

    def factory(identity_id: str | None = None, **kwargs: Any) -> DeviceContext:
        kwargs.setdefault("debounce_seconds", TEST_DEBOUNCE)
        return DeviceContext(
            backend,
            identity=StaticIdentity(identity_id),
            settings=settings,
            **kwargs,
        )

    return factory


# =============================================================================
# Payload Fixtures
# =============================================================================


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """Provide a finished character payload.

    Returns:
        Payload with attributes, vitality and inventory fields.
    """
    return {
        "name": "Kessa",
        "archetypeId": "vanguard",
        "orbit": 2,
        "wizardCompleted": True,
        "attributes": {"ferro": 3, "mente": 1},
        "maxHp": 13,
        "currentHp": 13,
        "deathFailures": 0,
        "isStabilized": False,
        "arsenal": [],
        "beltPouch": [{"id": "tonic", "name": "Tonic", "quantity": 1}],
        "inventorySlots": [],
        "customAbilities": [],
    }
