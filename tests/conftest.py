"""
Pytest configuration and fixtures for countify tests.
"""

import itertools
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator
from uuid import UUID

import pytest

from countify.core.haptics import RecordingHapticSink
from countify.core.registry import SessionRegistry
from countify.core.store import MemoryStore, SQLiteStore

START_TIME = datetime(2025, 2, 16, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def _isolated_paths(tmp_path: Path, monkeypatch) -> Iterator[None]:
    """Keep every test away from the real ~/.countify directory."""
    monkeypatch.setenv("COUNTIFY_DB_PATH", str(tmp_path / "data" / "countify.db"))
    monkeypatch.setenv(
        "COUNTIFY_SNAPSHOT_PATH", str(tmp_path / "data" / "countify.snapshot.jsonl")
    )
    yield


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def id_factory() -> Callable[[], UUID]:
    """Deterministic ids: UUID(int=1), UUID(int=2), ..."""
    counter = itertools.count(1)
    return lambda: UUID(int=next(counter))


@pytest.fixture
def haptics() -> RecordingHapticSink:
    return RecordingHapticSink()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SQLiteStore:
    """Store backed by a fresh SQLite file in the test's temp directory."""
    return SQLiteStore(tmp_path / "store.db")


@pytest.fixture
def registry(
    memory_store: MemoryStore,
    clock: FixedClock,
    haptics: RecordingHapticSink,
    id_factory: Callable[[], UUID],
) -> SessionRegistry:
    return SessionRegistry(
        memory_store, haptics=haptics, clock=clock, id_factory=id_factory
    )
