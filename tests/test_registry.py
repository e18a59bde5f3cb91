"""
Tests for the session registry.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from countify.core.haptics import RecordingHapticSink
from countify.core.models import CountSession, HapticKind, RegistryDefaults
from countify.core.registry import SessionRegistry
from countify.core.store import MemoryStore, SQLiteStore


class UnavailableStore:
    """Store whose every operation fails."""

    def get(self, key: str) -> Optional[str]:
        raise sqlite3.OperationalError("unable to open database file")

    def set(self, key: str, value: str) -> None:
        raise sqlite3.OperationalError("unable to open database file")


class ReadOnlyStore(MemoryStore):
    """Memory store that refuses writes."""

    def set(self, key: str, value: str) -> None:
        raise OSError("read-only file system")


class TestSaveSession:
    """Tests for save_session."""

    def test_save_appends_new_session(self, registry: SessionRegistry):
        session = CountSession(name="Laps")
        stored = registry.save_session(session)

        assert stored.id == session.id
        assert [s.name for s in registry.list_sessions()] == ["Laps"]

    def test_save_replaces_by_id(self, registry: SessionRegistry):
        session = registry.save_session(CountSession(name="Laps"))
        registry.save_session(session.replace(name="Pushups", count=4))

        sessions = registry.list_sessions()
        assert len(sessions) == 1
        assert sessions[0].name == "Pushups"
        assert sessions[0].count == 4

    def test_save_reclamps_directly_assigned_count(self, registry: SessionRegistry):
        """Test that a count of 150 with an upper limit of 100 is stored as 100."""
        session = CountSession(count=50, upper_limit=100)
        session.count = 150

        stored = registry.save_session(session)

        assert stored.count == 100
        assert registry.get(session.id).count == 100

    def test_save_renormalizes_directly_assigned_limits(
        self, registry: SessionRegistry
    ):
        session = CountSession(count=5)
        session.step_size = 0
        session.upper_limit = 2
        session.lower_limit = 2

        stored = registry.save_session(session)

        assert stored.step_size == 1
        assert stored.upper_limit == 3
        assert stored.lower_limit == 1
        assert stored.count == 3

    def test_save_stamps_last_modified(self, registry: SessionRegistry, clock):
        session = registry.save_session(CountSession(name="Laps"))
        assert session.last_modified == clock.now

        later = clock.advance(minutes=5)
        updated = registry.save_session(session.replace(count=1))

        assert updated.last_modified == later
        assert updated.created_at == session.created_at

    def test_save_without_touch_keeps_last_modified(
        self, registry: SessionRegistry, clock
    ):
        edited = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)
        clock.advance(days=10)

        stored = registry.save_session(
            CountSession(name="Laps", created_at=edited), touch=False
        )

        assert stored.last_modified == edited
        assert registry.get(stored.id).last_modified == edited

    def test_save_persists(self, registry: SessionRegistry, memory_store: MemoryStore):
        registry.save_session(CountSession(name="Laps", count=3))

        reloaded = SessionRegistry(memory_store)
        assert [(s.name, s.count) for s in reloaded.list_sessions()] == [("Laps", 3)]


class TestSnapshots:
    """Tests that callers never hold live references into the registry."""

    def test_list_returns_copies(self, registry: SessionRegistry):
        registry.save_session(CountSession(name="Laps", count=1))

        registry.list_sessions()[0].count = 99

        assert registry.list_sessions()[0].count == 1

    def test_get_returns_copy(self, registry: SessionRegistry):
        session = registry.save_session(CountSession(count=1))

        registry.get(session.id).count = 99

        assert registry.get(session.id).count == 1

    def test_saved_argument_not_aliased(self, registry: SessionRegistry):
        session = CountSession(count=1)
        registry.save_session(session)

        session.count = 42

        assert registry.get(session.id).count == 1

    def test_get_unknown_id(self, registry: SessionRegistry):
        assert registry.get(UUID(int=999)) is None


class TestDelete:
    """Tests for delete_session and delete_sessions_at."""

    def test_delete_by_id(self, registry: SessionRegistry):
        keep = registry.create_session("Keep")
        drop = registry.create_session("Drop")

        assert registry.delete_session(drop.id) is True
        assert [s.id for s in registry.list_sessions()] == [keep.id]

    def test_delete_unknown_id(self, registry: SessionRegistry):
        registry.create_session("Keep")
        assert registry.delete_session(UUID(int=999)) is False
        assert len(registry.list_sessions()) == 1

    def test_delete_at_offsets(self, registry: SessionRegistry):
        registry.create_session("A")
        registry.create_session("B")
        registry.create_session("C")

        removed = registry.delete_sessions_at([0, 2, 9, -1])

        assert removed == 2
        assert [s.name for s in registry.list_sessions()] == ["B"]

    def test_delete_at_no_valid_offsets(self, registry: SessionRegistry):
        registry.create_session("A")
        assert registry.delete_sessions_at([5]) == 0
        assert len(registry.list_sessions()) == 1

    def test_delete_persists(self, registry: SessionRegistry, memory_store):
        session = registry.create_session("A")
        registry.delete_session(session.id)

        assert SessionRegistry(memory_store).list_sessions() == []

    def test_clear_keeps_defaults(self, registry: SessionRegistry, memory_store):
        registry.set_defaults(allow_negatives=True)
        registry.create_session("A")
        registry.clear()

        reloaded = SessionRegistry(memory_store)
        assert reloaded.list_sessions() == []
        assert reloaded.defaults.allow_negatives is True


class TestDefaults:
    """Tests for default settings of new sessions."""

    def test_fallback_defaults_used_when_store_empty(self, memory_store):
        registry = SessionRegistry(
            memory_store,
            defaults=RegistryDefaults(haptic_enabled=False, allow_negatives=True),
        )

        assert registry.defaults == RegistryDefaults(
            haptic_enabled=False, allow_negatives=True
        )

    def test_create_uses_defaults(self, registry: SessionRegistry):
        registry.set_defaults(haptic_enabled=False, allow_negatives=True)
        session = registry.create_session("Laps")

        assert session.haptic_enabled is False
        assert session.allow_negatives is True

    def test_explicit_settings_override_defaults(self, registry: SessionRegistry):
        registry.set_defaults(haptic_enabled=False)
        session = registry.create_session("Laps", haptic_enabled=True)

        assert session.haptic_enabled is True

    def test_defaults_not_applied_retroactively(self, registry: SessionRegistry):
        existing = registry.create_session("Laps")
        registry.set_defaults(haptic_enabled=False, allow_negatives=True)

        stored = registry.get(existing.id)
        assert stored.haptic_enabled is True
        assert stored.allow_negatives is False

    def test_defaults_persist_across_instances(self, registry, memory_store):
        registry.set_defaults(haptic_enabled=False, allow_negatives=True)

        reloaded = SessionRegistry(memory_store)

        assert reloaded.defaults.haptic_enabled is False
        assert reloaded.defaults.allow_negatives is True
        assert memory_store.get("DefaultHapticEnabled") == "false"
        assert memory_store.get("DefaultAllowNegatives") == "true"

    def test_partial_update(self, registry: SessionRegistry):
        updated = registry.set_defaults(allow_negatives=True)

        assert updated.allow_negatives is True
        assert updated.haptic_enabled is True

    def test_defaults_property_is_copy(self, registry: SessionRegistry):
        registry.defaults.haptic_enabled = False
        assert registry.defaults.haptic_enabled is True


class TestCreateSession:
    """Tests for create_session."""

    def test_create_assigns_id_and_timestamps(
        self, registry: SessionRegistry, clock, id_factory
    ):
        session = registry.create_session("Laps")

        assert session.id == UUID(int=1)
        assert session.created_at == clock.now
        assert session.last_modified == clock.now

    def test_create_normalizes(self, registry: SessionRegistry):
        session = registry.create_session(
            "Laps", count=500, step_size=-2, upper_limit=10, lower_limit=50
        )

        assert session.step_size == 1
        assert session.upper_limit == 51
        assert session.lower_limit == 9
        assert session.count == 51


class TestCountActions:
    """Tests for increment, decrement and the other count actions."""

    def test_increment_saves_and_signals(self, registry, haptics):
        session = registry.create_session("Laps", step_size=5)

        result = registry.increment(session.id)

        assert result.applied is True
        assert result.session.count == 5
        assert registry.get(session.id).count == 5
        assert haptics.signals == [HapticKind.INCREMENT]

    def test_decrement_saves_and_signals(self, registry, haptics):
        session = registry.create_session("Laps", count=3, step_size=5)

        result = registry.decrement(session.id)

        assert result.applied is True
        assert registry.get(session.id).count == 0
        assert haptics.signals == [HapticKind.DECREMENT]

    def test_noop_does_not_signal_or_save(self, registry, haptics, clock):
        session = registry.create_session("Laps", count=100, upper_limit=100)
        clock.advance(minutes=1)

        result = registry.increment(session.id)

        assert result.applied is False
        assert haptics.signals == []
        assert registry.get(session.id).last_modified == session.last_modified

    def test_haptics_disabled(self, registry, haptics):
        session = registry.create_session("Laps", haptic_enabled=False)

        registry.increment(session.id)
        registry.decrement(session.id)
        registry.reset(session.id)

        assert haptics.signals == []

    def test_unknown_id(self, registry: SessionRegistry):
        missing = UUID(int=999)

        assert registry.increment(missing) is None
        assert registry.decrement(missing) is None
        assert registry.reset(missing) is None
        assert registry.duplicate(missing) is None
        assert registry.toggle_favorite(missing) is None
        assert registry.rename(missing, "x") is None

    def test_reset(self, registry, haptics):
        session = registry.create_session("Laps", count=40, lower_limit=10)

        reset = registry.reset(session.id)

        assert reset.count == 10
        assert haptics.signals == [HapticKind.RESET]

    def test_duplicate(self, registry, haptics, clock):
        source = registry.create_session("Laps", count=12, step_size=3)
        registry.toggle_favorite(source.id)
        later = clock.advance(hours=1)

        copy = registry.duplicate(source.id)

        assert copy.id == UUID(int=2)
        assert copy.name == "Laps Copy"
        assert copy.count == 12
        assert copy.step_size == 3
        assert copy.favorite is False
        assert copy.created_at == later
        assert len(registry.list_sessions()) == 2
        assert haptics.signals == [HapticKind.INCREMENT]

    def test_toggle_favorite_and_rename(self, registry: SessionRegistry):
        session = registry.create_session("Laps")

        assert registry.toggle_favorite(session.id).favorite is True
        assert registry.rename(session.id, "Pushups").name == "Pushups"
        stored = registry.get(session.id)
        assert stored.favorite is True
        assert stored.name == "Pushups"


class TestPersistenceFailures:
    """Tests that storage failures never reach the caller."""

    def test_unavailable_store_loads_empty(self, caplog):
        with caplog.at_level(logging.WARNING, logger="countify.core.registry"):
            registry = SessionRegistry(UnavailableStore())

        assert registry.list_sessions() == []
        assert registry.defaults == RegistryDefaults()
        assert "Loading sessions failed" in caplog.text

    def test_unavailable_store_keeps_in_memory_changes(self, caplog):
        registry = SessionRegistry(UnavailableStore())

        with caplog.at_level(logging.WARNING, logger="countify.core.registry"):
            session = registry.create_session("Laps")
            registry.set_defaults(haptic_enabled=False)

        assert registry.get(session.id) is not None
        assert registry.defaults.haptic_enabled is False
        assert "Saving CountSessions failed" in caplog.text

    def test_failed_write_is_not_durable(self):
        store = ReadOnlyStore()
        registry = SessionRegistry(store)

        registry.create_session("Laps")

        assert len(registry.list_sessions()) == 1
        assert SessionRegistry(store).list_sessions() == []

    def test_corrupt_sessions_blob_loads_empty(self, caplog):
        store = MemoryStore({"CountSessions": "{not json"})

        with caplog.at_level(logging.WARNING, logger="countify.core.registry"):
            registry = SessionRegistry(store)

        assert registry.list_sessions() == []
        assert "Loading sessions failed" in caplog.text

    def test_corrupt_default_falls_back(self):
        store = MemoryStore({"DefaultAllowNegatives": "[1, 2]"})
        registry = SessionRegistry(
            store, defaults=RegistryDefaults(allow_negatives=True)
        )

        assert registry.defaults.allow_negatives is True

    def test_loaded_sessions_are_normalized(self):
        store = MemoryStore(
            {"CountSessions": '[{"name": "Laps", "count": 150, "upper_limit": 100}]'}
        )

        sessions = SessionRegistry(store).list_sessions()

        assert len(sessions) == 1
        assert sessions[0].count == 100


class TestSQLitePersistence:
    """Tests the registry against a real SQLite store."""

    def test_sessions_survive_restart(self, tmp_path, clock, id_factory):
        store = SQLiteStore(tmp_path / "countify.db")
        registry = SessionRegistry(store, clock=clock, id_factory=id_factory)
        session = registry.create_session("Laps", step_size=5, upper_limit=100)
        registry.increment(session.id)
        registry.set_defaults(allow_negatives=True)

        reloaded = SessionRegistry(SQLiteStore(tmp_path / "countify.db"))

        sessions = reloaded.list_sessions()
        assert [(s.id, s.count, s.upper_limit, s.lower_limit) for s in sessions] == [
            (UUID(int=1), 5, 100, None)
        ]
        assert sessions[0].last_modified == clock.now
        assert reloaded.defaults.allow_negatives is True

    def test_haptic_sink_is_optional(self, sqlite_store):
        registry = SessionRegistry(sqlite_store)
        session = registry.create_session("Laps")

        assert registry.increment(session.id).applied is True

    def test_recording_sink_keeps_order(self, sqlite_store):
        haptics = RecordingHapticSink()
        registry = SessionRegistry(sqlite_store, haptics=haptics)
        session = registry.create_session("Laps", count=1)

        registry.increment(session.id)
        registry.decrement(session.id)
        registry.reset(session.id)

        assert haptics.signals == [
            HapticKind.INCREMENT,
            HapticKind.DECREMENT,
            HapticKind.RESET,
        ]
