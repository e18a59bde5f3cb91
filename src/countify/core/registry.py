"""
Session registry for Countify.

The registry owns the authoritative list of sessions and the defaults for
new ones. Callers only ever receive copies. Storage failures are logged and
otherwise ignored: a failed load starts from an empty list, a failed save
keeps the in-memory change.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional
from uuid import UUID, uuid4

from pydantic import TypeAdapter

from .haptics import HapticSink, NullHapticSink
from .models import (
    DEFAULT_SESSION_NAME,
    CountSession,
    HapticKind,
    RegistryDefaults,
    StepResult,
    utc_now,
)
from .store import (
    DEFAULT_HAPTIC_KEY,
    DEFAULT_NEGATIVES_KEY,
    SESSIONS_KEY,
    KeyValueStore,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
IdFactory = Callable[[], UUID]

_session_list_adapter = TypeAdapter(List[CountSession])
_flag_adapter = TypeAdapter(bool)


class SessionRegistry:
    """Durable collection of count sessions."""

    def __init__(
        self,
        store: KeyValueStore,
        defaults: Optional[RegistryDefaults] = None,
        haptics: Optional[HapticSink] = None,
        clock: Clock = utc_now,
        id_factory: IdFactory = uuid4,
    ) -> None:
        """
        Load sessions and defaults from ``store``.

        Args:
            store: Key-value store holding the persisted state
            defaults: Fallback defaults used when the store holds none
            haptics: Sink notified after successful count changes
            clock: Source of timestamps for creation and saves
            id_factory: Source of ids for created sessions
        """
        self._store = store
        self._haptics = haptics or NullHapticSink()
        self._clock = clock
        self._id_factory = id_factory

        fallback = defaults or RegistryDefaults()
        self._defaults = RegistryDefaults(
            haptic_enabled=self._load_flag(DEFAULT_HAPTIC_KEY, fallback.haptic_enabled),
            allow_negatives=self._load_flag(
                DEFAULT_NEGATIVES_KEY, fallback.allow_negatives
            ),
        )
        self._sessions: List[CountSession] = self._load_sessions()

    @property
    def defaults(self) -> RegistryDefaults:
        return self._defaults.model_copy()

    def set_defaults(
        self,
        haptic_enabled: Optional[bool] = None,
        allow_negatives: Optional[bool] = None,
    ) -> RegistryDefaults:
        """
        Update and persist the defaults for new sessions.

        Existing sessions are not touched.
        """
        if haptic_enabled is not None:
            self._defaults.haptic_enabled = haptic_enabled
            self._persist(DEFAULT_HAPTIC_KEY, _flag_adapter.dump_json(haptic_enabled))
        if allow_negatives is not None:
            self._defaults.allow_negatives = allow_negatives
            self._persist(
                DEFAULT_NEGATIVES_KEY, _flag_adapter.dump_json(allow_negatives)
            )
        return self.defaults

    def list_sessions(self) -> List[CountSession]:
        """Return copies of all sessions, in storage order."""
        return [session.model_copy(deep=True) for session in self._sessions]

    def get(self, session_id: UUID) -> Optional[CountSession]:
        index = self._index_of(session_id)
        if index is None:
            return None
        return self._sessions[index].model_copy(deep=True)

    def create_session(
        self,
        name: str = DEFAULT_SESSION_NAME,
        count: int = 0,
        step_size: int = 1,
        upper_limit: Optional[int] = None,
        lower_limit: Optional[int] = None,
        haptic_enabled: Optional[bool] = None,
        allow_negatives: Optional[bool] = None,
        favorite: bool = False,
    ) -> CountSession:
        """
        Build a new session and save it.

        Haptic and negative-number settings fall back to the registry
        defaults when not given.
        """
        now = self._clock()
        session = CountSession(
            id=self._id_factory(),
            name=name,
            count=count,
            created_at=now,
            last_modified=now,
            haptic_enabled=(
                self._defaults.haptic_enabled
                if haptic_enabled is None
                else haptic_enabled
            ),
            allow_negatives=(
                self._defaults.allow_negatives
                if allow_negatives is None
                else allow_negatives
            ),
            step_size=step_size,
            upper_limit=upper_limit,
            lower_limit=lower_limit,
            favorite=favorite,
        )
        return self.save_session(session)

    def save_session(self, session: CountSession, touch: bool = True) -> CountSession:
        """
        Insert or replace a session by id.

        The session is normalized again before it is stored, so a count
        assigned directly on the object is clamped into its limits here.

        Args:
            session: Session to store
            touch: Stamp last_modified with the clock; False keeps the
                session's own timestamp

        Returns:
            Copy of the stored session
        """
        if touch:
            stored = session.replace(last_modified=self._clock())
        else:
            stored = session.replace()
        index = self._index_of(stored.id)
        if index is None:
            self._sessions.append(stored)
        else:
            self._sessions[index] = stored
        self._save_sessions()
        return stored.model_copy(deep=True)

    def delete_session(self, session_id: UUID) -> bool:
        """Delete a session by id. Returns False if it was not found."""
        index = self._index_of(session_id)
        if index is None:
            return False
        del self._sessions[index]
        self._save_sessions()
        return True

    def delete_sessions_at(self, offsets: Iterable[int]) -> int:
        """
        Delete the sessions at the given positions of ``list_sessions()``.

        Out-of-range offsets are ignored.

        Returns:
            Number of sessions removed
        """
        targets = {offset for offset in offsets if 0 <= offset < len(self._sessions)}
        if not targets:
            return 0
        self._sessions = [
            session
            for index, session in enumerate(self._sessions)
            if index not in targets
        ]
        self._save_sessions()
        return len(targets)

    def clear(self) -> None:
        """Delete every session. Defaults are kept."""
        self._sessions = []
        self._save_sessions()

    def increment(self, session_id: UUID) -> Optional[StepResult]:
        """Apply a bounded increment and save it if the count changed."""
        return self._step(session_id, HapticKind.INCREMENT)

    def decrement(self, session_id: UUID) -> Optional[StepResult]:
        """Apply a bounded decrement and save it if the count changed."""
        return self._step(session_id, HapticKind.DECREMENT)

    def reset(self, session_id: UUID) -> Optional[CountSession]:
        session = self.get(session_id)
        if session is None:
            return None
        stored = self.save_session(session.reset())
        self._signal(stored, HapticKind.RESET)
        return stored

    def duplicate(self, session_id: UUID) -> Optional[CountSession]:
        session = self.get(session_id)
        if session is None:
            return None
        now = self._clock()
        copy = session.duplicate(
            id=self._id_factory(), created_at=now, last_modified=now
        )
        stored = self.save_session(copy)
        self._signal(stored, HapticKind.INCREMENT)
        return stored

    def toggle_favorite(self, session_id: UUID) -> Optional[CountSession]:
        session = self.get(session_id)
        if session is None:
            return None
        return self.save_session(session.toggle_favorite())

    def rename(self, session_id: UUID, name: str) -> Optional[CountSession]:
        session = self.get(session_id)
        if session is None:
            return None
        return self.save_session(session.renamed(name))

    def _step(self, session_id: UUID, kind: HapticKind) -> Optional[StepResult]:
        session = self.get(session_id)
        if session is None:
            return None

        if kind == HapticKind.INCREMENT:
            result = session.increment_within_limits()
        else:
            result = session.decrement_within_limits()

        if not result.applied:
            return result

        stored = self.save_session(result.session)
        self._signal(stored, kind)
        return StepResult(stored, True)

    def _signal(self, session: CountSession, kind: HapticKind) -> None:
        if session.haptic_enabled:
            self._haptics.signal(kind)

    def _index_of(self, session_id: UUID) -> Optional[int]:
        for index, session in enumerate(self._sessions):
            if session.id == session_id:
                return index
        return None

    def _load_sessions(self) -> List[CountSession]:
        try:
            raw = self._store.get(SESSIONS_KEY)
            if raw is None:
                return []
            return _session_list_adapter.validate_json(raw)
        except Exception as exc:
            logger.warning("Loading sessions failed: %s", exc)
            return []

    def _load_flag(self, key: str, fallback: bool) -> bool:
        try:
            raw = self._store.get(key)
            if raw is None:
                return fallback
            return _flag_adapter.validate_json(raw)
        except Exception as exc:
            logger.warning("Loading %s failed: %s", key, exc)
            return fallback

    def _save_sessions(self) -> None:
        self._persist(SESSIONS_KEY, _session_list_adapter.dump_json(self._sessions))

    def _persist(self, key: str, payload: bytes) -> None:
        try:
            self._store.set(key, payload.decode("utf-8"))
        except Exception as exc:
            logger.warning("Saving %s failed: %s", key, exc)
