"""
FastAPI dependency providers.

Sessions live in an in-memory ``SessionStore`` singleton: nothing persists
across restarts. Each stored session carries its own lock so two ticks on the
same session never run concurrently, while different sessions proceed in
parallel on FastAPI's worker threads. The store is bounded: idle sessions
expire and the least recently used one is evicted when it is full.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field

from core.audio.pitch import PitchEstimator
from core.config import DEFAULT_DETECTOR_CONFIG
from core.game.session import GameSession

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS: int = 100
DEFAULT_IDLE_TTL_S: float = 1800.0


@dataclass
class ManagedSession:
    """A GameSession plus the per-session resources the API needs."""

    session_id: str
    session: GameSession
    estimator: PitchEstimator
    lock: threading.Lock = field(default_factory=threading.Lock)
    last_used: float = 0.0
    """Store clock reading at the last add/get; drives idle eviction."""


class SessionStore:
    """
    Thread-safe registry of live game sessions keyed by random id.

    Bounded with TTL and LRU eviction: a session untouched for ``idle_ttl_s``
    is dropped on the next add/get, and adding beyond ``max_sessions`` evicts
    the least recently used one.

    Args:
        max_sessions: Maximum number of live sessions (default: 100)
        idle_ttl_s: Idle time after which a session expires (default: 1800 = 30 min)
        clock: Monotonic time source in seconds, injectable for tests
    """

    def __init__(
        self,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        idle_ttl_s: float = DEFAULT_IDLE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_sessions < 1:
            raise ValueError(f"max_sessions must be at least 1, got {max_sessions}")
        if idle_ttl_s <= 0:
            raise ValueError(f"idle_ttl_s must be positive, got {idle_ttl_s}")
        self.max_sessions = max_sessions
        self.idle_ttl_s = idle_ttl_s
        self._clock = clock
        self._sessions: OrderedDict[str, ManagedSession] = OrderedDict()
        self._lock = threading.Lock()

    def add(self, session: GameSession, estimator: PitchEstimator) -> ManagedSession:
        managed = ManagedSession(
            session_id=uuid.uuid4().hex,
            session=session,
            estimator=estimator,
        )
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            while len(self._sessions) >= self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.info("Session %s evicted (store full)", evicted)
            managed.last_used = now
            self._sessions[managed.session_id] = managed
            live = len(self._sessions)
        logger.info("Session %s created (%d live)", managed.session_id, live)
        return managed

    def get(self, session_id: str) -> ManagedSession | None:
        with self._lock:
            managed = self._sessions.get(session_id)
            if managed is None:
                return None
            now = self._clock()
            if now - managed.last_used > self.idle_ttl_s:
                del self._sessions[session_id]
                logger.info("Session %s expired", session_id)
                return None
            managed.last_used = now
            self._sessions.move_to_end(session_id)
            return managed

    def delete(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info("Session %s deleted", session_id)
        return removed is not None

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def evict_expired(self) -> int:
        """Remove every idle-expired session. Returns the number removed."""
        with self._lock:
            return self._evict_expired(self._clock())

    def _evict_expired(self, now: float) -> int:
        expired = [
            session_id
            for session_id, managed in self._sessions.items()
            if now - managed.last_used > self.idle_ttl_s
        ]
        for session_id in expired:
            del self._sessions[session_id]
            logger.info("Session %s expired", session_id)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


_session_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    """Return the process-wide SessionStore singleton."""
    global _session_store  # noqa: PLW0603
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store


_pitch_estimator: PitchEstimator | None = None


def get_pitch_estimator() -> PitchEstimator:
    """Return the shared default-rate estimator.

    Estimators are immutable; callers needing another sample rate derive one
    with ``configure()``.
    """
    global _pitch_estimator  # noqa: PLW0603
    if _pitch_estimator is None:
        _pitch_estimator = PitchEstimator(DEFAULT_DETECTOR_CONFIG)
    return _pitch_estimator
