"""Tests for the in-memory SessionStore with idle TTL and LRU eviction."""

from __future__ import annotations

import threading

import pytest

from api.deps import DEFAULT_MAX_SESSIONS, SessionStore
from core.audio.pitch import PitchEstimator
from core.game.session import GameSession


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _add(store: SessionStore) -> str:
    return store.add(GameSession(), PitchEstimator()).session_id


class TestSessionStore:
    """Tests for SessionStore bounds and eviction."""

    def test_default_store_is_bounded(self) -> None:
        """Creating many sessions never exceeds the default cap."""
        store = SessionStore()
        for _ in range(DEFAULT_MAX_SESSIONS + 20):
            _add(store)
        assert len(store) == DEFAULT_MAX_SESSIONS

    def test_lru_eviction(self) -> None:
        """Least recently used session is evicted when the store is full."""
        store = SessionStore(max_sessions=3)
        first, second, third = _add(store), _add(store), _add(store)

        fourth = _add(store)

        assert len(store) == 3
        assert store.get(first) is None
        assert store.get(second) is not None
        assert store.get(third) is not None
        assert store.get(fourth) is not None

    def test_get_marks_recently_used(self) -> None:
        store = SessionStore(max_sessions=2)
        first, second = _add(store), _add(store)

        store.get(first)
        _add(store)

        assert store.get(first) is not None
        assert store.get(second) is None

    def test_idle_session_expires_on_get(self) -> None:
        clock = FakeClock()
        store = SessionStore(idle_ttl_s=60.0, clock=clock)
        session_id = _add(store)

        clock.now += 61.0

        assert store.get(session_id) is None
        assert len(store) == 0

    def test_get_refreshes_idle_timer(self) -> None:
        clock = FakeClock()
        store = SessionStore(idle_ttl_s=60.0, clock=clock)
        session_id = _add(store)

        clock.now += 50.0
        assert store.get(session_id) is not None
        clock.now += 50.0

        assert store.get(session_id) is not None

    def test_add_sweeps_expired_sessions(self) -> None:
        clock = FakeClock()
        store = SessionStore(idle_ttl_s=60.0, clock=clock)
        for _ in range(50):
            _add(store)

        clock.now += 120.0
        _add(store)

        assert len(store) == 1

    def test_evict_expired_reports_count(self) -> None:
        clock = FakeClock()
        store = SessionStore(idle_ttl_s=60.0, clock=clock)
        stale = _add(store)
        clock.now += 40.0
        fresh = _add(store)
        clock.now += 30.0

        assert store.evict_expired() == 1
        assert store.get(stale) is None
        assert store.get(fresh) is not None

    def test_delete_and_clear(self) -> None:
        store = SessionStore()
        session_id = _add(store)
        _add(store)

        assert store.delete(session_id) is True
        assert store.delete(session_id) is False
        store.clear()
        assert len(store) == 0

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_sessions": 0}, {"idle_ttl_s": 0.0}, {"idle_ttl_s": -1.0}],
    )
    def test_invalid_limits(self, kwargs) -> None:
        with pytest.raises(ValueError):
            SessionStore(**kwargs)

    def test_len_waits_for_store_lock(self) -> None:
        """len() reads the registry under the same lock as add/get/delete."""
        store = SessionStore()
        _add(store)
        result: list[int] = []

        with store._lock:
            reader = threading.Thread(target=lambda: result.append(len(store)))
            reader.start()
            reader.join(timeout=0.2)
            assert reader.is_alive()
            assert result == []

        reader.join(timeout=5.0)
        assert result == [1]
