"""Tests for core/game/history.py — bounded frequency history."""

from __future__ import annotations

import pytest

from core.game.history import FrequencyHistory


class TestFrequencyHistory:
    def test_keeps_order_oldest_first(self) -> None:
        h = FrequencyHistory(maxlen=5)
        h.append([220.0])
        h.append([330.0, 440.0])
        assert h.snapshot() == ((220.0,), (330.0, 440.0))

    def test_drops_oldest_when_full(self) -> None:
        h = FrequencyHistory(maxlen=2)
        for f in (100.0, 200.0, 300.0):
            h.append([f])
        assert len(h) == 2
        assert h.snapshot() == ((200.0,), (300.0,))

    def test_silent_ticks_are_recorded_as_empty(self) -> None:
        h = FrequencyHistory()
        h.append([])
        assert h.snapshot() == ((),)

    def test_clear(self) -> None:
        h = FrequencyHistory()
        h.append([220.0])
        h.clear()
        assert len(h) == 0
        assert h.maxlen == 200

    def test_invalid_maxlen(self) -> None:
        with pytest.raises(ValueError, match="maxlen"):
            FrequencyHistory(maxlen=0)
