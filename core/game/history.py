"""
core/game/history.py — Bounded history of recent frequency sets.

The pitch graph draws the last few seconds of every voice. Older entries
fall off the front once ``maxlen`` is reached.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable


class FrequencyHistory:
    """Fixed-length FIFO of per-tick frequency tuples."""

    def __init__(self, maxlen: int = 200) -> None:
        if maxlen <= 0:
            raise ValueError(f"maxlen must be positive, got {maxlen}")
        self._entries: deque[tuple[float, ...]] = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._entries.maxlen or 0

    def append(self, frequencies: Iterable[float]) -> None:
        self._entries.append(tuple(frequencies))

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> tuple[tuple[float, ...], ...]:
        """Oldest first."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
