"""
core/game/proximity.py — How far the voices are from the target.

Error is measured in semitones of fractional MIDI. With several voices the
MAXIMUM error is used, not the mean: one player far off the note is enough to
unsettle the creature.

    frequencies ──filter band──▶ valid voices ──|midi(f) − target|──▶ max
                                      │
                                      └─ empty ──▶ None  (no signal)

Pure module: no state and no I/O.
"""

from __future__ import annotations

from collections.abc import Iterable

from core.music_math import filter_valid_frequencies, hz_to_midi

SILENCE_ERROR: float = 999.0
"""Synthetic error substituted once silence outlasts the grace window."""


def max_error(
    frequencies: Iterable[object] | None,
    target_midi: float,
    freq_min: float = 80.0,
    freq_max: float = 1200.0,
) -> float | None:
    """Largest semitone distance between any valid voice and the target.

    Args:
        frequencies: Detected frequencies in Hz. Invalid and out-of-band values
            are dropped before measuring.
        target_midi: Fractional MIDI of the target note.
        freq_min: Lower edge of the vocal band in Hz.
        freq_max: Upper edge of the vocal band in Hz.

    Returns:
        Non-negative error in semitones, or None when no valid voice remains.

    Example:
        >>> max_error([440.0], 69.0)
        0.0
    """
    worst: float | None = None
    for frequency in filter_valid_frequencies(frequencies, freq_min, freq_max):
        midi = hz_to_midi(frequency)
        if midi is None:
            continue
        error = abs(midi - target_midi)
        if worst is None or error > worst:
            worst = error
    return worst


def proximity(error: float, error_span: float = 2.0) -> float:
    """Map a semitone error to closeness in [0, 1].

    0 semitones → 1.0; ``error_span`` semitones or more → 0.0; linear between.
    """
    if error_span <= 0:
        raise ValueError(f"error_span must be positive, got {error_span}")
    ratio = error / error_span
    return 1.0 - min(max(ratio, 0.0), 1.0)
