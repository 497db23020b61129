"""
core/audio/types.py — Frozen data types shared by the audio side of the engine.

All types are frozen dataclasses: immutable value objects that can be
safely passed between the estimator, the session and the tone-cue player.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CueNote:
    """One note of a reference cue or target sequence.

    Invariants:
        note matches ^[A-G]#?\\d+$ (validated where notes are resolved)
        duration_s > 0
    """

    note: str
    """Scientific pitch notation, e.g. 'G3', 'C#4'."""

    duration_s: float
    """How long the note sounds (cue) or must be held (sequence), in seconds."""


@dataclass(frozen=True)
class PitchEstimate:
    """Result of analysing a single frame.

    ``frequencies`` is empty for unvoiced or silent frames. The first element
    is the primary voice.
    """

    frequencies: tuple[float, ...]
    sample_rate: int
    rms: float
    """RMS level of the analysed frame. Frames under the silence gate report it too."""

    failed_detectors: tuple[str, ...] = ()
    """Names of detectors that raised on this frame ('yin', 'amdf').
    Failures are absorbed as no-detection; callers may count them."""

    @property
    def is_voiced(self) -> bool:
        return len(self.frequencies) > 0
