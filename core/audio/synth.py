"""
core/audio/synth.py — Reference-tone rendering.

Renders the tones a player hears before singing: a single target note in the
creature game, or the whole sequence in the sequence game. Also used by the
simulation CLI to fake a singer.

Envelope per note:

    amplitude
      ▲    ┌──────────────────┐
      │   /                    \
      │  /                      \
      └─┴────────────────────────┴──▶ time
        attack                 release

Attack and release are linear. For notes shorter than attack + release both
ramps shrink proportionally so the note still starts and ends at zero.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import numpy as np

from core.audio.types import CueNote
from core.music_math import note_name_to_hz

logger = logging.getLogger(__name__)

DEFAULT_AMPLITUDE: float = 0.3
DEFAULT_ATTACK_S: float = 0.05
DEFAULT_RELEASE_S: float = 0.1


def render_note(
    frequency_hz: float,
    duration_s: float,
    sample_rate: int,
    amplitude: float = DEFAULT_AMPLITUDE,
    attack_s: float = DEFAULT_ATTACK_S,
    release_s: float = DEFAULT_RELEASE_S,
    phase: float = 0.0,
) -> np.ndarray:
    """Render one enveloped sine tone.

    Args:
        frequency_hz: Pitch of the tone.
        duration_s: Length in seconds. Zero yields an empty array.
        sample_rate: Output sample rate in Hz.
        amplitude: Peak amplitude (0.3 leaves headroom when notes overlap).
        attack_s: Linear fade-in length.
        release_s: Linear fade-out length.
        phase: Starting phase in radians.

    Returns:
        float64 array of ``round(duration_s * sample_rate)`` samples.

    Raises:
        ValueError: if frequency, sample rate or duration is invalid.
    """
    if frequency_hz <= 0:
        raise ValueError(f"frequency_hz must be positive, got {frequency_hz}")
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    if duration_s < 0 or attack_s < 0 or release_s < 0:
        raise ValueError("duration, attack and release must be non-negative")

    n_samples = int(round(duration_s * sample_rate))
    if n_samples == 0:
        return np.zeros(0, dtype=np.float64)

    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    tone = amplitude * np.sin(2.0 * np.pi * frequency_hz * t + phase)

    ramps = attack_s + release_s
    if ramps > duration_s and ramps > 0:
        scale = duration_s / ramps
        attack_s *= scale
        release_s *= scale

    envelope = np.ones(n_samples, dtype=np.float64)
    n_attack = int(round(attack_s * sample_rate))
    n_release = int(round(release_s * sample_rate))
    if n_attack > 0:
        envelope[:n_attack] = np.linspace(0.0, 1.0, n_attack, endpoint=False)
    if n_release > 0:
        envelope[n_samples - n_release :] *= np.linspace(1.0, 0.0, n_release)
    return tone * envelope


def render_cue(notes: Iterable[CueNote], sample_rate: int) -> np.ndarray:
    """Render a sequence of notes back to back.

    Notes whose names cannot be parsed are skipped with a warning, matching
    how a sequence with a typo still plays the notes it can.
    """
    pieces: list[np.ndarray] = []
    for note in notes:
        frequency = note_name_to_hz(note.note)
        if frequency is None:
            logger.warning("Skipping unparseable cue note %r", note.note)
            continue
        pieces.append(render_note(frequency, note.duration_s, sample_rate))
    if not pieces:
        return np.zeros(0, dtype=np.float64)
    return np.concatenate(pieces)
