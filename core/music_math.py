"""
core/music_math.py — Pure pitch conversions between Hz, MIDI and note names.

All functions are total over their input domain: invalid input (non-numeric,
non-finite, non-positive frequency, malformed note name) returns ``None``
instead of raising, so a bad value coming off the microphone never interrupts
the tick loop.

Design:
    - Continuous (fractional) MIDI is the working unit for error computation.
    - Rounding happens only when a display name is needed.
    - A4 = 440 Hz = MIDI 69 by definition.

Used by:
    core/game/proximity.py  — per-voice semitone error
    core/game/session.py    — target resolution and display names
    core/audio/synth.py     — reference-tone frequencies
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

A4_HZ: float = 440.0
A4_MIDI: int = 69
_SEMITONES_PER_OCTAVE = 12

NOTE_NAMES: tuple[str, ...] = (
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
)

_NOTE_NAME_RE = re.compile(r"^([A-G]#?)(\d+)$")


def _as_finite_float(value: object) -> float | None:
    """Return ``value`` as a finite float, or None if it is not one."""
    if isinstance(value, (bool, str, bytes)):
        return None
    try:
        result = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


# ---------------------------------------------------------------------------
# Hz <-> MIDI
# ---------------------------------------------------------------------------


def hz_to_midi(frequency_hz: object) -> float | None:
    """Convert a frequency to fractional MIDI.

    Formula: midi = 69 + 12 × log₂(f / 440)

    Args:
        frequency_hz: Frequency in Hz.

    Returns:
        Fractional MIDI number, or None when the frequency is not a finite
        positive number.
    """
    hz = _as_finite_float(frequency_hz)
    if hz is None or hz <= 0.0:
        return None
    return A4_MIDI + _SEMITONES_PER_OCTAVE * math.log2(hz / A4_HZ)


def midi_to_hz(midi: object) -> float | None:
    """Convert (fractional) MIDI to Hz. None for non-finite input."""
    value = _as_finite_float(midi)
    if value is None:
        return None
    return A4_HZ * 2.0 ** ((value - A4_MIDI) / _SEMITONES_PER_OCTAVE)


# ---------------------------------------------------------------------------
# Note names
# ---------------------------------------------------------------------------


def midi_to_note_name(midi: object) -> str | None:
    """Convert MIDI to scientific pitch notation.

    The value is rounded half-up to the nearest integer first, so 68.5 and
    69.4 both map to 'A4'.

    Examples:
        69 → 'A4'
        60 → 'C4'
        -1 → 'B-2'

    Args:
        midi: MIDI note number, integer or fractional.

    Returns:
        Note name such as 'A4' or 'C#5', or None on invalid input.
    """
    value = _as_finite_float(midi)
    if value is None:
        return None
    # Half-up rounding: 68.5 → 69, not Python's banker's rounding.
    note_number = math.floor(value + 0.5)
    octave = math.floor(note_number / _SEMITONES_PER_OCTAVE) - 1
    index = ((note_number % _SEMITONES_PER_OCTAVE) + _SEMITONES_PER_OCTAVE) % _SEMITONES_PER_OCTAVE
    return f"{NOTE_NAMES[index]}{octave}"


def note_name_to_midi(name: object) -> int | None:
    """Parse a note name like 'C#4' into an integer MIDI number.

    Only sharps are accepted. 'E#' and 'B#' match the pattern but are not
    chromatic names and are rejected.
    """
    if not isinstance(name, str):
        return None
    match = _NOTE_NAME_RE.match(name)
    if match is None:
        return None
    pitch_class, octave_str = match.groups()
    if pitch_class not in NOTE_NAMES:
        return None
    octave = int(octave_str)
    return (octave + 1) * _SEMITONES_PER_OCTAVE + NOTE_NAMES.index(pitch_class)


def note_name_to_hz(name: object) -> float | None:
    """Convert a note name to Hz. ``note_name_to_hz('A4') == 440.0`` exactly."""
    midi = note_name_to_midi(name)
    if midi is None:
        return None
    return midi_to_hz(midi)


def hz_to_note_name(frequency_hz: object) -> str | None:
    """Nearest note name for a frequency, or None if the frequency is invalid."""
    midi = hz_to_midi(frequency_hz)
    if midi is None:
        return None
    return midi_to_note_name(midi)


# ---------------------------------------------------------------------------
# Range filtering
# ---------------------------------------------------------------------------


def is_valid_frequency(frequency_hz: object, freq_min: float, freq_max: float) -> bool:
    """True when the value is a finite frequency inside [freq_min, freq_max]."""
    hz = _as_finite_float(frequency_hz)
    if hz is None or hz <= 0.0:
        return False
    return freq_min <= hz <= freq_max


def filter_valid_frequencies(
    frequencies: Iterable[object] | None,
    freq_min: float,
    freq_max: float,
) -> tuple[float, ...]:
    """Keep only valid in-band frequencies, preserving order.

    Out-of-band values are discarded, never clamped into the band.

    Args:
        frequencies: Detected frequencies in Hz. None is treated as empty.
        freq_min: Lower bound in Hz (inclusive).
        freq_max: Upper bound in Hz (inclusive).

    Returns:
        Tuple of floats, first-detected first.
    """
    if frequencies is None:
        return ()
    return tuple(
        float(f)  # type: ignore[arg-type]
        for f in frequencies
        if is_valid_frequency(f, freq_min, freq_max)
    )
