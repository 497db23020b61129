"""
Configuration dataclasses for the pitch estimator and the voice game.

These immutable config objects are startup constants: a session or estimator
is built from one and never mutates it. Named presets capture the two
product variants (creature/doom and sequence/life).
"""

from __future__ import annotations

from dataclasses import dataclass

from core.audio.types import CueNote
from core.game.types import ScoringModel

MAX_SUPPORTED_VOICES: int = 5
"""Upper bound on simultaneously tracked voices (players)."""

DEFAULT_SEQUENCE: tuple[CueNote, ...] = (
    CueNote("G3", 0.6),
    CueNote("C4", 0.9),
    CueNote("D4", 0.6),
    CueNote("E4", 0.9),
    CueNote("C4", 1.2),
)
"""Opening of the Star Wars main theme. Five notes, 4.2 s per loop."""


@dataclass(frozen=True)
class DetectorConfig:
    """
    Configuration for single-frame pitch detection.

    Attributes:
        sample_rate: Sample rate of incoming frames in Hz.
        min_frequency: Lowest detectable pitch. 80 Hz covers low male voices.
        max_frequency: Highest detectable pitch.
        voiced_probability: Minimum pYIN voicing probability for the primary
            detector to report a pitch. Higher = stricter voicing decision.
        amdf_sensitivity: Fraction of the AMDF range within which a dip counts
            as the period minimum. Also the minimum relative depth of the dip.
        silence_rms: Frames with RMS below this are treated as silence.
        duplicate_ratio: Relative distance under which two candidates are the
            same voice (0.15 = 15%).
        harmonic_tolerance: Distance of a frequency ratio from an integer under
            which a candidate is considered a harmonic of an accepted voice.
        max_attempts: Bounded number of extra detector runs per frame when
            looking for additional voices.
        spectral_peak_floor: Minimum normalised magnitude for a spectrum bin
            to be offered as an extra voice candidate.
        confirm_ratio: Relative distance within which a spectral peak or a
            windowed YIN run confirms a multi-voice candidate (0.03 ~ half a
            semitone).

    Example:
        >>> config = DetectorConfig(sample_rate=48000)
        >>> estimator = PitchEstimator(config)
    """

    sample_rate: int = 44100
    min_frequency: float = 80.0
    max_frequency: float = 1000.0
    voiced_probability: float = 0.3
    amdf_sensitivity: float = 0.1
    silence_rms: float = 1e-3
    duplicate_ratio: float = 0.15
    harmonic_tolerance: float = 0.1
    max_attempts: int = 4
    spectral_peak_floor: float = 0.2
    confirm_ratio: float = 0.03

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.min_frequency <= 0:
            raise ValueError(f"min_frequency must be positive, got {self.min_frequency}")
        if self.min_frequency >= self.max_frequency:
            raise ValueError(
                f"min_frequency ({self.min_frequency}) must be less than "
                f"max_frequency ({self.max_frequency})"
            )
        if self.max_frequency >= self.sample_rate / 2:
            raise ValueError(
                f"max_frequency ({self.max_frequency}) must be below Nyquist "
                f"({self.sample_rate / 2})"
            )
        if not 0 < self.voiced_probability < 1:
            raise ValueError(
                f"voiced_probability must be in (0, 1), got {self.voiced_probability}"
            )
        if not 0 < self.amdf_sensitivity < 1:
            raise ValueError(
                f"amdf_sensitivity must be in (0, 1), got {self.amdf_sensitivity}"
            )
        if self.silence_rms < 0:
            raise ValueError(f"silence_rms must be non-negative, got {self.silence_rms}")
        if not 0 < self.duplicate_ratio < 1:
            raise ValueError(f"duplicate_ratio must be in (0, 1), got {self.duplicate_ratio}")
        if not 0 < self.harmonic_tolerance < 0.5:
            raise ValueError(
                f"harmonic_tolerance must be in (0, 0.5), got {self.harmonic_tolerance}"
            )
        if self.max_attempts < 0:
            raise ValueError(f"max_attempts must be non-negative, got {self.max_attempts}")
        if not 0 <= self.spectral_peak_floor <= 1:
            raise ValueError(
                f"spectral_peak_floor must be in [0, 1], got {self.spectral_peak_floor}"
            )
        if not 0 < self.confirm_ratio < self.duplicate_ratio:
            raise ValueError(
                f"confirm_ratio must be in (0, duplicate_ratio), got {self.confirm_ratio}"
            )


@dataclass(frozen=True)
class GameConfig:
    """
    Configuration for the voice-proximity game.

    Thresholds are in semitones of maximum error across voices. Times are in
    milliseconds unless the name says otherwise; rates are per second.

    Hysteresis bands:
        CALM is entered at ``error <= calm_enter`` and kept while
        ``error <= calm_exit``. CHAOS is entered at ``error > chaos_enter`` and
        kept while ``error >= chaos_exit``.
    """

    scoring: ScoringModel = ScoringModel.LIFE

    # Valid vocal band. Values outside are discarded, never clamped
    freq_min: float = 80.0
    freq_max: float = 1200.0

    # Energy smoothing
    energy_lerp: float = 0.15
    initial_energy: float = 0.9
    error_span: float = 2.0
    """Semitone error that maps to proximity 0."""

    # State thresholds (semitones)
    calm_enter: float = 0.8
    calm_exit: float = 0.88
    chaos_enter: float = 2.0
    chaos_exit: float = 1.8

    grace_silence_ms: float = 300.0

    # Life model
    initial_life: float = 1.0
    unstable_drain_rate: float = 0.05
    chaos_drain_rate: float = 0.15

    # Doom model
    doom_max: float = 10.0
    unstable_weight: float = 0.5
    calm_hold_ms: float = 2000.0
    target_change_reward: float = 1.0
    target_midi_min: int = 48
    target_midi_max: int = 83

    # Sequence mode
    sequence: tuple[CueNote, ...] = DEFAULT_SEQUENCE
    countdown_start: int = 3
    countdown_interval_ms: float = 1000.0

    # Loop and I/O
    default_dt_ms: float = 16.67
    """Delta used for the first tick, when the caller has no previous timestamp."""
    history_length: int = 200
    target_cue_s: float = 1.0
    """Duration of the reference tone played at simple-mode start."""
    max_voices: int = 1

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.freq_min <= 0 or self.freq_min >= self.freq_max:
            raise ValueError(
                f"freq range must satisfy 0 < freq_min < freq_max, "
                f"got ({self.freq_min}, {self.freq_max})"
            )
        if not 0 < self.energy_lerp <= 1:
            raise ValueError(f"energy_lerp must be in (0, 1], got {self.energy_lerp}")
        if not 0 <= self.initial_energy <= 1:
            raise ValueError(f"initial_energy must be in [0, 1], got {self.initial_energy}")
        if self.error_span <= 0:
            raise ValueError(f"error_span must be positive, got {self.error_span}")
        if not 0 <= self.calm_enter < self.calm_exit:
            raise ValueError(
                f"calm_exit ({self.calm_exit}) must be greater than "
                f"calm_enter ({self.calm_enter})"
            )
        if not self.chaos_exit < self.chaos_enter:
            raise ValueError(
                f"chaos_exit ({self.chaos_exit}) must be less than "
                f"chaos_enter ({self.chaos_enter})"
            )
        if self.calm_exit >= self.chaos_exit:
            raise ValueError(
                f"calm band ({self.calm_exit}) must sit below chaos band ({self.chaos_exit})"
            )
        if self.grace_silence_ms < 0:
            raise ValueError(
                f"grace_silence_ms must be non-negative, got {self.grace_silence_ms}"
            )
        if self.initial_life <= 0:
            raise ValueError(f"initial_life must be positive, got {self.initial_life}")
        if self.unstable_drain_rate < 0 or self.chaos_drain_rate <= 0:
            raise ValueError("drain rates must be non-negative and chaos_drain_rate positive")
        if self.doom_max <= 0:
            raise ValueError(f"doom_max must be positive, got {self.doom_max}")
        if not 0 <= self.unstable_weight <= 1:
            raise ValueError(f"unstable_weight must be in [0, 1], got {self.unstable_weight}")
        if self.calm_hold_ms <= 0:
            raise ValueError(f"calm_hold_ms must be positive, got {self.calm_hold_ms}")
        if self.target_change_reward < 0:
            raise ValueError(
                f"target_change_reward must be non-negative, got {self.target_change_reward}"
            )
        if self.target_midi_min >= self.target_midi_max:
            raise ValueError("target_midi_min must be less than target_midi_max")
        if any(note.duration_s <= 0 for note in self.sequence):
            raise ValueError("sequence note durations must be positive")
        if self.countdown_start < 0 or self.countdown_interval_ms <= 0:
            raise ValueError("countdown_start must be >= 0 and countdown_interval_ms > 0")
        if self.default_dt_ms <= 0:
            raise ValueError(f"default_dt_ms must be positive, got {self.default_dt_ms}")
        if self.history_length <= 0:
            raise ValueError(f"history_length must be positive, got {self.history_length}")
        if not 1 <= self.max_voices <= MAX_SUPPORTED_VOICES:
            raise ValueError(
                f"max_voices must be in [1, {MAX_SUPPORTED_VOICES}], got {self.max_voices}"
            )


# Pre-defined configurations for the two product variants

CREATURE_CONFIG = GameConfig(
    scoring=ScoringModel.DOOM,
    calm_enter=0.5,
    calm_exit=0.55,
    chaos_enter=1.5,
    chaos_exit=1.35,
)
"""Creature game: random target, doom meter, retarget after 2 s of calm."""

SEQUENCE_CONFIG = GameConfig()
"""Sequence game: five-note loop, life pool, wider thresholds."""

DEFAULT_DETECTOR_CONFIG = DetectorConfig()
"""YIN threshold 0.1, 80–1000 Hz at 44.1 kHz."""

_PRESETS: dict[str, GameConfig] = {
    "creature": CREATURE_CONFIG,
    "sequence": SEQUENCE_CONFIG,
}


def get_preset(name: str) -> GameConfig:
    """Return a named game preset.

    Args:
        name: ``"creature"`` or ``"sequence"`` (case-insensitive).

    Raises:
        ValueError: if the preset name is unknown.
    """
    key = name.strip().lower()
    if key not in _PRESETS:
        raise ValueError(f"Unknown preset {name!r}, valid options: {sorted(_PRESETS)}")
    return _PRESETS[key]
