"""
core/audio — Pure audio analysis for the voice game.

Provides single-frame pitch detection (YIN with AMDF fallback), a multi-voice
estimator with harmonic/duplicate rejection, and reference-tone rendering.
All functions are pure: they take ``(frame: np.ndarray, sample_rate: int)``
and return plain values. No microphone I/O: the caller supplies buffers.

Architecture note:
    numpy is a DSP-pure library (no I/O, no side effects). Its use in
    core/audio/ keeps the game engine in core/game/ free of array code.

Public API:
    Types:      CueNote, PitchEstimate
    Estimator:  core.audio.pitch.PitchEstimator
    Detectors:  core.audio.detectors.yin, core.audio.detectors.amdf
    Synthesis:  core.audio.synth.render_note, core.audio.synth.render_cue
"""

from core.audio.types import CueNote, PitchEstimate

__all__ = [
    "CueNote",
    "PitchEstimate",
]
