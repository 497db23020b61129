"""
core/audio/detectors.py — Single-frame fundamental-frequency detectors.

Two time-domain detectors, both operating on one analysis frame:

    yin   — probabilistic YIN (Mauch & Dixon 2014) through librosa.pyin,
            run on the frame as a single analysis window. Primary detector:
            stable on voice, rejects unvoiced frames.
    amdf  — Average Magnitude Difference Function. Cheaper and less picky;
            used as fallback and to search for additional voices.

Both return a frequency in Hz, or None when the frame shows no clear
periodicity inside [min_frequency, max_frequency]. Neither applies a silence
gate; that is the estimator's job.

AMDF lag range:
    min_lag = floor(sr / max_frequency), max_lag = ceil(sr / min_frequency),
    with max_lag capped at half the frame so every lag has a full comparison
    window. Short frames therefore lose the lowest frequencies first.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

_MIN_LAG: int = 2
"""Lags below 2 samples cannot be interpolated."""

_MIN_BAND_CENTS: float = 20.0


def as_frame(frame: Sequence[float] | np.ndarray) -> np.ndarray:
    """Return the frame as a contiguous 1-D float64 array."""
    return np.ascontiguousarray(np.asarray(frame, dtype=np.float64).ravel())


def _lag_bounds(
    n_samples: int,
    sample_rate: int,
    min_frequency: float,
    max_frequency: float,
) -> tuple[int, int] | None:
    """Compute the inclusive lag search range, or None if it is empty."""
    min_lag = max(_MIN_LAG, int(math.floor(sample_rate / max_frequency)))
    max_lag = min(int(math.ceil(sample_rate / min_frequency)), n_samples // 2)
    if max_lag <= min_lag + 1:
        return None
    return min_lag, max_lag


def parabolic_offset(left: float, centre: float, right: float) -> float:
    """Sub-sample offset of the extremum of a parabola through three points."""
    denom = left - 2.0 * centre + right
    if abs(denom) < 1e-12:
        return 0.0
    offset = 0.5 * (left - right) / denom
    # A vertex further than half a sample away means the three points are
    # not bracketing an extremum.
    return offset if abs(offset) <= 0.5 else 0.0


def _to_frequency(sample_rate: int, lag: float, lo: float, hi: float) -> float | None:
    if lag <= 0.0:
        return None
    frequency = sample_rate / lag
    if not math.isfinite(frequency) or not lo <= frequency <= hi:
        return None
    return float(frequency)


# ---------------------------------------------------------------------------
# YIN (probabilistic, via librosa)
# ---------------------------------------------------------------------------


def pyin_min_frequency(n_samples: int, sample_rate: int) -> float | None:
    """Lowest fmin librosa.pyin accepts for one frame of ``n_samples``.

    pyin compares a half-frame window against lags up to ``sr / fmin``; the
    longest period has to fit in the other half of the frame.
    """
    span = n_samples - n_samples // 2 - 2
    if span <= 0:
        return None
    return sample_rate / span


def yin(
    frame: Sequence[float] | np.ndarray,
    sample_rate: int,
    *,
    min_frequency: float = 80.0,
    max_frequency: float = 1000.0,
    voiced_probability: float = 0.3,
) -> float | None:
    """Estimate the fundamental frequency of one frame with probabilistic YIN.

    The whole frame is one pYIN analysis frame (``center=False``), so librosa
    returns exactly one f0 value. pYIN reports pitch on a 10-cent grid.

    Args:
        frame: Time-domain samples (mono).
        sample_rate: Sample rate in Hz.
        min_frequency: Lowest accepted pitch in Hz. Raised to what the frame
            length can resolve.
        max_frequency: Highest accepted pitch in Hz.
        voiced_probability: Minimum voicing probability pYIN must assign.

    Returns:
        Frequency in Hz, or None when pYIN marks the frame unvoiced (NaN f0).
    """
    x = as_frame(frame)
    floor = pyin_min_frequency(x.size, sample_rate)
    # A constant frame has no period but a zero difference function at every lag.
    if floor is None or np.ptp(x) == 0.0:
        return None
    fmin = max(min_frequency, floor)
    fmax = min(max_frequency, sample_rate / 2.0)
    # pyin needs at least two of its 10-cent pitch bins inside the band.
    if fmin >= fmax or 1200.0 * math.log2(fmax / fmin) < _MIN_BAND_CENTS:
        return None

    import librosa  # deferred to allow testing without audio backend

    f0_hz, voiced_flag, voiced_probs = librosa.pyin(
        x,
        fmin=fmin,
        fmax=fmax,
        sr=sample_rate,
        frame_length=x.size,
        # One frame either way. A unit hop keeps the pitch-transition band at
        # one bin, which narrow confirmation bands need.
        hop_length=1,
        center=False,
    )
    if f0_hz.size == 0 or not bool(voiced_flag[0]):
        return None
    if float(voiced_probs[0]) < voiced_probability:
        return None
    frequency = float(f0_hz[0])
    if not math.isfinite(frequency) or not min_frequency <= frequency <= max_frequency:
        return None
    return frequency


# ---------------------------------------------------------------------------
# AMDF
# ---------------------------------------------------------------------------


def amdf_curve(x: np.ndarray, min_lag: int, max_lag: int) -> np.ndarray:
    """Mean absolute difference for every lag in [min_lag, max_lag]."""
    window = x.size - max_lag
    head = x[:window]
    lags = range(min_lag, max_lag + 1)
    return np.array(
        [float(np.mean(np.abs(head - x[lag : lag + window]))) for lag in lags],
        dtype=np.float64,
    )


def amdf(
    frame: Sequence[float] | np.ndarray,
    sample_rate: int,
    *,
    min_frequency: float = 80.0,
    max_frequency: float = 1000.0,
    sensitivity: float = 0.1,
) -> float | None:
    """Estimate the fundamental frequency of one frame with AMDF.

    AMDF dips at every multiple of the period with roughly equal depth, so the
    global minimum often lands on 2× or 3× the period. The shortest lag whose
    value lies within ``sensitivity`` of the curve's range above the global
    minimum is taken instead, then refined to its local minimum.

    Args:
        frame: Time-domain samples (mono).
        sample_rate: Sample rate in Hz.
        min_frequency: Lowest accepted pitch in Hz.
        max_frequency: Highest accepted pitch in Hz.
        sensitivity: Fraction of (max - min) defining the dip tolerance, and
            minimum relative dip depth for the frame to count as periodic.

    Returns:
        Frequency in Hz, or None for flat (aperiodic) curves and for minima
        sitting on the edge of the lag range.
    """
    x = as_frame(frame)
    bounds = _lag_bounds(x.size, sample_rate, min_frequency, max_frequency)
    if bounds is None:
        return None
    min_lag, max_lag = bounds

    curve = amdf_curve(x, min_lag, max_lag)
    lowest = float(curve.min())
    highest = float(curve.max())
    if highest <= 0.0 or (highest - lowest) / highest < sensitivity:
        return None

    cutoff = lowest + sensitivity * (highest - lowest)
    index = int(np.argmax(curve <= cutoff))
    while index + 1 < curve.size and curve[index + 1] < curve[index]:
        index += 1
    # A minimum on either end of the lag range is the band edge, not a dip.
    if index == 0 or index == curve.size - 1:
        return None

    refined = float(index + min_lag)
    refined += parabolic_offset(curve[index - 1], curve[index], curve[index + 1])
    return _to_frequency(sample_rate, refined, min_frequency, max_frequency)
