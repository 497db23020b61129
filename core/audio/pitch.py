"""
core/audio/pitch.py — Frame-level pitch estimation for one or more voices.

PitchEstimator turns one time-domain frame into a FrequencySet:

    frame ─┬─ silence gate (RMS)
           ├─ YIN (librosa pYIN)          primary voice
           │    └─ AMDF fallback          if YIN finds nothing usable
           └─ extra voices (max_voices > 1)
                ├─ magnitude spectrum     supplied, or computed from the frame
                ├─ primary kept only if the spectrum has a peak at it
                ├─ AMDF on other analysis windows / pitch bands,
                │    confirmed by YIN on the same window
                ├─ spectral peaks, lowest first
                └─ duplicate + harmonic rejection

Every returned frequency is finite, positive and inside the configured range.
Detector exceptions never escape: a failing detector counts as "no detection"
for that frame and is reported in ``PitchEstimate.failed_detectors``.

The estimator is a frozen dataclass. A sample-rate change produces a new
estimator via ``configure()``; frames already in flight keep using the old one.

Usage:
    estimator = PitchEstimator().configure(48000)
    freqs = estimator.estimate(samples, max_voices=2)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

import numpy as np

from core.audio.detectors import amdf, as_frame, parabolic_offset, yin
from core.audio.types import PitchEstimate
from core.config import DEFAULT_DETECTOR_CONFIG, MAX_SUPPORTED_VOICES, DetectorConfig

logger = logging.getLogger(__name__)

# Analysis windows tried when searching for extra voices, as (start, end)
# fractions of the frame. Cycled in order.
_SEARCH_WINDOWS: tuple[tuple[float, float], ...] = (
    (0.0, 1.0),
    (0.0, 0.5),
    (0.5, 1.0),
    (0.25, 0.75),
)

_EVIDENCE_FLOOR: float = 0.05
"""Minimum normalised magnitude for a spectral peak to count as a voice being present."""


# ---------------------------------------------------------------------------
# Candidate filtering (pure)
# ---------------------------------------------------------------------------


def is_duplicate(
    candidate: float,
    accepted: Sequence[float],
    *,
    duplicate_ratio: float = 0.15,
    harmonic_tolerance: float = 0.1,
) -> bool:
    """True if ``candidate`` repeats a voice already in ``accepted``.

    A candidate is a duplicate of an existing voice when either:
        - it lies within ``duplicate_ratio`` of it: |new - old| / old < 0.15
        - the ratio new/old, or old/new, is within ``harmonic_tolerance`` of an
          integer (octaves, twelfths and other harmonics a detector locks onto)

    Both thresholds are heuristics, not laws; they are configuration.

    Examples:
        is_duplicate(440.0, [220.0]) → True   (octave)
        is_duplicate(330.0, [220.0]) → False  (fifth, ratio 1.5)
        is_duplicate(230.0, [220.0]) → True   (within 15%)
    """
    for existing in accepted:
        if existing <= 0.0:
            continue
        if abs(candidate - existing) / existing < duplicate_ratio:
            return True
        ratio = candidate / existing
        inverse = 1.0 / ratio
        if abs(ratio - round(ratio)) < harmonic_tolerance:
            return True
        if abs(inverse - round(inverse)) < harmonic_tolerance:
            return True
    return False


def frame_spectrum(x: np.ndarray, *, oversample: int = 4) -> np.ndarray:
    """Normalised (0..1) magnitude spectrum of one Hann-windowed frame.

    The frame is mean-removed and zero-padded to ``oversample`` times the next
    power of two. The Nyquist bin is dropped, so the result has the
    ``fft_size = 2 * len(result)`` layout ``spectral_peaks`` expects.
    """
    if x.size < 2:
        return np.zeros(0, dtype=np.float64)
    n_fft = oversample * (1 << int(x.size - 1).bit_length())
    windowed = (x - float(np.mean(x))) * np.hanning(x.size)
    magnitudes = np.abs(np.fft.rfft(windowed, n=n_fft))[: n_fft // 2]
    peak = float(magnitudes.max())
    return magnitudes / peak if peak > 0.0 else magnitudes


def spectral_peaks(
    magnitudes: Sequence[float] | np.ndarray,
    sample_rate: int,
    *,
    min_frequency: float,
    max_frequency: float,
    floor: float = 0.2,
) -> list[float]:
    """Frequencies of local maxima in a normalised magnitude spectrum.

    The spectrum is assumed to span 0..Nyquist in ``len(magnitudes)`` bins, the
    layout of an analyser with ``fft_size = 2 * len(magnitudes)``. Each peak is
    refined with a parabola through its neighbouring bins.

    Returns:
        Peak frequencies in Hz, strongest first. Bins below ``floor`` or outside
        the frequency range are ignored.
    """
    mags = np.asarray(magnitudes, dtype=np.float64).ravel()
    if mags.size < 3:
        return []
    bin_hz = sample_rate / (2.0 * mags.size)
    centre = mags[1:-1]
    is_peak = (centre > mags[:-2]) & (centre >= mags[2:]) & (centre >= floor)
    indices = np.nonzero(is_peak)[0] + 1
    peaks: list[tuple[float, float]] = []
    for index in indices:
        offset = parabolic_offset(mags[index - 1], mags[index], mags[index + 1])
        frequency = float((index + offset) * bin_hz)
        if min_frequency <= frequency <= max_frequency:
            peaks.append((float(mags[index]), frequency))
    peaks.sort(key=lambda p: p[0], reverse=True)
    return [frequency for _, frequency in peaks]


# ---------------------------------------------------------------------------
# Estimator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PitchEstimator:
    """Immutable pitch estimator bound to one sample rate.

    Attributes:
        config: Detector parameters (sample rate, range, thresholds).
    """

    config: DetectorConfig = field(default=DEFAULT_DETECTOR_CONFIG)

    @property
    def sample_rate(self) -> int:
        return self.config.sample_rate

    def configure(self, sample_rate: int) -> PitchEstimator:
        """Return an estimator for ``sample_rate``, reusing self if unchanged.

        Raises:
            ValueError: if the sample rate is invalid for the configured range.
        """
        if sample_rate == self.config.sample_rate:
            return self
        logger.debug("Reconfiguring estimator: %d Hz → %d Hz", self.sample_rate, sample_rate)
        return PitchEstimator(replace(self.config, sample_rate=int(sample_rate)))

    # -- public API ---------------------------------------------------------

    def estimate(
        self,
        frame: Sequence[float] | np.ndarray,
        max_voices: int = 1,
        magnitudes: Sequence[float] | np.ndarray | None = None,
    ) -> tuple[float, ...]:
        """Return the FrequencySet for one frame (see ``analyze``)."""
        return self.analyze(frame, max_voices=max_voices, magnitudes=magnitudes).frequencies

    def analyze(
        self,
        frame: Sequence[float] | np.ndarray,
        max_voices: int = 1,
        magnitudes: Sequence[float] | np.ndarray | None = None,
    ) -> PitchEstimate:
        """Analyse one frame.

        Args:
            frame: Time-domain samples, typically 2048 floats in [-1, 1].
            max_voices: Number of simultaneous voices to look for (1–5).
            magnitudes: Optional normalised (0..1) magnitude spectrum of the
                same window. Only used when ``max_voices > 1``; the frame's own
                spectrum is computed when it is omitted.

        Returns:
            PitchEstimate with 0..max_voices frequencies, primary voice first.

        Raises:
            ValueError: if max_voices is outside [1, 5].
        """
        if not 1 <= max_voices <= MAX_SUPPORTED_VOICES:
            raise ValueError(f"max_voices must be in [1, {MAX_SUPPORTED_VOICES}], got {max_voices}")

        failures: list[str] = []
        try:
            x = as_frame(frame)
        except (TypeError, ValueError) as exc:
            logger.warning("Unusable audio frame: %s", exc)
            return PitchEstimate(frequencies=(), sample_rate=self.sample_rate, rms=0.0)

        if x.size == 0 or not np.all(np.isfinite(x)):
            return PitchEstimate(frequencies=(), sample_rate=self.sample_rate, rms=0.0)

        rms = float(np.sqrt(np.mean(x * x)))
        if rms < self.config.silence_rms:
            return PitchEstimate(frequencies=(), sample_rate=self.sample_rate, rms=rms)

        primary = self._detect_primary(x, failures)
        if primary is None:
            return PitchEstimate(
                frequencies=(),
                sample_rate=self.sample_rate,
                rms=rms,
                failed_detectors=tuple(failures),
            )

        voices = [primary]
        if max_voices > 1:
            voices = self._find_voices(x, primary, max_voices, magnitudes, failures)

        return PitchEstimate(
            frequencies=tuple(voices[:max_voices]),
            sample_rate=self.sample_rate,
            rms=rms,
            failed_detectors=tuple(failures),
        )

    # -- internals ----------------------------------------------------------

    def _is_usable(self, frequency: float | None) -> bool:
        return (
            frequency is not None
            and math.isfinite(frequency)
            and frequency > 0.0
            and self.config.min_frequency <= frequency <= self.config.max_frequency
        )

    def _run(
        self,
        name: str,
        detector: Callable[..., float | None],
        x: np.ndarray,
        failures: list[str],
        **kwargs: float,
    ) -> float | None:
        """Run one detector, absorbing any exception as no-detection."""
        try:
            result = detector(x, self.sample_rate, **kwargs)
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s detector failed on frame: %s", name.upper(), exc)
            failures.append(name)
            return None
        if result is None:
            return None
        return float(result)

    def _detect_primary(self, x: np.ndarray, failures: list[str]) -> float | None:
        cfg = self.config
        frequency = self._run(
            "yin",
            yin,
            x,
            failures,
            min_frequency=cfg.min_frequency,
            max_frequency=cfg.max_frequency,
            voiced_probability=cfg.voiced_probability,
        )
        if self._is_usable(frequency):
            return frequency

        frequency = self._run(
            "amdf",
            amdf,
            x,
            failures,
            min_frequency=cfg.min_frequency,
            max_frequency=cfg.max_frequency,
            sensitivity=cfg.amdf_sensitivity,
        )
        return frequency if self._is_usable(frequency) else None

    def _spectrum(
        self,
        x: np.ndarray,
        magnitudes: Sequence[float] | np.ndarray | None,
    ) -> np.ndarray:
        if magnitudes is not None:
            try:
                return np.asarray(magnitudes, dtype=np.float64).ravel()
            except (TypeError, ValueError) as exc:
                logger.warning("Ignoring unusable magnitude spectrum: %s", exc)
        return frame_spectrum(x)

    def _confirmed_on_window(
        self,
        window: np.ndarray,
        candidate: float,
        failures: list[str],
    ) -> bool:
        """True if YIN, restricted to a narrow band, finds ``candidate`` in ``window``."""
        ratio = self.config.confirm_ratio
        found = self._run(
            "yin",
            yin,
            window,
            failures,
            min_frequency=candidate / (1.0 + ratio),
            max_frequency=candidate * (1.0 + ratio),
            voiced_probability=self.config.voiced_probability,
        )
        return found is not None and abs(found - candidate) <= candidate * ratio

    def _find_voices(
        self,
        x: np.ndarray,
        primary: float,
        max_voices: int,
        magnitudes: Sequence[float] | np.ndarray | None,
        failures: list[str],
    ) -> list[float]:
        """Resolve up to ``max_voices`` voices, starting from the primary detection.

        The frame's magnitude spectrum is the evidence every voice must show:

        - The primary is kept when a spectral peak lies within ``confirm_ratio``
          of it. A chord has a common period whose frequency carries no energy
          (220 + 330 Hz repeats at 110 Hz); such a primary is dropped.
        - Attempt k runs AMDF on analysis window k (cycled) restricted to the
          pitch band above (even k) or below (odd k) the primary, so a repeated
          run is not forced back onto the dominant pitch. A candidate is kept
          only if YIN finds it again on the same window and the spectrum has a
          peak there.
        - Remaining spectral peaks are offered in ascending frequency, so a
          voice's fundamental is accepted before its harmonics.

        A spectrum with no peaks in range gives no evidence either way; then
        the primary stands and window candidates need only the YIN check.
        """
        cfg = self.config
        spectrum = self._spectrum(x, magnitudes)
        bin_hz = self.sample_rate / (2.0 * spectrum.size) if spectrum.size else 0.0
        evidence = spectral_peaks(
            spectrum,
            self.sample_rate,
            min_frequency=cfg.min_frequency,
            max_frequency=cfg.max_frequency,
            floor=_EVIDENCE_FLOOR,
        )

        def has_peak(frequency: float) -> bool:
            if not evidence:
                return True
            tolerance = max(frequency * cfg.confirm_ratio, bin_hz)
            return any(abs(peak - frequency) <= tolerance for peak in evidence)

        voices: list[float] = []
        if has_peak(primary):
            voices.append(primary)
        else:
            logger.debug("Primary %.1f Hz has no spectral peak, dropped", primary)

        def is_new(candidate: float | None) -> bool:
            if not self._is_usable(candidate):
                return False
            assert candidate is not None
            if is_duplicate(
                candidate,
                voices,
                duplicate_ratio=cfg.duplicate_ratio,
                harmonic_tolerance=cfg.harmonic_tolerance,
            ):
                logger.debug("Rejected duplicate/harmonic candidate %.1f Hz", candidate)
                return False
            return True

        for attempt in range(cfg.max_attempts):
            if len(voices) >= max_voices:
                break
            start, end = _SEARCH_WINDOWS[attempt % len(_SEARCH_WINDOWS)]
            window = x[int(start * x.size) : int(end * x.size)]
            if attempt % 2 == 0:
                lo = primary * (1.0 + cfg.duplicate_ratio)
                hi = cfg.max_frequency
            else:
                lo = cfg.min_frequency
                hi = primary / (1.0 + cfg.duplicate_ratio)
            if lo >= hi:
                continue
            candidate = self._run(
                "amdf",
                amdf,
                window,
                failures,
                min_frequency=lo,
                max_frequency=hi,
                sensitivity=cfg.amdf_sensitivity,
            )
            if not is_new(candidate):
                continue
            assert candidate is not None
            if not (
                has_peak(candidate) and self._confirmed_on_window(window, candidate, failures)
            ):
                logger.debug("Unconfirmed window candidate %.1f Hz", candidate)
                continue
            voices.append(candidate)

        candidates = spectral_peaks(
            spectrum,
            self.sample_rate,
            min_frequency=cfg.min_frequency,
            max_frequency=cfg.max_frequency,
            floor=cfg.spectral_peak_floor,
        )
        for peak in sorted(candidates):
            if len(voices) >= max_voices:
                break
            if is_new(peak):
                voices.append(peak)

        return voices or [primary]
