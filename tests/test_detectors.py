"""
Tests for core/audio/detectors.py — YIN (librosa pYIN) and AMDF single-frame detectors.

Tests cover:
    - yin() accuracy on pure tones across the vocal range
    - yin() rejection of silence, constant, noise and too-short frames
    - yin() raising fmin to what a short frame can resolve instead of failing
    - yin() on the narrow bands used to confirm multi-voice candidates
    - amdf() accuracy and avoidance of sub-octave (2× period) errors
    - amdf() rejection of flat curves and band-edge minima
"""

import numpy as np
import pytest

from core.audio.detectors import amdf, pyin_min_frequency, yin

SR = 44100

# ---------------------------------------------------------------------------
# yin
# ---------------------------------------------------------------------------


class TestYin:
    @pytest.mark.parametrize("freq", [110.0, 196.0, 220.0, 440.0, 659.25])
    def test_pure_tone_within_pyin_resolution(self, make_sine, freq):
        """pYIN reports on a 10-cent grid: at most 5 cents (0.29%) off."""
        result = yin(make_sine(freq), SR)
        assert result is not None
        assert result == pytest.approx(freq, rel=0.004)

    def test_silence_returns_none(self):
        """All-zero frame has no periodicity."""
        assert yin(np.zeros(2048), SR) is None

    def test_constant_frame_returns_none(self):
        assert yin(np.full(2048, 0.4), SR) is None

    def test_white_noise_returns_none(self):
        rng = np.random.default_rng(7)
        assert yin(rng.standard_normal(2048), SR) is None

    def test_frame_too_short_returns_none(self):
        """A 64-sample frame cannot hold a period of 1000 Hz or lower."""
        assert yin(np.ones(64), SR) is None

    def test_half_frame_raises_min_frequency(self, make_sine):
        """1024 samples resolve down to ~86 Hz; an 80 Hz floor must not make pyin raise."""
        result = yin(make_sine(220.0, n_samples=1024), SR, min_frequency=80.0)
        assert result == pytest.approx(220.0, rel=0.004)

    def test_narrow_band_around_tone(self, make_sine):
        """The band the estimator uses to confirm a candidate: +/- 3% around it."""
        result = yin(make_sine(330.0), SR, min_frequency=330.0 / 1.03, max_frequency=330.0 * 1.03)
        assert result == pytest.approx(330.0, rel=0.004)

    def test_band_narrower_than_two_pitch_bins_returns_none(self, make_sine):
        assert yin(make_sine(220.0), SR, min_frequency=219.0, max_frequency=220.5) is None

    def test_respects_max_frequency(self, make_sine):
        """A 440 Hz tone with max_frequency=300 can only report a subharmonic or nothing."""
        result = yin(make_sine(440.0), SR, max_frequency=300.0)
        assert result is None or result <= 300.0

    def test_accepts_plain_lists(self, make_sine):
        result = yin(make_sine(220.0).tolist(), SR)
        assert result == pytest.approx(220.0, rel=0.004)


class TestPyinMinFrequency:
    def test_full_frame(self):
        assert pyin_min_frequency(2048, SR) == pytest.approx(SR / 1022)

    def test_half_frame(self):
        assert pyin_min_frequency(1024, SR) == pytest.approx(SR / 510)

    def test_degenerate_frame(self):
        assert pyin_min_frequency(3, SR) is None


# ---------------------------------------------------------------------------
# amdf
# ---------------------------------------------------------------------------


class TestAmdf:
    @pytest.mark.parametrize("freq", [110.0, 220.0, 440.0])
    def test_pure_tone_within_two_hz(self, make_sine, freq):
        result = amdf(make_sine(freq), SR)
        assert result is not None
        assert result == pytest.approx(freq, abs=2.0)

    def test_does_not_report_sub_octave(self, make_sine):
        """The 2× period dip is as deep as the 1× dip; the shortest lag must win."""
        result = amdf(make_sine(220.0), SR)
        assert result is not None
        assert result > 150.0

    def test_silence_returns_none(self):
        assert amdf(np.zeros(2048), SR) is None

    def test_dc_returns_none(self):
        """Constant signal gives an all-zero curve."""
        assert amdf(np.full(2048, 0.3), SR) is None

    def test_band_edge_minimum_returns_none(self, make_sine):
        """Searching only above a 220 Hz tone finds no interior dip."""
        assert amdf(make_sine(220.0), SR, min_frequency=253.0, max_frequency=1000.0) is None

    def test_band_below_finds_subharmonic(self, make_sine):
        """Below the tone the only dip is the 2× period (110 Hz)."""
        result = amdf(make_sine(220.0), SR, min_frequency=80.0, max_frequency=191.0)
        assert result == pytest.approx(110.0, abs=2.0)
