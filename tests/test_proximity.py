"""Tests for core/game/proximity.py.

Covers:
- max_error uses the worst voice, not the mean
- invalid and out-of-band frequencies are ignored; no valid voice → None
- proximity() linear mapping and clamping
"""

from __future__ import annotations

import pytest

from core.game.proximity import SILENCE_ERROR, max_error, proximity
from core.music_math import midi_to_hz

# ---------------------------------------------------------------------------
# max_error
# ---------------------------------------------------------------------------


class TestMaxError:
    def test_exact_match_is_zero(self) -> None:
        assert max_error([440.0], 69.0) == 0.0

    def test_worst_voice_wins(self) -> None:
        voices = [midi_to_hz(60.1), midi_to_hz(61.9)]
        assert max_error(voices, 60.0) == pytest.approx(1.9)

    def test_flat_and_sharp_are_symmetric(self) -> None:
        assert max_error([midi_to_hz(68.5)], 69.0) == pytest.approx(0.5)

    def test_octave_counts_twelve_semitones(self) -> None:
        """Singing the right note in the wrong octave is a full 12-semitone miss."""
        assert max_error([880.0], 69.0) == pytest.approx(12.0)
        assert max_error([midi_to_hz(69.5)], 69.0) == pytest.approx(0.5)

    def test_no_voices_is_none(self) -> None:
        assert max_error([], 69.0) is None
        assert max_error(None, 69.0) is None

    def test_out_of_band_only_is_none(self) -> None:
        assert max_error([40.0, 5000.0], 69.0) is None

    def test_out_of_band_voice_is_ignored(self) -> None:
        """A 5 kHz whistle must not count as a huge error."""
        assert max_error([440.0, 5000.0], 69.0) == 0.0

    def test_invalid_values_ignored(self) -> None:
        assert max_error([float("nan"), -1.0, 440.0], 69.0) == 0.0

    def test_custom_band(self) -> None:
        assert max_error([440.0], 69.0, freq_min=500.0, freq_max=1000.0) is None


# ---------------------------------------------------------------------------
# proximity
# ---------------------------------------------------------------------------


class TestProximity:
    def test_zero_error_is_one(self) -> None:
        assert proximity(0.0) == 1.0

    def test_linear_between(self) -> None:
        assert proximity(0.5) == pytest.approx(0.75)
        assert proximity(1.0) == pytest.approx(0.5)

    def test_clamped_at_span(self) -> None:
        assert proximity(2.0) == 0.0
        assert proximity(SILENCE_ERROR) == 0.0

    def test_custom_span(self) -> None:
        assert proximity(1.0, error_span=4.0) == pytest.approx(0.75)

    def test_invalid_span(self) -> None:
        with pytest.raises(ValueError, match="error_span"):
            proximity(1.0, error_span=0.0)
