"""
core/game/sequence.py — Phase and target progression for the sequence game.

Phases run strictly in order, driven by elapsed tick time::

    LISTEN ──(demo done)──▶ COUNTDOWN 3·2·1 ──(0)──▶ PLAYING ──(score bound)──▶ GAME_OVER
      demo_index follows        one step per                index loops
      the note being played     countdown_interval_ms       (i + 1) mod len

While PLAYING, the note timer keeps its overshoot: a 700 ms tick on a 600 ms
note leaves 100 ms already spent on the next note, so large steps stay in
sync with wall time. A tick that changes phase spends its whole dt on the
phase it is leaving.

The controller only tracks time and position. Scoring happens in the session,
which reads ``current_target`` before calling ``advance``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from core.game.types import GamePhase, Target

logger = logging.getLogger(__name__)


class SequenceController:
    """Walks a fixed list of targets through listen, countdown and play.

    Args:
        targets: Resolved notes with durations. May be empty, in which case
            there is never a current target.
        countdown_start: First number shown in COUNTDOWN.
        countdown_interval_ms: Time each countdown number is shown.
    """

    def __init__(
        self,
        targets: Sequence[Target],
        countdown_start: int = 3,
        countdown_interval_ms: float = 1000.0,
    ) -> None:
        self._targets: tuple[Target, ...] = tuple(targets)
        self._durations_ms = tuple((t.duration_s or 0.0) * 1000.0 for t in self._targets)
        if any(duration <= 0.0 for duration in self._durations_ms):
            raise ValueError("every sequence target needs a positive duration_s")
        self._countdown_start = countdown_start
        self._countdown_interval_ms = countdown_interval_ms
        self.restart()

    def restart(self) -> None:
        """Back to the start of LISTEN."""
        self._phase = GamePhase.LISTEN
        self._listen_ms = 0.0
        self._countdown = 0
        self._countdown_ms = 0.0
        self._index = 0
        self._note_ms = 0.0
        self._demo_index = 0 if self._targets else -1

    # -- read-only views ------------------------------------------------------

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def targets(self) -> tuple[Target, ...]:
        return self._targets

    @property
    def index(self) -> int:
        return self._index

    @property
    def countdown(self) -> int:
        return self._countdown if self._phase == GamePhase.COUNTDOWN else 0

    @property
    def demo_index(self) -> int:
        return self._demo_index if self._phase == GamePhase.LISTEN else -1

    @property
    def current_target(self) -> Target | None:
        if not self._targets:
            return None
        return self._targets[self._index]

    @property
    def demo_duration_ms(self) -> float:
        return sum(self._durations_ms)

    # -- progression ----------------------------------------------------------

    def finish(self) -> None:
        """Enter GAME_OVER. Further ``advance`` calls do nothing."""
        if self._phase != GamePhase.GAME_OVER:
            self._set_phase(GamePhase.GAME_OVER)

    def advance(self, dt_ms: float) -> GamePhase:
        """Move time forward by ``dt_ms`` and return the resulting phase."""
        if self._phase == GamePhase.LISTEN:
            self._advance_listen(dt_ms)
        elif self._phase == GamePhase.COUNTDOWN:
            self._advance_countdown(dt_ms)
        elif self._phase == GamePhase.PLAYING:
            self._advance_playing(dt_ms)
        return self._phase

    def _advance_listen(self, dt_ms: float) -> None:
        self._listen_ms += dt_ms
        if self._listen_ms >= self.demo_duration_ms:
            self._countdown = self._countdown_start
            self._countdown_ms = 0.0
            self._set_phase(GamePhase.COUNTDOWN)
            return
        boundary = 0.0
        for i, duration in enumerate(self._durations_ms):
            boundary += duration
            if self._listen_ms < boundary:
                self._demo_index = i
                break

    def _advance_countdown(self, dt_ms: float) -> None:
        self._countdown_ms += dt_ms
        while self._countdown > 0 and self._countdown_ms >= self._countdown_interval_ms:
            self._countdown_ms -= self._countdown_interval_ms
            self._countdown -= 1
            logger.debug("Countdown %d", self._countdown)
        if self._countdown <= 0:
            self._index = 0
            self._note_ms = 0.0
            self._set_phase(GamePhase.PLAYING)

    def _advance_playing(self, dt_ms: float) -> None:
        if not self._targets:
            return
        self._note_ms += dt_ms
        while self._note_ms >= self._durations_ms[self._index]:
            self._note_ms -= self._durations_ms[self._index]
            self._index = (self._index + 1) % len(self._targets)

    def _set_phase(self, phase: GamePhase) -> None:
        logger.info("Sequence phase %s → %s", self._phase.value, phase.value)
        self._phase = phase
