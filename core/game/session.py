"""
core/game/session.py — GameSession: one player's (or group's) game.

Orchestrates the pure pieces of core/game/ behind a small API driven by an
external clock::

    session = GameSession(CREATURE_CONFIG, cue_player=play_tones)
    session.start_game()
    while running:
        snapshot = session.tick(estimator.estimate(frame), dt_ms=elapsed)
        render(snapshot)

Per tick:
    1. Validate dt (None → config.default_dt_ms).
    2. Filter frequencies to the vocal band and the configured voice count.
    3. PLAYING: measure max error against the current target and feed the
       StateMachine. Sequence mode then advances the note timer.
       LISTEN / COUNTDOWN: advance the SequenceController only.
    4. Return an immutable SessionSnapshot.

Modes:
    simple    One target (random MIDI 48–83 unless given). With doom scoring,
              holding CALM for calm_hold_ms moves the target and removes doom.
    sequence  A looping list of notes, introduced by a demo and a countdown.

The session holds no module-level state; every collaborator (cue player,
random source) is injected.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable, Sequence

from core.audio.types import CueNote
from core.config import GameConfig
from core.game.history import FrequencyHistory
from core.game.proximity import max_error
from core.game.sequence import SequenceController
from core.game.state_machine import StateMachine
from core.game.types import GameMode, GamePhase, ScoringModel, SessionSnapshot, Target
from core.music_math import (
    filter_valid_frequencies,
    hz_to_midi,
    midi_to_hz,
    midi_to_note_name,
    note_name_to_hz,
)

logger = logging.getLogger(__name__)

CuePlayer = Callable[[tuple[CueNote, ...]], object]
"""Fire-and-forget tone playback. Receives the notes to play; return value ignored."""


def target_from_midi(midi: int) -> Target:
    """Build a Target for an integer MIDI note."""
    frequency = midi_to_hz(midi)
    name = midi_to_note_name(midi)
    if frequency is None or name is None:
        raise ValueError(f"Invalid target MIDI {midi!r}")
    return Target(note_name=name, frequency_hz=frequency, midi=float(midi))


def target_from_note(note: CueNote) -> Target | None:
    """Resolve a CueNote to a Target, or None if the name does not parse."""
    frequency = note_name_to_hz(note.note)
    if frequency is None:
        return None
    midi = hz_to_midi(frequency)
    assert midi is not None
    return Target(
        note_name=note.note,
        frequency_hz=frequency,
        midi=midi,
        duration_s=note.duration_s,
    )


class GameSession:
    """Single game session. Not thread-safe; callers serialise ``tick``.

    Args:
        config: Game configuration. Picks the scoring model and thresholds.
        cue_player: Called with the reference notes when a game starts.
            Exceptions it raises are logged and ignored.
        rng: Random source for target selection. Inject a seeded
            ``random.Random`` for reproducible games.
    """

    def __init__(
        self,
        config: GameConfig | None = None,
        *,
        cue_player: CuePlayer | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config if config is not None else GameConfig()
        self._cue_player = cue_player
        self._rng = rng if rng is not None else random.Random()

        self._machine = StateMachine(self._config)
        self._history = FrequencyHistory(self._config.history_length)

        self._mode: GameMode | None = None
        self._phase = GamePhase.IDLE
        self._target: Target | None = None
        self._sequence: SequenceController | None = None
        self._last_frequencies: tuple[float, ...] = ()

        # Remembered for reset_game()
        self._requested_midi: int | None = None
        self._requested_notes: tuple[CueNote, ...] | None = None

    # -- read-only views ------------------------------------------------------

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def mode(self) -> GameMode | None:
        return self._mode

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def current_target(self) -> Target | None:
        if self._mode == GameMode.SEQUENCE and self._sequence is not None:
            return self._sequence.current_target
        return self._target

    # -- lifecycle ------------------------------------------------------------

    def start_game(self, target_midi: float | None = None) -> SessionSnapshot:
        """Start a simple-mode game against one target.

        Args:
            target_midi: MIDI of the target, rounded half up to the nearest
                note (60.7 is C#4). None picks a random note in
                [target_midi_min, target_midi_max].

        Raises:
            ValueError: if target_midi is not a finite number.
        """
        if target_midi is not None and (
            isinstance(target_midi, bool) or not math.isfinite(target_midi)
        ):
            raise ValueError(f"target_midi must be a finite number, got {target_midi!r}")

        self._mode = GameMode.SIMPLE
        self._requested_midi = (
            int(math.floor(target_midi + 0.5)) if target_midi is not None else None
        )
        self._sequence = None
        self._begin(calm_rewards=self._config.scoring == ScoringModel.DOOM)

        midi = self._requested_midi if self._requested_midi is not None else self._random_midi()
        self._target = target_from_midi(midi)
        self._phase = GamePhase.PLAYING

        logger.info(
            "Simple game started: target %s (%.1f Hz), scoring=%s",
            self._target.note_name,
            self._target.frequency_hz,
            self._config.scoring.value,
        )
        self._play_cue((CueNote(self._target.note_name, self._config.target_cue_s),))
        return self.snapshot()

    def start_sequence_game(self, notes: Sequence[CueNote] | None = None) -> SessionSnapshot:
        """Start a sequence-mode game.

        Notes whose names do not parse are dropped with a warning. An empty
        result is allowed: the game runs without a target and never scores.
        """
        cue = tuple(notes) if notes is not None else self._config.sequence
        self._mode = GameMode.SEQUENCE
        self._requested_notes = cue
        self._target = None
        self._begin(calm_rewards=False)

        targets: list[Target] = []
        for note in cue:
            target = target_from_note(note)
            if target is None:
                logger.warning("Dropping unparseable sequence note %r", note.note)
                continue
            targets.append(target)
        if not targets:
            logger.warning("Sequence game started with no playable notes")

        self._sequence = SequenceController(
            targets,
            countdown_start=self._config.countdown_start,
            countdown_interval_ms=self._config.countdown_interval_ms,
        )
        self._phase = self._sequence.phase

        logger.info(
            "Sequence game started: %s, scoring=%s",
            " ".join(t.note_name for t in targets) or "<empty>",
            self._config.scoring.value,
        )
        self._play_cue(cue)
        return self.snapshot()

    def reset_game(self) -> SessionSnapshot:
        """Restart in the last used mode with the same requested targets.

        Raises:
            RuntimeError: if no game was ever started.
        """
        if self._mode is None:
            raise RuntimeError("No game to reset: call start_game() or start_sequence_game() first")
        logger.info("Resetting %s game", self._mode.value)
        if self._mode == GameMode.SEQUENCE:
            return self.start_sequence_game(self._requested_notes)
        return self.start_game(self._requested_midi)

    def stop(self) -> SessionSnapshot:
        """Return to IDLE. The last mode is kept for ``reset_game``."""
        if self._phase != GamePhase.IDLE:
            logger.info("Session stopped in phase %s", self._phase.value)
        self._phase = GamePhase.IDLE
        return self.snapshot()

    # -- update loop ----------------------------------------------------------

    def tick(
        self,
        frequencies: Sequence[float] | None,
        dt_ms: float | None = None,
    ) -> SessionSnapshot:
        """Advance the game by one frame.

        Args:
            frequencies: Estimated voice frequencies in Hz (primary first).
                Invalid or out-of-band values are discarded.
            dt_ms: Milliseconds since the previous tick. None uses
                ``config.default_dt_ms``.

        Returns:
            Snapshot after the update. IDLE and GAME_OVER sessions return an
            unchanged snapshot.

        Raises:
            ValueError: if dt_ms is negative or not finite.
        """
        dt = self._resolve_dt(dt_ms)

        if self._phase in (GamePhase.IDLE, GamePhase.GAME_OVER):
            return self.snapshot()

        if self._phase == GamePhase.PLAYING:
            valid = filter_valid_frequencies(
                frequencies, self._config.freq_min, self._config.freq_max
            )[: self._config.max_voices]
        else:
            valid = ()
        self._last_frequencies = valid
        self._history.append(valid)

        if self._mode == GameMode.SEQUENCE:
            self._tick_sequence(valid, dt)
        else:
            self._tick_simple(valid, dt)
        return self.snapshot()

    def _resolve_dt(self, dt_ms: float | None) -> float:
        if dt_ms is None:
            return self._config.default_dt_ms
        if isinstance(dt_ms, bool):
            raise ValueError(f"dt_ms must be a number, got {dt_ms!r}")
        dt = float(dt_ms)
        if not math.isfinite(dt) or dt < 0.0:
            raise ValueError(f"dt_ms must be finite and non-negative, got {dt_ms!r}")
        return dt

    def _tick_simple(self, valid: tuple[float, ...], dt: float) -> None:
        assert self._target is not None
        error = max_error(valid, self._target.midi, self._config.freq_min, self._config.freq_max)
        outcome = self._machine.update(error, dt)
        if outcome.calm_hold_reached:
            self._retarget()
        if outcome.game_over:
            self._game_over()

    def _tick_sequence(self, valid: tuple[float, ...], dt: float) -> None:
        assert self._sequence is not None
        if self._phase != GamePhase.PLAYING:
            self._phase = self._sequence.advance(dt)
            return

        target = self._sequence.current_target
        if target is None:
            self._machine.elapse(dt)
            return

        error = max_error(valid, target.midi, self._config.freq_min, self._config.freq_max)
        outcome = self._machine.update(error, dt)
        if outcome.game_over:
            self._sequence.finish()
            self._game_over()
            return
        self._phase = self._sequence.advance(dt)

    def _game_over(self) -> None:
        self._phase = GamePhase.GAME_OVER
        logger.info(
            "Session over after %.2fs (%s mode)",
            self._machine.survival_time_s,
            self._mode.value if self._mode else "?",
        )

    # -- snapshot -------------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        """Immutable copy of the current state for renderers."""
        score = self._machine.score
        is_life = score.model == ScoringModel.LIFE
        seq = self._sequence if self._mode == GameMode.SEQUENCE else None
        return SessionSnapshot(
            mode=self._mode if self._mode is not None else GameMode.SIMPLE,
            phase=self._phase,
            state=self._machine.state,
            scoring=score.model,
            energy=self._machine.energy,
            life=score.value if is_life else None,
            doom=None if is_life else score.value,
            doom_max=None if is_life else score.maximum,
            survival_time_s=self._machine.survival_time_s,
            is_game_over=self._phase == GamePhase.GAME_OVER,
            current_target=self.current_target,
            targets=seq.targets if seq is not None else (),
            current_index=seq.index if seq is not None else 0,
            countdown=seq.countdown if seq is not None else 0,
            demo_index=seq.demo_index if seq is not None else -1,
            last_error=self._machine.last_error,
            frequencies=self._last_frequencies,
        )

    def frequency_history(self) -> tuple[tuple[float, ...], ...]:
        """Recent frequency sets, oldest first (at most config.history_length)."""
        return self._history.snapshot()

    # -- helpers --------------------------------------------------------------

    def _begin(self, *, calm_rewards: bool) -> None:
        self._machine.reset(calm_rewards=calm_rewards)
        self._history.clear()
        self._last_frequencies = ()

    def _random_midi(self, exclude: float | None = None) -> int:
        lo, hi = self._config.target_midi_min, self._config.target_midi_max
        while True:
            midi = self._rng.randint(lo, hi)
            if exclude is None or midi != int(round(exclude)):
                return midi

    def _retarget(self) -> None:
        old = self._target
        midi = self._random_midi(exclude=old.midi if old is not None else None)
        self._target = target_from_midi(midi)
        logger.info(
            "Calm held: target %s → %s",
            old.note_name if old is not None else "-",
            self._target.note_name,
        )

    def _play_cue(self, notes: tuple[CueNote, ...]) -> None:
        if self._cue_player is None or not notes:
            return
        try:
            self._cue_player(notes)
        except Exception:  # noqa: BLE001
            logger.warning("Cue player failed; continuing without reference tone", exc_info=True)
