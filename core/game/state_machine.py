"""
core/game/state_machine.py — Emotional state, energy and score for one game.

The creature has three moods, chosen from the current max semitone error with
hysteresis so it does not flicker on the band edges:

    error ≤ calm_enter                                → CALM
    error > chaos_enter                               → CHAOS
    previous CALM  and error ≤ calm_exit              → CALM    (sticky)
    previous CHAOS and error ≥ chaos_exit             → CHAOS   (sticky)
    otherwise                                         → UNSTABLE

State diagram (default sequence thresholds, semitones)::

    CALM ──(> 0.88)──→ UNSTABLE ──(> 2.0)──→ CHAOS
      ↑                   │  ↑                  │
      └──────(≤ 0.8)──────┘  └─────(< 1.8)──────┘

Silence handling:
    A tick with no valid voice starts (or extends) a silence timer. While the
    timer is under the grace window everything is frozen. Once it reaches the
    window the error becomes SILENCE_ERROR and the tick is evaluated like any
    other, which drives the creature into CHAOS. The timer only resets when a
    voice returns.

Usage::

    machine = StateMachine(SEQUENCE_CONFIG)
    outcome = machine.update(error=0.4, dt_ms=16.67)
    if outcome.game_over:
        ...
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from core.config import GameConfig
from core.game.proximity import SILENCE_ERROR, proximity
from core.game.scoring import Score, make_score
from core.game.types import EmotionalState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure transition function
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Thresholds:
    """Hysteresis thresholds in semitones."""

    calm_enter: float
    calm_exit: float
    chaos_enter: float
    chaos_exit: float

    @classmethod
    def from_config(cls, config: GameConfig) -> Thresholds:
        return cls(
            calm_enter=config.calm_enter,
            calm_exit=config.calm_exit,
            chaos_enter=config.chaos_enter,
            chaos_exit=config.chaos_exit,
        )


def next_state(previous: EmotionalState, error: float, thresholds: Thresholds) -> EmotionalState:
    """Decide the next emotional state from the previous one and the error.

    Depends only on its arguments. The entry rules win over the sticky rules,
    so a near-perfect note calms the creature even straight out of CHAOS.
    """
    if error <= thresholds.calm_enter:
        return EmotionalState.CALM
    if error > thresholds.chaos_enter:
        return EmotionalState.CHAOS
    if previous == EmotionalState.CALM and error <= thresholds.calm_exit:
        return EmotionalState.CALM
    if previous == EmotionalState.CHAOS and error >= thresholds.chaos_exit:
        return EmotionalState.CHAOS
    return EmotionalState.UNSTABLE


# ---------------------------------------------------------------------------
# Stateful machine
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TickOutcome:
    """What one ``update`` call did. Returned so callers can react and count."""

    state: EmotionalState
    previous_state: EmotionalState
    frozen: bool = False
    """True when the tick fell inside the silence grace window."""
    calm_hold_reached: bool = False
    """True when CALM was held for calm_hold_ms and the reward was applied."""
    game_over: bool = False

    @property
    def transitioned(self) -> bool:
        return self.state != self.previous_state


@dataclass
class StateMachineStats:
    """Runtime counters for one game."""

    ticks: int = 0
    frozen_ticks: int = 0
    rewards: int = 0
    transitions: list[tuple[str, str, float]] = field(default_factory=list)
    """(from_state, to_state, survival_time_s) for every state change."""


class StateMachine:
    """Energy, emotional state, silence grace and score for one game.

    Not thread-safe: a session drives it from a single update loop.

    Args:
        config: Game configuration (thresholds, rates, grace window).
        calm_rewards: When True, holding CALM for ``calm_hold_ms`` applies
            ``target_change_reward`` to the score and reports it so the caller
            can pick a new target. Only the simple doom game enables it.
    """

    def __init__(self, config: GameConfig, *, calm_rewards: bool = False) -> None:
        self._config = config
        self._thresholds = Thresholds.from_config(config)
        self._calm_rewards = calm_rewards
        self._score: Score = make_score(config)
        self.stats = StateMachineStats()
        self._init_state()

    def _init_state(self) -> None:
        self._state = EmotionalState.CALM
        self._energy = self._config.initial_energy
        self._silence_ms = 0.0
        self._calm_hold_ms = 0.0
        self._survival_ms = 0.0
        self._last_error: float | None = None
        self._game_over = False

    # -- read-only views ------------------------------------------------------

    @property
    def state(self) -> EmotionalState:
        return self._state

    @property
    def energy(self) -> float:
        return self._energy

    @property
    def score(self) -> Score:
        return self._score

    @property
    def survival_time_s(self) -> float:
        return self._survival_ms / 1000.0

    @property
    def silence_ms(self) -> float:
        return self._silence_ms

    @property
    def last_error(self) -> float | None:
        return self._last_error

    @property
    def is_game_over(self) -> bool:
        return self._game_over

    # -- mutation -------------------------------------------------------------

    def reset(self, *, calm_rewards: bool | None = None) -> None:
        """Return to the initial state: CALM, initial energy, full score."""
        if calm_rewards is not None:
            self._calm_rewards = calm_rewards
        self._score.reset()
        self.stats = StateMachineStats()
        self._init_state()

    def elapse(self, dt_ms: float) -> None:
        """Count PLAYING time without evaluating anything (no target to sing)."""
        if not self._game_over:
            self._survival_ms += dt_ms

    def update(self, error: float | None, dt_ms: float) -> TickOutcome:
        """Advance the machine by one tick.

        Args:
            error: Max semitone error of the valid voices, or None for no signal.
            dt_ms: Milliseconds since the previous tick (non-negative).

        Returns:
            TickOutcome describing the tick. After game over every call returns
            a game-over outcome and mutates nothing.
        """
        previous = self._state
        if self._game_over:
            return TickOutcome(state=previous, previous_state=previous, game_over=True)

        self.stats.ticks += 1
        self._survival_ms += dt_ms

        if error is None or not math.isfinite(error):
            self._silence_ms += dt_ms
            if self._silence_ms < self._config.grace_silence_ms:
                self.stats.frozen_ticks += 1
                return TickOutcome(state=previous, previous_state=previous, frozen=True)
            error = SILENCE_ERROR
        else:
            self._silence_ms = 0.0

        self._last_error = error
        target_energy = proximity(error, self._config.error_span)
        lerp = self._config.energy_lerp
        self._energy = min(max(self._energy + (target_energy - self._energy) * lerp, 0.0), 1.0)

        new_state = next_state(previous, error, self._thresholds)
        if new_state != previous:
            self._transition_to(new_state)

        self._score.apply(new_state, dt_ms / 1000.0)

        calm_hold_reached = False
        if new_state == EmotionalState.CALM:
            self._calm_hold_ms += dt_ms
            if self._calm_rewards and self._calm_hold_ms >= self._config.calm_hold_ms:
                self._calm_hold_ms = 0.0
                self._score.reward(self._config.target_change_reward)
                self.stats.rewards += 1
                calm_hold_reached = True
        else:
            self._calm_hold_ms = 0.0

        if self._score.is_terminal:
            self._game_over = True
            logger.info(
                "Game over: %s reached %.3f after %.2fs",
                self._score.model.value,
                self._score.value,
                self.survival_time_s,
            )

        return TickOutcome(
            state=new_state,
            previous_state=previous,
            calm_hold_reached=calm_hold_reached,
            game_over=self._game_over,
        )

    def _transition_to(self, new_state: EmotionalState) -> None:
        old_state = self._state
        self._state = new_state
        self.stats.transitions.append((old_state.value, new_state.value, self.survival_time_s))
        logger.debug("State %s → %s (error=%.2f)", old_state.value, new_state.value, self._last_error)
